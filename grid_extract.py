from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from pathlib import Path

import pdfplumber

from grid_models import Token

logger = logging.getLogger(__name__)

_MISSING = object()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return math.floor(value + 0.5)


def _coerce_number(value: object) -> float | None:
    """Return *value* as a finite float, or None if it cannot be one."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _coordinate(item: Mapping, key: str) -> float | None:
    """A missing coordinate defaults to 0; a present but unusable one is None."""
    raw = item.get(key, _MISSING)
    if raw is _MISSING or raw is None:
        return 0.0
    return _coerce_number(raw)


def _extent(item: Mapping, key: str) -> float:
    number = _coerce_number(item.get(key))
    return number if number is not None else 0.0


def _first(item: Mapping, *keys: str) -> object:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def normalize_token(item: object) -> Token | None:
    """Coerce one raw text item into a Token, or None if it must be dropped."""
    if not isinstance(item, Mapping):
        return None

    text = item.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    x = _coordinate(item, "x")
    y = _coordinate(item, "y")
    if x is None or y is None:
        return None

    font_name = _first(item, "fontName", "font_name")
    if not isinstance(font_name, str) or not font_name:
        font_name = None

    font_size = _coerce_number(_first(item, "fontSize", "font_size"))
    if font_size is not None and font_size <= 0:
        font_size = None

    return Token(
        text=text,
        x=round_half_up(x),
        y=round_half_up(y),
        width=_extent(item, "width"),
        height=_extent(item, "height"),
        font_name=font_name,
        font_size=font_size,
    )


def normalize_tokens(items: Iterable[object] | None) -> list[Token]:
    """Return the valid Tokens in *items*, preserving order.

    Items with blank text or unresolvable positions are skipped, never raised.
    """
    tokens: list[Token] = []
    dropped = 0
    for item in items or ():
        token = normalize_token(item)
        if token is None:
            dropped += 1
            continue
        tokens.append(token)

    if dropped:
        logger.debug("Dropped %d malformed or empty text items", dropped)
    return tokens


# ---------------------------------------------------------------------------
# pdfplumber text layer
# ---------------------------------------------------------------------------


class PdfDocument:
    """A pdfplumber document seen as numbered pages of positioned text items.

    The page tree is parsed when the document is wrapped, so the cost lands
    in the bounded open step rather than in the first page lookup.
    """

    def __init__(self, pdf: pdfplumber.PDF) -> None:
        self._pdf = pdf
        self._page_count = len(pdf.pages)

    @property
    def page_count(self) -> int:
        return self._page_count

    def get_page(self, page_number: int) -> pdfplumber.page.Page:
        """Return the 1-based *page_number*."""
        return self._pdf.pages[page_number - 1]

    def text_items(self, page: pdfplumber.page.Page) -> list[dict]:
        return page_text_items(page)

    def close(self) -> None:
        self._pdf.close()


def open_document(path: str | Path) -> PdfDocument:
    pdf = pdfplumber.open(path)
    try:
        return PdfDocument(pdf)
    except Exception:
        pdf.close()
        raise


def page_text_items(page: pdfplumber.page.Page) -> list[dict]:
    """Return text runs on *page* with a bottom-left origin.

    Runs keep their inner spaces and split only on wider gaps or a change of
    font, so one item corresponds roughly to one drawn string. ``y`` is the
    distance of the run's bottom edge from the page bottom: larger is higher.
    """
    words = page.extract_words(
        keep_blank_chars=True,
        use_text_flow=False,
        extra_attrs=["fontname", "size"],
    )
    items: list[dict] = []
    for w in words:
        items.append(
            {
                "text": w["text"],
                "x": w["x0"],
                "y": page.height - w["bottom"],
                "width": w["x1"] - w["x0"],
                "height": w["bottom"] - w["top"],
                "fontName": w.get("fontname"),
                "fontSize": w.get("size"),
            }
        )
    return items
