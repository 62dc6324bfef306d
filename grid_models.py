from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Token:
    """A positioned text fragment reported by the page text layer."""

    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    font_name: str | None = None
    font_size: float | None = None


@dataclass(frozen=True)
class Row:
    """Tokens sharing one row bucket, ordered left to right."""

    key: int
    tokens: tuple[Token, ...]
    is_header: bool = False

    @property
    def cells(self) -> list[str]:
        texts = (t.text.strip() for t in self.tokens)
        return [text for text in texts if text]


@dataclass(frozen=True)
class PageResult:
    """Rows of one page, top to bottom, with the geometry used to build them."""

    page_number: int
    rows: tuple[Row, ...]
    token_count: int
    tolerance: int
    column_boundaries: tuple[float, ...] = ()

    @property
    def column_count(self) -> int:
        return max(len(self.column_boundaries) - 1, 0)


class TableGrid:
    """Append-only rows of string cells. An empty row is a structural separator."""

    def __init__(self, rows: list[list[str]] | None = None) -> None:
        self._rows: list[tuple[str, ...]] = [tuple(r) for r in (rows or [])]

    def __len__(self) -> int:
        return len(self._rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableGrid):
            return NotImplemented
        return self._rows == other._rows

    def __repr__(self) -> str:
        return f"TableGrid({len(self._rows)} rows)"

    def append(self, cells: list[str] | tuple[str, ...]) -> None:
        self._rows.append(tuple(cells))

    def add_separator(self) -> None:
        self._rows.append(())

    def extend(self, rows) -> None:
        for cells in rows:
            self.append(cells)

    def last_row_is_blank(self) -> bool:
        """True when the grid is empty or ends in a separator."""
        return not self._rows or not self._rows[-1]

    @property
    def rows(self) -> tuple[tuple[str, ...], ...]:
        return tuple(self._rows)

    def to_lists(self) -> list[list[str]]:
        """Return a copy shaped for a 2-D sheet writer."""
        return [list(r) for r in self._rows]


STATUS_OK = "ok"
STATUS_TIMEOUT = "timeout"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class StepResult:
    """Outcome of one time-bounded extraction step."""

    status: str
    value: Any = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass(frozen=True)
class PageSegment:
    """One page's slice of the document grid, emitted as conversion progresses."""

    page_number: int
    total_pages: int
    rows: tuple[tuple[str, ...], ...] = field(default_factory=tuple)

    @property
    def progress(self) -> float:
        if self.total_pages <= 0:
            return 1.0
        return self.page_number / self.total_pages
