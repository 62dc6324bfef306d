from __future__ import annotations

import logging
import queue
import threading
import warnings
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pdfplumber

from grid_assemble import (
    assemble_page,
    fallback_grid,
    format_file_size,
    format_timestamp,
    page_error_row,
    page_marker,
)
from grid_extract import normalize_tokens, open_document
from grid_layout import analyze_page
from grid_models import STATUS_ERROR, STATUS_OK, STATUS_TIMEOUT, PageSegment, StepResult, TableGrid

logging.getLogger("pdfminer").setLevel(logging.ERROR)
warnings.filterwarnings("ignore", module="pdfminer")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridConfig:
    """Time limits, in seconds, for the bounded extraction steps."""

    document_timeout: float = 20.0
    page_timeout: float = 5.0


DEFAULT_CONFIG = GridConfig()


class _Step:
    """One queued call and, once it has run, its outcome."""

    def __init__(self, func: Callable, args: tuple, always: bool = False) -> None:
        self.func = func
        self.args = args
        self.always = always
        self.lock = threading.Lock()
        self.finished = threading.Event()
        self.abandoned = False
        self.value = None
        self.error: Exception | None = None


def _discard(value: object) -> None:
    """Close a result whose caller stopped waiting for it."""
    close = getattr(value, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            logger.debug("Error closing abandoned result %r", value, exc_info=True)


class StepRunner:
    """Runs bounded steps one at a time on a single daemon worker thread.

    A caller waits at most its timeout. A step that overruns keeps the worker
    busy, so later steps queue behind it instead of touching the document at
    the same time; queued steps whose caller already gave up are skipped, and
    a result that arrives too late is closed. The worker never holds up
    interpreter exit.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[_Step | None] = queue.Queue()
        self._worker = threading.Thread(target=self._work, name="grid-steps", daemon=True)
        self._worker.start()

    def _work(self) -> None:
        while True:
            step = self._queue.get()
            if step is None:
                return
            with step.lock:
                skip = step.abandoned and not step.always
            if skip:
                continue

            value, error = None, None
            try:
                value = step.func(*step.args)
            except Exception as exc:
                error = exc

            with step.lock:
                step.value, step.error = value, error
                step.finished.set()
                late = step.abandoned
            if late and error is None:
                _discard(value)

    def _submit(self, func: Callable, args: tuple, always: bool = False) -> _Step:
        step = _Step(func, args, always)
        self._queue.put(step)
        return step

    def _wait(self, step: _Step, timeout: float) -> StepResult:
        step.finished.wait(timeout)
        with step.lock:
            if not step.finished.is_set():
                step.abandoned = True
                return StepResult(STATUS_TIMEOUT, error=f"timed out after {timeout:g}s")
        if step.error is not None:
            return StepResult(STATUS_ERROR, error=str(step.error) or step.error.__class__.__name__)
        return StepResult(STATUS_OK, value=step.value)

    def run(self, func: Callable, timeout: float, *args) -> StepResult:
        """Run ``func(*args)`` after any pending step and wait at most *timeout* seconds."""
        return self._wait(self._submit(func, args), timeout)

    def stop(self, cleanup: Callable | None = None, timeout: float = 0.0) -> None:
        """End the worker once pending steps are done.

        *cleanup* runs after every pending step, even if waiting for it times
        out, so it never overlaps a step that is still using the document.
        """
        if cleanup is not None:
            result = self._wait(self._submit(cleanup, (), always=True), timeout)
            if not result.ok:
                logger.debug("Cleanup did not complete: %s", result.error)
        self._queue.put(None)


def _page_rows(
    document,
    page_number: int,
    total_pages: int,
    config: GridConfig,
    runner: StepRunner,
) -> TableGrid:
    grid = TableGrid()
    grid.append(page_marker(page_number))

    page = runner.run(document.get_page, config.page_timeout, page_number)
    if not page.ok:
        logger.warning("Page %d could not be loaded: %s", page_number, page.error)
        grid.append(page_error_row(page_number, f"page load {page.error}"))
        return grid

    items = runner.run(document.text_items, config.page_timeout, page.value)
    if not items.ok:
        logger.warning("Text extraction failed on page %d: %s", page_number, items.error)
        grid.append(page_error_row(page_number, f"text extraction {items.error}"))
        return grid

    tokens = normalize_tokens(items.value)
    logger.debug("Page %d: %d text items, %d usable", page_number, len(items.value or ()), len(tokens))

    result = analyze_page(tokens, page_number)
    assemble_page(result, grid, more_pages=page_number < total_pages)
    return grid


def iter_page_segments(
    document,
    config: GridConfig = DEFAULT_CONFIG,
    runner: StepRunner | None = None,
) -> Iterator[PageSegment]:
    """Yield each page's grid rows in order, one page fully before the next.

    A page that fails or times out yields its marker and an error row; later
    pages are still processed. Without a *runner* one is started for the
    duration of the iteration.
    """
    own_runner = runner is None
    runner = runner or StepRunner()
    try:
        total = document.page_count
        for page_number in range(1, total + 1):
            logger.info("Processing page %d/%d", page_number, total)
            try:
                grid = _page_rows(document, page_number, total, config, runner)
            except Exception as exc:
                logger.exception("Unexpected error on page %d", page_number)
                grid = TableGrid([page_marker(page_number), page_error_row(page_number, str(exc))])
            yield PageSegment(page_number=page_number, total_pages=total, rows=grid.rows)
    finally:
        if own_runner:
            runner.stop()


def _file_size(path: Path) -> int | None:
    try:
        return path.stat().st_size
    except (OSError, ValueError):
        return None


def convert_pdf(
    pdf_path: str | Path,
    config: GridConfig | None = None,
    *,
    opener: Callable = open_document,
    on_progress: Callable[[PageSegment], None] | None = None,
    converted_at: datetime | None = None,
) -> TableGrid:
    """Reconstruct the text grid of every page in *pdf_path*.

    Never raises: if the document cannot be opened in time, or anything else
    goes wrong outside a single page, the fallback grid is returned instead.
    Opening the document and every page step run on one worker, in order.
    """
    config = config or DEFAULT_CONFIG
    path = Path(pdf_path)
    file_size = _file_size(path)

    if not path.exists():
        logger.error("File not found: %s", path)
        return fallback_grid(path.name, file_size, converted_at)

    runner = StepRunner()
    document = None
    try:
        opened = runner.run(opener, config.document_timeout, path)
        if not opened.ok:
            logger.error("Could not open %s (%s): %s", path.name, opened.status, opened.error)
            return fallback_grid(path.name, file_size, converted_at)

        document = opened.value
        total = document.page_count
        logger.info("Loaded %s: %d pages", path.name, total)

        grid = TableGrid(
            [
                [f"Data extracted from file '{path.name}'"],
                [f"Total pages: {total}"],
                [],
            ]
        )
        for segment in iter_page_segments(document, config, runner):
            grid.extend(segment.rows)
            if on_progress is not None:
                on_progress(segment)

        grid.add_separator()
        grid.extend(
            [
                ["PDF Conversion Info"],
                ["Converted At", format_timestamp(converted_at)],
                ["File Size", format_file_size(file_size)],
                ["pdfplumber Version", getattr(pdfplumber, "__version__", "N/A")],
                ["Extraction Mode", "Real data extraction"],
            ]
        )
        logger.info("Extraction complete: %d grid rows", len(grid))
        return grid
    except Exception:
        logger.exception("Extraction failed for %s, using fallback", path.name)
        return fallback_grid(path.name, file_size, converted_at)
    finally:
        runner.stop(getattr(document, "close", None), config.page_timeout)
