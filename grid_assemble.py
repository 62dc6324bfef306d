from __future__ import annotations

import logging
from datetime import datetime

import pdfplumber

from grid_extract import round_half_up
from grid_models import PageResult, TableGrid

logger = logging.getLogger(__name__)

_COLUMN_JUMP = 2  # a cell-count change larger than this starts a new block

NO_TEXT_MESSAGE = "No text was found on this page, or it could not be extracted"


def page_marker(page_number: int) -> list[str]:
    return [f"--- Page {page_number} ---"]


def page_error_row(page_number: int, message: str) -> list[str]:
    return [f"[An error occurred while processing page {page_number}: {message or 'unknown error'}]"]


def assemble_page(page: PageResult, grid: TableGrid, more_pages: bool = False) -> TableGrid:
    """Append the rows of *page* to *grid*, with blank separator rows.

    A blank row goes before a row whose cell count jumps by more than two
    from the previous row, and around every header row. The jump is measured
    against the previous row alone, so one noisy row can open a block.
    """
    if not page.rows:
        grid.append([NO_TEXT_MESSAGE])
        return grid

    last_count = 0
    for row in page.rows:
        cells = row.cells
        if not cells:
            continue

        if last_count > 0 and len(cells) > 1 and abs(len(cells) - last_count) > _COLUMN_JUMP:
            grid.add_separator()

        if row.is_header and not grid.last_row_is_blank():
            grid.add_separator()

        grid.append(cells)

        if row.is_header:
            grid.add_separator()

        last_count = len(cells)

    if more_pages:
        grid.add_separator()
    return grid


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

_SAMPLE_TABLE = [
    ["Item", "Quantity", "Unit Price", "Amount"],
    ["Product A", "2", "1,000", "2,000"],
    ["Product B", "1", "3,000", "3,000"],
    ["Product C", "3", "500", "1,500"],
    ["Total", "", "", "6,500"],
]


def format_file_size(file_size: object) -> str:
    if file_size is None:
        return "Unknown"
    try:
        return f"{round_half_up(float(file_size) / 1024)} KB"
    except (TypeError, ValueError, OverflowError):
        return "Size error"


def format_timestamp(converted_at: datetime | None) -> str:
    try:
        return (converted_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    except (AttributeError, ValueError):
        return str(converted_at)


def fallback_grid(
    file_name: str | None = None,
    file_size: int | float | None = None,
    converted_at: datetime | None = None,
) -> TableGrid:
    """Return the placeholder grid used when real extraction is not possible.

    The grid says plainly that its contents are a sample and carries no
    detail of the failure that caused it.
    """
    name = file_name or "document.pdf"
    grid = TableGrid(
        [
            [f"Data extracted from file '{name}'"],
            [],
            ["Note: the actual PDF content could not be extracted, so this output was generated in simulation mode."],
            ["This data is a sample and does not reflect the contents of the PDF."],
            [],
            *_SAMPLE_TABLE,
            [],
            ["PDF Conversion Info"],
            ["Converted At", format_timestamp(converted_at)],
            ["File Size", format_file_size(file_size)],
            ["pdfplumber Version", getattr(pdfplumber, "__version__", "N/A")],
            ["Mode", "Simulation (fallback)"],
        ]
    )
    logger.info("Generated fallback grid for %s", name)
    return grid
