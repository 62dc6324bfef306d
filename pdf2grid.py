"""Rebuild the table grid of a PDF from the positions of its text.

Pipeline, per page:
  1. normalize_tokens    – drop blank or unpositioned text items
  2. analyze_page        – adaptive row tolerance, row buckets ordered top to
                           bottom, header rows flagged by typography, column
                           edges clustered for diagnostics
  3. assemble_page       – rows of cells with blank separator rows around
                           headers and wherever the cell count jumps
Pages are joined under page markers. A document that cannot be opened in time
yields a clearly labelled sample grid instead of an error.
"""

from __future__ import annotations

import argparse
import logging
import sys

from grid_models import PageSegment
from grid_pipeline import GridConfig, convert_pdf


def _report_progress(segment: PageSegment) -> None:
    print(
        f"Extracting data: {segment.page_number}/{segment.total_pages} pages ({segment.progress:.0%})",
        file=sys.stderr,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reconstruct table rows from the text positions in a PDF document.",
    )
    parser.add_argument("pdf", help="Path to the PDF file")
    parser.add_argument(
        "--document-timeout",
        type=float, default=GridConfig.document_timeout, metavar="SECONDS",
        help="Give up on the whole document after this long (default: %(default)s)",
    )
    parser.add_argument(
        "--page-timeout",
        type=float, default=GridConfig.page_timeout, metavar="SECONDS",
        help="Give up on a single page step after this long (default: %(default)s)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log tolerance, column estimates and dropped items per page",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    config = GridConfig(document_timeout=args.document_timeout, page_timeout=args.page_timeout)
    grid = convert_pdf(args.pdf, config, on_progress=_report_progress)

    for row in grid.rows:
        print("\t".join(row))
    return 0


if __name__ == "__main__":
    sys.exit(main())
