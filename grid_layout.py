from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict

from grid_extract import round_half_up
from grid_models import PageResult, Row, Token

logger = logging.getLogger(__name__)

DEFAULT_ROW_TOLERANCE = 5
MIN_ROW_TOLERANCE = 3
_MIN_TOKENS_FOR_ESTIMATE = 10
_LINE_GAP_CUTOFF = 20  # larger baseline gaps are paragraph or table breaks
_TOLERANCE_FACTOR = 0.3

COLUMN_CLUSTER_THRESHOLD = 10

HEADER_FONT_SIZE = 12
_COMMON_FONT_COUNT = 2


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------


def estimate_row_tolerance(tokens: list[Token]) -> int:
    """Return the vertical distance within which baselines count as one row.

    The most frequent gap between consecutive sorted baselines approximates
    the line pitch; 30% of it merges jitter on a line without reaching the
    next one. Equal-frequency gaps resolve to the smallest gap.
    """
    if len(tokens) < _MIN_TOKENS_FOR_ESTIMATE:
        return DEFAULT_ROW_TOLERANCE

    ys = sorted(t.y for t in tokens)
    diffs = [abs(b - a) for a, b in zip(ys, ys[1:])]
    diffs = [d for d in diffs if 0 < d < _LINE_GAP_CUTOFF]
    if not diffs:
        return DEFAULT_ROW_TOLERANCE

    counts = Counter(round_half_up(d) for d in diffs)
    most_common_diff = min(counts, key=lambda d: (-counts[d], d))
    return max(MIN_ROW_TOLERANCE, math.ceil(most_common_diff * _TOLERANCE_FACTOR))


def row_key(y: float, tolerance: int) -> int:
    return round_half_up(y / tolerance) * tolerance


def group_rows(tokens: list[Token], tolerance: int) -> dict[int, list[Token]]:
    """Bucket *tokens* by quantized baseline, keeping input order in each bucket."""
    by_key: dict[int, list[Token]] = defaultdict(list)
    for token in tokens:
        by_key[row_key(token.y, tolerance)].append(token)
    return dict(by_key)


def order_rows(buckets: dict[int, list[Token]]) -> list[Row]:
    """Sort each bucket left to right and the buckets top to bottom.

    PDF space grows upward, so the highest key is the top of the page.
    """
    rows: list[Row] = []
    for key in sorted(buckets, reverse=True):
        tokens = sorted(buckets[key], key=lambda t: t.x)
        rows.append(Row(key=key, tokens=tuple(tokens), is_header=is_header_row(tokens)))
    return rows


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def estimate_column_boundaries(rows: list[Row]) -> list[float]:
    """Cluster token left and right edges into estimated column boundaries.

    Each edge joins the nearest cluster whose running mean lies within
    COLUMN_CLUSTER_THRESHOLD, otherwise it opens a new cluster. The result is
    diagnostic only; cells are never rebinned against it.
    """
    edges: set[float] = set()
    for row in rows:
        for token in row.tokens:
            edges.add(token.x)
            if token.width:
                edges.add(token.x + token.width)

    clusters: list[list[float]] = []
    means: list[float] = []
    for x in sorted(edges):
        best = None
        best_dist = None
        for i, mean in enumerate(means):
            dist = abs(mean - x)
            if dist <= COLUMN_CLUSTER_THRESHOLD and (best_dist is None or dist < best_dist):
                best, best_dist = i, dist
        if best is None:
            clusters.append([x])
            means.append(x)
        else:
            clusters[best].append(x)
            means[best] = sum(clusters[best]) / len(clusters[best])

    return sorted(means)


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


def is_header_row(tokens: list[Token] | tuple[Token, ...]) -> bool:
    """Return True if any token's typography departs from the row's usual style.

    The two most frequent font names are the row's common fonts. A token in
    any other font, or larger than HEADER_FONT_SIZE, marks the whole row.
    """
    font_counts = Counter(t.font_name for t in tokens if t.font_name)
    common = {name for name, _ in font_counts.most_common(_COMMON_FONT_COUNT)}
    return any(
        (t.font_name and t.font_name not in common)
        or (t.font_size and t.font_size > HEADER_FONT_SIZE)
        for t in tokens
    )


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------


def analyze_page(tokens: list[Token], page_number: int) -> PageResult:
    """Infer the rows of one page from its normalized tokens."""
    tolerance = estimate_row_tolerance(tokens)
    logger.debug("Page %d row tolerance: %d", page_number, tolerance)

    rows = order_rows(group_rows(tokens, tolerance))
    result = PageResult(
        page_number=page_number,
        rows=tuple(rows),
        token_count=len(tokens),
        tolerance=tolerance,
        column_boundaries=tuple(estimate_column_boundaries(rows)),
    )
    logger.debug("Page %d estimated columns: %d", page_number, result.column_count)
    return result
