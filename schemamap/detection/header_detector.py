"""Header row detection for spreadsheet-like rows."""

from typing import List, Sequence, Tuple

from schemamap.agents.column_mapping.canonical_fields import lookup_alias

# Headers are almost always within the first few rows
MAX_HEADER_SCAN_ROWS = 5

ALIAS_MATCH_SCORE = 25
HEADER_LIKE_SCORE = 5
TWO_MATCH_BONUS = 20
THREE_MATCH_BONUS = 30
MAX_SCORE = 100

_MARKDOWN_PREFIXES = ("#", ">", "```", "- ", "* ")


def _has_markdown_marker(cell: str) -> bool:
    return cell.strip().startswith(_MARKDOWN_PREFIXES)


def looks_like_header(cell: str) -> bool:
    """Short, non-numeric, non-sentence text reads like a header."""
    cell = cell.strip()
    if not cell or len(cell) > 50:
        return False
    if cell[0].isdigit():
        return False
    if ". " in cell:
        return False
    return len(cell.split()) <= 3


def score_header_row(row: Sequence[str]) -> int:
    """
    Score how likely a row is the header row.

    Args:
        row: Cell values

    Returns:
        Score from 0 to 100
    """
    cells = [str(c) if c is not None else "" for c in row]
    if not cells:
        return 0

    if any(_has_markdown_marker(c) for c in cells):
        return 0

    if sum(1 for c in cells if c.strip()) < 2:
        return 0

    score = 0
    matched = 0
    for cell in cells:
        if lookup_alias(cell) is not None:
            matched += 1
            score += ALIAS_MATCH_SCORE
        if looks_like_header(cell):
            score += HEADER_LIKE_SCORE

    if matched >= 2:
        score += TWO_MATCH_BONUS
    if matched >= 3:
        score += THREE_MATCH_BONUS

    return min(score, MAX_SCORE)


def detect_header_row(rows: List[Sequence[str]]) -> Tuple[int, int]:
    """
    Find the most likely header row among the first five rows.

    Args:
        rows: Table rows

    Returns:
        Tuple of (row_index, confidence 0-100). Ties keep the earliest row.
    """
    best_row, best_score = 0, 0
    for index, row in enumerate(rows[:MAX_HEADER_SCAN_ROWS]):
        score = score_header_row(row)
        if score > best_score:
            best_row, best_score = index, score
    return best_row, best_score
