"""Heuristic detection of pasted TSV, CSV and Markdown tables.

quick_detect() is a pure optimization: when it returns None the caller falls
back to full analysis.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

FORMAT_TSV = "tsv"
FORMAT_MARKDOWN = "markdown_table"
FORMAT_CSV = "csv"

TSV_CONFIDENCE = 0.95
MARKDOWN_CONFIDENCE = 0.95
CSV_CONFIDENCE = 0.85

CSV_RELIABILITY_FLOOR = 0.8
CSV_MAX_LINES = 100
# Lines after the first considered when scoring CSV reliability
CSV_SAMPLE_LINES = 9

logger = logging.getLogger(__name__)

_MARKDOWN_SEPARATOR = re.compile(r"^\|?\s*:?-{1,}:?\s*(\|\s*:?-{1,}:?\s*)*\|?$")


@dataclass
class TableDetectionResult:
    """A detected table. rows[0] is the header row."""

    format: str
    rows: List[List[str]] = field(default_factory=list)
    confidence: float = 0.0

    @property
    def headers(self) -> List[str]:
        return list(self.rows[0]) if self.rows else []

    @property
    def data_rows(self) -> List[List[str]]:
        return [list(r) for r in self.rows[1:]]

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "format": self.format,
            "rows": self.rows,
            "confidence": self.confidence,
        }


def _non_empty_lines(content: str) -> List[str]:
    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return [line for line in lines if line.strip()]


def parse_markdown_row(line: str) -> List[str]:
    """Split a Markdown table row on '|' and trim each cell."""
    line = line.strip()
    if line.startswith("|"):
        line = line[1:]
    if line.endswith("|"):
        line = line[:-1]
    return [cell.strip() for cell in line.split("|")]


def is_markdown_separator(line: str) -> bool:
    """Check for a Markdown header separator row such as '| --- | :-: |'."""
    return bool(_MARKDOWN_SEPARATOR.match(line.strip()))


def detect_csv_reliability(lines: List[str]) -> float:
    """
    Score how consistently lines follow the first line's comma layout.

    Args:
        lines: Non-empty input lines

    Returns:
        Share (0-1) of up to 9 follow-up lines whose comma count matches the first line
    """
    if len(lines) < 2:
        return 0.0

    first_commas = lines[0].count(",")
    if first_commas < 1:
        return 0.0

    sample = [line for line in lines[1:] if line.strip()][:CSV_SAMPLE_LINES]
    if not sample:
        return 0.0

    matching = sum(1 for line in sample if line.count(",") == first_commas)
    return matching / len(sample)


def _detect_tsv(lines: List[str]) -> Optional[TableDetectionResult]:
    if len(lines) < 2 or not all("\t" in line for line in lines):
        return None
    rows = [[cell.strip() for cell in line.split("\t")] for line in lines]
    if len({len(row) for row in rows}) != 1:
        return None
    return TableDetectionResult(format=FORMAT_TSV, rows=rows, confidence=TSV_CONFIDENCE)


def _detect_markdown(lines: List[str]) -> Optional[TableDetectionResult]:
    if len(lines) < 2 or not lines[0].strip().startswith("|"):
        return None
    if not is_markdown_separator(lines[1]):
        return None

    headers = parse_markdown_row(lines[0])
    if not any(headers):
        return None

    rows = [headers]
    skipped = 0
    for line in lines[2:]:
        if not line.strip().startswith("|"):
            skipped += 1
            continue
        rows.append(parse_markdown_row(line))
    if skipped:
        logger.debug(f"Markdown table: skipped {skipped} line(s) outside the table")
    return TableDetectionResult(format=FORMAT_MARKDOWN, rows=rows, confidence=MARKDOWN_CONFIDENCE)


def _detect_csv(lines: List[str]) -> Optional[TableDetectionResult]:
    if len(lines) < 2 or len(lines) >= CSV_MAX_LINES:
        return None
    if "," not in lines[0]:
        return None
    if detect_csv_reliability(lines) < CSV_RELIABILITY_FLOOR:
        return None

    rows = [[cell.strip() for cell in line.split(",")] for line in lines]
    if len({len(row) for row in rows}) != 1:
        return None
    return TableDetectionResult(format=FORMAT_CSV, rows=rows, confidence=CSV_CONFIDENCE)


def quick_detect(content: str) -> Optional[TableDetectionResult]:
    """
    Detect obviously well-formed delimited data without calling the AI.

    Tries TSV, then Markdown table, then CSV.

    Args:
        content: Raw pasted text

    Returns:
        TableDetectionResult (rows include the header row), or None when the
        content is not clearly tabular
    """
    if not content or not content.strip():
        return None

    lines = _non_empty_lines(content)
    for detector in (_detect_tsv, _detect_markdown, _detect_csv):
        result = detector(lines)
        if result is not None:
            return result
    return None
