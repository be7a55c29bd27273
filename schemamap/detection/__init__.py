"""Fast table format and header row detection."""

from schemamap.detection.format_detector import TableDetectionResult, quick_detect
from schemamap.detection.header_detector import detect_header_row, score_header_row

__all__ = [
    "TableDetectionResult",
    "detect_header_row",
    "quick_detect",
    "score_header_row",
]
