"""Data models for mapping feedback."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

RATING_NEGATIVE = 1  # thumbs down
RATING_POSITIVE = 5  # thumbs up
VALID_RATINGS = (RATING_NEGATIVE, RATING_POSITIVE)

TREND_IMPROVING = "improving"
TREND_DECLINING = "declining"
TREND_STABLE = "stable"

PATTERN_LOW_RATING_CLUSTER = "low_rating_cluster"
PATTERN_WIDESPREAD_NEGATIVE = "widespread_negative"
PATTERN_COLUMN_CORRECTION_NEEDED = "column_correction_needed"

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"


@dataclass
class ColumnCorrection:
    """A user fix of one column mapping.

    frequency is computed when corrections are aggregated; it is never stored.
    """

    source_header: str
    wrong_mapping: str
    correct_mapping: str
    frequency: int = 0

    def to_dict(self) -> dict:
        """Convert to the persisted dictionary form (frequency excluded)"""
        return {
            "source_header": self.source_header,
            "wrong_mapping": self.wrong_mapping,
            "correct_mapping": self.correct_mapping,
        }


@dataclass
class Feedback:
    """User rating of a delivered mapping"""

    request_hash: str
    rating: int
    corrections: str = ""
    column_fixes: List[ColumnCorrection] = field(default_factory=list)
    session_id: str = ""
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "id": self.id,
            "request_hash": self.request_hash,
            "rating": self.rating,
            "corrections": self.corrections,
            "column_fixes": [c.to_dict() for c in self.column_fixes],
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class FeedbackStats:
    """Aggregate rating statistics"""

    total_count: int
    positive_count: int
    negative_count: int
    positive_rate: float
    recent_trend: str

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "total_count": self.total_count,
            "positive_count": self.positive_count,
            "negative_count": self.negative_count,
            "positive_rate": self.positive_rate,
            "recent_trend": self.recent_trend,
        }


@dataclass
class RequestHashSummary:
    """Per-request feedback counts within a time window"""

    request_hash: str
    total: int
    negative: int
    with_fixes: int


@dataclass
class FeedbackPattern:
    """A systemic issue detected in recent feedback. Never persisted."""

    pattern: str
    frequency: int
    suggestion: str
    severity: str
    request_hash: str = ""  # empty for global patterns

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "pattern": self.pattern,
            "frequency": self.frequency,
            "request_hash": self.request_hash,
            "suggestion": self.suggestion,
            "severity": self.severity,
        }


@dataclass
class LearningReport:
    """Summary of one learning run"""

    patterns_found: int = 0
    corrections_found: int = 0
    examples_generated: int = 0
    improvements: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "patterns_found": self.patterns_found,
            "corrections_found": self.corrections_found,
            "examples_generated": self.examples_generated,
            "improvements": list(self.improvements),
        }
