"""Confidence thresholds, review gate and confidence-based fallback."""

import copy
import logging
from dataclasses import dataclass
from enum import Enum

from schemamap.agents.column_mapping.model import ColumnMappingResult, ExtraColumnMapping

logger = logging.getLogger(__name__)

# Canonical mappings below this confidence are demoted to extra columns
FALLBACK_CONFIDENCE_THRESHOLD = 0.40

# Share of unmapped columns above which a mapping needs review
MAX_UNMAPPED_RATIO = 0.40


class ConfidenceLevel(str, Enum):
    """Coarse confidence bucket for a mapping."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ConfidenceThresholds:
    """Process-wide confidence thresholds (read-only).

    header_confidence_threshold is on a 0-100 scale, unlike the mapping
    confidences which are in [0, 1].
    """

    high_confidence: float = 0.80
    medium_confidence: float = 0.65
    low_confidence: float = 0.55
    header_confidence_threshold: int = 70
    required_field_mapping_threshold: float = 0.50

    def is_high_confidence(self, avg_confidence: float) -> bool:
        return avg_confidence >= self.high_confidence

    def is_medium_confidence(self, avg_confidence: float) -> bool:
        return self.medium_confidence <= avg_confidence < self.high_confidence

    def is_low_confidence(self, avg_confidence: float) -> bool:
        return avg_confidence < self.medium_confidence

    def get_confidence_level(self, avg_confidence: float) -> ConfidenceLevel:
        """
        Bucket an average confidence.

        Args:
            avg_confidence: Mean mapping confidence in [0, 1]

        Returns:
            HIGH if >= 0.80, MEDIUM if >= 0.65, LOW otherwise
        """
        if self.is_high_confidence(avg_confidence):
            return ConfidenceLevel.HIGH
        if self.is_medium_confidence(avg_confidence):
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW

    def should_review_mapping(
        self,
        avg_confidence: float,
        header_confidence: int,
        unmapped_count: int,
        total_columns: int,
    ) -> bool:
        """
        Decide whether a human must confirm a mapping before it is trusted.

        Args:
            avg_confidence: Mean canonical mapping confidence in [0, 1]
            header_confidence: Header row detection confidence (0-100)
            unmapped_count: Number of columns left as extra columns
            total_columns: Number of source columns

        Returns:
            True when any review condition holds
        """
        if total_columns == 0:
            return True

        if avg_confidence < self.medium_confidence:
            return True

        if header_confidence < self.header_confidence_threshold:
            return True

        if unmapped_count / total_columns > MAX_UNMAPPED_RATIO:
            return True

        return False


DEFAULT_THRESHOLDS = ConfidenceThresholds()


def get_confidence_level(avg_confidence: float) -> ConfidenceLevel:
    """Bucket an average confidence using the default thresholds."""
    return DEFAULT_THRESHOLDS.get_confidence_level(avg_confidence)


def should_review_mapping(
    avg_confidence: float,
    header_confidence: int,
    unmapped_count: int,
    total_columns: int,
) -> bool:
    """Review gate using the default thresholds."""
    return DEFAULT_THRESHOLDS.should_review_mapping(
        avg_confidence, header_confidence, unmapped_count, total_columns
    )


def apply_confidence_fallback(
    result: ColumnMappingResult,
    threshold: float = FALLBACK_CONFIDENCE_THRESHOLD,
) -> ColumnMappingResult:
    """
    Demote low-confidence canonical mappings to extra columns.

    Mappings below the threshold are moved (never dropped) into extra_columns
    with a "possible_<name>" semantic role, ahead of the existing extras.
    Counts and average confidence are recomputed; total_columns is unchanged.

    Args:
        result: Mapping result (not modified)
        threshold: Confidence below which a mapping is demoted

    Returns:
        New ColumnMappingResult
    """
    updated = copy.deepcopy(result)

    kept = []
    demoted = []
    for mapping in updated.canonical_fields:
        if mapping.confidence < threshold:
            demoted.append(
                ExtraColumnMapping(
                    name=mapping.source_header,
                    semantic_role=(
                        f"possible_{mapping.canonical_name} "
                        f"(confidence: {mapping.confidence * 100:.1f}%)"
                    ),
                    column_index=mapping.column_index,
                    confidence=mapping.confidence,
                )
            )
        else:
            kept.append(mapping)

    if demoted:
        logger.debug(
            f"Demoted {len(demoted)} low-confidence mapping(s) below {threshold:.2f} to extra columns"
        )

    updated.canonical_fields = kept
    updated.extra_columns = demoted + updated.extra_columns
    updated.recompute_meta()
    return updated
