"""Pattern detection over recent feedback."""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from schemamap.agents.column_mapping.example_pool import (
    OPERATION_COLUMN_MAPPING,
    SOURCE_USER_FEEDBACK,
    Example,
    ExampleMapping,
)
from schemamap.exceptions import MalformedPersistedDataError
from schemamap.feedback.model import (
    PATTERN_COLUMN_CORRECTION_NEEDED,
    PATTERN_LOW_RATING_CLUSTER,
    PATTERN_WIDESPREAD_NEGATIVE,
    SEVERITY_HIGH,
    SEVERITY_MEDIUM,
    ColumnCorrection,
    FeedbackPattern,
)
from schemamap.feedback.store import FeedbackStore, deserialize_column_fixes

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30
DEFAULT_TOP_CORRECTIONS = 10

LOW_RATING_THRESHOLD = 3
WIDESPREAD_MIN_ENTRIES = 5
WIDESPREAD_NEGATIVE_RATE = 0.5
CORRECTION_THRESHOLD = 3

USER_CORRECTION_SCHEMA = "user_correction"


class PatternAnalyzer:
    """Finds systemic issues and recurring corrections in stored feedback"""

    def __init__(self, store: FeedbackStore, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize analyzer.

        Args:
            store: Feedback store to read from
            clock: Time source for window cutoffs (defaults to the store's clock)
        """
        self.store = store
        self._clock = clock or store.now

    def _cutoff(self, days: int) -> datetime:
        return self._clock() - timedelta(days=days)

    def analyze_patterns(self, days: int = DEFAULT_WINDOW_DAYS) -> List[FeedbackPattern]:
        """
        Detect feedback patterns in the trailing window.

        Args:
            days: Window length in days (<= 0 uses 30)

        Returns:
            low_rating_cluster patterns (sorted by request hash), then
            widespread_negative, then column_correction_needed
        """
        if days <= 0:
            days = DEFAULT_WINDOW_DAYS

        summaries = self.store.summarize_window(self._cutoff(days))
        total_entries = sum(s.total for s in summaries)
        total_negative = sum(s.negative for s in summaries)
        total_with_fixes = sum(s.with_fixes for s in summaries)

        patterns: List[FeedbackPattern] = []

        for summary in sorted(summaries, key=lambda s: s.request_hash):
            if summary.negative >= LOW_RATING_THRESHOLD:
                patterns.append(
                    FeedbackPattern(
                        pattern=PATTERN_LOW_RATING_CLUSTER,
                        frequency=summary.negative,
                        request_hash=summary.request_hash,
                        suggestion=(
                            f'Request "{summary.request_hash}" has {summary.negative} negative ratings: '
                            "review the AI output for this request type"
                        ),
                        severity=SEVERITY_HIGH,
                    )
                )

        if total_entries >= WIDESPREAD_MIN_ENTRIES and total_negative / total_entries > WIDESPREAD_NEGATIVE_RATE:
            patterns.append(
                FeedbackPattern(
                    pattern=PATTERN_WIDESPREAD_NEGATIVE,
                    frequency=total_negative,
                    suggestion=(
                        f"Overall negative rate is {total_negative / total_entries * 100:.0f}% "
                        f"({total_negative}/{total_entries} entries): consider revising prompts"
                    ),
                    severity=SEVERITY_HIGH,
                )
            )

        if total_with_fixes >= CORRECTION_THRESHOLD:
            patterns.append(
                FeedbackPattern(
                    pattern=PATTERN_COLUMN_CORRECTION_NEEDED,
                    frequency=total_with_fixes,
                    suggestion=(
                        f"{total_with_fixes} feedback entries include column corrections: "
                        "run the learner to improve column mapping examples"
                    ),
                    severity=SEVERITY_MEDIUM,
                )
            )

        return patterns

    def get_top_corrections(
        self,
        limit: int = DEFAULT_TOP_CORRECTIONS,
        days: Optional[int] = None,
    ) -> List[ColumnCorrection]:
        """
        Aggregate identical corrections across feedback entries.

        Malformed payloads are logged and skipped.

        Args:
            limit: Maximum corrections to return (<= 0 uses 10)
            days: Only consider the trailing window (None = all time)

        Returns:
            Corrections with frequency set, most frequent first, ties broken
            lexically by source header
        """
        if limit <= 0:
            limit = DEFAULT_TOP_CORRECTIONS

        since = self._cutoff(days) if days is not None and days > 0 else None

        counts: Counter = Counter()
        for row_id, raw in self.store.iter_column_fixes(since=since):
            try:
                fixes = deserialize_column_fixes(raw, row_id=row_id)
            except MalformedPersistedDataError as e:
                logger.warning(f"Skipping malformed correction payload: {e}")
                continue
            for fix in fixes:
                counts[(fix.source_header, fix.wrong_mapping, fix.correct_mapping)] += 1

        corrections = [
            ColumnCorrection(
                source_header=header,
                wrong_mapping=wrong,
                correct_mapping=correct,
                frequency=frequency,
            )
            for (header, wrong, correct), frequency in counts.items()
        ]
        corrections.sort(
            key=lambda c: (-c.frequency, c.source_header, c.wrong_mapping, c.correct_mapping)
        )
        return corrections[:limit]

    def generate_examples_from_corrections(
        self, corrections: List[ColumnCorrection]
    ) -> List[Example]:
        """
        Build one few-shot example per distinct source header.

        Each correction becomes a mapping of that header to its corrected
        canonical name with confidence 1.0.
        """
        by_header: Dict[str, List[ColumnCorrection]] = {}
        for correction in corrections:
            by_header.setdefault(correction.source_header, []).append(correction)

        examples = []
        for header, header_corrections in by_header.items():
            examples.append(
                Example(
                    operation=OPERATION_COLUMN_MAPPING,
                    schema_type=USER_CORRECTION_SCHEMA,
                    headers=[header],
                    mappings=[
                        ExampleMapping(
                            canonical_name=c.correct_mapping,
                            source_header=c.source_header,
                            column_index=0,
                            confidence=1.0,
                            reasoning=(
                                f'User correction: was "{c.wrong_mapping}", corrected to '
                                f'"{c.correct_mapping}" (seen {c.frequency} time(s))'
                            ),
                        )
                        for c in header_corrections
                    ],
                    source=SOURCE_USER_FEEDBACK,
                )
            )
        return examples
