"""Append-only feedback store backed by SQLite."""

import json
import logging
import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple, Union

from sqlalchemy import case, func

from schemamap.database.models import MappingFeedback
from schemamap.database.schema import MEMORY_DB, get_session_factory, init_database
from schemamap.exceptions import (
    EmptyRequestHashError,
    InvalidRatingError,
    MalformedPersistedDataError,
)
from schemamap.feedback.model import (
    RATING_NEGATIVE,
    RATING_POSITIVE,
    TREND_DECLINING,
    TREND_IMPROVING,
    TREND_STABLE,
    VALID_RATINGS,
    ColumnCorrection,
    Feedback,
    FeedbackStats,
    RequestHashSummary,
)

logger = logging.getLogger(__name__)

# Entries considered for the recent trend
TREND_WINDOW = 20
TREND_MIN_ENTRIES = 4
TREND_DEADBAND = 0.10


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def serialize_column_fixes(fixes: List[ColumnCorrection]) -> str:
    """Serialize corrections for storage ("" when there are none)."""
    if not fixes:
        return ""
    return json.dumps([fix.to_dict() for fix in fixes], ensure_ascii=False)


def deserialize_column_fixes(raw: str, row_id: Optional[int] = None) -> List[ColumnCorrection]:
    """
    Parse a stored correction payload.

    Raises:
        MalformedPersistedDataError: If the payload is not a JSON list of corrections
    """
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedPersistedDataError(
            f"column_fixes for feedback {row_id} is not valid JSON: {e}", row_id=row_id
        ) from e

    if not isinstance(data, list):
        raise MalformedPersistedDataError(
            f"column_fixes for feedback {row_id} is not a list", row_id=row_id
        )

    fixes = []
    for item in data:
        if not isinstance(item, dict):
            raise MalformedPersistedDataError(
                f"column_fixes for feedback {row_id} contains a non-object entry", row_id=row_id
            )
        fixes.append(
            ColumnCorrection(
                source_header=str(item.get("source_header", "")),
                wrong_mapping=str(item.get("wrong_mapping", "")),
                correct_mapping=str(item.get("correct_mapping", "")),
            )
        )
    return fixes


def compute_recent_trend(ratings: List[int]) -> str:
    """
    Compare positive rate of the newer half of ratings against the older half.

    Args:
        ratings: Ratings ordered newest first

    Returns:
        "improving", "declining" or "stable"
    """
    if len(ratings) < TREND_MIN_ENTRIES:
        return TREND_STABLE

    half = len(ratings) // 2
    recent_rate = _positive_rate(ratings[:half])
    older_rate = _positive_rate(ratings[half:])

    if recent_rate - older_rate > TREND_DEADBAND:
        return TREND_IMPROVING
    if older_rate - recent_rate > TREND_DEADBAND:
        return TREND_DECLINING
    return TREND_STABLE


def _positive_rate(ratings: List[int]) -> float:
    if not ratings:
        return 0.0
    return sum(1 for r in ratings if r == RATING_POSITIVE) / len(ratings)


class FeedbackStore:
    """Persists user feedback on mappings.

    Writes are serialized through one lock; reads run concurrently, except on
    the single shared ":memory:" connection where they take the same lock.
    """

    def __init__(
        self,
        db_path: Union[str, Path] = MEMORY_DB,
        echo: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize feedback store.

        Args:
            db_path: Path to SQLite database file (":memory:" for tests)
            echo: Whether to echo SQL queries (for debugging)
            clock: Source of created_at timestamps (defaults to UTC now)
        """
        self.db_path = db_path
        self.engine = init_database(db_path, echo=echo)
        self.Session = get_session_factory(self.engine)
        self._clock = clock or utcnow
        self._write_lock = threading.Lock()
        # ":memory:" uses one StaticPool connection shared by every thread
        self._shared_connection = str(db_path) == MEMORY_DB

    @contextmanager
    def _get_session(self, commit: bool = True):
        """
        Context manager for database sessions.

        Args:
            commit: Whether to commit on successful exit (default: True)
        """
        session = self.Session()
        try:
            yield session
            if commit:
                session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _read_session(self):
        """Session for queries, serialized with writes when the connection is shared."""
        lock = self._write_lock if self._shared_connection else nullcontext()
        with lock:
            with self._get_session(commit=False) as session:
                yield session

    def submit(self, feedback: Feedback) -> Feedback:
        """
        Validate and persist feedback.

        Args:
            feedback: Feedback to store (id and created_at are assigned here)

        Returns:
            New Feedback with id and created_at populated

        Raises:
            InvalidRatingError: Rating is not 1 or 5
            EmptyRequestHashError: request_hash is blank
        """
        rating = feedback.rating
        if isinstance(rating, bool) or not isinstance(rating, int) or rating not in VALID_RATINGS:
            raise InvalidRatingError(rating)
        if not feedback.request_hash or not feedback.request_hash.strip():
            raise EmptyRequestHashError()

        fixes = list(feedback.column_fixes or [])
        with self._write_lock:
            with self._get_session() as session:
                row = MappingFeedback(
                    request_hash=feedback.request_hash,
                    rating=rating,
                    corrections=feedback.corrections or "",
                    column_fixes=serialize_column_fixes(fixes),
                    session_id=feedback.session_id or "",
                    created_at=self._clock(),
                )
                session.add(row)
                session.flush()
                row_id, created_at = row.id, row.created_at

        logger.debug(f"Stored feedback {row_id} (rating={rating}) for request {feedback.request_hash}")
        return Feedback(
            request_hash=feedback.request_hash,
            rating=rating,
            corrections=feedback.corrections or "",
            column_fixes=[
                ColumnCorrection(f.source_header, f.wrong_mapping, f.correct_mapping) for f in fixes
            ],
            session_id=feedback.session_id or "",
            id=row_id,
            created_at=created_at,
        )

    def get_stats(self) -> FeedbackStats:
        """Return rating counts, positive rate and recent trend."""
        with self._read_session() as session:
            total, positive, negative = session.query(
                func.count(MappingFeedback.id),
                func.coalesce(func.sum(case((MappingFeedback.rating == RATING_POSITIVE, 1), else_=0)), 0),
                func.coalesce(func.sum(case((MappingFeedback.rating == RATING_NEGATIVE, 1), else_=0)), 0),
            ).one()
            recent = [
                r for (r,) in session.query(MappingFeedback.rating)
                .order_by(MappingFeedback.id.desc())
                .limit(TREND_WINDOW)
                .all()
            ]

        total = int(total or 0)
        positive = int(positive or 0)
        negative = int(negative or 0)
        return FeedbackStats(
            total_count=total,
            positive_count=positive,
            negative_count=negative,
            positive_rate=positive / total if total else 0.0,
            recent_trend=compute_recent_trend(recent),
        )

    def get_by_request_hash(self, request_hash: str) -> List[Feedback]:
        """Return every feedback entry for a request, newest first."""
        with self._read_session() as session:
            rows = (
                session.query(MappingFeedback)
                .filter(MappingFeedback.request_hash == request_hash)
                .order_by(MappingFeedback.id.desc())
                .all()
            )
            return [self._to_feedback(row) for row in rows]

    def summarize_window(self, since: datetime) -> List[RequestHashSummary]:
        """Per-request totals, negatives and entries with fixes created at or after since."""
        with self._read_session() as session:
            rows = (
                session.query(
                    MappingFeedback.request_hash,
                    func.count(MappingFeedback.id),
                    func.sum(case((MappingFeedback.rating == RATING_NEGATIVE, 1), else_=0)),
                    func.sum(case((MappingFeedback.column_fixes != "", 1), else_=0)),
                )
                .filter(MappingFeedback.created_at >= since)
                .group_by(MappingFeedback.request_hash)
                .order_by(MappingFeedback.request_hash)
                .all()
            )
        return [
            RequestHashSummary(
                request_hash=request_hash,
                total=int(total or 0),
                negative=int(negative or 0),
                with_fixes=int(with_fixes or 0),
            )
            for request_hash, total, negative, with_fixes in rows
        ]

    def iter_column_fixes(
        self, since: Optional[datetime] = None
    ) -> Iterator[Tuple[int, str]]:
        """
        Yield (row_id, raw column_fixes payload) for entries that carry fixes.

        Payloads are returned unparsed; use deserialize_column_fixes() per row so
        one malformed payload does not abort a whole aggregation.
        """
        with self._read_session() as session:
            query = session.query(MappingFeedback.id, MappingFeedback.column_fixes).filter(
                MappingFeedback.column_fixes != ""
            )
            if since is not None:
                query = query.filter(MappingFeedback.created_at >= since)
            rows = query.order_by(MappingFeedback.id).all()

        for row_id, raw in rows:
            yield row_id, raw

    def now(self) -> datetime:
        """Current time according to the store's clock."""
        return self._clock()

    def _to_feedback(self, row: MappingFeedback) -> Feedback:
        try:
            fixes = deserialize_column_fixes(row.column_fixes, row_id=row.id)
        except MalformedPersistedDataError as e:
            logger.warning(f"Skipping malformed column_fixes: {e}")
            fixes = []
        return Feedback(
            request_hash=row.request_hash,
            rating=row.rating,
            corrections=row.corrections,
            column_fixes=fixes,
            session_id=row.session_id,
            id=row.id,
            created_at=row.created_at,
        )

    def close(self) -> None:
        """Dispose of the database engine."""
        self.engine.dispose()
