"""SQLAlchemy models for the feedback database."""

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class MappingFeedback(Base):
    """Model for user feedback on a delivered column mapping.

    Append-only: rows are inserted on review and never updated or deleted.
    """

    __tablename__ = "mapping_feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_hash = Column(String(64), nullable=False)
    rating = Column(Integer, nullable=False)  # 1 = thumbs down, 5 = thumbs up
    corrections = Column(Text, nullable=False, default="")
    column_fixes = Column(Text, nullable=False, default="")  # JSON list of corrections, "" when none
    session_id = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("rating IN (1, 5)", name="ck_mapping_feedback_rating"),
        Index("idx_mapping_feedback_request_hash", "request_hash"),
        Index("idx_mapping_feedback_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<MappingFeedback(id={self.id}, request_hash={self.request_hash}, rating={self.rating})>"
