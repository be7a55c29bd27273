"""Feedback collection, analysis and learning."""

from schemamap.feedback.analyzer import PatternAnalyzer
from schemamap.feedback.learner import FeedbackLearner
from schemamap.feedback.model import (
    ColumnCorrection,
    Feedback,
    FeedbackPattern,
    FeedbackStats,
    LearningReport,
)
from schemamap.feedback.store import FeedbackStore

__all__ = [
    "ColumnCorrection",
    "Feedback",
    "FeedbackLearner",
    "FeedbackPattern",
    "FeedbackStats",
    "FeedbackStore",
    "LearningReport",
    "PatternAnalyzer",
]
