"""Exceptions raised by the schema mapping engine."""

from typing import Optional


class SchemaMappingError(Exception):
    """Base exception for schema mapping errors."""
    pass


class InvalidRequestError(SchemaMappingError, ValueError):
    """Mapping request is malformed (unknown format, etc.)."""
    pass


class ConfigurationError(SchemaMappingError):
    """A required collaborator is not configured."""
    pass


class AIUnavailableError(ConfigurationError):
    """No AI backend is configured for "spec" format mapping.

    Recoverable: callers fall back to table or heuristic pass-through mode.
    """

    def __init__(self, message: str = "ai_unavailable: no AI backend configured"):
        super().__init__(message)


class UpstreamError(SchemaMappingError):
    """The AI backend call failed or returned an unusable response."""

    def __init__(self, message: str, model: Optional[str] = None):
        self.model = model
        super().__init__(message)


class AITimeoutError(UpstreamError):
    """The AI backend call did not complete within the caller's deadline."""
    pass


class AIResponseValidationError(UpstreamError):
    """The AI backend returned a structurally invalid mapping."""
    pass


class FeedbackValidationError(SchemaMappingError, ValueError):
    """Feedback input rejected before persistence."""
    pass


class InvalidRatingError(FeedbackValidationError):
    """Rating is not 1 (thumbs down) or 5 (thumbs up)."""

    def __init__(self, rating):
        self.rating = rating
        super().__init__(
            f"feedback: rating must be 1 (thumbs down) or 5 (thumbs up), got {rating!r}"
        )


class EmptyRequestHashError(FeedbackValidationError):
    """Feedback does not reference a mapping call."""

    def __init__(self):
        super().__init__("feedback: request_hash must not be empty")


class MalformedPersistedDataError(SchemaMappingError):
    """A stored correction payload could not be parsed."""

    def __init__(self, message: str, row_id: Optional[int] = None):
        self.row_id = row_id
        super().__init__(message)


class UnrecognizedInputError(SchemaMappingError):
    """Pasted content could not be read as a table."""
    pass
