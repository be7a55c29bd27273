"""Database module for storing mapping feedback."""

from schemamap.database.models import Base, MappingFeedback
from schemamap.database.schema import get_session_factory, init_database

__all__ = ["Base", "MappingFeedback", "get_session_factory", "init_database"]
