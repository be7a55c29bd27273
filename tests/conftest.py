"""
Pytest Configuration and Fixtures
==================================
Shared fixtures for the schema mapping test suite.
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from schemamap.agents.column_mapping.agent import ColumnMapper
from schemamap.agents.column_mapping.canonical_fields import lookup_alias
from schemamap.agents.column_mapping.model import (
    CanonicalFieldMapping,
    ColumnMappingResult,
    ExtraColumnMapping,
    MapColumnsRequest,
    MappingMeta,
)
from schemamap.feedback.store import FeedbackStore
from schemamap.llms.router import ModelRouter
from schemamap.utils.lru_cache import LRUCache
from schemamap.utils.normalized_cache import NormalizedCache


@pytest.fixture(autouse=True)
def mock_environment(monkeypatch):
    """Keep tests offline and independent of the developer's environment."""
    monkeypatch.setenv("MLFLOW_ENABLED", "false")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


# =============================================================================
# RESULT BUILDERS
# =============================================================================

def build_result(
    headers: List[str],
    mapped: Dict[int, Tuple[str, float]],
    detected_type: str = "generic",
    extra_confidence: float = 0.5,
) -> ColumnMappingResult:
    """Build a partitioned result: mapped indices are canonical, the rest extra."""
    canonical = [
        CanonicalFieldMapping(
            canonical_name=name,
            source_header=headers[index],
            column_index=index,
            confidence=confidence,
            reasoning=f"{headers[index]} looks like {name}",
        )
        for index, (name, confidence) in sorted(mapped.items())
    ]
    extras = [
        ExtraColumnMapping(
            name=header,
            semantic_role="unmapped",
            column_index=index,
            confidence=extra_confidence,
        )
        for index, header in enumerate(headers)
        if index not in mapped
    ]
    result = ColumnMappingResult(
        canonical_fields=canonical,
        extra_columns=extras,
        meta=MappingMeta(detected_type=detected_type, source_language="en", total_columns=len(headers)),
    )
    result.recompute_meta()
    return result


def alias_responder(confidence: float = 0.95) -> Callable[[MapColumnsRequest, str], ColumnMappingResult]:
    """Responder that maps known aliases with a fixed confidence."""

    def respond(request: MapColumnsRequest, model: str) -> ColumnMappingResult:
        mapped = {}
        claimed = set()
        for index, header in enumerate(request.headers):
            name = lookup_alias(header)
            if name and name not in claimed:
                claimed.add(name)
                mapped[index] = (name, confidence)
        return build_result(request.headers, mapped, detected_type=request.schema_hint or "generic")

    return respond


# =============================================================================
# FAKES
# =============================================================================

class FakeMappingBackend:
    """Scripted AI backend recording every call."""

    def __init__(
        self,
        responder: Optional[Callable[[MapColumnsRequest, str], ColumnMappingResult]] = None,
        error: Optional[Exception] = None,
    ):
        self.responder = responder or alias_responder()
        self.error = error
        self.calls: List[Tuple[MapColumnsRequest, str]] = []

    def map_columns(self, request: MapColumnsRequest, model: str) -> ColumnMappingResult:
        self.calls.append((request, model))
        if self.error is not None:
            raise self.error
        return self.responder(request, model)


class FakeClock:
    """Settable clock returning naive UTC datetimes."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fake_backend():
    return FakeMappingBackend()


@pytest.fixture
def cache():
    return NormalizedCache(LRUCache(max_size=100))


@pytest.fixture
def mapper(fake_backend, cache):
    return ColumnMapper(backend=fake_backend, router=ModelRouter(), cache=cache)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    feedback_store = FeedbackStore(":memory:", clock=clock)
    yield feedback_store
    feedback_store.close()
