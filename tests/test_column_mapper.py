"""Tests for the column mapping agent: caching, routing, errors and refinement."""

import threading

import pandas as pd
import pytest

from schemamap.agents.column_mapping.agent import ColumnMapper, request_from_dataframe
from schemamap.agents.column_mapping.model import MapColumnsRequest
from schemamap.config import AppConfig
from schemamap.exceptions import (
    AIResponseValidationError,
    AITimeoutError,
    AIUnavailableError,
    InvalidRequestError,
    UpstreamError,
)
from schemamap.llms.router import ModelRouter
from tests.conftest import FakeMappingBackend, alias_responder, build_result


class TestFormats:
    def test_table_format_skips_backend(self, mapper, fake_backend):
        request = MapColumnsRequest(headers=["Name", "Qty", "Price"], format="table")

        result = mapper.map_columns(request)

        assert fake_backend.calls == []
        assert result.canonical_fields == []
        assert [e.column_index for e in result.extra_columns] == [0, 1, 2]
        assert all(e.semantic_role == "table_column" for e in result.extra_columns)
        assert result.meta.unmapped_columns == 3

    def test_unknown_format(self, mapper):
        with pytest.raises(InvalidRequestError, match="Unknown format"):
            mapper.map_columns(MapColumnsRequest(headers=["ID"], format="xml"))

    def test_spec_without_backend(self):
        mapper = ColumnMapper(backend=None, router=ModelRouter())

        assert not mapper.ai_available
        with pytest.raises(AIUnavailableError):
            mapper.map_columns(MapColumnsRequest(headers=["ID"]))

    def test_table_without_backend(self):
        mapper = ColumnMapper(backend=None, router=ModelRouter())

        result = mapper.map_columns(MapColumnsRequest(headers=["ID"], format="table"))

        assert result.meta.total_columns == 1

    def test_empty_headers(self, mapper, fake_backend):
        result = mapper.map_columns(MapColumnsRequest(headers=[], schema_hint="test_case"))

        assert fake_backend.calls == []
        assert result.meta.total_columns == 0
        assert result.meta.detected_type == "test_case"


class TestMapColumns:
    def test_maps_and_routes(self, mapper, fake_backend):
        result = mapper.map_columns(MapColumnsRequest(headers=["ID", "Title", "Foo"]))

        assert fake_backend.calls[0][1] == "gpt-4o-mini"
        assert result.get_canonical_name(0) == "id"
        assert result.get_canonical_name(1) == "title"
        assert result.get_extra_column_name(2) == "Foo"

    def test_non_english_routes_to_complex_model(self, mapper, fake_backend):
        mapper.map_columns(MapColumnsRequest(headers=["ID"], source_lang="ja"))

        assert fake_backend.calls[0][1] == "gpt-4o"

    def test_permuted_headers_hit_cache(self, mapper, fake_backend, cache):
        first = mapper.map_columns(MapColumnsRequest(headers=["ID", "Title", "Status"]))
        second = mapper.map_columns(MapColumnsRequest(headers=[" status ", "title", "ID"]))

        assert len(fake_backend.calls) == 1
        assert cache.stats().hits == 1
        assert first.get_canonical_name(0) == "id"
        assert second.get_canonical_name(0) == "status"
        assert second.get_canonical_name(2) == "id"
        assert {m.source_header for m in second.canonical_fields} == {" status ", "title", "ID"}

    def test_sample_rows_do_not_affect_cache(self, mapper, fake_backend):
        mapper.map_columns(MapColumnsRequest(headers=["ID"], sample_rows=[["1"]]))
        mapper.map_columns(MapColumnsRequest(headers=["ID"], sample_rows=[["2"]]))

        assert len(fake_backend.calls) == 1

    def test_schema_hint_changes_cache_key(self, mapper, fake_backend):
        mapper.map_columns(MapColumnsRequest(headers=["ID"], schema_hint="test_case"))
        mapper.map_columns(MapColumnsRequest(headers=["ID"], schema_hint="api_spec"))

        assert len(fake_backend.calls) == 2

    def test_cached_result_is_isolated_from_callers(self, mapper):
        first = mapper.map_columns(MapColumnsRequest(headers=["ID"]))
        first.canonical_fields[0].canonical_name = "title"

        second = mapper.map_columns(MapColumnsRequest(headers=["ID"]))

        assert second.get_canonical_name(0) == "id"

    def test_backend_error_wrapped(self, cache):
        cause = RuntimeError("connection reset")
        mapper = ColumnMapper(backend=FakeMappingBackend(error=cause), router=ModelRouter(), cache=cache)

        with pytest.raises(UpstreamError) as exc_info:
            mapper.map_columns(MapColumnsRequest(headers=["ID"]))

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.model == "gpt-4o-mini"

    def test_invalid_response_not_cached(self, cache):
        def bad_responder(request, model):
            result = build_result(request.headers, {0: ("id", 0.9)})
            result.canonical_fields[0].canonical_name = "identifier"
            return result

        backend = FakeMappingBackend(responder=bad_responder)
        mapper = ColumnMapper(backend=backend, router=ModelRouter(), cache=cache)

        for _ in range(2):
            with pytest.raises(AIResponseValidationError):
                mapper.map_columns(MapColumnsRequest(headers=["ID"]))

        assert len(backend.calls) == 2
        assert cache.stats().size == 0

    def test_timeout(self):
        release = threading.Event()

        def slow_responder(request, model):
            release.wait(5)
            return alias_responder()(request, model)

        mapper = ColumnMapper(backend=FakeMappingBackend(responder=slow_responder), router=ModelRouter())
        try:
            with pytest.raises(AITimeoutError):
                mapper.map_columns(MapColumnsRequest(headers=["ID"]), timeout=0.05)
        finally:
            release.set()

    def test_no_cache(self, fake_backend):
        mapper = ColumnMapper(backend=fake_backend, router=ModelRouter(), cache=None)
        mapper.map_columns(MapColumnsRequest(headers=["ID"]))
        mapper.map_columns(MapColumnsRequest(headers=["ID"]))

        assert len(fake_backend.calls) == 2
        assert mapper.cache_stats() is None


class TestMapColumnsWithFallback:
    def test_confident_mapping_not_refined(self, mapper, fake_backend):
        result = mapper.map_columns_with_fallback(MapColumnsRequest(headers=["ID", "Title"]))

        assert len(fake_backend.calls) == 1
        assert result.meta.mapped_columns == 2

    def test_low_confidence_triggers_refinement(self, cache):
        def responder(request, model):
            if request.refinement_context:
                return build_result(request.headers, {0: ("id", 0.95), 1: ("title", 0.85)})
            return build_result(request.headers, {0: ("id", 0.5), 1: ("title", 0.45)})

        backend = FakeMappingBackend(responder=responder)
        mapper = ColumnMapper(backend=backend, router=ModelRouter(), cache=cache)

        result = mapper.map_columns_with_fallback(MapColumnsRequest(headers=["Ref", "Name"]))

        assert len(backend.calls) == 2
        assert "<Ref, Name>" in backend.calls[1][0].refinement_context
        assert backend.calls[0][0].refinement_context == ""
        assert result.meta.avg_confidence == pytest.approx(0.9)

    def test_failed_refinement_keeps_original(self, cache):
        def responder(request, model):
            if request.refinement_context:
                raise RuntimeError("rate limited")
            return build_result(request.headers, {0: ("id", 0.5), 1: ("title", 0.3)})

        backend = FakeMappingBackend(responder=responder)
        mapper = ColumnMapper(backend=backend, router=ModelRouter(), cache=cache)

        result = mapper.map_columns_with_fallback(MapColumnsRequest(headers=["Ref", "Name"]))

        assert len(backend.calls) == 2
        # Original kept, then the 0.3 mapping demoted by the fallback
        assert [m.canonical_name for m in result.canonical_fields] == ["id"]
        assert result.extra_columns[0].semantic_role.startswith("possible_title")

    def test_initial_failure_propagates(self, cache):
        mapper = ColumnMapper(
            backend=FakeMappingBackend(error=RuntimeError("down")), router=ModelRouter(), cache=cache
        )

        with pytest.raises(UpstreamError):
            mapper.map_columns_with_fallback(MapColumnsRequest(headers=["ID"]))

    def test_table_format_not_refined(self, mapper, fake_backend):
        result = mapper.map_columns_with_fallback(MapColumnsRequest(headers=["A", "B"], format="table"))

        assert fake_backend.calls == []
        assert result.meta.unmapped_columns == 2


class TestRequestFromDataframe:
    def test_builds_request(self):
        df = pd.DataFrame(
            {"ID": [1, 2, 3, 4], "Title": ["a", None, "c", "d"]},
        )

        request = request_from_dataframe(df, sample_rows=2, schema_hint="test_case")

        assert request.headers == ["ID", "Title"]
        assert request.sample_rows == [["1", "a"], ["2", ""]]
        assert request.schema_hint == "test_case"

    def test_mapper_wrapper(self, mapper):
        df = pd.DataFrame({"ID": ["1"]})

        request = mapper.extract_request_from_dataframe(df, format="table")

        assert request.format == "table"


class TestFromConfig:
    def test_no_api_key_disables_backend(self):
        config = AppConfig()

        mapper = ColumnMapper.from_config(config, enable_tracing=False)

        assert mapper.backend is None
        assert mapper.cache is not None
        assert mapper.request_timeout == config.ai_request_timeout
