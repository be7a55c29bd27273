"""Tests for cost-aware model selection."""

import pytest

from schemamap.config import ModelRouterConfig
from schemamap.llms.router import (
    ModelRouter,
    RoutingContext,
    has_mixed_script_headers,
    is_predominantly_non_ascii,
)


@pytest.fixture
def router():
    return ModelRouter(simple_model="cheap", complex_model="strong", column_threshold=20)


def ctx(headers, language=""):
    return RoutingContext(column_count=len(headers), headers=headers, language=language)


class TestSelectModel:
    def test_small_english_schema_uses_simple_model(self, router):
        assert router.select_model(ctx(["ID", "Title", "Status"], "en")) == "cheap"

    def test_empty_language_counts_as_english(self, router):
        assert router.select_model(ctx(["ID", "Title"])) == "cheap"

    def test_column_threshold_is_exclusive(self, router):
        assert router.select_model(ctx([f"col{i}" for i in range(20)])) == "cheap"
        assert router.select_model(ctx([f"col{i}" for i in range(21)])) == "strong"

    def test_non_english_language(self, router):
        assert router.select_model(ctx(["ID", "Title"], "ja")) == "strong"

    def test_mixed_ascii_and_non_ascii_headers(self, router):
        # Mislabelled metadata: declared English, headers are not
        assert router.select_model(ctx(["ID", "名前"], "en")) == "strong"

    def test_accented_header_in_english_set(self, router):
        assert router.select_model(ctx(["ID", "Café"])) == "strong"

    @pytest.mark.parametrize("header", ["Temp (°C)", "Price €", "Qty №"])
    def test_non_ascii_symbol_in_header(self, router, header):
        assert router.select_model(ctx(["ID", header], "en")) == "strong"

    def test_language_compared_exactly(self, router):
        assert router.select_model(ctx(["ID"], "EN")) == "strong"

    def test_all_non_ascii_headers(self, router):
        assert router.select_model(ctx(["名前", "優先度"])) == "strong"

    def test_select_model_for_request(self, router):
        assert router.select_model_for_request(["ID"], language="vi") == "strong"
        assert router.select_model_for_request(["ID"]) == "cheap"


class TestConstruction:
    def test_defaults(self):
        router = ModelRouter()

        assert router.simple_model == "gpt-4o-mini"
        assert router.complex_model == "gpt-4o"
        assert router.column_threshold == 20

    def test_non_positive_threshold_uses_default(self):
        assert ModelRouter(column_threshold=0).column_threshold == 20

    def test_from_config(self):
        router = ModelRouter.from_config(
            ModelRouterConfig(
                ROUTER_SIMPLE_MODEL="small",
                ROUTER_COMPLEX_MODEL="large",
                ROUTER_COLUMN_THRESHOLD=5,
            )
        )

        assert (router.simple_model, router.complex_model, router.column_threshold) == ("small", "large", 5)


class TestHelpers:
    def test_mixed_script(self):
        assert has_mixed_script_headers(["ID", "名前"])
        assert not has_mixed_script_headers(["ID", "Title #1"])
        assert has_mixed_script_headers(["ID", "Temp (°C)"])
        assert not has_mixed_script_headers(["ID", "Title\u00a0Name"])
        assert not has_mixed_script_headers(["名前", "優先度"])

    def test_predominantly_non_ascii(self):
        assert is_predominantly_non_ascii("優先度")
        assert not is_predominantly_non_ascii("Café")
        assert not is_predominantly_non_ascii("   ")
