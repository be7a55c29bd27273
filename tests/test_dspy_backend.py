"""Tests for the DSPy column mapping backend with a scripted predictor."""

import json

import dspy
import pytest

from schemamap.agents.column_mapping.backend import DSPyMappingBackend
from schemamap.agents.column_mapping.example_pool import (
    Example,
    ExampleMapping,
    default_example_pool,
)
from schemamap.agents.column_mapping.model import MapColumnsRequest
from schemamap.exceptions import AIResponseValidationError

CANONICAL = [
    {"canonical_name": "id", "source_header": "TC ID", "column_index": 0, "confidence": 0.97, "reasoning": "Identifier"},
    {"canonical_name": "scenario", "source_header": "Test Name", "column_index": 1, "confidence": 0.8},
]
EXTRAS = [{"name": "Reviewer", "semantic_role": "reviewer", "column_index": 2, "confidence": 0.6}]


class ScriptedPredictor:
    """Stands in for dspy.ChainOfThought and records its inputs."""

    def __init__(self, canonical_mappings, extra_columns, detected_type="Test_Case", source_language=""):
        self.prediction = dspy.Prediction(
            canonical_mappings=canonical_mappings,
            extra_columns=extra_columns,
            detected_type=detected_type,
            source_language=source_language,
        )
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        return self.prediction


@pytest.fixture
def lm_models():
    return []


@pytest.fixture
def backend(lm_models):
    def factory(model):
        lm_models.append(model)
        return dspy.LM(f"openai/{model}", api_key="test")

    return DSPyMappingBackend(
        example_pool=default_example_pool(),
        lm_factory=factory,
        enable_tracing=False,
    )


REQUEST = MapColumnsRequest(
    headers=["TC ID", "Test Name", "Reviewer"],
    sample_rows=[["TC-1", "Login", "Ann"]],
    source_lang="en",
    schema_hint="test_case",
)


class TestDSPyMappingBackend:
    def test_parses_prediction(self, backend):
        backend.predictor = ScriptedPredictor(json.dumps(CANONICAL), json.dumps(EXTRAS))

        result = backend.map_columns(REQUEST, "gpt-4o-mini")

        assert [m.canonical_name for m in result.canonical_fields] == ["id", "scenario"]
        assert result.canonical_fields[1].reasoning == ""
        assert result.extra_columns[0].semantic_role == "reviewer"
        assert result.meta.detected_type == "test_case"
        assert result.meta.source_language == "en"
        assert result.meta.total_columns == 3
        assert result.meta.mapped_columns == 2
        assert result.meta.avg_confidence == pytest.approx(0.885)

    def test_prompt_inputs(self, backend):
        predictor = ScriptedPredictor(json.dumps(CANONICAL), json.dumps(EXTRAS))
        backend.predictor = predictor
        backend.example_pool.register(
            Example(
                operation="column_mapping",
                schema_type="user_correction",
                headers=["TC Name"],
                mappings=[ExampleMapping("title", "TC Name", 0, 1.0)],
                source="user_feedback",
            )
        )

        backend.map_columns(REQUEST, "gpt-4o-mini")

        inputs = predictor.calls[0]
        assert json.loads(inputs["headers"]) == REQUEST.headers
        assert json.loads(inputs["sample_rows"]) == REQUEST.sample_rows
        assert json.loads(inputs["document_context"])["schema_hint"] == "test_case"
        assert inputs["examples"].startswith("FEW-SHOT EXAMPLES:")
        assert "TC Name -> title" in inputs["examples"]
        assert inputs["refinement_context"] == ""

    def test_markdown_fenced_json(self, backend):
        fenced = "```json\n" + json.dumps(CANONICAL) + "\n```"
        backend.predictor = ScriptedPredictor(fenced, json.dumps(EXTRAS))

        result = backend.map_columns(REQUEST, "gpt-4o-mini")

        assert len(result.canonical_fields) == 2

    def test_invalid_json(self, backend):
        backend.predictor = ScriptedPredictor("not json", "[]")

        with pytest.raises(AIResponseValidationError) as exc_info:
            backend.map_columns(REQUEST, "gpt-4o")

        assert exc_info.value.model == "gpt-4o"

    def test_non_list_json(self, backend):
        backend.predictor = ScriptedPredictor('{"canonical_name": "id"}', "[]")

        with pytest.raises(AIResponseValidationError, match="JSON array"):
            backend.map_columns(REQUEST, "gpt-4o-mini")

    def test_malformed_entry(self, backend):
        backend.predictor = ScriptedPredictor(json.dumps([{"canonical_name": "id"}]), "[]")

        with pytest.raises(AIResponseValidationError, match="malformed"):
            backend.map_columns(REQUEST, "gpt-4o-mini")

    def test_lm_created_once_per_model(self, backend, lm_models):
        backend.predictor = ScriptedPredictor(json.dumps(CANONICAL), json.dumps(EXTRAS))

        backend.map_columns(REQUEST, "gpt-4o-mini")
        backend.map_columns(REQUEST, "gpt-4o-mini")
        backend.map_columns(REQUEST, "gpt-4o")

        assert lm_models == ["gpt-4o-mini", "gpt-4o"]
