"""AI backends for column mapping."""

import json
import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol

import dspy

from schemamap.agents.column_mapping.canonical_fields import get_canonical_fields_for_prompt
from schemamap.agents.column_mapping.example_pool import (
    OPERATION_COLUMN_MAPPING,
    ExamplePool,
    format_examples_for_prompt,
)
from schemamap.agents.column_mapping.model import (
    CanonicalFieldMapping,
    ColumnMappingResult,
    ExtraColumnMapping,
    MapColumnsRequest,
    MappingMeta,
)
from schemamap.agents.column_mapping.signature import ColumnMappingSignature
from schemamap.exceptions import AIResponseValidationError
from schemamap.llms.llm import get_lm_for_model
from schemamap.utils.mlflow import setup_mlflow_tracing

logger = logging.getLogger(__name__)

# Examples included per prompt
MAX_PROMPT_EXAMPLES = 3
MAX_CORRECTION_EXAMPLES = 5


class MappingBackend(Protocol):
    """Anything that can map columns for a routed model"""

    def map_columns(self, request: MapColumnsRequest, model: str) -> ColumnMappingResult:
        ...


def _parse_json_list(raw: str, field_name: str, model: str) -> List[dict]:
    text = (raw or "").strip()
    if not text:
        return []
    # Models sometimes wrap JSON in a markdown fence
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise AIResponseValidationError(
            f"{field_name} is not valid JSON: {e}", model=model
        ) from e
    if not isinstance(value, list):
        raise AIResponseValidationError(f"{field_name} must be a JSON array", model=model)
    return value


class DSPyMappingBackend:
    """Column mapping backend using DSPy ChainOfThought"""

    def __init__(
        self,
        example_pool: Optional[ExamplePool] = None,
        provider: Optional[str] = None,
        lm_factory: Optional[Callable[[str], dspy.LM]] = None,
        enable_tracing: bool = True,
    ):
        """
        Initialize the backend.

        Args:
            example_pool: Few-shot examples included in prompts
            provider: 'openai' or 'anthropic' (if None, uses config)
            lm_factory: Builds a dspy.LM for a model name (defaults to get_lm_for_model)
            enable_tracing: Whether to enable MLflow tracing (default: True)
        """
        if enable_tracing:
            setup_mlflow_tracing(experiment_name="column_mapping")

        self.example_pool = example_pool
        self._lm_factory = lm_factory or (lambda model: get_lm_for_model(model, provider))
        self._lms: Dict[str, dspy.LM] = {}
        self._lm_lock = threading.Lock()

        self.predictor = dspy.ChainOfThought(ColumnMappingSignature)

    def _get_lm(self, model: str) -> dspy.LM:
        with self._lm_lock:
            lm = self._lms.get(model)
            if lm is None:
                lm = self._lm_factory(model)
                self._lms[model] = lm
            return lm

    def _examples_for(self, request: MapColumnsRequest) -> str:
        if self.example_pool is None:
            return ""
        examples = []
        if request.schema_hint:
            examples.extend(
                self.example_pool.get_examples(
                    OPERATION_COLUMN_MAPPING,
                    schema_type=request.schema_hint,
                    max_results=MAX_PROMPT_EXAMPLES,
                )
            )
        examples.extend(
            self.example_pool.get_examples(
                OPERATION_COLUMN_MAPPING,
                schema_type="user_correction",
                max_results=MAX_CORRECTION_EXAMPLES,
            )
        )
        return format_examples_for_prompt(examples)

    def map_columns(self, request: MapColumnsRequest, model: str) -> ColumnMappingResult:
        """
        Map columns with the given model.

        Args:
            request: Mapping request
            model: Model selected by the router

        Returns:
            ColumnMappingResult with meta computed from the parsed mappings

        Raises:
            AIResponseValidationError: If the model output cannot be parsed
        """
        document_context = json.dumps(
            {
                "file_type": request.file_type,
                "source_lang": request.source_lang,
                "schema_hint": request.schema_hint,
            }
        )

        lm = self._get_lm(model)
        with dspy.context(lm=lm):
            prediction = self.predictor(
                headers=json.dumps(request.headers, ensure_ascii=False),
                sample_rows=json.dumps(request.sample_rows, ensure_ascii=False),
                canonical_fields=json.dumps(
                    get_canonical_fields_for_prompt(request.schema_hint), indent=2
                ),
                document_context=document_context,
                examples=self._examples_for(request),
                refinement_context=request.refinement_context,
            )

        raw_canonical = _parse_json_list(prediction.canonical_mappings, "canonical_mappings", model)
        raw_extra = _parse_json_list(prediction.extra_columns, "extra_columns", model)

        try:
            canonical = [
                CanonicalFieldMapping(
                    canonical_name=str(item["canonical_name"]),
                    source_header=str(item.get("source_header", "")),
                    column_index=int(item["column_index"]),
                    confidence=float(item["confidence"]),
                    reasoning=str(item.get("reasoning", "")),
                )
                for item in raw_canonical
            ]
            extras = [
                ExtraColumnMapping(
                    name=str(item.get("name", "")),
                    semantic_role=str(item.get("semantic_role", "")),
                    column_index=int(item["column_index"]),
                    confidence=float(item.get("confidence", 0.0)),
                )
                for item in raw_extra
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise AIResponseValidationError(f"malformed mapping entry: {e}", model=model) from e

        result = ColumnMappingResult(
            canonical_fields=canonical,
            extra_columns=extras,
            meta=MappingMeta(
                detected_type=(prediction.detected_type or "").strip().lower(),
                source_language=(prediction.source_language or request.source_lang or "").strip().lower(),
                total_columns=len(request.headers),
            ),
        )
        result.recompute_meta()
        return result
