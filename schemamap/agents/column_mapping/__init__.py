"""Column mapping agent."""

from schemamap.agents.column_mapping.agent import ColumnMapper, request_from_dataframe
from schemamap.agents.column_mapping.canonical_fields import (
    CANONICAL_FIELDS,
    get_canonical_fields_for_prompt,
    get_required_fields_by_schema,
)
from schemamap.agents.column_mapping.confidence import (
    DEFAULT_THRESHOLDS,
    ConfidenceLevel,
    ConfidenceThresholds,
    apply_confidence_fallback,
    get_confidence_level,
    should_review_mapping,
)
from schemamap.agents.column_mapping.example_pool import (
    Example,
    ExampleMapping,
    ExamplePool,
    default_example_pool,
    format_examples_for_prompt,
)
from schemamap.agents.column_mapping.model import (
    CanonicalFieldMapping,
    ColumnMappingResult,
    ExtraColumnMapping,
    MapColumnsRequest,
    MappingMeta,
)
from schemamap.agents.column_mapping.validator import (
    SemanticIssue,
    SemanticValidationResult,
    validate_mapping_semantics,
)

__all__ = [
    "CANONICAL_FIELDS",
    "CanonicalFieldMapping",
    "ColumnMapper",
    "ColumnMappingResult",
    "ConfidenceLevel",
    "ConfidenceThresholds",
    "DEFAULT_THRESHOLDS",
    "Example",
    "ExampleMapping",
    "ExamplePool",
    "ExtraColumnMapping",
    "MapColumnsRequest",
    "MappingMeta",
    "SemanticIssue",
    "SemanticValidationResult",
    "apply_confidence_fallback",
    "default_example_pool",
    "format_examples_for_prompt",
    "get_canonical_fields_for_prompt",
    "get_confidence_level",
    "get_required_fields_by_schema",
    "request_from_dataframe",
    "should_review_mapping",
    "validate_mapping_semantics",
]
