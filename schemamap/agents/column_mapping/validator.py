"""Validation of column mapping results.

Two independent checks live here:

- validate_mapping_response() rejects structurally invalid AI output on
  receipt by raising AIResponseValidationError.
- validate_mapping_semantics() grades an accepted result against the
  required fields of a document type and returns structured issues.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from schemamap.agents.column_mapping.canonical_fields import (
    get_required_fields_by_schema,
    is_canonical_field,
)
from schemamap.agents.column_mapping.model import ColumnMappingResult
from schemamap.exceptions import AIResponseValidationError

logger = logging.getLogger(__name__)

MAX_REASONING_LENGTH = 256

# Average confidence below which a mapping "needs improvement"
LOW_AVG_CONFIDENCE = 0.60

OVERALL_GOOD = "good"
OVERALL_NEEDS_IMPROVEMENT = "needs_improvement"
OVERALL_POOR = "poor"


def validate_mapping_response(
    result: ColumnMappingResult,
    header_count: int,
    model: str = None,
) -> ColumnMappingResult:
    """
    Check an AI mapping response against the request it answers.

    Truncates over-long reasoning in place; any other violation is rejected.

    Args:
        result: Parsed backend response
        header_count: Number of headers in the request
        model: Model that produced the response (for error context)

    Returns:
        The same result object

    Raises:
        AIResponseValidationError: If the response breaks a shape invariant
    """
    def reject(message: str):
        logger.warning(f"Rejected AI mapping response from {model or 'backend'}: {message}")
        raise AIResponseValidationError(f"invalid AI mapping response: {message}", model=model)

    seen = set()
    for mapping in result.canonical_fields:
        if not is_canonical_field(mapping.canonical_name):
            reject(f"unknown canonical field '{mapping.canonical_name}'")
        if not 0.0 <= mapping.confidence <= 1.0:
            reject(f"confidence {mapping.confidence} for '{mapping.canonical_name}' outside [0, 1]")
        if not 0 <= mapping.column_index < header_count:
            reject(f"column_index {mapping.column_index} out of range for {header_count} headers")
        if mapping.column_index in seen:
            reject(f"column_index {mapping.column_index} claimed by more than one canonical field")
        seen.add(mapping.column_index)
        if len(mapping.reasoning) > MAX_REASONING_LENGTH:
            mapping.reasoning = mapping.reasoning[:MAX_REASONING_LENGTH]

    for extra in result.extra_columns:
        if not 0.0 <= extra.confidence <= 1.0:
            reject(f"confidence {extra.confidence} for extra column '{extra.name}' outside [0, 1]")
        if not 0 <= extra.column_index < header_count:
            reject(f"column_index {extra.column_index} out of range for {header_count} headers")
        if extra.column_index in seen:
            reject(f"column_index {extra.column_index} appears more than once")
        seen.add(extra.column_index)

    missing = sorted(set(range(header_count)) - seen)
    if missing:
        reject(f"columns {missing} missing from both canonical and extra lists")

    meta = result.meta
    if meta.total_columns != header_count:
        reject(f"total_columns {meta.total_columns} does not match {header_count} headers")
    if meta.mapped_columns != len(result.canonical_fields):
        reject(f"mapped_columns {meta.mapped_columns} does not match {len(result.canonical_fields)} canonical fields")
    if meta.unmapped_columns != len(result.extra_columns):
        reject(f"unmapped_columns {meta.unmapped_columns} does not match {len(result.extra_columns)} extra columns")

    return result


@dataclass
class SemanticIssue:
    """A structural warning found by semantic validation"""

    code: str  # duplicate_column_index, low_confidence, missing_required_field
    message: str
    severity: str  # error, warning

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {"code": self.code, "message": self.message, "severity": self.severity}


@dataclass
class SemanticValidationResult:
    """Outcome of semantic validation"""

    overall: str
    issues: List[SemanticIssue] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "overall": self.overall,
            "issues": [issue.to_dict() for issue in self.issues],
        }


def validate_mapping_semantics(
    result: ColumnMappingResult,
    schema_name: str,
) -> SemanticValidationResult:
    """
    Grade a mapping for a document type.

    Args:
        result: Mapping result to check
        schema_name: Document type (test_case, api_spec, ...); unknown names use the generic table

    Returns:
        SemanticValidationResult with overall "poor", "needs_improvement" or "good"
    """
    issues: List[SemanticIssue] = []

    owners = {}
    for mapping in result.canonical_fields:
        previous = owners.get(mapping.column_index)
        if previous is not None:
            issues.append(
                SemanticIssue(
                    code="duplicate_column_index",
                    message=(
                        f"'{previous}' and '{mapping.canonical_name}' both claim "
                        f"column {mapping.column_index}"
                    ),
                    severity="error",
                )
            )
        else:
            owners[mapping.column_index] = mapping.canonical_name

    avg_confidence = result.meta.avg_confidence
    if avg_confidence < LOW_AVG_CONFIDENCE:
        issues.append(
            SemanticIssue(
                code="low_confidence",
                message=f"Average mapping confidence {avg_confidence:.2f} is below {LOW_AVG_CONFIDENCE:.2f}",
                severity="warning",
            )
        )

    mapped_names = {m.canonical_name for m in result.canonical_fields}
    for required in get_required_fields_by_schema(schema_name):
        if required not in mapped_names:
            issues.append(
                SemanticIssue(
                    code="missing_required_field",
                    message=f"Required field '{required}' is not mapped",
                    severity="warning",
                )
            )

    if any(issue.severity == "error" for issue in issues):
        overall = OVERALL_POOR
    elif issues:
        overall = OVERALL_NEEDS_IMPROVEMENT
    else:
        overall = OVERALL_GOOD

    return SemanticValidationResult(overall=overall, issues=issues)
