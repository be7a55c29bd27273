"""
Canonical Fields Definition

Defines the canonical vocabulary that source spreadsheet headers are mapped
onto, plus the per-document-type required field table.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class CanonicalField:
    """Definition of a canonical field"""

    name: str
    description: str
    aliases: List[str] = field(default_factory=list)
    schema_types: List[str] = field(default_factory=list)  # document types that commonly use it

    def to_dict(self) -> dict:
        """Convert to dictionary for LLM prompt"""
        return {
            "name": self.name,
            "description": self.description,
            "aliases": self.aliases,
        }


CANONICAL_FIELDS = [
    # Shared identifiers
    CanonicalField(
        name="id",
        description="Row identifier such as a test case ID, ticket key or reference number",
        aliases=["tc_id", "tc id", "test_id", "test id", "case_id", "case id", "ref", "reference", "key", "ticket"],
        schema_types=["test_case", "product_backlog", "issue_tracker"],
    ),
    CanonicalField(
        name="no",
        description="Sequential row number with no identity meaning (No., #)",
        aliases=["no.", "#", "number", "seq", "row"],
        schema_types=["ui_spec"],
    ),
    CanonicalField(
        name="title",
        description="Short human-readable title or summary of the row",
        aliases=["summary", "subject", "headline"],
        schema_types=["product_backlog"],
    ),
    CanonicalField(
        name="description",
        description="Longer free-text description of a backlog item or issue",
        aliases=["details", "detail", "overview"],
        schema_types=["product_backlog"],
    ),
    CanonicalField(
        name="feature",
        description="Feature, requirement, user story or module the row belongs to",
        aliases=["req", "requirement", "story", "user story", "task", "module", "epic", "function"],
        schema_types=["test_case", "issue_tracker"],
    ),
    # Test case documents
    CanonicalField(
        name="scenario",
        description="Test scenario or test case name",
        aliases=["test case", "tc", "test_case", "test name", "test_name", "case", "case_name", "case name", "tc name"],
        schema_types=["test_case"],
    ),
    CanonicalField(
        name="instructions",
        description="Steps to execute",
        aliases=["steps", "test steps", "test_steps", "procedure", "how to test"],
        schema_types=["test_case"],
    ),
    CanonicalField(
        name="inputs",
        description="Test data or input values",
        aliases=["input", "test data", "test_data", "testdata", "data"],
        schema_types=["test_case"],
    ),
    CanonicalField(
        name="expected",
        description="Expected result or outcome",
        aliases=["expected output", "expected_output", "expected result", "expected_result", "result", "outcome"],
        schema_types=["test_case"],
    ),
    CanonicalField(
        name="precondition",
        description="Preconditions or setup required before the test",
        aliases=["preconditions", "pre-condition", "pre_condition", "given", "prerequisites", "setup"],
        schema_types=["test_case"],
    ),
    CanonicalField(
        name="acceptance_criteria",
        description="Acceptance criteria for a backlog item",
        aliases=["acceptance", "acceptance criteria", "criteria", "definition of done", "dod"],
        schema_types=["product_backlog"],
    ),
    # Tracking attributes
    CanonicalField(
        name="priority",
        description="Priority or severity level",
        aliases=["prio", "severity", "sev", "importance"],
        schema_types=["issue_tracker", "test_case"],
    ),
    CanonicalField(
        name="type",
        description="Kind of row (test type, issue type)",
        aliases=["test type", "test_type", "kind", "issue type"],
        schema_types=["test_case", "issue_tracker"],
    ),
    CanonicalField(
        name="status",
        description="Workflow status or state",
        aliases=["state", "progress", "result status"],
        schema_types=["issue_tracker", "test_case"],
    ),
    CanonicalField(
        name="component",
        description="System component or area",
        aliases=["area", "subsystem", "service"],
        schema_types=["issue_tracker"],
    ),
    CanonicalField(
        name="assignee",
        description="Person responsible for the row",
        aliases=["owner", "assigned to", "assigned_to", "responsible", "tester"],
        schema_types=["issue_tracker"],
    ),
    CanonicalField(
        name="category",
        description="Grouping or classification label",
        aliases=["group", "classification", "section"],
        schema_types=["issue_tracker"],
    ),
    CanonicalField(
        name="notes",
        description="Free-form notes, comments or remarks",
        aliases=["note", "comments", "comment", "remarks", "remark", "memo"],
        schema_types=["test_case", "issue_tracker"],
    ),
    # API specifications
    CanonicalField(
        name="endpoint",
        description="API endpoint path or URL",
        aliases=["api", "api/endpoint", "url", "route", "path", "uri"],
        schema_types=["api_spec"],
    ),
    CanonicalField(
        name="method",
        description="HTTP method (GET, POST, ...)",
        aliases=["http method", "http_method", "verb"],
        schema_types=["api_spec"],
    ),
    CanonicalField(
        name="parameters",
        description="Request parameters or body fields",
        aliases=["params", "request", "request body", "query"],
        schema_types=["api_spec"],
    ),
    CanonicalField(
        name="response",
        description="Response body or payload description",
        aliases=["response body", "response_body", "response json", "response_json"],
        schema_types=["api_spec"],
    ),
    CanonicalField(
        name="status_code",
        description="HTTP status code",
        aliases=["status code", "http status", "code"],
        schema_types=["api_spec"],
    ),
    # UI specifications
    CanonicalField(
        name="item_name",
        description="Name of a screen item (button, field, label)",
        aliases=["item name", "item", "element", "field name", "control"],
        schema_types=["ui_spec"],
    ),
    CanonicalField(
        name="item_type",
        description="Type of a screen item (button, textbox, dropdown)",
        aliases=["item type", "element type", "control type", "widget"],
        schema_types=["ui_spec"],
    ),
    CanonicalField(
        name="required_optional",
        description="Whether the item is required or optional",
        aliases=["required", "mandatory", "required/optional", "optional"],
        schema_types=["ui_spec"],
    ),
    CanonicalField(
        name="input_restrictions",
        description="Validation rules or input restrictions",
        aliases=["restrictions", "validation", "constraints", "input rules", "format"],
        schema_types=["ui_spec"],
    ),
    CanonicalField(
        name="display_conditions",
        description="Conditions under which the item is shown",
        aliases=["display condition", "visibility", "display rules", "shown when"],
        schema_types=["ui_spec"],
    ),
    CanonicalField(
        name="action",
        description="Behaviour triggered by interacting with the item",
        aliases=["actions", "event", "behavior", "behaviour", "on click"],
        schema_types=["ui_spec"],
    ),
    CanonicalField(
        name="navigation_destination",
        description="Screen navigated to after the action",
        aliases=["navigation", "destination", "next screen", "transition"],
        schema_types=["ui_spec"],
    ),
]

CANONICAL_FIELD_NAMES = frozenset(f.name for f in CANONICAL_FIELDS)

# Required canonical fields per document type
REQUIRED_FIELDS_BY_SCHEMA: Dict[str, List[str]] = {
    "test_case": ["id", "scenario", "instructions", "expected"],
    "product_backlog": ["id", "title", "description", "acceptance_criteria"],
    "issue_tracker": ["id", "feature", "priority", "status"],
    "api_spec": ["endpoint", "method", "parameters", "response"],
    "ui_spec": ["item_name", "item_type", "action"],
}

DEFAULT_REQUIRED_FIELDS = ["id", "feature"]


def _build_alias_index() -> Dict[str, str]:
    index: Dict[str, str] = {}
    for canonical in CANONICAL_FIELDS:
        index.setdefault(canonical.name, canonical.name)
        for alias in canonical.aliases:
            index.setdefault(alias.lower(), canonical.name)
    return index


_ALIAS_INDEX = _build_alias_index()


def get_required_fields_by_schema(schema_name: str) -> List[str]:
    """
    Get the canonical fields a document type must map.

    Unknown or generic schema names fall back to ["id", "feature"]. A fresh
    list is returned on every call.
    """
    key = (schema_name or "").strip().lower()
    return list(REQUIRED_FIELDS_BY_SCHEMA.get(key, DEFAULT_REQUIRED_FIELDS))


def is_canonical_field(name: str) -> bool:
    """Check whether name belongs to the canonical vocabulary."""
    return name in CANONICAL_FIELD_NAMES


def lookup_alias(header: str) -> Optional[str]:
    """
    Resolve a source header to a canonical field name by exact alias match.

    Matching is case-insensitive and ignores surrounding whitespace; inner
    underscores and spaces are treated as equivalent.

    Returns:
        Canonical field name, or None if the header is not a known alias
    """
    normalized = str(header).strip().lower()
    if not normalized:
        return None
    match = _ALIAS_INDEX.get(normalized)
    if match is None:
        match = _ALIAS_INDEX.get(normalized.replace("_", " "))
    if match is None:
        match = _ALIAS_INDEX.get(normalized.replace(" ", "_"))
    return match


def get_canonical_fields_for_prompt(schema_hint: Optional[str] = None) -> List[dict]:
    """
    Get canonical fields formatted for the LLM prompt.

    When a known schema hint is given, fields used by that document type are
    listed first.
    """
    fields = list(CANONICAL_FIELDS)
    hint = (schema_hint or "").strip().lower()
    if hint in REQUIRED_FIELDS_BY_SCHEMA:
        fields.sort(key=lambda f: 0 if hint in f.schema_types else 1)
    return [f.to_dict() for f in fields]
