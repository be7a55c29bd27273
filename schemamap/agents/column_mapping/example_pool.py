"""Few-shot example pool for column mapping prompts.

The pool is written by the feedback learner and read when building prompts.
"""

import logging
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

OPERATION_COLUMN_MAPPING = "column_mapping"
SOURCE_BUILTIN = "builtin"
SOURCE_USER_FEEDBACK = "user_feedback"


@dataclass
class ExampleMapping:
    """Expected mapping of one header in an example"""

    canonical_name: str
    source_header: str
    column_index: int
    confidence: float
    reasoning: str = ""


@dataclass
class Example:
    """A worked (headers -> correct mapping) pair"""

    operation: str
    schema_type: str
    headers: List[str]
    mappings: List[ExampleMapping] = field(default_factory=list)
    language: str = ""
    source: str = SOURCE_BUILTIN

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Example":
        return cls(
            operation=data["operation"],
            schema_type=data.get("schema_type", ""),
            headers=list(data.get("headers", [])),
            mappings=[ExampleMapping(**m) for m in data.get("mappings", [])],
            language=data.get("language", ""),
            source=data.get("source", SOURCE_BUILTIN),
        )


class ExamplePool:
    """Thread-safe registry of examples grouped by operation"""

    def __init__(self):
        self._examples: Dict[str, List[Example]] = {}
        self._lock = threading.Lock()

    def register(self, example: Example) -> None:
        """Add an example to the pool."""
        with self._lock:
            self._examples.setdefault(example.operation, []).append(example)

    def get_examples(
        self,
        operation: str,
        schema_type: Optional[str] = None,
        language: Optional[str] = None,
        max_results: int = 0,
    ) -> List[Example]:
        """
        Get examples for an operation.

        Args:
            operation: Operation name (e.g. "column_mapping")
            schema_type: Only return this schema type (None/"" = any)
            language: Only return this language (None/"" = any)
            max_results: Maximum examples to return (0 = all)

        Returns:
            Matching examples in registration order
        """
        with self._lock:
            candidates = list(self._examples.get(operation, []))

        results = []
        for example in candidates:
            if schema_type and example.schema_type != schema_type:
                continue
            if language and example.language != language:
                continue
            results.append(example)
            if max_results > 0 and len(results) >= max_results:
                break
        return results

    def __len__(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._examples.values())

    def export_yaml(self, path: Union[str, Path]) -> int:
        """
        Write every example to a YAML file.

        Returns:
            Number of examples written
        """
        with self._lock:
            examples = [e.to_dict() for group in self._examples.values() for e in group]

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                {"examples": examples},
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )
        logger.info(f"Exported {len(examples)} examples to {path}")
        return len(examples)

    def load_yaml(self, path: Union[str, Path]) -> int:
        """
        Register examples from a YAML file written by export_yaml().

        Returns:
            Number of examples loaded
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        count = 0
        for item in data.get("examples", []):
            self.register(Example.from_dict(item))
            count += 1
        logger.info(f"Loaded {count} examples from {path}")
        return count


def format_examples_for_prompt(examples: List[Example]) -> str:
    """Render examples as a few-shot block for the LLM prompt ("" when empty)."""
    if not examples:
        return ""

    lines = ["FEW-SHOT EXAMPLES:"]
    for i, example in enumerate(examples, start=1):
        lines.append("")
        lines.append(f"--- Example {i} ({example.schema_type}, {example.language or 'any'}) ---")
        lines.append(f"Headers: {example.headers}")
        if example.mappings:
            lines.append("Expected mappings:")
            for m in example.mappings:
                lines.append(
                    f'  {m.source_header} -> {m.canonical_name} '
                    f'(index={m.column_index}, confidence={m.confidence:.1f}, reason="{m.reasoning}")'
                )
    return "\n".join(lines) + "\n"


def _example(schema_type: str, language: str, rows: List[tuple]) -> Example:
    headers = [header for header, _, _, _ in rows]
    mappings = [
        ExampleMapping(
            canonical_name=canonical,
            source_header=header,
            column_index=index,
            confidence=confidence,
            reasoning=reasoning,
        )
        for index, (header, canonical, confidence, reasoning) in enumerate(rows)
    ]
    return Example(
        operation=OPERATION_COLUMN_MAPPING,
        schema_type=schema_type,
        language=language,
        headers=headers,
        mappings=mappings,
    )


def default_example_pool() -> ExamplePool:
    """Create a pool seeded with the built-in examples."""
    pool = ExamplePool()

    pool.register(_example("test_case", "en", [
        ("TC ID", "id", 1.0, "Test case identifier"),
        ("Test Case Name", "scenario", 0.95, "Name of the test case"),
        ("Precondition", "precondition", 1.0, "Exact match"),
        ("Steps", "instructions", 1.0, "Steps to execute"),
        ("Expected", "expected", 0.9, "Expected result"),
        ("Status", "status", 1.0, "Exact match"),
    ]))

    pool.register(_example("issue_tracker", "ja", [
        ("Issue #", "id", 1.0, "Issue identifier"),
        ("概要", "feature", 0.95, "JP: summary/overview"),
        ("優先度", "priority", 1.0, "JP: priority"),
        ("担当者", "assignee", 1.0, "JP: assignee"),
        ("備考", "notes", 0.9, "JP: remarks"),
    ]))

    pool.register(_example("ui_spec", "en", [
        ("No", "no", 1.0, "Row number"),
        ("Item Name", "item_name", 1.0, "UI item name"),
        ("Item Type", "item_type", 1.0, "UI item type"),
        ("Required/Optional", "required_optional", 1.0, "Required/optional flag"),
        ("Input Restrictions", "input_restrictions", 1.0, "Input constraints"),
        ("Display Conditions", "display_conditions", 1.0, "Display rules"),
        ("Action", "action", 1.0, "User interaction"),
        ("Navigation Destination", "navigation_destination", 1.0, "Navigation target"),
    ]))

    pool.register(_example("product_backlog", "en", [
        ("Story ID", "id", 1.0, "User story identifier"),
        ("Title", "title", 1.0, "Story title"),
        ("Description", "description", 1.0, "Detailed description"),
        ("Acceptance Criteria", "acceptance_criteria", 1.0, "Done definition"),
        ("Priority", "priority", 1.0, "Story priority"),
    ]))

    pool.register(_example("api_spec", "en", [
        ("Endpoint", "endpoint", 1.0, "API endpoint URL path"),
        ("Method", "method", 1.0, "HTTP method"),
        ("Parameters", "parameters", 1.0, "Request parameters"),
        ("Response", "response", 1.0, "Response structure"),
        ("Status Code", "status_code", 1.0, "HTTP status code"),
    ]))

    pool.register(_example("test_case", "vi", [
        ("Mã TC", "id", 1.0, "VN: test case ID"),
        ("Tên trường hợp kiểm thử", "scenario", 0.95, "VN: test case name"),
        ("Điều kiện tiên quyết", "precondition", 1.0, "VN: precondition"),
        ("Các bước", "instructions", 1.0, "VN: steps"),
        ("Kết quả mong đợi", "expected", 0.95, "VN: expected result"),
        ("Trạng thái", "status", 1.0, "VN: status"),
    ]))

    return pool
