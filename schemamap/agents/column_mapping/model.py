"""Data models for the column mapping agent."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

SCHEMA_VERSION = "v2"
PROMPT_VERSION = "column-mapping-v3"

FORMAT_SPEC = "spec"
FORMAT_TABLE = "table"
SUPPORTED_FORMATS = (FORMAT_SPEC, FORMAT_TABLE)


@dataclass
class MapColumnsRequest:
    """Input for one column mapping call. Not persisted."""

    headers: List[str]
    sample_rows: List[List[str]] = field(default_factory=list)
    format: str = FORMAT_SPEC
    file_type: str = ""
    source_lang: str = ""
    schema_hint: str = ""
    # Set only on a refinement pass: lists the ambiguous headers to reconsider
    refinement_context: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)

    def to_cache_payload(self) -> Dict[str, Any]:
        """Payload used for cache keys and request hashes (sample rows excluded)."""
        return {
            "headers": list(self.headers),
            "format": self.format,
            "file_type": self.file_type,
            "source_lang": self.source_lang,
            "schema_hint": self.schema_hint,
            "refinement_context": self.refinement_context,
        }


@dataclass
class CanonicalFieldMapping:
    """A source column mapped onto a canonical field"""

    canonical_name: str
    source_header: str
    column_index: int
    confidence: float
    reasoning: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class ExtraColumnMapping:
    """A source column kept outside the canonical schema"""

    name: str
    semantic_role: str
    column_index: int
    confidence: float

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class MappingMeta:
    """Summary statistics for a mapping result"""

    detected_type: str = ""
    source_language: str = ""
    total_columns: int = 0
    mapped_columns: int = 0
    unmapped_columns: int = 0
    avg_confidence: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)


@dataclass
class ColumnMappingResult:
    """Result of a column mapping operation.

    Every header index appears in exactly one of canonical_fields or
    extra_columns.
    """

    canonical_fields: List[CanonicalFieldMapping] = field(default_factory=list)
    extra_columns: List[ExtraColumnMapping] = field(default_factory=list)
    meta: MappingMeta = field(default_factory=MappingMeta)
    schema_version: str = SCHEMA_VERSION

    def recompute_meta(self) -> None:
        """Recompute mapped/unmapped counts and average confidence in place.

        total_columns is left untouched.
        """
        self.meta.mapped_columns = len(self.canonical_fields)
        self.meta.unmapped_columns = len(self.extra_columns)
        self.meta.avg_confidence = average_confidence(self.canonical_fields)

    def get_canonical_name(self, column_index: int) -> Optional[str]:
        """Return the canonical name mapped to a column index, if any."""
        for mapping in self.canonical_fields:
            if mapping.column_index == column_index:
                return mapping.canonical_name
        return None

    def get_extra_column_name(self, column_index: int) -> Optional[str]:
        """Return the extra column name at a column index, if any."""
        for extra in self.extra_columns:
            if extra.column_index == column_index:
                return extra.name
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "canonical_fields": [m.to_dict() for m in self.canonical_fields],
            "extra_columns": [e.to_dict() for e in self.extra_columns],
            "meta": self.meta.to_dict(),
            "schema_version": self.schema_version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColumnMappingResult":
        """Build a result from a dictionary produced by to_dict()."""
        return cls(
            canonical_fields=[
                CanonicalFieldMapping(**m) for m in data.get("canonical_fields", [])
            ],
            extra_columns=[
                ExtraColumnMapping(**e) for e in data.get("extra_columns", [])
            ],
            meta=MappingMeta(**data.get("meta", {})),
            schema_version=data.get("schema_version", SCHEMA_VERSION),
        )


def average_confidence(mappings: List[CanonicalFieldMapping]) -> float:
    """Mean confidence of canonical mappings (0.0 when none are mapped)."""
    if not mappings:
        return 0.0
    return sum(m.confidence for m in mappings) / len(mappings)
