"""Deterministic alias-based column mapping.

Used as a pass-through when no AI backend is configured.
"""

from typing import List

from schemamap.agents.column_mapping.canonical_fields import lookup_alias
from schemamap.agents.column_mapping.model import (
    CanonicalFieldMapping,
    ColumnMappingResult,
    ExtraColumnMapping,
    MapColumnsRequest,
    MappingMeta,
)

EXACT_MATCH_CONFIDENCE = 1.0
ALIAS_MATCH_CONFIDENCE = 0.9
UNMAPPED_ROLE = "unmapped"


class HeuristicMapper:
    """Maps headers through the canonical alias table"""

    def map_columns(self, request: MapColumnsRequest) -> ColumnMappingResult:
        """
        Map headers without calling an AI backend.

        The first header resolving to a canonical field claims it; later
        headers resolving to the same field become extra columns.
        """
        canonical: List[CanonicalFieldMapping] = []
        extras: List[ExtraColumnMapping] = []
        claimed = set()

        for index, header in enumerate(request.headers):
            name = lookup_alias(header)
            if name is None or name in claimed:
                extras.append(
                    ExtraColumnMapping(
                        name=header,
                        semantic_role=UNMAPPED_ROLE,
                        column_index=index,
                        confidence=0.0,
                    )
                )
                continue

            claimed.add(name)
            exact = str(header).strip().lower() == name
            canonical.append(
                CanonicalFieldMapping(
                    canonical_name=name,
                    source_header=header,
                    column_index=index,
                    confidence=EXACT_MATCH_CONFIDENCE if exact else ALIAS_MATCH_CONFIDENCE,
                    reasoning="Exact canonical name" if exact else "Known header alias",
                )
            )

        result = ColumnMappingResult(
            canonical_fields=canonical,
            extra_columns=extras,
            meta=MappingMeta(
                detected_type=request.schema_hint or "generic",
                source_language=request.source_lang,
                total_columns=len(request.headers),
            ),
        )
        result.recompute_meta()
        return result
