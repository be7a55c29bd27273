"""Schema Mapping Pipeline

Orchestrates format detection, header detection, column mapping and the
review gate.

Steps:
1. Detect format (fast path) or parse delimited text with pandas
2. Detect the header row
3. Map columns (AI, or heuristic pass-through when no AI backend is configured)
4. Apply confidence fallback and decide whether review is required
5. Validate semantics against the document type
"""

import csv
import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pandas as pd

from schemamap.agents.column_mapping.agent import ColumnMapper, request_from_dataframe
from schemamap.agents.column_mapping.confidence import (
    DEFAULT_THRESHOLDS,
    ConfidenceThresholds,
    apply_confidence_fallback,
)
from schemamap.agents.column_mapping.heuristic import HeuristicMapper
from schemamap.agents.column_mapping.model import (
    FORMAT_SPEC,
    ColumnMappingResult,
    MapColumnsRequest,
)
from schemamap.agents.column_mapping.validator import (
    SemanticValidationResult,
    validate_mapping_semantics,
)
from schemamap.detection.format_detector import quick_detect
from schemamap.detection.header_detector import detect_header_row, score_header_row
from schemamap.exceptions import AIUnavailableError, InvalidRequestError, UnrecognizedInputError
from schemamap.utils.normalized_cache import normalize_payload_hash

logger = logging.getLogger(__name__)


@dataclass
class MappingOutcome:
    """Everything a caller needs to present or gate a mapping"""

    result: ColumnMappingResult
    review_required: bool
    confidence_level: str
    header_confidence: int
    request_hash: str
    validation: Optional[SemanticValidationResult] = None
    used_fast_path: bool = False
    used_heuristic_fallback: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "result": self.result.to_dict(),
            "review_required": self.review_required,
            "confidence_level": self.confidence_level,
            "header_confidence": self.header_confidence,
            "validation": self.validation.to_dict() if self.validation else None,
            "request_hash": self.request_hash,
            "used_fast_path": self.used_fast_path,
            "used_heuristic_fallback": self.used_heuristic_fallback,
        }


class SchemaMappingPipeline:
    """Pipeline from raw tabular input to a gated column mapping"""

    def __init__(
        self,
        mapper: Optional[ColumnMapper] = None,
        thresholds: ConfidenceThresholds = DEFAULT_THRESHOLDS,
        heuristic_fallback: bool = True,
        sample_rows: int = 3,
    ):
        """
        Initialize pipeline.

        Args:
            mapper: Column mapper (defaults to one built from config)
            thresholds: Confidence thresholds for the review gate
            heuristic_fallback: Use alias-based mapping when no AI backend is configured
            sample_rows: Data rows sent to the mapper as samples
        """
        self.mapper = mapper or ColumnMapper.from_config()
        self.thresholds = thresholds
        self.heuristic_fallback = heuristic_fallback
        self.heuristic_mapper = HeuristicMapper()
        self.sample_rows = sample_rows

    def process_text(
        self,
        content: str,
        format: str = FORMAT_SPEC,
        file_type: str = "",
        source_lang: str = "",
        schema_hint: str = "",
    ) -> MappingOutcome:
        """
        Map pasted or file text.

        Raises:
            UnrecognizedInputError: Content is not readable as a table
        """
        detection = quick_detect(content)
        if detection is not None:
            logger.debug(f"Fast-path detection: {detection.format} ({len(detection.rows)} rows)")
            return self.process_rows(
                detection.rows,
                format=format,
                file_type=file_type or detection.format,
                source_lang=source_lang,
                schema_hint=schema_hint,
                used_fast_path=True,
            )

        rows = self._parse_delimited(content)
        return self.process_rows(
            rows,
            format=format,
            file_type=file_type,
            source_lang=source_lang,
            schema_hint=schema_hint,
        )

    def _parse_delimited(self, content: str) -> List[List[str]]:
        if not content or not content.strip():
            raise UnrecognizedInputError("Input is empty")
        try:
            df = pd.read_csv(
                io.StringIO(content),
                sep=None,
                engine="python",
                header=None,
                dtype=str,
                keep_default_na=False,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error, ValueError) as e:
            raise UnrecognizedInputError(f"Could not parse input as a table: {e}") from e

        if df.shape[1] < 2:
            raise UnrecognizedInputError("Input has a single column; no delimiter detected")
        return df.values.tolist()

    def process_rows(
        self,
        rows: Sequence[Sequence[str]],
        format: str = FORMAT_SPEC,
        file_type: str = "",
        source_lang: str = "",
        schema_hint: str = "",
        used_fast_path: bool = False,
    ) -> MappingOutcome:
        """
        Map already-split rows; the header row is detected among the first five.

        Raises:
            InvalidRequestError: No rows given
        """
        if not rows:
            raise InvalidRequestError("No rows to map")

        header_index, header_confidence = detect_header_row(list(rows))
        headers = ["" if cell is None else str(cell).strip() for cell in rows[header_index]]
        data_rows = [
            ["" if cell is None else str(cell) for cell in row]
            for row in rows[header_index + 1:]
        ]

        request = MapColumnsRequest(
            headers=headers,
            sample_rows=data_rows[: self.sample_rows],
            format=format,
            file_type=file_type,
            source_lang=source_lang,
            schema_hint=schema_hint,
        )
        return self._map(request, header_confidence, used_fast_path=used_fast_path)

    def process_dataframe(
        self,
        df: pd.DataFrame,
        format: str = FORMAT_SPEC,
        file_type: str = "",
        source_lang: str = "",
        schema_hint: str = "",
    ) -> MappingOutcome:
        """Map a dataframe whose column labels are the headers."""
        request = request_from_dataframe(
            df,
            sample_rows=self.sample_rows,
            format=format,
            file_type=file_type,
            source_lang=source_lang,
            schema_hint=schema_hint,
        )
        return self._map(request, score_header_row(request.headers))

    def _map(
        self,
        request: MapColumnsRequest,
        header_confidence: int,
        used_fast_path: bool = False,
    ) -> MappingOutcome:
        used_heuristic = False
        try:
            if request.format == FORMAT_SPEC:
                result = self.mapper.map_columns_with_fallback(request)
            else:
                result = self.mapper.map_columns(request)
        except AIUnavailableError:
            if not self.heuristic_fallback:
                raise
            logger.info("AI backend unavailable, using heuristic column mapping")
            result = apply_confidence_fallback(self.heuristic_mapper.map_columns(request))
            used_heuristic = True

        meta = result.meta
        review_required = self.thresholds.should_review_mapping(
            meta.avg_confidence,
            header_confidence,
            meta.unmapped_columns,
            meta.total_columns,
        )

        validation = None
        if request.format == FORMAT_SPEC:
            validation = validate_mapping_semantics(
                result, request.schema_hint or meta.detected_type
            )

        return MappingOutcome(
            result=result,
            review_required=review_required,
            confidence_level=self.thresholds.get_confidence_level(meta.avg_confidence).value,
            header_confidence=header_confidence,
            validation=validation,
            request_hash=normalize_payload_hash(request.to_cache_payload()),
            used_fast_path=used_fast_path,
            used_heuristic_fallback=used_heuristic,
        )
