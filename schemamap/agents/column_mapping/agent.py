"""Column mapping agent."""

import copy
import dataclasses
import logging
from collections import defaultdict, deque
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Dict, List, Optional

import pandas as pd

from schemamap.agents.column_mapping.backend import DSPyMappingBackend, MappingBackend
from schemamap.agents.column_mapping.confidence import (
    DEFAULT_THRESHOLDS,
    ConfidenceThresholds,
    apply_confidence_fallback,
)
from schemamap.agents.column_mapping.example_pool import ExamplePool
from schemamap.agents.column_mapping.model import (
    FORMAT_SPEC,
    FORMAT_TABLE,
    PROMPT_VERSION,
    SCHEMA_VERSION,
    SUPPORTED_FORMATS,
    ColumnMappingResult,
    ExtraColumnMapping,
    MapColumnsRequest,
    MappingMeta,
)
from schemamap.agents.column_mapping.validator import validate_mapping_response
from schemamap.config import AppConfig, get_config
from schemamap.exceptions import (
    AITimeoutError,
    AIUnavailableError,
    InvalidRequestError,
    UpstreamError,
)
from schemamap.llms.router import ModelRouter, RoutingContext
from schemamap.utils.lru_cache import LRUCache
from schemamap.utils.normalized_cache import NormalizedCache

logger = logging.getLogger(__name__)

CACHE_OPERATION = "map_columns"
TABLE_COLUMN_ROLE = "table_column"

# Average confidence below which one refinement pass is attempted
REFINEMENT_THRESHOLD = 0.60
# Canonical mappings below this are listed as ambiguous in the refinement pass
AMBIGUOUS_THRESHOLD = 0.70


def _normalize_header(header: str) -> str:
    return str(header).strip().lower()


def _reindex_for_headers(
    cached: ColumnMappingResult,
    cached_headers: List[str],
    headers: List[str],
) -> ColumnMappingResult:
    """
    Re-point a cached result at the caller's header positions.

    Cache keys ignore header order, case and whitespace, so a hit may come
    from a permuted request. Duplicate headers are matched by occurrence order.
    """
    positions: Dict[str, deque] = defaultdict(deque)
    for index, header in enumerate(headers):
        positions[_normalize_header(header)].append(index)

    index_map = {}
    for old_index, header in enumerate(cached_headers):
        index_map[old_index] = positions[_normalize_header(header)].popleft()

    result = copy.deepcopy(cached)
    for mapping in result.canonical_fields:
        mapping.column_index = index_map[mapping.column_index]
        mapping.source_header = headers[mapping.column_index]
    for extra in result.extra_columns:
        extra.column_index = index_map[extra.column_index]
        extra.name = headers[extra.column_index]
    return result


class ColumnMapper:
    """Maps source columns onto canonical fields.

    "table" format is deterministic and never calls the backend. "spec"
    format routes to a model, checks the normalized cache and calls the AI
    backend on a miss. No lock is held across the backend call.
    """

    def __init__(
        self,
        backend: Optional[MappingBackend] = None,
        router: Optional[ModelRouter] = None,
        cache: Optional[NormalizedCache] = None,
        thresholds: ConfidenceThresholds = DEFAULT_THRESHOLDS,
        request_timeout: Optional[float] = None,
    ):
        """
        Initialize the Column Mapper

        Args:
            backend: AI backend (None = "spec" format raises AIUnavailableError)
            router: Model router (defaults to router built from config)
            cache: Normalized result cache (None = no caching)
            thresholds: Confidence thresholds
            request_timeout: Default deadline in seconds for backend calls (None = no deadline)
        """
        self.backend = backend
        self.router = router or ModelRouter.from_config()
        self.cache = cache
        self.thresholds = thresholds
        self.request_timeout = request_timeout

    @classmethod
    def from_config(
        cls,
        config: Optional[AppConfig] = None,
        example_pool: Optional[ExamplePool] = None,
        enable_tracing: bool = True,
    ) -> "ColumnMapper":
        """
        Build a mapper from application config.

        The DSPy backend is only created when the configured provider has an
        API key; otherwise the mapper runs without a backend.
        """
        config = config or get_config()

        provider = (config.column_mapping_llm or "openai").lower()
        provider_config = config.anthropic if provider == "anthropic" else config.openai
        backend = None
        if provider_config.api_key:
            backend = DSPyMappingBackend(
                example_pool=example_pool,
                provider=provider,
                enable_tracing=enable_tracing and config.mlflow.enabled,
            )
        else:
            logger.info(f"No API key configured for {provider}; AI column mapping disabled")

        cache = None
        if config.cache.enabled:
            cache = NormalizedCache(
                LRUCache(max_size=config.cache.max_size, ttl_seconds=config.cache.ttl_seconds)
            )

        return cls(
            backend=backend,
            router=ModelRouter.from_config(config.router),
            cache=cache,
            request_timeout=config.ai_request_timeout,
        )

    @property
    def ai_available(self) -> bool:
        return self.backend is not None

    def extract_request_from_dataframe(
        self,
        df: pd.DataFrame,
        sample_rows: int = 3,
        format: str = FORMAT_SPEC,
        file_type: str = "",
        source_lang: str = "",
        schema_hint: str = "",
    ) -> MapColumnsRequest:
        """
        Build a mapping request from a dataframe

        Args:
            df: Input dataframe (column labels are the headers)
            sample_rows: Number of sample rows to include

        Returns:
            MapColumnsRequest
        """
        return request_from_dataframe(
            df,
            sample_rows=sample_rows,
            format=format,
            file_type=file_type,
            source_lang=source_lang,
            schema_hint=schema_hint,
        )

    def map_table(self, request: MapColumnsRequest) -> ColumnMappingResult:
        """Pass every header through as a table column (no AI call)."""
        extras = [
            ExtraColumnMapping(
                name=header,
                semantic_role=TABLE_COLUMN_ROLE,
                column_index=index,
                confidence=1.0,
            )
            for index, header in enumerate(request.headers)
        ]
        return ColumnMappingResult(
            canonical_fields=[],
            extra_columns=extras,
            meta=MappingMeta(
                detected_type=FORMAT_TABLE,
                source_language=request.source_lang,
                total_columns=len(request.headers),
                mapped_columns=0,
                unmapped_columns=len(request.headers),
                avg_confidence=0.0,
            ),
        )

    def map_columns(
        self,
        request: MapColumnsRequest,
        timeout: Optional[float] = None,
    ) -> ColumnMappingResult:
        """
        Map request headers to canonical fields

        Args:
            request: Mapping request
            timeout: Deadline in seconds for the backend call (defaults to request_timeout)

        Returns:
            ColumnMappingResult (pre-fallback for "spec" format)

        Raises:
            InvalidRequestError: Unknown format
            AIUnavailableError: "spec" format without a backend
            UpstreamError: Backend failure, timeout or invalid response
        """
        if request.format not in SUPPORTED_FORMATS:
            raise InvalidRequestError(
                f"Unknown format '{request.format}'. Available: {', '.join(SUPPORTED_FORMATS)}"
            )

        if request.format == FORMAT_TABLE:
            return self.map_table(request)

        if self.backend is None:
            raise AIUnavailableError()

        if not request.headers:
            return ColumnMappingResult(
                meta=MappingMeta(
                    detected_type=request.schema_hint,
                    source_language=request.source_lang,
                )
            )

        model = self.router.select_model(
            RoutingContext(
                column_count=len(request.headers),
                headers=list(request.headers),
                language=request.source_lang,
                schema_hint=request.schema_hint,
            )
        )

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.key_for(
                request.to_cache_payload(),
                operation=CACHE_OPERATION,
                model=model,
                prompt_version=PROMPT_VERSION,
                schema_version=SCHEMA_VERSION,
            )
            cached, hit = self.cache.get(cache_key)
            if hit:
                logger.info(f"Column mapping cache hit ({model}, {len(request.headers)} columns)")
                cached_headers, cached_result = cached
                return _reindex_for_headers(cached_result, cached_headers, list(request.headers))
            logger.info(f"Column mapping cache miss ({model}, {len(request.headers)} columns)")

        result = self._call_backend(request, model, timeout)
        validate_mapping_response(result, len(request.headers), model=model)

        if cache_key is not None:
            self.cache.set(cache_key, (list(request.headers), copy.deepcopy(result)))

        return copy.deepcopy(result)

    def _call_backend(
        self,
        request: MapColumnsRequest,
        model: str,
        timeout: Optional[float],
    ) -> ColumnMappingResult:
        """
        Call the backend, bounded by timeout when one is set.

        Python threads cannot be cancelled: on timeout the worker thread is
        abandoned and the backend call runs to completion in the background.
        The LM client timeout (OPENAI_TIMEOUT / ANTHROPIC_TIMEOUT) bounds it.
        """
        if timeout is None:
            timeout = self.request_timeout

        try:
            if timeout is None:
                return self.backend.map_columns(request, model)

            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="column-mapping")
            try:
                future = executor.submit(self.backend.map_columns, request, model)
                return future.result(timeout=timeout)
            finally:
                executor.shutdown(wait=False)
        except UpstreamError:
            raise
        except FuturesTimeoutError as e:
            raise AITimeoutError(
                f"AI column mapping timed out after {timeout}s", model=model
            ) from e
        except Exception as e:
            raise UpstreamError(f"AI column mapping failed: {e}", model=model) from e

    def map_columns_with_fallback(
        self,
        request: MapColumnsRequest,
        timeout: Optional[float] = None,
    ) -> ColumnMappingResult:
        """
        Map columns, refine once on low confidence, then demote uncertain mappings.

        A failed refinement is logged and the original mapping is kept.
        """
        result = self.map_columns(request, timeout=timeout)

        if request.format == FORMAT_SPEC and result.meta.total_columns > 0:
            if result.meta.avg_confidence < REFINEMENT_THRESHOLD:
                refined = self._refine(request, result, timeout)
                if refined is not None:
                    result = refined

        return apply_confidence_fallback(result)

    def _refine(
        self,
        request: MapColumnsRequest,
        original: ColumnMappingResult,
        timeout: Optional[float],
    ) -> Optional[ColumnMappingResult]:
        ambiguous = [
            m.source_header for m in original.canonical_fields if m.confidence < AMBIGUOUS_THRESHOLD
        ]
        if not ambiguous:
            return None

        logger.info(
            f"Low confidence mapping (avg {original.meta.avg_confidence:.2f}), "
            f"refining {len(ambiguous)} header(s)"
        )
        refinement_request = dataclasses.replace(
            request,
            refinement_context=(
                f"Previous attempt mapped these headers with low confidence <{', '.join(ambiguous)}>. "
                "Reconsider these mappings using sample data patterns. If truly ambiguous, "
                "move them to extra_columns rather than force an incorrect mapping."
            ),
        )
        try:
            return self.map_columns(refinement_request, timeout=timeout)
        except UpstreamError as e:
            logger.warning(f"Refinement failed, keeping original mapping: {e}")
            return None

    def cache_stats(self):
        """Return cache statistics, or None when caching is disabled."""
        return self.cache.stats() if self.cache is not None else None


def request_from_dataframe(
    df: pd.DataFrame,
    sample_rows: int = 3,
    format: str = FORMAT_SPEC,
    file_type: str = "",
    source_lang: str = "",
    schema_hint: str = "",
) -> MapColumnsRequest:
    """
    Build a mapping request from a dataframe's column labels and first rows.

    Missing values become empty strings.
    """
    headers = [str(col) for col in df.columns]
    samples = df.head(max(sample_rows, 0)).fillna("").astype(str).values.tolist()
    return MapColumnsRequest(
        headers=headers,
        sample_rows=samples,
        format=format,
        file_type=file_type,
        source_lang=source_lang,
        schema_hint=schema_hint,
    )
