"""Cost-aware model selection for column mapping calls."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from schemamap.config import ModelRouterConfig, get_config

logger = logging.getLogger(__name__)

DEFAULT_SIMPLE_MODEL = "gpt-4o-mini"
DEFAULT_COMPLEX_MODEL = "gpt-4o"
DEFAULT_COLUMN_THRESHOLD = 20


@dataclass
class RoutingContext:
    """Request shape used to pick a model"""

    column_count: int
    headers: List[str] = field(default_factory=list)
    language: str = ""
    schema_hint: str = ""


def _is_non_ascii(ch: str) -> bool:
    return ord(ch) > 127


def has_mixed_script_headers(headers: List[str]) -> bool:
    """True when header text contains both ASCII and non-ASCII characters (whitespace ignored)."""
    has_ascii = False
    has_non_ascii = False
    for header in headers:
        for ch in header:
            if ch.isspace():
                continue
            if _is_non_ascii(ch):
                has_non_ascii = True
            else:
                has_ascii = True
            if has_ascii and has_non_ascii:
                return True
    return False


def is_predominantly_non_ascii(header: str) -> bool:
    """True when more than half of a header's non-space characters are non-ASCII."""
    chars = [ch for ch in header if not ch.isspace()]
    if not chars:
        return False
    non_ascii = sum(1 for ch in chars if _is_non_ascii(ch))
    return non_ascii * 2 > len(chars)


class ModelRouter:
    """Routes simple requests to a cheap model and hard ones to a capable model"""

    def __init__(
        self,
        simple_model: Optional[str] = None,
        complex_model: Optional[str] = None,
        column_threshold: Optional[int] = None,
    ):
        """
        Initialize the router.

        Args:
            simple_model: Model for small English schemas
            complex_model: Model for wide or non-English schemas
            column_threshold: Column count above which the complex model is used
        """
        self.simple_model = simple_model or DEFAULT_SIMPLE_MODEL
        self.complex_model = complex_model or DEFAULT_COMPLEX_MODEL
        if column_threshold is None or column_threshold <= 0:
            column_threshold = DEFAULT_COLUMN_THRESHOLD
        self.column_threshold = column_threshold

    @classmethod
    def from_config(cls, router_config: Optional[ModelRouterConfig] = None) -> "ModelRouter":
        """Build a router from ModelRouterConfig (global config if None)."""
        router_config = router_config or get_config().router
        return cls(
            simple_model=router_config.simple_model,
            complex_model=router_config.complex_model,
            column_threshold=router_config.column_threshold,
        )

    def select_model(self, ctx: RoutingContext) -> str:
        """
        Pick a model for a mapping request.

        Escalates to the complex model for wide schemas, a declared non-English
        language, or non-ASCII header text (checked regardless of the declared
        language). An empty language counts as English.
        """
        reason = self._escalation_reason(ctx)
        if reason:
            logger.debug(f"Routing to {self.complex_model}: {reason}")
            return self.complex_model
        logger.debug(f"Routing to {self.simple_model}")
        return self.simple_model

    def _escalation_reason(self, ctx: RoutingContext) -> Optional[str]:
        if ctx.column_count > self.column_threshold:
            return f"{ctx.column_count} columns exceeds threshold {self.column_threshold}"

        language = ctx.language or ""
        if language and language != "en":
            return f"declared language '{language}'"

        if has_mixed_script_headers(ctx.headers):
            return "headers mix ASCII and non-ASCII text"

        for header in ctx.headers:
            if is_predominantly_non_ascii(header):
                return f"header '{header}' is predominantly non-ASCII"

        return None

    def select_model_for_request(self, headers: List[str], language: str = "", schema_hint: str = "") -> str:
        """Convenience wrapper building the RoutingContext from request fields."""
        return self.select_model(
            RoutingContext(
                column_count=len(headers),
                headers=list(headers),
                language=language,
                schema_hint=schema_hint,
            )
        )
