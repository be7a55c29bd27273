"""LLM provider setup and model routing."""

from schemamap.llms.llm import get_lm_for_model
from schemamap.llms.router import ModelRouter, RoutingContext

__all__ = ["ModelRouter", "RoutingContext", "get_lm_for_model"]
