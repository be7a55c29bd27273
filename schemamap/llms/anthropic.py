"""Anthropic LLM provider implementation."""

import dspy

from schemamap.config import get_config


def create_anthropic_lm(model: str) -> dspy.LM:
    """
    Create DSPy LM instance for Anthropic.

    Args:
        model: Model name chosen by the router

    Returns:
        Configured dspy.LM instance for Anthropic
    """
    config = get_config()

    # DSPy uses "anthropic/model-name" format for Anthropic models
    if not model.startswith("anthropic/"):
        model = f"anthropic/{model}"

    return dspy.LM(
        model=model,
        api_key=config.anthropic.api_key,
        temperature=config.anthropic.temperature,
        max_tokens=config.anthropic.max_tokens,
        timeout=config.anthropic.timeout,
    )
