"""OpenAI LLM provider implementation."""

import os

import dspy

from schemamap.config import get_config


def create_openai_lm(model: str) -> dspy.LM:
    """
    Create DSPy LM instance for OpenAI or OpenRouter.

    Args:
        model: Model name chosen by the router (e.g. "gpt-4o-mini")

    Returns:
        Configured dspy.LM instance for OpenAI/OpenRouter
    """
    config = get_config()
    api_key = config.openai.api_key

    # Auto-detect OpenRouter keys (they start with "sk-or-")
    is_openrouter = api_key and api_key.startswith("sk-or-")

    if is_openrouter:
        # Set environment variable for LiteLLM to use OpenRouter
        os.environ["OPENROUTER_API_KEY"] = api_key
        if not model.startswith("openrouter/"):
            model = f"openrouter/openai/{model}"

    lm_kwargs = {
        "model": model,
        "api_key": api_key,
        "temperature": config.openai.temperature,
        "timeout": config.openai.timeout,
    }

    if config.openai.max_tokens:
        lm_kwargs["max_tokens"] = config.openai.max_tokens

    # Set base URL if explicitly configured
    if config.openai.base_url:
        lm_kwargs["api_base"] = config.openai.base_url

    return dspy.LM(**lm_kwargs)
