"""LLM selection and configuration based on config."""

from typing import Optional

import dspy

from schemamap.config import get_config
from schemamap.exceptions import ConfigurationError
from schemamap.llms.anthropic import create_anthropic_lm
from schemamap.llms.openai import create_openai_lm


def get_lm_for_model(model_name: str, provider: Optional[str] = None) -> dspy.LM:
    """
    Get DSPy LM instance for a routed model name.

    Args:
        model_name: Model selected by the ModelRouter
        provider: 'openai' or 'anthropic' (if None, uses COLUMN_MAPPING_LLM)

    Returns:
        Configured dspy.LM instance
    """
    config = get_config()
    provider = (provider or config.column_mapping_llm or "openai").lower()

    if provider == "openai":
        return create_openai_lm(model_name)
    elif provider == "anthropic":
        return create_anthropic_lm(model_name)
    else:
        raise ConfigurationError(
            f"Unknown LLM provider: {provider}. Available: openai, anthropic"
        )
