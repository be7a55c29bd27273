"""Configuration management for the schema mapping engine."""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load environment variables from .env file in ops folder
env_path = Path(__file__).parent.parent / "ops" / ".env"
load_dotenv(dotenv_path=env_path)


class OpenAIConfig(BaseSettings):
    """OpenAI API configuration."""

    api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    temperature: float = Field(default=0.0, alias="OPENAI_TEMPERATURE")
    max_tokens: Optional[int] = Field(default=1200, alias="OPENAI_MAX_TOKENS")
    timeout: int = Field(default=60, alias="OPENAI_TIMEOUT")

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"


class AnthropicConfig(BaseSettings):
    """Anthropic API configuration."""

    api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    temperature: float = Field(default=0.0, alias="ANTHROPIC_TEMPERATURE")
    max_tokens: Optional[int] = Field(default=1200, alias="ANTHROPIC_MAX_TOKENS")
    timeout: int = Field(default=60, alias="ANTHROPIC_TIMEOUT")

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"


class ModelRouterConfig(BaseSettings):
    """Cheap vs. capable model selection."""

    simple_model: str = Field(default="gpt-4o-mini", alias="ROUTER_SIMPLE_MODEL")
    complex_model: str = Field(default="gpt-4o", alias="ROUTER_COMPLEX_MODEL")
    column_threshold: int = Field(default=20, alias="ROUTER_COLUMN_THRESHOLD")

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"


class CacheConfig(BaseSettings):
    """Mapping result cache configuration."""

    enabled: bool = Field(default=True, alias="MAPPING_CACHE_ENABLED")
    max_size: int = Field(default=1000, alias="MAPPING_CACHE_MAX_SIZE")
    ttl_seconds: int = Field(default=3600, alias="MAPPING_CACHE_TTL_SECONDS")

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"


class MLflowConfig(BaseSettings):
    """MLflow tracking configuration."""

    # Default to SQLite backend (recommended) instead of file store
    tracking_uri: Optional[str] = Field(
        default="sqlite:///mlflow.db", alias="MLFLOW_TRACKING_URI"
    )
    experiment_name: str = Field(default="schema-mapping", alias="MLFLOW_EXPERIMENT_NAME")
    enabled: bool = Field(default=True, alias="MLFLOW_ENABLED")

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"


class AppConfig(BaseSettings):
    """Main application configuration."""

    # Application settings
    app_name: str = Field(default="schemamap", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Feedback persistence
    feedback_database_path: Path = Field(
        default=Path("data/feedback.db"), alias="FEEDBACK_DATABASE_PATH"
    )

    # Few-shot examples persisted between runs (optional)
    examples_path: Optional[Path] = Field(default=None, alias="EXAMPLES_PATH")

    # Provider used by the column mapping agent: "openai" or "anthropic"
    column_mapping_llm: str = Field(default="openai", alias="COLUMN_MAPPING_LLM")
    ai_request_timeout: Optional[float] = Field(default=120.0, alias="AI_REQUEST_TIMEOUT")

    # LLM Provider Settings
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)

    router: ModelRouterConfig = Field(default_factory=ModelRouterConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    # MLflow configuration
    mlflow: MLflowConfig = Field(default_factory=MLflowConfig)

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"


# Global configuration instance
config = AppConfig()


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    return config


def reload_config() -> AppConfig:
    """Reload configuration from environment variables."""
    global config
    config = AppConfig()
    return config
