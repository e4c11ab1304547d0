"""Configuration settings for the content ideas service."""

from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv

from src.engines.channels import Channel


DEFAULT_BUSINESS_CONTEXT = (
    "I have a small startup that helps small business collect, "
    "manage and analyze their reviews"
)

DEFAULT_TARGET_AUDIENCE = "mostly small business owners"

DEFAULT_CHANNELS: list[str] = ["instagram", "x", "linkedin"]

SESSION_STORE_TYPES = frozenset({"memory", "sqlite"})


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class Settings:
    """Configuration settings for the content ideas service.

    Attributes:
        openai_api_key: Bearer token for the LLM endpoint
        openai_base_url: Base URL the /responses path is appended to
        model: Model identifier sent with every request
        temperature: Sampling temperature sent with every request
        request_timeout_seconds: Connect/read timeout for one HTTP call
        max_retries: Retries after the first call for retryable statuses
        retry_initial_delay_seconds: First backoff delay
        retry_max_backoff_seconds: Upper bound for any single backoff delay
        business_context: Business description injected into the prompt
        target_audience: Audience description injected into the prompt
        default_channels: Channels used when a request names none
        schema_name: Name of the structured-output schema
        strict_schema: Whether the upstream must follow the schema strictly
        idea_min_items: Minimum ideas per channel in the schema
        idea_max_items: Maximum ideas per channel in the schema
        max_content_length: Content longer than this is truncated up front
        truncated_content_length: Length content is truncated to
        truncation_risk_chars: Response size above which an unclosed
            payload is classified as truncated
        session_store: "memory" or "sqlite"
        max_sessions: Capacity of the in-memory session store
        database_path: SQLite file used when session_store is "sqlite"
        max_workers: Thread pool size for batch analysis
    """

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    request_timeout_seconds: float = 120.0
    max_retries: int = 3
    retry_initial_delay_seconds: float = 1.0
    retry_max_backoff_seconds: float = 5.0
    business_context: str = DEFAULT_BUSINESS_CONTEXT
    target_audience: str = DEFAULT_TARGET_AUDIENCE
    default_channels: list[str] = field(default_factory=lambda: DEFAULT_CHANNELS.copy())
    schema_name: str = "content_ideas_schema"
    strict_schema: bool = True
    idea_min_items: int = 1
    idea_max_items: int = 2
    max_content_length: int = 50000
    truncated_content_length: int = 30000
    truncation_risk_chars: int = 15000
    session_store: str = "memory"
    max_sessions: int = 50
    database_path: str = "sessions.db"
    max_workers: int = 4

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any configuration value is invalid.
        """
        errors: list[str] = []

        if not self.openai_base_url:
            errors.append("openai_base_url must not be empty")

        if not self.model:
            errors.append("model must not be empty")

        if self.temperature < 0.0 or self.temperature > 2.0:
            errors.append("temperature must be between 0.0 and 2.0")

        if self.request_timeout_seconds <= 0.0:
            errors.append("request_timeout_seconds must be positive")

        if self.max_retries < 0:
            errors.append("max_retries must be non-negative")

        if self.retry_initial_delay_seconds < 0.0:
            errors.append("retry_initial_delay_seconds must be non-negative")

        if self.retry_max_backoff_seconds < self.retry_initial_delay_seconds:
            errors.append(
                "retry_max_backoff_seconds must be at least retry_initial_delay_seconds"
            )

        if self.idea_min_items < 1:
            errors.append("idea_min_items must be at least 1")

        if self.idea_max_items < self.idea_min_items:
            errors.append("idea_max_items must be at least idea_min_items")

        if self.truncated_content_length < 1:
            errors.append("truncated_content_length must be at least 1")

        if self.max_content_length <= self.truncated_content_length:
            errors.append(
                "max_content_length must be greater than truncated_content_length"
            )

        if self.truncation_risk_chars < 1:
            errors.append("truncation_risk_chars must be at least 1")

        if self.session_store not in SESSION_STORE_TYPES:
            errors.append(
                f"session_store must be one of {sorted(SESSION_STORE_TYPES)}, "
                f"got '{self.session_store}'"
            )

        if self.max_sessions < 1:
            errors.append("max_sessions must be at least 1")

        if self.max_workers < 1:
            errors.append("max_workers must be at least 1")

        if not any(Channel.from_name(name) for name in self.default_channels):
            errors.append("default_channels must contain at least one known channel")

        if errors:
            raise ConfigurationError("; ".join(errors))


def _parse_float(value: str | None, default: float) -> float:
    """Parse a string to float, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: str | None, default: int) -> int:
    """Parse a string to int, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_list(value: str | None, default: list[str]) -> list[str]:
    """Parse a comma-separated string, returning default if None or blank."""
    if value is None:
        return default.copy()
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or default.copy()


def load_settings(env_path: str | Path | None = None, validate: bool = True) -> Settings:
    """Load settings from environment variables and .env file.

    Args:
        env_path: Optional path to .env file. If None, searches for .env
                  in current directory and parent directories.
        validate: If True, validate settings after loading.

    Returns:
        Settings instance with loaded configuration.

    Raises:
        ConfigurationError: If validate=True and configuration is invalid.
    """
    if env_path:
        load_dotenv(env_path)
    else:
        load_dotenv()

    settings = Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        temperature=_parse_float(os.getenv("OPENAI_TEMPERATURE"), 0.7),
        request_timeout_seconds=_parse_float(
            os.getenv("REQUEST_TIMEOUT_SECONDS"), 120.0
        ),
        max_retries=_parse_int(os.getenv("MAX_RETRIES"), 3),
        retry_initial_delay_seconds=_parse_float(
            os.getenv("RETRY_INITIAL_DELAY_SECONDS"), 1.0
        ),
        retry_max_backoff_seconds=_parse_float(
            os.getenv("RETRY_MAX_BACKOFF_SECONDS"), 5.0
        ),
        business_context=os.getenv("BUSINESS_CONTEXT", DEFAULT_BUSINESS_CONTEXT),
        target_audience=os.getenv("TARGET_AUDIENCE", DEFAULT_TARGET_AUDIENCE),
        default_channels=_parse_list(os.getenv("DEFAULT_CHANNELS"), DEFAULT_CHANNELS),
        idea_min_items=_parse_int(os.getenv("IDEA_MIN_ITEMS"), 1),
        idea_max_items=_parse_int(os.getenv("IDEA_MAX_ITEMS"), 2),
        max_content_length=_parse_int(os.getenv("MAX_CONTENT_LENGTH"), 50000),
        truncated_content_length=_parse_int(
            os.getenv("TRUNCATED_CONTENT_LENGTH"), 30000
        ),
        truncation_risk_chars=_parse_int(os.getenv("TRUNCATION_RISK_CHARS"), 15000),
        session_store=os.getenv("SESSION_STORE", "memory").strip().lower(),
        max_sessions=_parse_int(os.getenv("MAX_SESSIONS"), 50),
        database_path=os.getenv("DATABASE_PATH", "sessions.db"),
        max_workers=_parse_int(os.getenv("MAX_WORKERS"), 4),
    )

    if validate:
        settings.validate()

    return settings
