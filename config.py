"""Configuration management for the news digest producer and consumer.

This module provides centralized configuration for both components.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Generation (producer):
        GEMINI_API_KEY: Google Gemini API key for the generator
        GENERATOR_MODEL: PydanticAI model string (provider:model)
        STORY_COUNT: Number of stories requested per digest
        TEMPERATURE, MAX_OUTPUT_TOKENS, TOP_P, TOP_K: Generation parameters
        STRICT_VALIDATION: Reject stories with unknown category/region/urgency

    Artifact:
        NEWS_FILE: Path of the published digest JSON
        DIGEST_VERSION: Version string stamped on generated digests
        DIGEST_SOURCE: Source string stamped on generated digests

    Consumer:
        NEWS_URL: URL of the published digest
        CACHE_PATH: File holding the consumer cache slot
        CACHE_TTL_HOURS: Age below which the cache is served without fetching
        FETCH_TIMEOUT_SECONDS: Deadline for the digest fetch

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


DEFAULT_NEWS_URL = "https://sharifrayhan.github.io/daily-global-news/news.json"
DEFAULT_MODEL = "google-gla:gemini-2.5-flash"


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    All settings can be overridden via environment variables. Use Config.load()
    to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Generation ===
    gemini_api_key: str = ""  # GEMINI_API_KEY - Google AI API key
    generator_model: str = DEFAULT_MODEL  # GENERATOR_MODEL
    story_count: int = 5  # STORY_COUNT - Stories requested per digest
    temperature: float = 0.7  # TEMPERATURE
    max_output_tokens: int = 2048  # MAX_OUTPUT_TOKENS
    top_p: float = 0.95  # TOP_P
    top_k: int = 40  # TOP_K - 0 disables
    strict_validation: bool = False  # STRICT_VALIDATION - Reject unknown enum values

    # === Published Artifact ===
    news_file: Path = field(default_factory=lambda: Path("news.json"))  # NEWS_FILE
    digest_version: str = "1.0"  # DIGEST_VERSION
    digest_source: str = "Gemini AI"  # DIGEST_SOURCE

    # === Consumer ===
    news_url: str = DEFAULT_NEWS_URL  # NEWS_URL
    cache_path: Path = field(default_factory=lambda: Path(".cache/news_cache.json"))  # CACHE_PATH
    cache_ttl_hours: float = 6.0  # CACHE_TTL_HOURS
    fetch_timeout_seconds: float = 10.0  # FETCH_TIMEOUT_SECONDS

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            gemini_api_key=_env("GEMINI_API_KEY"),
            generator_model=_env("GENERATOR_MODEL", DEFAULT_MODEL),
            story_count=_env_int("STORY_COUNT", 5),
            temperature=_env_float("TEMPERATURE", 0.7),
            max_output_tokens=_env_int("MAX_OUTPUT_TOKENS", 2048),
            top_p=_env_float("TOP_P", 0.95),
            top_k=_env_int("TOP_K", 40),
            strict_validation=_env_bool("STRICT_VALIDATION", False),
            news_file=Path(_env("NEWS_FILE", "news.json")),
            digest_version=_env("DIGEST_VERSION", "1.0"),
            digest_source=_env("DIGEST_SOURCE", "Gemini AI"),
            news_url=_env("NEWS_URL", DEFAULT_NEWS_URL),
            cache_path=Path(_env("CACHE_PATH", ".cache/news_cache.json")),
            cache_ttl_hours=_env_float("CACHE_TTL_HOURS", 6.0),
            fetch_timeout_seconds=_env_float("FETCH_TIMEOUT_SECONDS", 10.0),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> str | None:
        """Validate configuration values shared by both components.

        Returns:
            Error message string if invalid, None if valid.
        """
        if self.story_count <= 0:
            return "STORY_COUNT must be positive"
        if self.max_output_tokens <= 0:
            return "MAX_OUTPUT_TOKENS must be positive"
        if not 0.0 <= self.top_p <= 1.0:
            return "TOP_P must be between 0 and 1"
        if self.top_k < 0:
            return "TOP_K must be non-negative"
        if self.cache_ttl_hours <= 0:
            return "CACHE_TTL_HOURS must be positive"
        if self.fetch_timeout_seconds <= 0:
            return "FETCH_TIMEOUT_SECONDS must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None

    def validate_generator(self) -> str | None:
        """Validate settings needed to run the producer.

        Local OpenAI-compatible models ('openai:<name>@<url>') need no key.
        """
        if error := self.validate():
            return error
        if self.generator_model.startswith("google") and not self.gemini_api_key:
            return "GEMINI_API_KEY environment variable is required"
        return None
