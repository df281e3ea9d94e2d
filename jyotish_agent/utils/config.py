"""
Configuration Management
========================

All environment variables for the agent are read and typed here. Values
come from the process environment, optionally seeded from a .env file.

Only OPENAI_API_KEY is required; everything else has a default that works
against the public calculation service and a local books/ directory.

Usage:
    from jyotish_agent.utils.config import get_config

    config = get_config()
    print(config.openai.model)
    print(config.retrieval.books_dir)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_CALCULATION_URL = "https://harishgarg2508-vedic-engine.hf.space"


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ValueError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ValueError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your .env file."
        )
    return value


def _optional(name: str, default: str) -> str:
    return os.getenv(name) or default


def _optional_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        print(f"Warning: {name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        print(f"Warning: {name} is not a valid number, using default: {default}")
        return default


def _optional_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if not value:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _optional_path(name: str, default: str, root: Path) -> Path:
    """Resolve a path setting; relative values are taken from the project root."""
    path = Path(_optional(name, default)).expanduser()
    return path if path.is_absolute() else root / path


def _optional_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if not value:
        return default
    return tuple(part.strip().lower() for part in value.split(",") if part.strip())


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class OpenAIConfig:
    """Model provider configuration."""
    api_key: str
    model: str               # Chat model used by the execution loop
    retrieval_model: str     # Model used for grounded answers over the books
    timeout_seconds: float


@dataclass(frozen=True)
class CalculationConfig:
    """Remote astrology calculation service."""
    base_url: str
    timeout_seconds: float
    warmup_retry_delay_seconds: float  # Backoff before the single 503 retry


@dataclass(frozen=True)
class RetrievalConfig:
    """Book corpus and remote index settings."""
    books_dir: Path
    tracker_file: Path
    store_display_name: str
    upload_timeout_seconds: float
    poll_interval_seconds: float
    digest_max_chars: int      # Cap on tool context embedded in a book query
    extensions: tuple[str, ...]


@dataclass(frozen=True)
class AgentConfig:
    """Execution loop settings."""
    model_preset: str
    max_iterations: int
    request_timeout_seconds: float
    prefetch_chart: bool


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.openai.model
        config.calculation.base_url
        config.agent.max_iterations
    """
    openai: OpenAIConfig
    calculation: CalculationConfig
    retrieval: RetrievalConfig
    agent: AgentConfig
    log_level: str


def _project_root() -> Path:
    return Path(_optional("JYOTISH_HOME", str(Path.cwd())))


def load_retrieval_config() -> RetrievalConfig:
    """
    Load only the book corpus settings.

    Needs no API key, so local commands such as `status` work without one.
    """
    load_dotenv()

    project_root = _project_root()
    return RetrievalConfig(
        books_dir=_optional_path("BOOKS_DIR", "books", project_root),
        tracker_file=_optional_path("BOOK_TRACKER_FILE", ".book-index-tracker.json", project_root),
        store_display_name=_optional("BOOK_STORE_NAME", "Vedic-Astrology-Books-Store"),
        upload_timeout_seconds=_optional_float("BOOK_UPLOAD_TIMEOUT_SECONDS", 600.0),
        poll_interval_seconds=_optional_float("BOOK_UPLOAD_POLL_SECONDS", 2.0),
        digest_max_chars=_optional_int("BOOK_QUERY_DIGEST_CHARS", 400),
        extensions=_optional_list("BOOK_EXTENSIONS", (".pdf", ".txt", ".docx", ".md")),
    )


def load_config() -> Config:
    """
    Load and validate all configuration from the environment.

    Returns:
        Config: The validated configuration

    Raises:
        ValueError: If required configuration is missing
    """
    load_dotenv()

    model = _optional("OPENAI_MODEL", "gpt-4o-mini")

    return Config(
        openai=OpenAIConfig(
            api_key=_required("OPENAI_API_KEY"),
            model=model,
            retrieval_model=_optional("OPENAI_RETRIEVAL_MODEL", model),
            timeout_seconds=_optional_float("OPENAI_TIMEOUT_SECONDS", 60.0),
        ),
        calculation=CalculationConfig(
            base_url=_optional("CALCULATION_SERVICE_URL", DEFAULT_CALCULATION_URL).rstrip("/"),
            timeout_seconds=_optional_float("CALCULATION_TIMEOUT_SECONDS", 30.0),
            warmup_retry_delay_seconds=_optional_float("CALCULATION_RETRY_DELAY_SECONDS", 2.0),
        ),
        retrieval=load_retrieval_config(),
        agent=AgentConfig(
            model_preset=_optional("AGENT_MODEL_PRESET", "default"),
            max_iterations=_optional_int("AGENT_MAX_ITERATIONS", 8),
            request_timeout_seconds=_optional_float("AGENT_REQUEST_TIMEOUT_SECONDS", 90.0),
            prefetch_chart=_optional_bool("AGENT_PREFETCH_CHART", True),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """Load the configuration on first access and return the cached instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config_instance
    _config_instance = None
