# ABOUTME: Runtime settings for shelfmatch, loaded from the environment and an optional .env file.
# ABOUTME: Holds credentials, endpoints, per-call timeouts, and batch concurrency defaults.

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = Path.home() / ".shelfmatch" / "results.db"


class Settings(BaseSettings):
    """Environment-driven configuration.

    Every field can be set with a ``SHELFMATCH_`` prefixed environment variable,
    e.g. ``SHELFMATCH_GEMINI_API_KEY``. CLI options override these values.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHELFMATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    db_path: Path = DEFAULT_DB_PATH

    foodgraph_email: str | None = None
    foodgraph_password: str | None = None
    foodgraph_base_url: str = "https://api.foodgraph.com"
    foodgraph_updated_from: str = "2025-07-01T00:00:00Z"
    search_limit: int = 100

    gemini_api_key: str | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.5-flash"

    # Per-call timeouts in seconds.
    search_timeout: float = 30.0
    vision_timeout: float = 60.0

    default_concurrency: int = 3
    max_concurrency: int = 20
    chunk_delay: float = 0.0
    classify_concurrency: int = 5

    prefilter_threshold: float = 0.85
    visual_threshold: float = 0.70
    selection_min_confidence: float = 0.6
