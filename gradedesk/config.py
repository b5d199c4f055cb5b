from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "GradeDesk"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/gradedesk"

    # Vision model used for card identification. Empty key means mock mode.
    anthropic_api_key: str = ""
    vision_model: str = "claude-sonnet-4-20250514"
    vision_max_tokens: int = 2048

    # Upper bound on concurrently issued vision calls within one batch
    analysis_concurrency: int = 10

    # Submissions expire this many days after they are submitted
    submission_retention_days: int = 90

    # Public service tier catalog is cached this long (seconds)
    tier_cache_ttl_seconds: float = 3600.0
    tier_cache_maxsize: int = 32

    media_dir: Path = Path("media")
    media_base_url: str = "/media"

    cors_origins: list[str] = ["*"]


settings = Settings()


# =============================================================================
# CARD DETECTION LIMITS
# =============================================================================

# A single photo can hold at most this many cards; extra detections are dropped
MAX_CARDS_PER_IMAGE = 10

# A user's "my submissions" view shows at most this many recent submissions
MY_SUBMISSIONS_LIMIT = 10
