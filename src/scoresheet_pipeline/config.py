"""Configuration settings for the score sheet pipeline."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Order of priority for pydantic-settings:
#
# 1. Arguments to the Initializer, e.g. Settings(ROW_Y_TOLERANCE=25)
# 2. System Environment Variables, e.g. export ROW_Y_TOLERANCE=25
# 3. .env File Values (only when the file exists, local dev)
# 4. Default Values in the Class

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
ENV_FILE_PATH = PROJECT_ROOT / ".env"


class Settings(BaseSettings):  # type: ignore
    """Configuration settings for the score sheet pipeline."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH) if ENV_FILE_PATH.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # -- AWS / Textract --
    AWS_REGION: str = "eu-west-2"
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None
    AWS_SESSION_TOKEN: str | None = None
    TEXTRACT_MAX_ATTEMPTS: int = 3
    TEXTRACT_CONNECT_TIMEOUT_SECONDS: int = 10
    TEXTRACT_READ_TIMEOUT_SECONDS: int = 60

    # -- Layout reconstruction --
    # Pixel-equivalents; fragments whose top edge is within this distance of the row anchor share a row
    ROW_Y_TOLERANCE: float = 20.0
    HEADER_SCAN_ROWS: int = 12
    MIN_HEADER_KEYWORDS: int = 2
    COLUMN_SPAN_PADDING: float = 0.0
    # Used to scale normalized (0..1) geometry when the image size is unknown
    DEFAULT_PAGE_WIDTH: int = 1000
    DEFAULT_PAGE_HEIGHT: int = 1000

    # -- Score domain --
    SCORE_MIN: float = 0.0
    SCORE_MAX: float = 20.0

    # -- Strategies --
    LINE_STRATEGY_CONFIDENCE: float = 0.70
    AGGRESSIVE_STRATEGY_CONFIDENCE: float = 0.50
    LOW_FRAGMENT_CONFIDENCE: float = 0.6
    MULTI_PASS_TIME_BUDGET_SECONDS: float = 30.0
    RETRY_TOLERANCE_SCALE: float = 1.5

    # -- Statistical correction --
    ZSCORE_THRESHOLD: float = 3.0
    MIN_STAT_SAMPLES: int = 3
    SMALL_MEAN_CEILING: float = 10.0

    # -- Record linking --
    NAME_MATCH_THRESHOLD: float = 0.82
    NAME_MATCH_RELAXED_THRESHOLD: float = 0.78
    NAME_MATCH_SHORT_THRESHOLD: float = 0.90
    NAME_MATCH_SHORT_MAX_LEN: int = 6
    DUPLICATE_NAME_SIMILARITY: float = 0.9

    LOG_LEVEL: str = "INFO"


settings = Settings()
