import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Analytics engine
    ANALYTICS_DEFAULT_WINDOW_DAYS: int = 30
    ANALYTICS_PREDICTION_HISTORY: int = 6  # most recent points fed to predictions
    ANALYTICS_TOP_N: int = 10

    # Coaching plans
    COACHING_TARGET_MATURITY: str = "PERFORMING"
    COACHING_PLAN_ASSESSMENT_LIMIT: int = 10

    # HTTP
    CORS_ALLOWED_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("atlas")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    if cfg.ANALYTICS_PREDICTION_HISTORY < 3:
        message = "ANALYTICS_PREDICTION_HISTORY must be at least 3"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True


def allowed_origins(settings_obj: Optional[Settings] = None) -> list[str]:
    cfg = settings_obj or settings
    return [o.strip() for o in cfg.CORS_ALLOWED_ORIGINS.split(",") if o.strip()]
