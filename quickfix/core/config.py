import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False
    LOG_LEVEL: str = "INFO"

    # Backend API
    API_BASE_URL: Optional[str] = None
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Session expiry handling
    LOGIN_PATH: str = "/login"
    SESSION_REDIRECT_DELAY_SECONDS: float = 0.5

    # Premium payments (manual UPI verification)
    UPI_PAYEE_NAME: str = "QuickFix"
    UPI_CURRENCY: str = "INR"
    SCREENSHOT_MAX_BYTES: int = 5 * 1024 * 1024

    model_config = ConfigDict(
        env_prefix="QUICKFIX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("quickfix")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "API_BASE_URL",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    if cfg.REQUEST_TIMEOUT_SECONDS <= 0:
        message = "REQUEST_TIMEOUT_SECONDS must be positive"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
