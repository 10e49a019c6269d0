import os
import logging
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from dotenv import load_dotenv

load_dotenv()


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


class LeaveSettings(BaseModel):
    # Application rules
    min_advance_notice_days: int = int(os.getenv("LEAVE_MIN_ADVANCE_NOTICE_DAYS", "1"))
    max_leave_days: int = int(os.getenv("LEAVE_MAX_DAYS", "30"))
    reason_min_words: int = int(os.getenv("LEAVE_REASON_MIN_WORDS", "7"))
    reason_min_characters: int = int(os.getenv("LEAVE_REASON_MIN_CHARACTERS", "30"))
    reason_max_characters: int = int(os.getenv("LEAVE_REASON_MAX_CHARACTERS", "500"))

    # Accrual (PERMANENT trainers only)
    monthly_increment: Dict[str, float] = Field(
        default_factory=lambda: {
            "SICK": float(os.getenv("LEAVE_MONTHLY_SICK", "1")),
            "CASUAL": float(os.getenv("LEAVE_MONTHLY_CASUAL", "1")),
            "PAID": float(os.getenv("LEAVE_MONTHLY_PAID", "0")),
        }
    )
    increment_interval_days: int = int(os.getenv("LEAVE_INCREMENT_INTERVAL_DAYS", "30"))
    # None means unused balance is carried forward in full
    rollover_max_days: Optional[float] = Field(default_factory=lambda: _optional_float("LEAVE_ROLLOVER_MAX_DAYS"))

    # History pagination
    history_page_size: int = 10
    history_max_page_size: int = 100


class Config(BaseModel):
    app_name: str = "TrainerSync"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./trainersync.db")

    # Auth (token decoding only)
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 24 hours

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
    leave_apply_rate_limit: str = os.getenv("LEAVE_APPLY_RATE_LIMIT", "10/minute")

    leave: LeaveSettings = LeaveSettings()


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments. "
            "Set it as an environment variable."
        )
elif "dev-only" in settings.secret_key:
    _logger.warning("Using insecure default SECRET_KEY; only acceptable in development.")
