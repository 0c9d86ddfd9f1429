import os
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

# Environment variables from a local .env file, if present
load_dotenv()


class StockPolicy(str, Enum):
    """Which completion path takes the used materials out of stock."""
    ON_CONFIRM = "confirm"    # only POST /confirm
    ON_COMPLETE = "complete"  # every completion (complete + confirm)


@dataclass
class Settings:
    database_url: str = "sqlite:///servicedesk.db"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    stock_policy: StockPolicy = StockPolicy.ON_CONFIRM
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    google_api_key: Optional[str] = None
    gemini_model: str = "gemini-flash-latest"
    whatsapp_country_code: str = "52"


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def load_settings() -> Settings:
    """
    Reads the configuration from the environment.
    Missing values fall back to the Settings defaults.
    """
    defaults = Settings()
    raw_policy = os.getenv("SERVICEDESK_STOCK_POLICY", defaults.stock_policy.value)
    try:
        policy = StockPolicy(raw_policy.strip().lower())
    except ValueError:
        raise ValueError(
            f"SERVICEDESK_STOCK_POLICY must be one of "
            f"{[p.value for p in StockPolicy]}, got {raw_policy!r}"
        )

    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        log_level=os.getenv("SERVICEDESK_LOG_LEVEL", defaults.log_level).upper(),
        log_file=os.getenv("SERVICEDESK_LOG_FILE") or None,
        stock_policy=policy,
        cors_origins=_split_csv(os.getenv("SERVICEDESK_CORS_ORIGINS", "*")),
        google_api_key=os.getenv("GOOGLE_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", defaults.gemini_model),
        whatsapp_country_code=os.getenv("WHATSAPP_COUNTRY_CODE", defaults.whatsapp_country_code),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
