"""Application configuration."""

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()

PLACEHOLDER_KEYS = {"", "placeholder_openweather_key", "placeholder_iqair_key"}


class Settings(BaseSettings):
    openweather_api_key: str = os.getenv("OPENWEATHER_API_KEY", "")
    iqair_api_key: str = os.getenv("IQAIR_API_KEY", "")
    use_real_data: bool = os.getenv("USE_REAL_DATA", "true").lower() == "true"

    openweather_base_url: str = "http://api.openweathermap.org/data/2.5"
    iqair_base_url: str = "http://api.airvisual.com/v2"

    # Static priority order, first entry is the primary source
    provider_order: List[str] = ["openweathermap", "iqair"]
    provider_timeout_seconds: float = 10.0

    current_freshness_minutes: int = 60
    forecast_freshness_minutes: int = 180
    default_radius_km: float = 10.0
    max_radius_km: float = 100.0

    synthetic_seed: Optional[int] = None
    history_retention_days: int = 90
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        extra = "ignore"  # Ignore extra fields from environment

    def api_key_for(self, provider: str) -> str:
        key = {
            "openweathermap": self.openweather_api_key,
            "iqair": self.iqair_api_key,
        }.get(provider, "")
        return "" if key in PLACEHOLDER_KEYS else key

    @property
    def offline_mode(self) -> bool:
        """True when no provider can be called (real data disabled or no keys)."""
        if not self.use_real_data:
            return True
        return not any(self.api_key_for(name) for name in self.provider_order)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
