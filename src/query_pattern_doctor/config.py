"""Analysis configuration loaded from the environment."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalysisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QPD_", env_file=".env", extra="ignore")

    # Detectors
    burst_threshold: int = Field(default=3, ge=2)
    slow_threshold_ms: float = Field(default=100.0, ge=0)
    disabled_detectors: list[str] = Field(default_factory=list)

    # Supabase Management API
    supabase_access_token: str = ""
    supabase_project_ref: str = ""
    supabase_base_url: str = "https://api.supabase.com"
    log_lookback_minutes: int = Field(default=5, ge=1)


@lru_cache
def get_settings() -> AnalysisSettings:
    return AnalysisSettings()
