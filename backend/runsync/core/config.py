from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import ActivitySource


class Settings(BaseSettings):
    database_url: str
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    log_level: str = "INFO"

    # Duplicate matching between the two activity sources.
    duplicate_window_minutes: int = 10
    duplicate_distance_meters: float = 50.0
    duplicate_lookback_days: int = 180
    duplicate_result_limit: int = 200
    match_zero_distance: bool = False
    calendar_timezone: str = "UTC"
    default_keep_source: ActivitySource = ActivitySource.DEVICE_HEALTH

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    return Settings()
