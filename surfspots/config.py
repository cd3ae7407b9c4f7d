import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    DATABASE_URL: str = "sqlite+aiosqlite:///./surfspots.db"
    DB_SSLMODE: str = "disable"  # disable | require

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    SESSION_BACKEND: str = "database"  # database | memory
    SESSION_MAX_AGE: int = 0  # seconds, 0 = sessions live until logout
    SESSION_COOKIE_NAME: str = "token"
    COOKIE_SECURE: bool = False

    WEATHER_API_URL: str = "https://marine-api.open-meteo.com/v1/marine"
    GEOCODE_API_URL: str = "https://geocoding-api.open-meteo.com/v1/search"
    WEATHER_API_TIMEOUT: float = 10.0
    WEATHER_CACHE_TTL: int = 300
    WEATHER_CACHE_MAX_ENTRIES: int = 1024

    MAX_CONCURRENT_WEATHER_REQUESTS: int = 10

    UPLOAD_DIR: str = "./uploads"
    STORAGE_BUCKET: str = "post-images"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
