import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized configuration.

    Loaded from:
    - environment variables
    - .env file (if present)
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Required key (the app should fail fast if missing)
    openweather_api_key: str

    openweather_base_url: str = "https://api.openweathermap.org"

    http_timeout_s: float = 10.0

    app_name: str = "Weather View"

    # SQLite file backing the key-value store (custom location)
    sqlite_path: str = "weatherview.sqlite3"

    log_level: str = "INFO"


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
