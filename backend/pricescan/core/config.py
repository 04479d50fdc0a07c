from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central settings object.
    Production provides env vars; locally you can use a .env file next to the app.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # SerpAPI
    SERPAPI_API_KEY: str = ""
    SERPAPI_BASE: str = "https://serpapi.com/search.json"
    REQUEST_TIMEOUT_SECONDS: float = 12.0

    # Provider tags queried per search, in output order.
    # walmart and ebay are registered but off by default.
    ENABLED_PROVIDERS: List[str] = ["amazon"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = ""  # "json" or "text"; empty = json in production only
    ENVIRONMENT: str = "development"

    # Versioning
    APP_VERSION: str = "0.1.0"
    BUILD_ID: str = "dev"


# other modules import this
settings = Settings()
