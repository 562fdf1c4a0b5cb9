# link-shortener/config.py
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Link Shortener"

    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "links_db"

    # Required: the service refuses to start without a signing secret
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 10

    BASE_URL: str = "http://localhost:5000"
    PORT: int = 5000

    SHORT_CODE_LENGTH: int = 7
    ALIAS_MIN_LENGTH: int = 3
    ALIAS_MAX_LENGTH: int = 30

    GEO_API_URL: str = "http://ip-api.com/json/{ip}"
    GEO_TIMEOUT: float = 2.0

    QR_ENABLED: bool = True
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", frozen=True)

    def short_url(self, short_code: str) -> str:
        return f"{self.BASE_URL.rstrip('/')}/{short_code}"


@lru_cache
def get_settings() -> Settings:
    """
    Loads the settings once per process. Used as a FastAPI dependency so
    tests can swap in their own instance via dependency_overrides.
    """
    return Settings()
