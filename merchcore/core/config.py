from functools import lru_cache
from typing import Literal
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "MerchCore"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "merchcore"
    MONGO_TLS: bool = False                    # Atlas/SRV deployments need True

    # Redis (optional; in-memory result cache when empty)
    REDIS_URL: str = ""

    # Result cache config
    cache_prefix: str = "mc"                   # redis key namespace
    best_sellers_cache_ttl: int = 5 * 60       # 5 minutes
    trending_cache_ttl: int = 10 * 60          # 10 minutes

    # Fire-and-forget dispatcher
    task_queue_size: int = 10_000
    task_workers: int = 4

    # Checkout
    default_tax_rate: float = 0.1

    # API
    api_prefix: str = "/api"

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
