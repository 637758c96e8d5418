from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./rentng.db"
    # Used to VERIFY bearer tokens issued by the auth service
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 300

    # Schema is managed by Alembic. create_all() skips the PostgreSQL exclusion constraint.
    CREATE_TABLES: bool = False

    SCHEDULER_ENABLED: bool = True
    SCHEDULER_INTERVAL_SECONDS: int = 3600

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def get_settings() -> Settings:
    return Settings()
