from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)
    LOG_SQL: bool = False   # Enable SQLAlchemy query logging

    # External check dispatch
    DISPATCH_MAX_CONCURRENCY: int = 0  # 0 = one in-flight call per check group
    DISPATCH_TIMEOUT_SECONDS: float | None = None

    # Only read by SQLAlchemyChecker.from_settings()
    DATABASE_URL: str | None = None

    @property
    def dispatch_bounded(self) -> bool:
        return self.DISPATCH_MAX_CONCURRENCY > 0

    class Config:
        env_prefix = "VALET_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
