from typing import List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    REDIS_URL: str = "redis://localhost:6379/0"
    RETRY_KEY_PREFIX: str = "rq:backoff"
    # seconds; 0s, 1m, 10m, 1h, 3h, 6h
    BACKOFF_SCHEDULE: List[int] = [0, 60, 600, 3600, 10800, 21600]
    RETRY_TTL_MARGIN_SECONDS: int = 3600
    SUPPRESS_RETRYABLE_ERRORS: bool = True
    DEFAULT_QUEUE: str = "default"
    WORKER_QUEUES: List[str] = ["default"]
    VALIDATE_REDIS_ON_STARTUP: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["text", "json"] = "text"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("BACKOFF_SCHEDULE")
    @classmethod
    def _check_schedule(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("BACKOFF_SCHEDULE must contain at least one delay")
        if any(delay < 0 for delay in value):
            raise ValueError("BACKOFF_SCHEDULE delays must be non-negative")
        return value

    @field_validator("RETRY_TTL_MARGIN_SECONDS")
    @classmethod
    def _check_margin(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("RETRY_TTL_MARGIN_SECONDS must be positive")
        return value


settings = Settings()
