import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="TUTOR_DATABASE_URL")
    database_pool_size: int = Field(10, alias="TUTOR_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="TUTOR_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="TUTOR_DATABASE_ECHO")

    cache_expiry_hours: int = Field(24, alias="TUTOR_CACHE_EXPIRY_HOURS", ge=1)
    l1_cache_enabled: bool = Field(True, alias="TUTOR_L1_CACHE_ENABLED")
    l1_cache_ttl_seconds: int = Field(300, alias="TUTOR_L1_CACHE_TTL_SECONDS", ge=1)

    exam_api_endpoint: str = Field("https://api.example.com/v1", alias="TUTOR_EXAM_API_ENDPOINT")
    exam_api_key: Optional[str] = Field(None, alias="TUTOR_EXAM_API_KEY")
    exam_api_source_name: str = Field("ExamDB", alias="TUTOR_EXAM_API_SOURCE_NAME")
    exam_api_timeout_seconds: float = Field(10.0, alias="TUTOR_EXAM_API_TIMEOUT_SECONDS")
    exam_api_max_retries: int = Field(3, alias="TUTOR_EXAM_API_MAX_RETRIES", ge=1)
    exam_api_backoff_seconds: float = Field(1.0, alias="TUTOR_EXAM_API_BACKOFF_SECONDS", ge=0)
    exam_api_rate_limit_per_hour: int = Field(100, alias="TUTOR_EXAM_API_RATE_LIMIT_PER_HOUR", ge=1)
    exam_api_mock_fallback: bool = Field(True, alias="TUTOR_EXAM_API_MOCK_FALLBACK")

    hipolabs_endpoint: str = Field("http://universities.hipolabs.com", alias="TUTOR_HIPOLABS_ENDPOINT")
    hipolabs_timeout_seconds: float = Field(5.0, alias="TUTOR_HIPOLABS_TIMEOUT_SECONDS")
    hipolabs_health_timeout_seconds: float = Field(3.0, alias="TUTOR_HIPOLABS_HEALTH_TIMEOUT_SECONDS")
    default_provider: str = Field("hipolabs", alias="TUTOR_DEFAULT_PROVIDER")
    max_persisted_results: int = Field(50, alias="TUTOR_MAX_PERSISTED_RESULTS", ge=1)

    refresh_max_age_hours: int = Field(24, alias="TUTOR_REFRESH_MAX_AGE_HOURS", ge=1)
    refresh_batch_size: int = Field(50, alias="TUTOR_REFRESH_BATCH_SIZE", ge=1)
    prewarm_top_queries: int = Field(100, alias="TUTOR_PREWARM_TOP_QUERIES", ge=0)
    slow_query_threshold_ms: int = Field(1000, alias="TUTOR_SLOW_QUERY_THRESHOLD_MS", ge=0)

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[arg-type]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
