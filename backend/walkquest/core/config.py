from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "WalkQuest API"
    VERSION: str = "0.3.0"
    API_V1_STR: str = "/api/v1"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    TWOGIS_API_KEY: str | None = None
    # 2GIS region_id; "38" is Saint Petersburg
    DEFAULT_REGION_ID: str = "38"
    DEFAULT_CITY: str = "Санкт-Петербург"
    CITY_TIMEZONE: str = "Europe/Moscow"

    LLM_PROVIDER: str = "anthropic"
    LLM_MODEL: str = "claude-sonnet-4-20250514"
    ANTHROPIC_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    LLM_TEMPERATURE: float = 0.8
    LLM_MAX_TOKENS: int = 8192
    LLM_JSON_MODE: bool = True
    LLM_TIMEOUT_SECONDS: float = 120.0

    MAX_RETRIES: int = 3
    REQUEST_TIMEOUT: int = 30
    PLACES_REQUEST_TIMEOUT_SECONDS: float = 10.0

    POINT_PAUSE_SECONDS: float = 0.3
    QUERY_RETRY_PAUSE_SECONDS: float = 0.15
    MAX_DISPLACEMENT_KM: float = 1.5
    RECOMPUTE_ROUTE_STATISTICS: bool = False

    DEFAULT_WALK_SPEED_KMH: float = 4.5

    WEATHER_ENABLED: bool = False

    INTERACTION_LOG_ENABLED: bool = True
    INTERACTION_LOG_DIR: str = "logs"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    @field_validator("DEFAULT_REGION_ID", mode="before")
    @classmethod
    def coerce_region_id(cls, v: str | int) -> str:
        value = str(v).strip()
        if not value:
            raise ValueError("DEFAULT_REGION_ID must not be empty")
        return value


settings = Settings()
