from typing import List, Union
from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Karaoke Night"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Render provides DATABASE_URL, usually starts with postgres://, SQLAlchemy needs postgresql+asyncpg://
    DATABASE_URL: str

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: str | None) -> str:
        if isinstance(v, str):
            if v.startswith("postgres://"):
                return v.replace("postgres://", "postgresql+asyncpg://", 1)
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    REDIS_URL: str

    # YouTube Data API v3
    YOUTUBE_API_KEY: str | None = None
    YOUTUBE_API_URL: str = "https://www.googleapis.com/youtube/v3"
    YOUTUBE_MAX_RESULTS: int = 10
    YOUTUBE_MUSIC_CATEGORY_ID: str = "10"

    # Base URL of the web client, used for shareable join links
    APP_URL: str = "http://localhost:3000"

    # Applied to outbound search calls and database commands
    REQUEST_TIMEOUT_S: float = 10.0

    SESSION_CODE_LENGTH: int = 8
    SESSION_CODE_MAX_ATTEMPTS: int = 5
    INVITATION_CODE_LENGTH: int = 10

    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str] | str:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    @field_validator("APP_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()
