from typing import List, Optional
from pydantic import PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Studio Review API"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "studio"
    POSTGRES_PORT: int = 5432
    # Full URL override, e.g. sqlite+aiosqlite:///./studio.db
    DATABASE_URL: Optional[str] = None

    # Auth
    SECRET_KEY: str = "change-me-in-production" # openssl rand -hex 32
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8 # 8 days

    # Review links
    PUBLIC_APP_URL: str = "http://localhost:3000"
    REVIEW_LINK_DEFAULT_DAYS: int = 7
    REVIEW_LINK_MIN_DAYS: int = 1
    REVIEW_LINK_MAX_DAYS: int = 30
    REVIEW_LINK_TOKEN_BYTES: int = 32
    REVIEW_LINK_MAX_APPROVALS: int = 25

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        ))

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()
