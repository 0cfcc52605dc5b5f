from typing import List, Union, Optional
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Doctor API"
    API_V1_STR: str = "/api/v1"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Database
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_PORT: str = "5432"
    DATABASE_URL: Optional[str] = None
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DEBUG: bool = False

    # Transient failures (dropped connections, lock timeouts) are retried with
    # exponential backoff capped at DATABASE_MAX_RETRY_DELAY
    DATABASE_MAX_RETRIES: int = 5
    DATABASE_RETRY_DELAY: float = 0.5
    DATABASE_MAX_RETRY_DELAY: float = 30.0

    LOG_LEVEL: str = "INFO"

    # Cache
    CACHE_BACKEND: str = "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_SLIDING_EXPIRATION_SECONDS: int = 300
    CACHE_ABSOLUTE_EXPIRATION_SECONDS: int = 600
    CACHE_MAX_ENTRIES: int = 1024

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 50

    # Client-side caching of single-record reads
    ITEM_RESPONSE_MAX_AGE: int = 60

    @model_validator(mode='after')
    def assemble_db_connection(self) -> 'Settings':
        if not self.DATABASE_URL:
            if all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_SERVER, self.POSTGRES_DB]):
                self.DATABASE_URL = str(
                    f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
                    f"{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
                )
            else:
                self.DATABASE_URL = "sqlite+aiosqlite:///./doctors.db"

        if self.DATABASE_URL.startswith("postgresql://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif self.DATABASE_URL.startswith("sqlite:///"):
            self.DATABASE_URL = self.DATABASE_URL.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

        # asyncpg takes ssl=, not sslmode=
        self.DATABASE_URL = self.DATABASE_URL.replace("sslmode=require", "ssl=require")
        return self

    @model_validator(mode='after')
    def check_limits(self) -> 'Settings':
        if self.CACHE_BACKEND not in ("memory", "redis"):
            raise ValueError(f"CACHE_BACKEND must be 'memory' or 'redis', got {self.CACHE_BACKEND!r}")
        if self.CACHE_SLIDING_EXPIRATION_SECONDS <= 0:
            raise ValueError("CACHE_SLIDING_EXPIRATION_SECONDS must be positive")
        if self.CACHE_ABSOLUTE_EXPIRATION_SECONDS < self.CACHE_SLIDING_EXPIRATION_SECONDS:
            raise ValueError(
                "CACHE_ABSOLUTE_EXPIRATION_SECONDS must not be shorter than "
                "CACHE_SLIDING_EXPIRATION_SECONDS"
            )
        if self.DATABASE_MAX_RETRIES < 0 or self.DATABASE_RETRY_DELAY < 0:
            raise ValueError("DATABASE_MAX_RETRIES and DATABASE_RETRY_DELAY must not be negative")
        if not 1 <= self.DEFAULT_PAGE_SIZE <= self.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE must be between 1 and MAX_PAGE_SIZE")
        return self

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra='ignore')

settings = Settings()
