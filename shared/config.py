"""Shared configuration."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings for the tracking service."""

    # Service info
    service_name: str = "tracking-service"
    service_host: str = "0.0.0.0"
    service_port: int = 3000

    # Database
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "tracking"

    # Full SQLAlchemy URL, takes precedence over the postgres_* parts
    database_dsn: Optional[str] = None

    db_echo: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_connect_attempts: int = 5

    # Tracking identifiers
    tracking_id_max_attempts: int = 3

    # Logging
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        """Get async database connection URL."""
        if self.database_dsn:
            return self.database_dsn
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        case_sensitive = False
