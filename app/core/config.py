from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(480, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Bearer secret for the scheduled recycle-bin cleanup; the endpoint refuses to run without it.
    cron_secret: Optional[str] = Field(None, alias="CRON_SECRET")
    recycle_bin_retention_days: int = Field(30, alias="RECYCLE_BIN_RETENTION_DAYS")

    # Payment date filters are calendar days in the school's local time (Philippines, UTC+8).
    school_utc_offset_hours: int = Field(8, alias="SCHOOL_UTC_OFFSET_HOURS")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    # Local development convenience; deployed databases are managed outside the app.
    create_tables_on_startup: bool = Field(False, alias="CREATE_TABLES_ON_STARTUP")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
