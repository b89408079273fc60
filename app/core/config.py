# Pydantic settings

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal
import os


class Settings(BaseSettings):
    """Application settings"""

    # App
    app_name: str = "Event Ingestion API"
    debug: bool = False

    # "strict" fails the request if any write fails, "best_effort" logs and moves on
    ingestion_mode: Literal["strict", "best_effort"] = "strict"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # AWS
    aws_region: str = "us-east-1"
    aws_endpoint_url: str | None = None
    aws_connect_timeout: int = 5  # seconds
    aws_read_timeout: int = 10  # seconds
    aws_max_attempts: int = 1

    # Raw and normalized event storage
    s3_bucket_name: str | None = None
    ddb_table_name: str | None = None

    # Counter database
    rds_secret_arn: str | None = None
    rds_db_hostname: str | None = None
    rds_db_port: int = 5432
    rds_db_name: str | None = None
    db_connect_timeout: int = 5  # seconds
    db_sslmode: str = "require"

    model_config = SettingsConfigDict(
        # Use .env.local if it exists (for local dev), otherwise .env (for Docker)
        env_file=".env.local" if os.path.exists(".env.local") else ".env",
        case_sensitive=False
    )


settings = Settings()
