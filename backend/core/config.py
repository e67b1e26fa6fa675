"""
Configuration management for the restaurant marketplace API.

Settings are read from the environment (and an optional ``.env`` file) so
secrets and credentials never live in source control.
"""

from typing import Annotated, List, Optional
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_JWT_SECRET = "dev-secret-change-in-production"


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    One instance is built by the process entry point and handed to
    ``create_app``; nothing else reads the environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Restaurant Marketplace API"
    app_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # Environment Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database Configuration
    database_url: str = "sqlite:///./restaurants.db"
    log_sql_queries: bool = False
    auto_create_tables: bool = True

    # JWT Authentication - MUST be overridden in production
    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_days: int = Field(default=7, ge=1, le=30)
    jwt_issuer: str = "restaurant-marketplace-api"
    jwt_leeway_seconds: int = 0

    # Token transport and revocation
    auth_cookie_name: str = "token"
    auth_cookie_secure: bool = False
    token_blacklist_enabled: bool = True
    redis_url: Optional[str] = None

    # Password policy and hashing cost
    password_min_length: int = 6
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536  # 64MB
    argon2_parallelism: int = 2
    bcrypt_rounds: int = 12
    reset_token_expire_minutes: int = 10
    expose_reset_tokens: bool = False

    # CORS
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    # File Upload Configuration
    blob_store_backend: str = "local"  # local | s3
    upload_dir: str = "./uploads"
    upload_base_url: str = "/uploads"
    s3_bucket_name: str = "restaurant-marketplace-uploads"
    aws_region: str = "us-east-1"
    max_upload_size_bytes: int = 1_000_000  # 1MB

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("blob_store_backend")
    @classmethod
    def validate_blob_store_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in {"local", "s3"}:
            raise ValueError("BLOB_STORE_BACKEND must be 'local' or 's3'")
        return v

    @model_validator(mode="after")
    def validate_production_config(self) -> "Settings":
        """Ensure development defaults never reach production."""
        if self.is_production:
            security_issues = []
            if self.jwt_secret_key == DEFAULT_JWT_SECRET:
                security_issues.append("JWT_SECRET_KEY is using default value")
            if self.debug:
                security_issues.append("DEBUG is enabled in production")
            if self.expose_reset_tokens:
                security_issues.append("EXPOSE_RESET_TOKENS is enabled in production")
            if security_issues:
                raise ValueError(
                    f"Production security issues detected: {', '.join(security_issues)}"
                )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def access_token_lifetime_seconds(self) -> int:
        return self.jwt_access_token_expire_days * 24 * 60 * 60


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Returns:
        Settings instance with environment variables loaded
    """
    return Settings()
