"""
Customer Analytics Service
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PRODUCT_ALIASES: Dict[str, List[str]] = {
    "navio": [
        "ckqz9ndug001t0zpauvnkcth4",
        "clwj6d50700b70jm51eopxdhk",
    ],
    "boulevard": [
        "ckqz9q5xt003g0spai5a9suan",
        "ckrz0dkhe00b60zpj47esb8rv",
        "cl2mbkykw0bh110jx9zgl5h33",
    ],
    "porto": [
        "ckq2trvr800250zlral88xgrz",
        "ckqz96nk1001f0zpaiwtw9jzx",
        "ckrxsidzv01nu0zqf4p4virrm",
        "clvxr6ygi02re0qqygbx51bzs",
        "cm1gtmpsw045r0qpslrn2fxuz",
    ],
}


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="customer_analytics", alias="database", description="Database name")
    user: str = Field(default="analytics", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    create_tables: bool = Field(default=False, description="Create missing tables on startup")
    url: Optional[str] = Field(default=None, description="Full SQLAlchemy URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class AnalyticsSettings(BaseSettings):
    """Rebuild job and report configuration"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_", populate_by_name=True)

    job_token: Optional[SecretStr] = Field(
        default=None,
        alias="ANALYTICS_JOB_TOKEN",
        description="Shared secret required to trigger a rebuild",
    )
    watermark_key: str = Field(default="analyticsOrders", description="Watermark row key")
    product_aliases: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_PRODUCT_ALIASES.items()},
        description="Product group label -> product ids (JSON)",
    )
    # asyncpg allows 32767 bind parameters per statement; a row binds 15
    upsert_chunk_size: int = Field(default=1000, ge=1, le=2000, description="Rows per upsert statement")

    @field_validator("product_aliases")
    @classmethod
    def normalize_alias_labels(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """Alias labels are matched case-insensitively"""
        return {label.strip().lower(): list(ids) for label, ids in v.items()}


class SecuritySettings(BaseSettings):
    """CORS Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    cors_origin: str = Field(default="*", alias="CORS_ORIGIN", description="Comma separated allowed origins")

    @property
    def cors_origins(self) -> List[str]:
        """List of allowed CORS origins"""
        origins = [o.strip() for o in self.cors_origin.split(",") if o.strip()]
        return origins or ["*"]


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="customer-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=4001, alias="PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
