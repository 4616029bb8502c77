# python
# filevault/core/config.py
"""Configuration settings for the FileVault application.

Uses Pydantic BaseSettings for environment variable management.
"""
import secrets
from datetime import timedelta
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class StorageBackendEnum(str, Enum):
    local = "local"
    cloudinary = "cloudinary"


class SweepModeEnum(str, Enum):
    in_process = "in_process"
    celery = "celery"
    disabled = "disabled"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="FileVault API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Security Settings =====
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key for admin token signing (required in production)",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    admin_token_expire_minutes: int = Field(default=60, description="Admin token lifetime")
    admin_username: str | None = Field(default=None, description="Admin console username")
    admin_password: str | None = Field(default=None, description="Admin console password")
    password_hash_rounds: int = Field(default=10, description="bcrypt cost factor")

    # ===== Database Settings =====
    database_url: str | None = Field(
        default="sqlite+aiosqlite:///./filevault.db", description="Database connection URL"
    )
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Retention =====
    file_ttl_hours: int = Field(default=24, description="Lifetime of a new upload in hours")
    record_retention_days: int = Field(
        default=7, description="Hard cap on record age, measured from creation"
    )

    # ===== File Storage Settings =====
    max_file_size: int = Field(default=104857600, description="Maximum file size in bytes (100MB)")
    storage_backend: StorageBackendEnum = Field(
        default=StorageBackendEnum.local, description="Blob storage backend"
    )
    local_storage_path: str = Field(default="./uploads", description="Local blob directory")

    cloudinary_cloud_name: str | None = Field(default=None, description="Cloudinary cloud name")
    cloudinary_api_key: str | None = Field(default=None, description="Cloudinary API key")
    cloudinary_api_secret: str | None = Field(default=None, description="Cloudinary API secret")
    cloudinary_folder: str = Field(default="filevault_uploads", description="Upload folder")
    cloudinary_api_url: str = Field(
        default="https://api.cloudinary.com/v1_1", description="Cloudinary API base URL"
    )
    blob_transfer_timeout: float = Field(
        default=300.0, description="Timeout in seconds for blob upload/download legs"
    )

    # ===== Spreadsheet Preview =====
    spreadsheet_preview_max_bytes: int = Field(
        default=10485760, description="Largest spreadsheet rendered server-side (10MB)"
    )
    spreadsheet_preview_max_rows: int = Field(default=1000, description="Rows returned per preview")
    spreadsheet_preview_max_columns: int = Field(default=100, description="Columns returned per row")

    # ===== Public URLs =====
    frontend_url: str = Field(default="http://localhost:3000", description="Frontend base URL")
    backend_url: str = Field(default="http://localhost:8000", description="Backend base URL")

    # ===== Expiry Sweep =====
    expiry_sweep_mode: SweepModeEnum = Field(
        default=SweepModeEnum.in_process, description="Where the expiry sweep runs"
    )
    expiry_sweep_interval_seconds: int = Field(default=3600, description="Sweep period")

    # ===== Background Tasks (Celery) =====
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1", description="Celery broker URL"
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2", description="Celery result backend"
    )

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.simple, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def file_ttl(self) -> timedelta:
        return timedelta(hours=self.file_ttl_hours)

    @property
    def record_retention(self) -> timedelta:
        return timedelta(days=self.record_retention_days)

    @property
    def has_admin_login(self) -> bool:
        return bool(self.admin_username and self.admin_password)

    @property
    def has_cloudinary(self) -> bool:
        return bool(
            self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret
        )

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            if lv in ["test"]:
                return "testing"
            return lv
        return v

    @field_validator("max_file_size")
    @classmethod
    def validate_file_size(cls, v):
        if v <= 0:
            raise ValueError("Maximum file size must be positive")
        if v > 1024 * 1024 * 1024:
            raise ValueError("Maximum file size cannot exceed 1GB")
        return v

    @field_validator("password_hash_rounds")
    @classmethod
    def validate_hash_rounds(cls, v):
        if not 4 <= v <= 16:
            raise ValueError("bcrypt rounds must be between 4 and 16")
        return v

    @field_validator(
        "file_ttl_hours",
        "record_retention_days",
        "expiry_sweep_interval_seconds",
        "spreadsheet_preview_max_bytes",
        "spreadsheet_preview_max_rows",
        "spreadsheet_preview_max_columns",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("Retention, sweep and preview limits must be positive")
        return v

    @model_validator(mode="after")
    def strip_url_slashes(self):
        self.frontend_url = self.frontend_url.rstrip("/")
        self.backend_url = self.backend_url.rstrip("/")
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings(config: Settings | None = None):
        config = config or settings
        errors = []
        if not config.database_url:
            errors.append("DATABASE_URL is required")
        if config.storage_backend == StorageBackendEnum.cloudinary and not config.has_cloudinary:
            errors.append(
                "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET are required "
                "for the cloudinary storage backend"
            )
        if config.is_production and not config.has_admin_login:
            errors.append("ADMIN_USERNAME and ADMIN_PASSWORD are required in production")
        if config.is_production and "secret_key" not in config.model_fields_set:
            errors.append("SECRET_KEY is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status(config: Settings | None = None) -> dict:
        config = config or settings
        return {
            "admin_login": config.has_admin_login,
            "storage_backend": config.storage_backend.value,
            "direct_uploads": config.storage_backend == StorageBackendEnum.cloudinary,
            "expiry_sweep": config.expiry_sweep_mode.value,
            "environment": config.environment.value,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
        "file_ttl_hours": settings.file_ttl_hours,
        "record_retention_days": settings.record_retention_days,
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
    "StorageBackendEnum",
    "SweepModeEnum",
]
