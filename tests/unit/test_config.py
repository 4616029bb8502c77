"""
Unit tests for Configuration module.

This module contains unit tests for the configuration settings,
validators, and computed properties.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from filevault.core.config import (
    ConfigValidator,
    EnvironmentEnum,
    LogFormatEnum,
    Settings,
    StorageBackendEnum,
    SweepModeEnum,
    get_config_summary,
)


class TestSettings:
    """Test cases for Settings configuration."""

    def test_default_retention_values(self):
        """New uploads live 24 hours, records at most seven days."""
        test_settings = Settings(_env_file=None, file_ttl_hours=24, record_retention_days=7)

        assert test_settings.file_ttl == timedelta(hours=24)
        assert test_settings.record_retention == timedelta(days=7)
        assert test_settings.algorithm == "HS256"

    def test_environment_validation(self):
        """Test environment validation with various inputs."""
        assert Settings(environment="production").environment == EnvironmentEnum.production
        assert Settings(environment="DEVELOPMENT").environment == EnvironmentEnum.development
        assert Settings(environment="dev").environment == EnvironmentEnum.development
        assert Settings(environment="prod").environment == EnvironmentEnum.production
        assert Settings(environment="test").environment == EnvironmentEnum.testing

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="moon")

    def test_computed_properties(self):
        """Test computed properties."""
        prod_settings = Settings(environment="production")
        assert prod_settings.is_production is True
        assert prod_settings.is_development is False

        test_settings = Settings(environment="testing")
        assert test_settings.is_testing is True

    def test_admin_login_requires_both_values(self):
        assert Settings(admin_username="admin", admin_password="pw").has_admin_login is True
        assert Settings(admin_username="admin", admin_password="").has_admin_login is False
        assert Settings(admin_username=None, admin_password="pw").has_admin_login is False

    def test_cloudinary_requires_all_credentials(self):
        partial = Settings(cloudinary_cloud_name="demo", cloudinary_api_key="key", cloudinary_api_secret=None)
        assert partial.has_cloudinary is False

        full = Settings(
            cloudinary_cloud_name="demo", cloudinary_api_key="key", cloudinary_api_secret="secret"
        )
        assert full.has_cloudinary is True

    def test_max_file_size_bounds(self):
        with pytest.raises(ValidationError):
            Settings(max_file_size=0)
        with pytest.raises(ValidationError):
            Settings(max_file_size=2 * 1024 * 1024 * 1024)

        assert Settings(max_file_size=1024).max_file_size == 1024

    def test_hash_rounds_bounds(self):
        with pytest.raises(ValidationError):
            Settings(password_hash_rounds=3)
        with pytest.raises(ValidationError):
            Settings(password_hash_rounds=17)

    def test_positive_intervals(self):
        with pytest.raises(ValidationError):
            Settings(file_ttl_hours=0)
        with pytest.raises(ValidationError):
            Settings(expiry_sweep_interval_seconds=-5)

    def test_trailing_slashes_are_stripped(self):
        test_settings = Settings(
            frontend_url="https://vault.example.com/", backend_url="https://api.example.com//"
        )
        assert test_settings.frontend_url == "https://vault.example.com"
        assert test_settings.backend_url == "https://api.example.com"

    def test_allowed_origins_list(self):
        test_settings = Settings(allowed_origins="https://a.example.com, https://b.example.com,,")
        assert test_settings.allowed_origins_list == ["https://a.example.com", "https://b.example.com"]

    def test_enum_values_from_strings(self):
        test_settings = Settings(storage_backend="cloudinary", expiry_sweep_mode="celery", log_format="json")
        assert test_settings.storage_backend == StorageBackendEnum.cloudinary
        assert test_settings.expiry_sweep_mode == SweepModeEnum.celery
        assert test_settings.log_format == LogFormatEnum.json


class TestConfigValidator:
    """Test cases for ConfigValidator."""

    def test_valid_local_configuration(self):
        ConfigValidator.validate_required_settings(Settings(storage_backend="local"))

    def test_cloudinary_without_credentials(self):
        config = Settings(storage_backend="cloudinary", cloudinary_cloud_name=None)
        with pytest.raises(ValueError, match="CLOUDINARY"):
            ConfigValidator.validate_required_settings(config)

    def test_production_requires_admin_credentials(self):
        config = Settings(environment="production", admin_username=None, admin_password=None)
        with pytest.raises(ValueError, match="ADMIN_USERNAME"):
            ConfigValidator.validate_required_settings(config)

    def test_production_requires_explicit_secret_key(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        config = Settings(
            _env_file=None, environment="production", admin_username="admin", admin_password="pw"
        )

        with pytest.raises(ValueError, match="SECRET_KEY"):
            ConfigValidator.validate_required_settings(config)

    def test_production_with_secret_key(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        config = Settings(
            _env_file=None,
            environment="production",
            admin_username="admin",
            admin_password="pw",
            secret_key="a-long-and-stable-production-signing-key",
        )

        ConfigValidator.validate_required_settings(config)

    def test_generated_secret_key_is_fine_outside_production(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        config = Settings(_env_file=None, environment="development")

        assert config.secret_key
        ConfigValidator.validate_required_settings(config)

    def test_feature_status(self):
        status = ConfigValidator.get_feature_status(
            Settings(storage_backend="local", expiry_sweep_mode="disabled")
        )
        assert status["storage_backend"] == "local"
        assert status["direct_uploads"] is False
        assert status["expiry_sweep"] == "disabled"


def test_config_summary_has_no_secrets():
    summary = get_config_summary()

    assert "secret_key" not in summary
    assert "admin_password" not in summary
    assert summary["app_name"]
    assert "features" in summary
