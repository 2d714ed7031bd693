"""
Unit tests for storefront configuration.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from shared.config import StorefrontConfig
from shared.test_helpers import create_test_config


class TestStorefrontConfig:
    """Test cases for StorefrontConfig."""

    def test_defaults(self, monkeypatch):
        for name in ("STOREFRONT_RATE_LIMIT_REQUESTS", "STOREFRONT_CACHE_TTL_SECONDS", "STOREFRONT_DEBUG"):
            monkeypatch.delenv(name, raising=False)

        config = StorefrontConfig(_env_file=None)

        assert config.rate_limit_requests == 100
        assert config.cache_ttl_seconds == 300
        assert config.debug is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("STOREFRONT_RATE_LIMIT_REQUESTS", "25")
        monkeypatch.setenv("STOREFRONT_DEBUG", "true")
        monkeypatch.setenv("STOREFRONT_ADMIN_PASSWORD", "from-env-secret")

        config = StorefrontConfig(_env_file=None)

        assert config.rate_limit_requests == 25
        assert config.debug is True
        assert config.admin_password.get_secret_value() == "from-env-secret"

    def test_password_is_not_rendered(self):
        config = create_test_config()
        assert config.admin_password.get_secret_value() not in repr(config)

    @pytest.mark.parametrize("overrides", [
        {"rate_limit_requests": 0},
        {"cache_ttl_seconds": -1},
        {"log_level": "loud"},
        {"admin_password": ""},
        {"whatsapp_number": "+91 911"},
        {"store_backend": "sqlite"},
        {"default_orders_page": 101},
    ])
    def test_invalid_settings_fail_eagerly(self, overrides):
        with pytest.raises(PydanticValidationError):
            create_test_config(**overrides)

    def test_default_password_warning(self):
        config = create_test_config(admin_password="change-me-now")

        warnings = config.validate_settings()

        assert any("Default admin password" in w for w in warnings)

    def test_short_password_warning(self):
        warnings = create_test_config(admin_password="abc").validate_settings()
        assert any("too short" in w for w in warnings)

    def test_debug_in_production_warning(self):
        warnings = create_test_config(env="production", debug=True).validate_settings()
        assert any("Debug mode" in w for w in warnings)

    def test_default_database_credentials_warning(self):
        warnings = create_test_config(store_backend="postgres").validate_settings()
        assert any("database credentials" in w for w in warnings)

    def test_clean_configuration_has_no_warnings(self):
        assert create_test_config().validate_settings() == []
