import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from datagate.core.config import Settings, get_settings


def test_settings_defaults():
    """Test that settings load with correct defaults."""
    get_settings.cache_clear()

    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.app_name == "datagate"
    assert settings.environment == "development"
    assert settings.debug is False
    assert settings.access_cache_ttl_seconds == 900
    assert settings.temporary_access_cache_ttl_seconds == 300
    assert settings.permission_check_timeout_seconds == 5.0
    assert settings.is_development is True
    assert settings.is_production is False
    assert settings.is_testing is False


def test_settings_env_override():
    """Test that environment variables override defaults."""
    get_settings.cache_clear()

    with patch.dict(os.environ, {
        "DATAGATE_ENVIRONMENT": "production",
        "DATAGATE_DEBUG": "true",
        "DATAGATE_ACCESS_CACHE_TTL_SECONDS": "60",
        "DATAGATE_PERMISSION_CHECK_TIMEOUT_SECONDS": "0.5",
    }):
        settings = Settings(_env_file=None)

        assert settings.environment == "production"
        assert settings.debug is True
        assert settings.access_cache_ttl_seconds == 60
        assert settings.permission_check_timeout_seconds == 0.5
        assert settings.is_production is True
        assert settings.is_development is False


def test_warmup_resource_types_parsing():
    """Test warmup resource types parsing from string."""
    with patch.dict(os.environ, {"DATAGATE_WARMUP_RESOURCE_TYPES": '["Posts", "Tags"]'}):
        settings = Settings(_env_file=None)
        assert settings.warmup_resource_types == ["Posts", "Tags"]

    settings = Settings(_env_file=None, warmup_resource_types="Posts, Comments,")
    assert settings.warmup_resource_types == ["Posts", "Comments"]


@pytest.mark.parametrize(
    "field",
    [
        "access_cache_ttl_seconds",
        "temporary_access_cache_ttl_seconds",
        "scope_cache_ttl_seconds",
        "rules_cache_ttl_seconds",
    ],
)
def test_cache_ttl_must_be_positive(field):
    """Test that cache TTLs reject zero and negative values."""
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
