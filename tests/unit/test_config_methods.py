"""Tests for application settings."""

from unittest.mock import patch

from certdeploy.config import Settings, get_settings


def test_defaults():
    """Test vendor client defaults."""
    with patch.dict("os.environ", {}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.project_name == "certdeploy"
    assert settings.http_timeout_seconds == 30.0
    assert settings.flyio_api_base_url == "https://api.machines.dev/v1"
    assert settings.aws_cloudfront_acm_region == "us-east-1"
    assert settings.tencentcloud_endpoint_intl_suffix == "intl.tencentcloudapi.com"
    assert "{extra[deployment_id]}" in settings.log_format


def test_environment_overrides():
    """Test environment variables override defaults, case-insensitively."""
    with patch.dict(
        "os.environ",
        {"http_timeout_seconds": "12.5", "FLYIO_API_BASE_URL": "http://localhost:9000"},
    ):
        settings = Settings(_env_file=None)

    assert settings.http_timeout_seconds == 12.5
    assert settings.flyio_api_base_url == "http://localhost:9000"


def test_unknown_environment_variables_ignored():
    """Test unrelated environment variables do not break loading."""
    with patch.dict("os.environ", {"SOME_OTHER_SETTING": "x"}):
        settings = Settings(_env_file=None)

    assert not hasattr(settings, "some_other_setting")


def test_get_settings_is_cached():
    """Test get_settings returns the same instance."""
    assert get_settings() is get_settings()
