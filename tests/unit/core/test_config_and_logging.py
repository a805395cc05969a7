from __future__ import annotations

import pytest
from pydantic import ValidationError

from pimroles.shared.core.config import Settings, get_settings, reload_settings_from_environment
from pimroles.shared.core.logging import pii_redactor, setup_logging


def test_settings_defaults_under_test() -> None:
    settings = get_settings()

    assert settings.TESTING is True
    assert settings.ARM_ENDPOINT == "https://management.azure.com"
    assert settings.HTTP_MAX_RETRIES == 3
    assert not settings.is_production


def test_testing_flag_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(TESTING=True, ENVIRONMENT="production")


def test_endpoints_must_be_https_outside_testing() -> None:
    with pytest.raises(ValidationError):
        Settings(TESTING=False, ARM_ENDPOINT="http://management.azure.com")


def test_retries_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(HTTP_MAX_RETRIES=0)


def test_reload_picks_up_environment(monkeypatch) -> None:
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "5")

    refreshed = reload_settings_from_environment()

    assert refreshed.HTTP_TIMEOUT_SECONDS == 5.0
    assert get_settings() is refreshed


def test_pii_redactor_masks_tokens_and_emails() -> None:
    event = pii_redactor(
        None,
        "info",
        {
            "event": "tenant_cross_lookup",
            "access_token": "eyJ0eXAi",
            "Authorization": "Bearer abc",
            "principal": "alice@contoso.com",
            "records": [{"client_secret": "s3cret", "upn": "bob@fabrikam.com"}],
            "count": 3,
        },
    )

    assert event["access_token"] == "[REDACTED]"
    assert event["Authorization"] == "[REDACTED]"
    assert event["principal"] == "[EMAIL_REDACTED]"
    assert event["records"] == [{"client_secret": "[REDACTED]", "upn": "[EMAIL_REDACTED]"}]
    assert event["count"] == 3
    assert event["event"] == "tenant_cross_lookup"


def test_setup_logging_configures_structlog() -> None:
    import structlog

    setup_logging()

    assert structlog.is_configured()
