"""
Global pytest fixtures for the pimroles test suite.
"""
import os

# Set test environment BEFORE any pimroles imports
os.environ["TESTING"] = "true"
os.environ["ENVIRONMENT"] = "local"

import pytest
import tenacity

from pimroles.shared.core.config import get_settings
from pimroles.shared.core.credentials import AzureAccount


@pytest.fixture(autouse=True)
def reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def no_retry_backoff(monkeypatch):
    from pimroles.shared.adapters.base import AzureRestAdapter

    monkeypatch.setattr(AzureRestAdapter, "retry_wait", tenacity.wait_none())


@pytest.fixture
def account() -> AzureAccount:
    return AzureAccount(
        home_account_id="acct-1.home-tenant",
        local_account_id="acct-1",
        tenant_id="home-tenant",
        username="alice@contoso.com",
        name="Alice",
    )


@pytest.fixture
def other_account() -> AzureAccount:
    return AzureAccount(
        home_account_id="acct-2.other-tenant",
        local_account_id="acct-2",
        tenant_id="other-tenant",
    )
