from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

import structlog

from pimroles.modules.tenancy.domain.models import TenantRecord

logger = structlog.get_logger()


class SessionCache:
    """
    Per-session directory cache, keyed by account id.

    Holds the subscription-to-tenant map fetched once per account and the
    tenant records resolved so far. Entries are only ever added; a key is
    overwritten when the new value is real (last writer wins) or replaces a
    placeholder, never by a placeholder. Torn down per account on sign-out.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Mapping[str, str | None]] = {}
        self._tenants: dict[str, dict[str, TenantRecord]] = {}
        self._seeded_accounts: set[str] = set()

    def get_subscriptions(self, account_id: str) -> Mapping[str, str | None] | None:
        return self._subscriptions.get(account_id)

    def set_subscriptions(
        self, account_id: str, subscriptions: Mapping[str, str | None]
    ) -> Mapping[str, str | None]:
        frozen = MappingProxyType(dict(subscriptions))
        self._subscriptions[account_id] = frozen
        return frozen

    def get_tenant(self, account_id: str, tenant_id: str) -> TenantRecord | None:
        return self._tenants.get(account_id, {}).get(tenant_id)

    def put_tenant(self, account_id: str, record: TenantRecord) -> None:
        tenants = self._tenants.setdefault(account_id, {})
        existing = tenants.get(record.tenant_id)
        if existing is not None and record.is_placeholder and not existing.is_placeholder:
            return
        tenants[record.tenant_id] = record

    def seed_tenants(self, account_id: str, records: Iterable[TenantRecord]) -> None:
        """Merge the account's tenant listing; previously resolved real records win."""
        tenants = self._tenants.setdefault(account_id, {})
        for record in records:
            if not record.tenant_id:
                continue
            existing = tenants.get(record.tenant_id)
            if existing is None or existing.is_placeholder:
                tenants[record.tenant_id] = record
        self._seeded_accounts.add(account_id)

    def is_seeded(self, account_id: str) -> bool:
        return account_id in self._seeded_accounts

    def tenants_for(self, account_id: str) -> Mapping[str, TenantRecord]:
        return MappingProxyType(dict(self._tenants.get(account_id, {})))

    def forget_account(self, account_id: str) -> None:
        """Drop everything cached for an account (sign-out)."""
        self._subscriptions.pop(account_id, None)
        self._tenants.pop(account_id, None)
        self._seeded_accounts.discard(account_id)
        logger.info("session_cache_account_cleared", account_id=account_id)

    def clear(self) -> None:
        self._subscriptions.clear()
        self._tenants.clear()
        self._seeded_accounts.clear()
