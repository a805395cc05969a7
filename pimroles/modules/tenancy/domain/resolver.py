"""
Tenant identity resolution for scopes and eligible roles.

Resolution path:
1. No scope, or a Graph/PIM-for-Groups role: the account's home tenant.
2. ``/``, ``/administrativeUnits/...`` and ``/tenants/...`` scopes: home tenant.
3. Management group scopes: one lookup for the group's owning tenant.
4. Subscription-rooted scopes: the account's subscription list (fetched
   once per session) maps the subscription to its tenant.

The tenant id is then looked up in the session cache, seeded once from the
account's tenant listing; anything still unknown is a foreign (guest) tenant
and goes through the cross-tenant lookup.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Union, cast

import structlog

from pimroles.core.exceptions import ScopeSubscriptionNotFoundError, TenantResolutionError
from pimroles.modules.identity.domain.resource_id import (
    ManagementGroupScope,
    SubscriptionRootedScope,
    TenantScope,
    is_subscription_rooted,
    parse_resource_id,
)
from pimroles.modules.roles.domain.models import CommonRoleSchedule, EligibleRole
from pimroles.modules.tenancy.domain.models import TenantRecord, directory_field
from pimroles.modules.tenancy.domain.session_cache import SessionCache
from pimroles.shared.core.async_utils import source_result
from pimroles.shared.core.constants import DIRECTORY_SCOPE
from pimroles.shared.core.credentials import AzureAccount
from pimroles.shared.core.sources import DirectorySource

logger = structlog.get_logger()

ScopeOrRole = Union[str, EligibleRole, CommonRoleSchedule, None]


class TenantResolver:
    """Resolves scopes and eligible roles to tenant records for one session."""

    def __init__(self, directory: DirectorySource, cache: SessionCache | None = None) -> None:
        self.directory = directory
        self.cache = cache if cache is not None else SessionCache()

    async def resolve_tenant(
        self, account: AzureAccount, scope_or_role: ScopeOrRole = None
    ) -> TenantRecord:
        tenant_id = await self.resolve_tenant_id(account, scope_or_role)
        return await self._tenant_record(account, tenant_id)

    async def resolve_tenant_label(
        self, account: AzureAccount, scope_or_role: ScopeOrRole = None
    ) -> str:
        return (await self.resolve_tenant(account, scope_or_role)).label

    async def resolve_tenant_id(
        self, account: AzureAccount, scope_or_role: ScopeOrRole = None
    ) -> str:
        scope = self._scope_of(scope_or_role)
        if not scope:
            return account.tenant_id

        if scope == DIRECTORY_SCOPE or scope.startswith("/administrativeUnits/"):
            return account.tenant_id

        identity = parse_resource_id(scope)
        if isinstance(identity, TenantScope):
            return account.tenant_id

        if isinstance(identity, ManagementGroupScope):
            group = await source_result(
                self.directory.get_management_group(account, identity.id)
            )
            tenant_id = directory_field(group or {}, "tenantId", "tenant_id")
            if not tenant_id:
                raise TenantResolutionError(
                    f"Management group {identity.id} does not have a tenantId",
                    details={"management_group_id": identity.id},
                )
            return str(tenant_id)

        if not is_subscription_rooted(identity):
            raise TenantResolutionError(f"Unsupported scope for tenant resolution: {scope}")

        subscription_id = cast(SubscriptionRootedScope, identity).subscription_id
        subscriptions = await self._subscription_tenants(account)
        if subscription_id not in subscriptions:
            raise ScopeSubscriptionNotFoundError(subscription_id, account.account_id)
        tenant_id = subscriptions[subscription_id]
        if not tenant_id:
            raise TenantResolutionError(
                f"Subscription {subscription_id} does not have a tenantId",
                details={"subscription_id": subscription_id},
            )
        return tenant_id

    @staticmethod
    def _scope_of(scope_or_role: ScopeOrRole) -> str | None:
        if scope_or_role is None:
            return None
        if isinstance(scope_or_role, str):
            return scope_or_role
        schedule = (
            scope_or_role.schedule
            if isinstance(scope_or_role, EligibleRole)
            else scope_or_role
        )
        # Directory roles and group memberships carry no ARM scope
        if schedule.source_type != "arm":
            return None
        return schedule.scope or None

    async def _subscription_tenants(
        self, account: AzureAccount
    ) -> Mapping[str, str | None]:
        account_id = account.account_id
        cached = self.cache.get_subscriptions(account_id)
        if cached is not None:
            return cached

        subscriptions = await source_result(self.directory.list_subscriptions(account))
        mapping: dict[str, str | None] = {}
        for subscription in subscriptions or ():
            subscription_id = directory_field(subscription, "subscriptionId", "subscription_id")
            if not subscription_id:
                continue
            tenant_id = directory_field(subscription, "tenantId", "tenant_id")
            mapping[str(subscription_id)] = str(tenant_id) if tenant_id else None
        logger.debug(
            "subscriptions_cached", account_id=account_id, count=len(mapping)
        )
        return self.cache.set_subscriptions(account_id, mapping)

    async def _tenant_record(self, account: AzureAccount, tenant_id: str) -> TenantRecord:
        account_id = account.account_id
        cached = self.cache.get_tenant(account_id, tenant_id)
        if cached is not None and not cached.is_placeholder:
            logger.debug("tenant_cache_hit", account_id=account_id, tenant_id=tenant_id)
            return cached

        if not self.cache.is_seeded(account_id):
            tenants = await source_result(self.directory.list_tenants(account))
            self.cache.seed_tenants(
                account_id, (TenantRecord.from_directory(t) for t in tenants or ())
            )
            cached = self.cache.get_tenant(account_id, tenant_id)
            if cached is not None and not cached.is_placeholder:
                return cached

        # Not one of the account's own tenants: a foreign (guest) tenant
        logger.debug("tenant_cross_lookup", account_id=account_id, tenant_id=tenant_id)
        try:
            info = await source_result(
                self.directory.find_tenant_by_tenant_id(account, tenant_id)
            )
            record = TenantRecord.from_directory(info or {})
            if not record.display_name:
                raise TenantResolutionError(
                    f"Failed to retrieve displayName for tenantId: {tenant_id}"
                )
            if record.tenant_id != tenant_id:
                record = replace(record, tenant_id=tenant_id)
        except Exception as e:
            logger.warning(
                "tenant_cross_lookup_failed",
                account_id=account_id,
                tenant_id=tenant_id,
                error=str(e),
            )
            record = TenantRecord.placeholder(tenant_id, str(e))

        self.cache.put_tenant(account_id, record)
        return record
