from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from azure.core.credentials_async import AsyncTokenCredential

from pimroles.shared.core.constants import SourceType
from pimroles.shared.core.credentials import AzureAccount

ProviderRecord = Mapping[str, Any]


@runtime_checkable
class CredentialProvider(Protocol):
    """Hands out a token credential for a signed-in account."""

    def get_credential(self, account: AzureAccount) -> AsyncTokenCredential: ...


@runtime_checkable
class RoleSource(Protocol):
    """One upstream PIM provider, listing records for the calling principal."""

    source_type: SourceType

    async def list_eligibility_schedule_instances(
        self, account: AzureAccount
    ) -> Sequence[ProviderRecord]: ...

    async def list_assignment_schedule_instances(
        self, account: AzureAccount
    ) -> Sequence[ProviderRecord]: ...


@runtime_checkable
class DirectorySource(Protocol):
    """Subscription and tenant directory visible to an account."""

    async def list_subscriptions(self, account: AzureAccount) -> Sequence[ProviderRecord]: ...

    async def list_tenants(self, account: AzureAccount) -> Sequence[ProviderRecord]: ...

    async def find_tenant_by_tenant_id(
        self, account: AzureAccount, tenant_id: str
    ) -> ProviderRecord: ...

    async def get_management_group(
        self, account: AzureAccount, group_id: str
    ) -> ProviderRecord: ...
