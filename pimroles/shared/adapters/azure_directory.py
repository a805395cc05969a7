from typing import Any

import structlog

from pimroles.shared.adapters.base import AzureRestAdapter
from pimroles.shared.core.config import get_settings
from pimroles.shared.core.constants import ARM_TOKEN_SCOPE, GRAPH_TOKEN_SCOPE
from pimroles.shared.core.credentials import AzureAccount

logger = structlog.get_logger()


class AzureDirectorySource(AzureRestAdapter):
    """
    Subscription, tenant and management group lookups over ARM, plus the
    Graph cross-tenant lookup for tenants the account is a guest in.
    """

    token_scope = ARM_TOKEN_SCOPE

    async def list_subscriptions(self, account: AzureAccount) -> list[dict[str, Any]]:
        settings = get_settings()
        subscriptions = await self._list_paged(
            account,
            f"{settings.ARM_ENDPOINT}/subscriptions",
            {"api-version": settings.ARM_SUBSCRIPTIONS_API_VERSION},
        )
        logger.debug(
            "azure_subscriptions_listed",
            account_id=account.account_id,
            count=len(subscriptions),
        )
        return subscriptions

    async def list_tenants(self, account: AzureAccount) -> list[dict[str, Any]]:
        settings = get_settings()
        return await self._list_paged(
            account,
            f"{settings.ARM_ENDPOINT}/tenants",
            {"api-version": settings.ARM_SUBSCRIPTIONS_API_VERSION},
        )

    async def get_management_group(
        self, account: AzureAccount, group_id: str
    ) -> dict[str, Any]:
        settings = get_settings()
        return await self._get_json(
            account,
            f"{settings.ARM_ENDPOINT}/providers/Microsoft.Management/managementGroups/{group_id}",
            {"api-version": settings.ARM_MANAGEMENT_GROUPS_API_VERSION},
        )

    async def find_tenant_by_tenant_id(
        self, account: AzureAccount, tenant_id: str
    ) -> dict[str, Any]:
        settings = get_settings()
        return await self._get_json(
            account,
            f"{settings.GRAPH_ENDPOINT}/v1.0/tenantRelationships/"
            f"findTenantInformationByTenantId(tenantId='{tenant_id}')",
            token_scope=GRAPH_TOKEN_SCOPE,
        )
