"""
PIM listings for the calling principal, one adapter per provider.

ARM filters with ``asTarget()`` at the root scope so every scope the user
can reach is returned in one listing; Graph and PIM for Groups use
``filterByCurrentUser(on='principal')``. Records come back provider-native
and are normalized by the roles domain.
"""
from typing import Any

import structlog

from pimroles.shared.adapters.base import AzureRestAdapter
from pimroles.shared.core.config import get_settings
from pimroles.shared.core.constants import ARM_TOKEN_SCOPE, GRAPH_TOKEN_SCOPE, SourceType
from pimroles.shared.core.credentials import AzureAccount

logger = structlog.get_logger()

_FILTER_BY_CURRENT_USER = "filterByCurrentUser(on='principal')"


class ArmPimSource(AzureRestAdapter):
    source_type: SourceType = "arm"
    token_scope = ARM_TOKEN_SCOPE

    async def _list(self, account: AzureAccount, resource: str) -> list[dict[str, Any]]:
        settings = get_settings()
        return await self._list_paged(
            account,
            f"{settings.ARM_ENDPOINT}/providers/Microsoft.Authorization/{resource}",
            {
                "api-version": settings.ARM_AUTHORIZATION_API_VERSION,
                "$filter": "asTarget()",
            },
        )

    async def list_eligibility_schedule_instances(
        self, account: AzureAccount
    ) -> list[dict[str, Any]]:
        return await self._list(account, "roleEligibilityScheduleInstances")

    async def list_assignment_schedule_instances(
        self, account: AzureAccount
    ) -> list[dict[str, Any]]:
        return await self._list(account, "roleAssignmentScheduleInstances")


class GraphRolePimSource(AzureRestAdapter):
    source_type: SourceType = "graph"
    token_scope = GRAPH_TOKEN_SCOPE

    async def _list(self, account: AzureAccount, resource: str) -> list[dict[str, Any]]:
        settings = get_settings()
        return await self._list_paged(
            account,
            f"{settings.GRAPH_ENDPOINT}/v1.0/roleManagement/directory/"
            f"{resource}/{_FILTER_BY_CURRENT_USER}",
            {"$expand": "roleDefinition,principal"},
        )

    async def list_eligibility_schedule_instances(
        self, account: AzureAccount
    ) -> list[dict[str, Any]]:
        return await self._list(account, "roleEligibilityScheduleInstances")

    async def list_assignment_schedule_instances(
        self, account: AzureAccount
    ) -> list[dict[str, Any]]:
        return await self._list(account, "roleAssignmentScheduleInstances")


class GraphGroupPimSource(AzureRestAdapter):
    source_type: SourceType = "group"
    token_scope = GRAPH_TOKEN_SCOPE

    async def _list(self, account: AzureAccount, resource: str) -> list[dict[str, Any]]:
        settings = get_settings()
        return await self._list_paged(
            account,
            f"{settings.GRAPH_ENDPOINT}/v1.0/identityGovernance/privilegedAccess/group/"
            f"{resource}/{_FILTER_BY_CURRENT_USER}",
            {"$expand": "group,principal"},
        )

    async def list_eligibility_schedule_instances(
        self, account: AzureAccount
    ) -> list[dict[str, Any]]:
        return await self._list(account, "eligibilityScheduleInstances")

    async def list_assignment_schedule_instances(
        self, account: AzureAccount
    ) -> list[dict[str, Any]]:
        return await self._list(account, "assignmentScheduleInstances")
