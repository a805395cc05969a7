"""
Identity resolution and role-status reconciliation for Azure PIM clients.
"""
from pimroles.core.exceptions import (
    IncompleteProviderRecordError,
    MalformedScopeError,
    NotAzurePortalHostError,
    PimRolesException,
    ScopeSubscriptionNotFoundError,
    UnrecognizedPortalUrlError,
)
from pimroles.modules.identity.domain.resource_id import (
    from_portal_url,
    parse_resource_id,
    to_portal_url,
)
from pimroles.modules.roles.domain import (
    EligibleRole,
    RoleInventory,
    normalize_assignment,
    normalize_schedule,
    is_activated,
    is_newly_activated,
    reconcile,
)
from pimroles.modules.tenancy.domain.resolver import TenantResolver
from pimroles.modules.tenancy.domain.session_cache import SessionCache
from pimroles.shared.core.credentials import AzureAccount

__all__ = [
    "AzureAccount",
    "EligibleRole",
    "IncompleteProviderRecordError",
    "MalformedScopeError",
    "NotAzurePortalHostError",
    "PimRolesException",
    "RoleInventory",
    "ScopeSubscriptionNotFoundError",
    "SessionCache",
    "TenantResolver",
    "UnrecognizedPortalUrlError",
    "from_portal_url",
    "is_activated",
    "is_newly_activated",
    "normalize_assignment",
    "normalize_schedule",
    "parse_resource_id",
    "reconcile",
    "to_portal_url",
]
