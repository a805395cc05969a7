"""
Azure resource id parsing.

Classifies hierarchical scope strings into one of six immutable variants and
converts scopes to and from Azure portal URLs:

    /tenants/{tenantId}
    /providers/Microsoft.Management/managementGroups/{mgId}
    /subscriptions/{subId}
    /subscriptions/{subId}/resourceGroups/{rg}
    /subscriptions/{subId}/resourceGroups/{rg}/providers/{provider}/{type}/{name}
    /subscriptions/{subId}/resourceGroups/{rg}/providers/{provider}/{type}/{name}/{childType}/{childName}
"""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Union
from urllib.parse import urlsplit

from pimroles.core.exceptions import (
    MalformedScopeError,
    NotAzurePortalHostError,
    UnrecognizedPortalUrlError,
)
from pimroles.shared.core.constants import (
    AZURE_PORTAL_HOST,
    AZURE_PORTAL_MANAGEMENT_GROUP_BASE,
    AZURE_PORTAL_RESOURCE_BASE,
)

_MANAGEMENT_GROUP_PREFIX = "/providers/Microsoft.Management/managementGroups/"


@dataclass(frozen=True)
class TenantScope:
    id: str
    kind: Literal["tenant"] = "tenant"

    @property
    def scope(self) -> str:
        return f"/tenants/{self.id}"


@dataclass(frozen=True)
class ManagementGroupScope:
    id: str
    kind: Literal["management_group"] = "management_group"

    @property
    def scope(self) -> str:
        return f"{_MANAGEMENT_GROUP_PREFIX}{self.id}"


@dataclass(frozen=True)
class SubscriptionScope:
    id: str
    kind: Literal["subscription"] = "subscription"

    @property
    def subscription_id(self) -> str:
        return self.id

    @property
    def scope(self) -> str:
        return f"/subscriptions/{self.id}"


@dataclass(frozen=True)
class ResourceGroupScope:
    id: str
    subscription_id: str
    kind: Literal["resource_group"] = "resource_group"

    @property
    def scope(self) -> str:
        return f"/subscriptions/{self.subscription_id}/resourceGroups/{self.id}"


@dataclass(frozen=True)
class ResourceScope:
    id: str
    subscription_id: str
    resource_group: str
    provider: str
    type: str
    kind: Literal["resource"] = "resource"

    @property
    def scope(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{self.resource_group}"
            f"/providers/{self.provider}/{self.type}/{self.id}"
        )


@dataclass(frozen=True)
class ChildResourceScope:
    """A nested resource. `id` is the child name, `type` the parent's type."""

    id: str
    subscription_id: str
    resource_group: str
    provider: str
    type: str
    parent_resource_name: str
    child_type: str
    kind: Literal["child_resource"] = "child_resource"

    @property
    def scope(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}/resourceGroups/{self.resource_group}"
            f"/providers/{self.provider}/{self.type}/{self.parent_resource_name}"
            f"/{self.child_type}/{self.id}"
        )


ResourceIdentity = Union[
    TenantScope,
    ManagementGroupScope,
    SubscriptionScope,
    ResourceGroupScope,
    ResourceScope,
    ChildResourceScope,
]
SubscriptionRootedScope = Union[
    SubscriptionScope, ResourceGroupScope, ResourceScope, ChildResourceScope
]

_SEG = r"[^/]+"
_SUB = rf"^/subscriptions/(?P<subscription>{_SEG})"
_RG = rf"{_SUB}/resourceGroups/(?P<rg>{_SEG})"
_RES = rf"{_RG}/providers/(?P<provider>{_SEG})/(?P<type>{_SEG})/(?P<name>{_SEG})"

_PATTERNS: tuple[tuple[re.Pattern[str], Callable[[re.Match[str]], ResourceIdentity]], ...] = (
    (
        re.compile(rf"^/tenants/(?P<id>{_SEG})$"),
        lambda m: TenantScope(id=m["id"]),
    ),
    (
        re.compile(rf"^/providers/Microsoft\.Management/managementGroups/(?P<id>{_SEG})$"),
        lambda m: ManagementGroupScope(id=m["id"]),
    ),
    (
        re.compile(rf"{_SUB}$"),
        lambda m: SubscriptionScope(id=m["subscription"]),
    ),
    (
        re.compile(rf"{_RG}$"),
        lambda m: ResourceGroupScope(id=m["rg"], subscription_id=m["subscription"]),
    ),
    (
        re.compile(rf"{_RES}$"),
        lambda m: ResourceScope(
            id=m["name"],
            subscription_id=m["subscription"],
            resource_group=m["rg"],
            provider=m["provider"],
            type=m["type"],
        ),
    ),
    (
        re.compile(rf"{_RES}/(?P<child_type>{_SEG})/(?P<child>{_SEG})$"),
        lambda m: ChildResourceScope(
            id=m["child"],
            subscription_id=m["subscription"],
            resource_group=m["rg"],
            provider=m["provider"],
            type=m["type"],
            parent_resource_name=m["name"],
            child_type=m["child_type"],
        ),
    ),
)

_SUBSCRIPTION_SEGMENT = re.compile(r"subscriptions/([^/]+)")
_PORTAL_RESOURCE_FRAGMENT = re.compile(r"^@(?P<tenant>[^/]*)/resource(?P<path>/.*)$")
_PORTAL_MANAGEMENT_GROUP_FRAGMENT = re.compile(r"/mgId/(?P<id>[^/?]+)")


def parse_resource_id(scope: str) -> ResourceIdentity:
    """Parse an Azure resource id into its component parts."""
    for pattern, handler in _PATTERNS:
        match = pattern.match(scope)
        if match:
            return handler(match)
    raise MalformedScopeError(scope)


def is_subscription_rooted(identity: ResourceIdentity) -> bool:
    return isinstance(
        identity, (SubscriptionScope, ResourceGroupScope, ResourceScope, ChildResourceScope)
    )


def parse_subscription_id(scope: str) -> str | None:
    """Extract the subscription id of any subscription-rooted scope, tolerating unknown tails."""
    match = _SUBSCRIPTION_SEGMENT.search(scope)
    return match.group(1) if match else None


def to_portal_url(scope: str, scope_type: str | None = None) -> str:
    """
    Generate the Azure portal URL for a scope.

    Management groups have their own blade keyed by the trailing id segment;
    every other scope uses the generic resource view.
    """
    is_management_group = (scope_type or "").lower() == "managementgroup" or (
        scope.startswith(_MANAGEMENT_GROUP_PREFIX)
    )
    if is_management_group:
        management_group_id = scope.rstrip("/").split("/")[-1]
        return f"{AZURE_PORTAL_MANAGEMENT_GROUP_BASE}{management_group_id}"
    return f"{AZURE_PORTAL_RESOURCE_BASE}{scope}"


def from_portal_url(portal_url: str) -> str:
    """
    Extract the resource id from an Azure portal URL.

    Portal URLs often append a view name (``/overview``, ``/users``) after the
    resource id, so a candidate that does not parse is retried once with its
    last path segment trimmed.
    """
    url = urlsplit(portal_url)
    host = (url.hostname or "").lower()
    if host != AZURE_PORTAL_HOST:
        raise NotAzurePortalHostError(portal_url, host)

    fragment = url.fragment
    if fragment.startswith("view/Microsoft_Azure_ManagementGroups/"):
        mg_match = _PORTAL_MANAGEMENT_GROUP_FRAGMENT.search(fragment)
        if mg_match is None:
            raise UnrecognizedPortalUrlError(portal_url, "management group id not found")
        return ManagementGroupScope(id=mg_match["id"]).scope

    match = _PORTAL_RESOURCE_FRAGMENT.match(fragment)
    if match is None:
        raise UnrecognizedPortalUrlError(
            portal_url, "Could not extract base resource ID from url"
        )

    candidate = match["path"].split("?", 1)[0].rstrip("/")
    for attempt in (candidate, candidate.rsplit("/", 1)[0]):
        if not attempt:
            continue
        try:
            parse_resource_id(attempt)
        except MalformedScopeError:
            continue
        return attempt

    raise UnrecognizedPortalUrlError(
        portal_url, "Unable to extract resource ID from portal URL"
    )
