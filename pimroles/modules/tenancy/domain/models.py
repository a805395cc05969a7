from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


def directory_field(record: Mapping[str, Any], *keys: str) -> Any:
    """First non-empty value among `keys`, looked up directly or inside an ARM ``properties`` envelope."""
    properties = record.get("properties")
    for key in keys:
        value = record.get(key)
        if value in (None, "") and isinstance(properties, Mapping):
            value = properties.get(key)
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True)
class TenantRecord:
    tenant_id: str
    display_name: str
    default_domain: str | None = None
    domains: tuple[str, ...] = field(default_factory=tuple)
    is_placeholder: bool = False

    @property
    def label(self) -> str:
        """Short label for a table row: default domain, then display name, then id."""
        return self.default_domain or self.display_name or self.tenant_id

    @classmethod
    def from_directory(cls, record: Mapping[str, Any]) -> "TenantRecord":
        """Build from an ARM tenant listing or a Graph tenantInformation payload."""
        tenant_id = str(directory_field(record, "tenantId", "tenant_id") or "")
        domains = directory_field(record, "domains") or ()
        return cls(
            tenant_id=tenant_id,
            display_name=str(
                directory_field(record, "displayName", "display_name", "tenantDisplayName")
                or ""
            ),
            default_domain=directory_field(
                record, "defaultDomain", "defaultDomainName", "default_domain"
            ),
            domains=tuple(str(domain) for domain in domains),
        )

    @classmethod
    def placeholder(cls, tenant_id: str, reason: str) -> "TenantRecord":
        return cls(
            tenant_id=tenant_id,
            display_name=f"[Unknown] - {reason}",
            is_placeholder=True,
        )
