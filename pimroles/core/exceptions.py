from typing import Optional, Dict, Any

class PimRolesException(Exception):
    """Base exception for all pimroles errors."""
    def __init__(
        self,
        message: str,
        code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

class ResourceIdError(PimRolesException, ValueError):
    """Base for input-format errors raised while parsing scopes and portal URLs."""

class MalformedScopeError(ResourceIdError):
    """Raised when a scope string matches none of the supported resource id forms."""
    def __init__(self, scope: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"{scope} is not a valid Azure Resource ID. Supported formats: tenant, "
            "management group, subscription, resource group, resource, child resource.",
            code="malformed_scope",
            details={"scope": scope, **(details or {})},
        )
        self.scope = scope

class NotAzurePortalHostError(ResourceIdError):
    """Raised when a URL does not point at the Azure portal."""
    def __init__(self, url: str, host: str):
        super().__init__(
            f"Invalid Azure portal URL {url}: host {host or '<none>'} is not portal.azure.com",
            code="not_azure_portal_host",
            details={"url": url, "host": host},
        )

class UnrecognizedPortalUrlError(ResourceIdError):
    """Raised when no resource id can be extracted from a portal URL."""
    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Invalid Azure portal URL {url}: {reason}",
            code="unrecognized_portal_url",
            details={"url": url},
        )

class IncompleteProviderRecordError(PimRolesException):
    """Raised when a provider record lacks a mandatory identifier. Callers skip the record."""
    def __init__(self, source_type: str, field: str, record_id: str = ""):
        super().__init__(
            f"{source_type} record {record_id or '<no id>'} is missing mandatory field {field}",
            code="incomplete_provider_record",
            details={"source_type": source_type, "field": field, "record_id": record_id},
        )
        self.source_type = source_type
        self.field = field

class ScopeSubscriptionNotFoundError(PimRolesException):
    """Raised when a scope's subscription is not visible to the account (no read access)."""
    def __init__(self, subscription_id: str, account_id: str):
        super().__init__(
            f"Subscription {subscription_id} not found for account {account_id}",
            code="scope_subscription_not_found",
            details={"subscription_id": subscription_id, "account_id": account_id},
        )
        self.subscription_id = subscription_id

class TenantResolutionError(PimRolesException):
    """Raised when directory data needed to resolve a tenant is inconsistent."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="tenant_resolution_error", details=details)

class AdapterError(PimRolesException):
    """Raised when an upstream Azure API call fails."""
    def __init__(self, message: str, code: str = "adapter_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)

class ConfigurationError(PimRolesException):
    """Raised when configuration is invalid or missing."""
    def __init__(self, message: str, code: str = "config_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)

class RoleDeactivationError(PimRolesException):
    """Raised when a role cannot be deactivated yet (not active, or inside the PIM minimum activation time)."""
    def __init__(self, role_id: str, reason: str):
        super().__init__(
            f"Role {role_id} cannot be deactivated: {reason}",
            code="role_not_deactivatable",
            details={"role_id": role_id, "reason": reason},
        )
        self.role_id = role_id
