from datetime import timedelta
from typing import Literal

SourceType = Literal["arm", "graph", "group"]

# Status values that mean "currently active" per provider. ARM reports the
# instance status; Graph and PIM for Groups only expose assignmentType.
ACTIVE_STATUS_BY_SOURCE: dict[SourceType, str] = {
    "arm": "Provisioned",
    "graph": "Activated",
    "group": "Activated",
}

# Azure PIM refuses deactivation of a role activated less than 5 minutes ago.
AZURE_PIM_MIN_ACTIVATION_TIME = timedelta(minutes=5)

# Display name sentinels for provider records without expanded properties
UNKNOWN_ROLE = "Unknown Role"
UNKNOWN_SCOPE = "Unknown Scope"
UNKNOWN_GROUP = "Unknown Group"
DIRECTORY_SCOPE = "/"
DIRECTORY_SCOPE_DISPLAY_NAME = "Directory"

# Azure portal
AZURE_PORTAL_HOST = "portal.azure.com"
AZURE_PORTAL_RESOURCE_BASE = "https://portal.azure.com/#@/resource"
AZURE_PORTAL_MANAGEMENT_GROUP_BASE = (
    "https://portal.azure.com/#view/Microsoft_Azure_ManagementGroups/"
    "ManagementGroupDrilldownMenuBlade/~/overview/mgId/"
)

# Token scopes for the bundled REST adapters
ARM_TOKEN_SCOPE = "https://management.azure.com/.default"
GRAPH_TOKEN_SCOPE = "https://graph.microsoft.com/.default"
