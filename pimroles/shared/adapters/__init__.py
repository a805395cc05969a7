from .azure_credentials import AzureIdentityCredentialProvider
from .azure_directory import AzureDirectorySource
from .azure_pim import ArmPimSource, GraphGroupPimSource, GraphRolePimSource

__all__ = [
    "AzureIdentityCredentialProvider",
    "AzureDirectorySource",
    "ArmPimSource",
    "GraphRolePimSource",
    "GraphGroupPimSource",
]
