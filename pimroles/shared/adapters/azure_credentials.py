from typing import Callable, Optional

import structlog
from azure.core.credentials_async import AsyncTokenCredential
from azure.identity.aio import AzureCliCredential

from pimroles.shared.core.credentials import AzureAccount

logger = structlog.get_logger()

CredentialFactory = Callable[[AzureAccount], AsyncTokenCredential]


def _azure_cli_credential(account: AzureAccount) -> AsyncTokenCredential:
    return AzureCliCredential(tenant_id=account.tenant_id)


class AzureIdentityCredentialProvider:
    """
    Hands out one azure-identity async credential per account, created on
    first use. Defaults to the Azure CLI login for the account's home tenant.
    """

    def __init__(self, factory: Optional[CredentialFactory] = None):
        self._factory = factory or _azure_cli_credential
        self._credentials: dict[str, AsyncTokenCredential] = {}

    def get_credential(self, account: AzureAccount) -> AsyncTokenCredential:
        credential = self._credentials.get(account.account_id)
        if credential is None:
            credential = self._factory(account)
            self._credentials[account.account_id] = credential
            logger.debug("azure_credential_created", account_id=account.account_id)
        return credential

    async def close_account(self, account_id: str) -> None:
        """Close and forget the credential of a signed-out account."""
        credential = self._credentials.pop(account_id, None)
        if credential is not None:
            await credential.close()

    async def close(self) -> None:
        for account_id in list(self._credentials):
            await self.close_account(account_id)
