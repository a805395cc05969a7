"""
Typed account identity.
An authenticated MSAL account reduced to the fields the resolver and the
role inventory need; every per-account cache is keyed by `account_id`.
"""
from pydantic import BaseModel, ConfigDict
from typing import Optional

class AzureAccount(BaseModel):
    """A signed-in Entra ID account."""
    model_config = ConfigDict(frozen=True)

    home_account_id: str
    local_account_id: str
    tenant_id: str
    username: Optional[str] = None
    name: Optional[str] = None

    @property
    def account_id(self) -> str:
        return self.home_account_id
