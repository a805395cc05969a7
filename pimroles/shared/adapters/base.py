import logging
from collections.abc import Mapping
from typing import Any, Optional

import httpx
import structlog
import tenacity

from pimroles.core.exceptions import AdapterError, ConfigurationError
from pimroles.shared.core.async_utils import source_result
from pimroles.shared.core.config import get_settings
from pimroles.shared.core.credentials import AzureAccount
from pimroles.shared.core.http import get_http_client
from pimroles.shared.core.sources import CredentialProvider

logger = structlog.get_logger()

# Cap on pages followed per listing; guards against a nextLink loop
MAX_PAGES = 100


class AzureRestAdapter:
    """
    Shared plumbing for the Azure REST adapters: bearer tokens from the
    account's credential, transient transport failures retried with
    exponential backoff, and ``nextLink`` paging for list endpoints.
    """

    token_scope: str = ""
    retry_wait: Any = tenacity.wait_exponential(multiplier=1, min=2, max=10)

    def __init__(
        self,
        credential_provider: CredentialProvider,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credential_provider = credential_provider
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._http_client or get_http_client()

    async def _get_token(self, account: AzureAccount, scope: str) -> str:
        if not scope:
            raise ConfigurationError(
                f"{type(self).__name__} has no token scope configured"
            )
        credential = await source_result(self.credential_provider.get_credential(account))
        access_token = await credential.get_token(scope)
        return access_token.token

    async def _send(
        self,
        url: str,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]],
    ) -> httpx.Response:
        retrying = tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception_type(httpx.TransportError),
            wait=self.retry_wait,
            stop=tenacity.stop_after_attempt(get_settings().HTTP_MAX_RETRIES),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self.http_client.get(url, headers=headers, params=params)
        raise AdapterError(f"Azure request to {url} was not attempted")

    async def _get_json(
        self,
        account: AzureAccount,
        url: str,
        params: Optional[Mapping[str, str]] = None,
        *,
        token_scope: Optional[str] = None,
    ) -> dict[str, Any]:
        token = await self._get_token(account, token_scope or self.token_scope)
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        try:
            response = await self._send(url, headers, params)
        except httpx.TransportError as e:
            logger.error("azure_request_failed", url=url, error=str(e))
            raise AdapterError(
                f"Azure request failed: {e}", details={"url": url}
            ) from e

        if response.is_error:
            logger.error(
                "azure_request_rejected",
                url=url,
                status_code=response.status_code,
                account_id=account.account_id,
            )
            raise AdapterError(
                f"Azure request to {url} failed with status {response.status_code}",
                code="azure_http_error",
                details={"url": url, "status_code": response.status_code},
            )
        return response.json()

    async def _list_paged(
        self,
        account: AzureAccount,
        url: str,
        params: Optional[Mapping[str, str]] = None,
        *,
        token_scope: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Collects ``value`` across pages; ARM uses ``nextLink``, Graph ``@odata.nextLink``."""
        items: list[dict[str, Any]] = []
        next_url: Optional[str] = url
        next_params = params
        for _ in range(MAX_PAGES):
            if not next_url:
                break
            payload = await self._get_json(
                account, next_url, next_params, token_scope=token_scope
            )
            items.extend(payload.get("value") or [])
            next_url = payload.get("nextLink") or payload.get("@odata.nextLink")
            # next links already carry the query string
            next_params = None
        else:
            if next_url:
                logger.warning("azure_paging_truncated", url=url, max_pages=MAX_PAGES)
        return items
