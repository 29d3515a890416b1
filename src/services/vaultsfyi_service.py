import logging
from typing import Any, Dict, List, Optional

import httpx

from core.config import settings
from core.exceptions import VaultNotFoundError, VaultsFyiConfigError, VaultsFyiError

logger = logging.getLogger(__name__)


class VaultsFyiClient:
    """Thin async client over the Vaults.fyi v2 REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        api_key = api_key if api_key is not None else settings.VAULTSFYI_API_KEY
        if not api_key:
            raise VaultsFyiConfigError(
                "VAULTSFYI_API_KEY is required to query Vaults.fyi"
            )

        self.base_url = (base_url or settings.VAULTSFYI_API_URL).rstrip("/")
        self._client = http_client or httpx.AsyncClient()
        self._headers = {"accept": "application/json", "x-api-key": api_key}

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = await self._client.get(
                f"{self.base_url}{path}", params=query, headers=self._headers
            )
        except httpx.HTTPError as e:
            raise VaultsFyiError(f"Error occurred while calling Vaults.fyi: {e}") from e

        if response.status_code == 404:
            raise VaultNotFoundError(f"Vaults.fyi resource not found: {path}")
        if response.status_code != 200:
            raise VaultsFyiError(
                f"Request failed with status {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    async def get_all_vaults(
        self, allowed_networks: List[str], per_page: int = 250
    ) -> Dict[str, Any]:
        return await self._get(
            "/detailed-vaults",
            {"allowedNetworks": allowed_networks, "perPage": per_page},
        )

    async def get_vault(self, network: str, vault_address: str) -> Dict[str, Any]:
        return await self._get(f"/detailed-vaults/{network}/{vault_address}")

    async def get_vault_historical_data(
        self,
        network: str,
        vault_address: str,
        apy_interval: Optional[str] = None,
        granularity: Optional[str] = None,
        from_timestamp: Optional[int] = None,
        to_timestamp: Optional[int] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> Dict[str, Any]:
        return await self._get(
            f"/historical/{network}/{vault_address}",
            {
                "apyInterval": apy_interval,
                "granularity": granularity,
                "fromTimestamp": from_timestamp,
                "toTimestamp": to_timestamp,
                "page": page,
                "perPage": per_page,
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()
