import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from core import constants
from core.cache import AsyncTTLCache
from core.config import settings
from core.constants import TRACKED_VAULTS, TrackedVault
from core.exceptions import UnknownVaultError, VaultNotFoundError
from schemas.vault import (
    VaultApyBreakdown,
    VaultApyIntervals,
    VaultAsset,
    VaultHistoricalPoint,
    VaultHistory,
    VaultHistoryOptions,
    VaultHolders,
    VaultReward,
    VaultSummary,
)
from services.vaultsfyi_service import VaultsFyiClient

logger = logging.getLogger(__name__)

_APY_INTERVALS = {"one_day": "1day", "seven_days": "7day", "thirty_days": "30day"}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def map_apy_intervals(data: Dict[str, Any]) -> VaultApyIntervals:
    return VaultApyIntervals(
        **{
            field: VaultApyBreakdown(
                base=_to_float(data[interval].get("base")),
                reward=_to_float(data[interval].get("reward")),
                total=_to_float(data[interval].get("total")),
            )
            for field, interval in _APY_INTERVALS.items()
        }
    )


def map_asset(asset: Dict[str, Any]) -> VaultAsset:
    return VaultAsset(
        address=asset["address"],
        symbol=asset["symbol"],
        name=asset["name"],
        decimals=asset["decimals"],
        price_usd=_to_optional_float(asset.get("assetPriceInUsd")) or None,
        logo_url=asset.get("assetLogo"),
    )


def map_lp_token(lp_token: Optional[Dict[str, Any]]) -> Optional[VaultAsset]:
    if not lp_token:
        return None

    return VaultAsset(
        address=lp_token["address"],
        symbol=lp_token["symbol"],
        name=lp_token["name"],
        decimals=lp_token["decimals"],
    )


def map_rewards(rewards: Optional[List[Dict[str, Any]]]) -> List[VaultReward]:
    if not rewards:
        return []

    mapped = []
    for reward in rewards:
        apy = {}
        for field, interval in _APY_INTERVALS.items():
            value = _to_float(reward["apy"].get(interval))
            apy[field] = VaultApyBreakdown(base=0, reward=value, total=value)
        mapped.append(
            VaultReward(asset=map_asset(reward["asset"]), apy=VaultApyIntervals(**apy))
        )
    return mapped


def map_holders(holders: Optional[Dict[str, Any]]) -> Optional[VaultHolders]:
    if not holders:
        return None

    top_holders = holders.get("topHolders")
    return VaultHolders(
        total_count=holders.get("totalCount"),
        total_balance=_to_optional_float(holders.get("totalBalance")),
        top_holders=(
            [
                {
                    "address": holder["address"],
                    "lp_token_balance": _to_float(holder.get("lpTokenBalance")),
                }
                for holder in top_holders
            ]
            if top_holders is not None
            else None
        ),
    )


def to_summary(definition: TrackedVault, item: Dict[str, Any]) -> VaultSummary:
    tvl = item.get("tvl") or {}
    return VaultSummary(
        key=definition.key,
        address=item["address"],
        network=item["network"]["name"],
        name=item["name"],
        protocol=item["protocol"]["name"],
        asset=map_asset(item["asset"]),
        apy=map_apy_intervals(item["apy"]),
        tvl_usd=_to_float(tvl.get("usd")),
        tvl_native=_to_float(tvl.get("native")),
        rewards=map_rewards(item.get("rewards")),
        holders=map_holders(item.get("holdersData")),
        lp_token=map_lp_token(item.get("lpToken")),
        fetched_at=_now_ms(),
        raw=item,
    )


def map_history_points(response: Dict[str, Any]) -> List[VaultHistoricalPoint]:
    return [
        VaultHistoricalPoint(
            timestamp=int(point["timestamp"]) * 1000,
            block_number=str(point.get("blockNumber", "")),
            apy=VaultApyBreakdown(
                base=_to_float(point["apy"].get("base")),
                reward=_to_float(point["apy"].get("reward")),
                total=_to_float(point["apy"].get("total")),
            ),
            tvl_usd=_to_float(point["tvl"].get("usd")),
            tvl_native=_to_float(point["tvl"].get("native")),
            share_price=_to_float(point.get("sharePrice")),
        )
        for point in response.get("data", [])
    ]


def find_vault_by_definition(
    definition: TrackedVault, data: List[Dict[str, Any]]
) -> Dict[str, Any]:
    for item in data:
        if item["name"].lower() == definition.name.lower():
            return item

    raise VaultNotFoundError(
        f'Vault "{definition.name}" not found in Vaults.fyi response'
    )


def get_tracked_vault(key: str) -> TrackedVault:
    for vault in TRACKED_VAULTS:
        if vault.key == key:
            return vault
    raise UnknownVaultError(key)


class VaultService:
    def __init__(
        self,
        client: VaultsFyiClient,
        cache: Optional[AsyncTTLCache] = None,
        summary_ttl: Optional[float] = None,
        history_ttl: Optional[float] = None,
    ):
        self.client = client
        self.cache = cache or AsyncTTLCache()
        self.summary_ttl = (
            summary_ttl if summary_ttl is not None else settings.SUMMARY_CACHE_TTL
        )
        self.history_ttl = (
            history_ttl if history_ttl is not None else settings.HISTORY_CACHE_TTL
        )

    async def load_vault_list(
        self, network: str, refresh: bool = False
    ) -> Dict[str, Any]:
        return await self.cache.get_or_fetch(
            f"vaults:list:{network}",
            lambda: self.client.get_all_vaults(
                allowed_networks=[network], per_page=constants.VAULTS_LIST_PER_PAGE
            ),
            self.summary_ttl,
            refresh=refresh,
        )

    async def get_tracked_vault_summaries(
        self, refresh: bool = False
    ) -> List[VaultSummary]:
        response = await self.load_vault_list(constants.CHAIN_BASE, refresh=refresh)
        data = response.get("data", [])
        return [
            to_summary(definition, find_vault_by_definition(definition, data))
            for definition in TRACKED_VAULTS
        ]

    async def get_vault_summary_by_key(
        self, key: str, refresh: bool = False
    ) -> VaultSummary:
        definition = get_tracked_vault(key)
        response = await self.load_vault_list(definition.network, refresh=refresh)
        return to_summary(
            definition, find_vault_by_definition(definition, response.get("data", []))
        )

    async def get_vault_detail(
        self, network: str, address: str, refresh: bool = False
    ) -> Dict[str, Any]:
        return await self.cache.get_or_fetch(
            f"vaults:detail:{network}:{address}",
            lambda: self.client.get_vault(network, address),
            self.summary_ttl,
            refresh=refresh,
        )

    async def get_vault_history(
        self, key: str, options: Optional[VaultHistoryOptions] = None
    ) -> VaultHistory:
        options = options or VaultHistoryOptions()
        summary = await self.get_vault_summary_by_key(key, refresh=options.refresh)

        apy_interval = options.apy_interval.value if options.apy_interval else None
        granularity = options.granularity.value if options.granularity else None
        cache_key = ":".join(
            [
                "vaults:history",
                summary.network,
                summary.address,
                apy_interval or "1day",
                granularity or "1day",
                str(options.page if options.page is not None else 0),
                str(
                    options.per_page
                    if options.per_page is not None
                    else constants.HISTORY_DEFAULT_PER_PAGE
                ),
            ]
        )

        history = await self.cache.get_or_fetch(
            cache_key,
            lambda: self.client.get_vault_historical_data(
                summary.network,
                summary.address,
                apy_interval=apy_interval,
                granularity=granularity,
                from_timestamp=options.from_timestamp,
                to_timestamp=options.to_timestamp,
                page=options.page,
                per_page=options.per_page,
            ),
            self.history_ttl,
            refresh=options.refresh,
        )

        return VaultHistory(
            key=key,
            address=summary.address,
            network=summary.network,
            points=map_history_points(history),
            next_page=history.get("nextPage"),
            fetched_at=_now_ms(),
        )

    async def refresh_tracked_vault_caches(self) -> None:
        await asyncio.gather(
            *[
                self.get_vault_summary_by_key(vault.key, refresh=True)
                for vault in TRACKED_VAULTS
            ]
        )

    async def aclose(self) -> None:
        await self.client.aclose()
