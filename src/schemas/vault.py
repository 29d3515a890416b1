from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from core.constants import ApyInterval, Granularity
from schemas.base import CamelModel


class VaultApyBreakdown(CamelModel):
    base: float = 0.0
    reward: float = 0.0
    total: float = 0.0


class VaultApyIntervals(CamelModel):
    one_day: VaultApyBreakdown = Field(alias="1d")
    seven_days: VaultApyBreakdown = Field(alias="7d")
    thirty_days: VaultApyBreakdown = Field(alias="30d")


class VaultAsset(CamelModel):
    address: str
    symbol: str
    name: str
    decimals: int
    price_usd: float | None = None
    logo_url: str | None = None


class VaultReward(CamelModel):
    asset: VaultAsset
    apy: VaultApyIntervals


class TopHolder(CamelModel):
    address: str
    lp_token_balance: float


class VaultHolders(CamelModel):
    total_count: int | None = None
    total_balance: float | None = None
    top_holders: List[TopHolder] | None = None


class Tvl(CamelModel):
    usd: float
    native: float


class VaultSummary(CamelModel):
    """Point-in-time view of a tracked vault, as reported by Vaults.fyi."""

    model_config = ConfigDict(frozen=True)

    key: str
    address: str
    network: str
    name: str
    protocol: str
    asset: VaultAsset
    apy: VaultApyIntervals
    tvl_usd: float
    tvl_native: float
    rewards: List[VaultReward] = []
    holders: VaultHolders | None = None
    lp_token: VaultAsset | None = None
    # epoch milliseconds
    fetched_at: int
    raw: Dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)


class VaultHistoricalPoint(CamelModel):
    # epoch milliseconds
    timestamp: int
    block_number: str
    apy: VaultApyBreakdown
    tvl_usd: float
    tvl_native: float
    share_price: float


class VaultHistory(CamelModel):
    key: str
    address: str
    network: str
    points: List[VaultHistoricalPoint] = []
    next_page: int | None = None
    fetched_at: int


class VaultHistoryOptions(CamelModel):
    apy_interval: ApyInterval | None = None
    granularity: Granularity | None = None
    from_timestamp: int | None = None
    to_timestamp: int | None = None
    page: int | None = None
    per_page: int | None = None
    refresh: bool = False


class VaultHistoryPage(CamelModel):
    points: List[VaultHistoricalPoint] = []
    next_page: int | None = None
    fetched_at: int


class VaultListEntry(CamelModel):
    key: str
    name: str
    protocol: str
    address: str
    network: str
    apy: VaultApyIntervals
    tvl: Tvl
    asset: VaultAsset
    rewards: List[VaultReward] = []
    holders: VaultHolders | None = None
    lp_token: VaultAsset | None = None
    fetched_at: int
    history: VaultHistoryPage | None = None

    @classmethod
    def from_summary(
        cls, summary: VaultSummary, history: Optional[VaultHistory] = None
    ) -> "VaultListEntry":
        return cls(
            key=summary.key,
            name=summary.name,
            protocol=summary.protocol,
            address=summary.address,
            network=summary.network,
            apy=summary.apy,
            tvl=Tvl(usd=summary.tvl_usd, native=summary.tvl_native),
            asset=summary.asset,
            rewards=summary.rewards,
            holders=summary.holders,
            lp_token=summary.lp_token,
            fetched_at=summary.fetched_at,
            history=(
                VaultHistoryPage(
                    points=history.points,
                    next_page=history.next_page,
                    fetched_at=history.fetched_at,
                )
                if history is not None
                else None
            ),
        )


class VaultsResponse(CamelModel):
    data: List[VaultListEntry]
    fetched_at: int


class VaultDetailResponse(CamelModel):
    detail: Dict[str, Any]
    summary: VaultSummary | None = None
    history: VaultHistory | None = None
    fetched_at: int
