from typing import Dict, List

from schemas.base import CamelModel
from schemas.onchain import PositionPayload
from schemas.vault import Tvl, VaultApyIntervals, VaultAsset


class VaultBalance(CamelModel):
    key: str
    name: str
    protocol: str
    address: str
    network: str
    apy: VaultApyIntervals
    tvl: Tvl
    asset: VaultAsset
    balance_usd: float
    position: PositionPayload | None = None


class SummaryVault(VaultBalance):
    weight: float
    projections: Dict[str, float]


class SummaryTotals(CamelModel):
    balance_usd: float
    blended_apy: float
    projections: Dict[str, float]


class SummaryResponse(CamelModel):
    wallet: str
    compound_weekly: bool
    totals: SummaryTotals
    vaults: List[SummaryVault]
    snapshots_persisted: int
    fetched_at: int


class WalletTotals(CamelModel):
    balance_usd: float


class WalletResponse(CamelModel):
    wallet: str
    totals: WalletTotals
    vaults: List[VaultBalance]
    fetched_at: int
