import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from schemas.onchain import PositionPayload, VaultPosition
from schemas.portfolio import (
    SummaryResponse,
    SummaryTotals,
    SummaryVault,
    VaultBalance,
    WalletResponse,
    WalletTotals,
)
from schemas.vault import Tvl, VaultSummary
from services.onchain_service import OnchainService, to_usd_value
from utils.metrics import (
    BlendedApyInput,
    aggregate_projections,
    build_earnings_projections,
    calculate_blended_apy,
)

logger = logging.getLogger(__name__)


@dataclass
class VaultHolding:
    summary: VaultSummary
    balance_usd: float
    position: Optional[VaultPosition]


async def read_holding(
    onchain_service: OnchainService, wallet: str, summary: VaultSummary
) -> VaultHolding:
    """Read the wallet position in one vault; a failed read counts as zero balance."""
    try:
        position = await onchain_service.get_vault_position(wallet, summary.address)
    except Exception as e:
        logger.warning(
            "Failed to read position for wallet %s in vault %s: %s",
            wallet,
            summary.address,
            e,
        )
        return VaultHolding(summary=summary, balance_usd=0.0, position=None)

    balance_usd = to_usd_value(position.underlying.amount, summary.asset.price_usd)
    return VaultHolding(summary=summary, balance_usd=balance_usd, position=position)


async def read_holdings(
    onchain_service: OnchainService, wallet: str, summaries: List[VaultSummary]
) -> List[VaultHolding]:
    return list(
        await asyncio.gather(
            *[read_holding(onchain_service, wallet, summary) for summary in summaries]
        )
    )


def _vault_fields(holding: VaultHolding) -> dict:
    summary = holding.summary
    return dict(
        key=summary.key,
        name=summary.name,
        protocol=summary.protocol,
        address=summary.address,
        network=summary.network,
        apy=summary.apy,
        tvl=Tvl(usd=summary.tvl_usd, native=summary.tvl_native),
        asset=summary.asset,
        balance_usd=holding.balance_usd,
        position=(
            PositionPayload.from_position(holding.position)
            if holding.position is not None
            else None
        ),
    )


def build_wallet_response(wallet: str, holdings: List[VaultHolding]) -> WalletResponse:
    return WalletResponse(
        wallet=wallet,
        totals=WalletTotals(balance_usd=sum(h.balance_usd for h in holdings)),
        vaults=[VaultBalance(**_vault_fields(holding)) for holding in holdings],
        fetched_at=int(time.time() * 1000),
    )


def build_summary_response(
    wallet: str,
    holdings: List[VaultHolding],
    compound_weekly: bool,
    snapshots_persisted: int = 0,
) -> SummaryResponse:
    """Blend per-vault balances into portfolio totals.

    APY and projections use each vault's 1-day total APY.
    """
    total_balance = sum(holding.balance_usd for holding in holdings)
    blended_apy = calculate_blended_apy(
        [
            BlendedApyInput(
                balance_usd=holding.balance_usd,
                apy_percent=holding.summary.apy.one_day.total,
            )
            for holding in holdings
        ]
    )

    vaults = []
    for holding in holdings:
        projections = build_earnings_projections(
            holding.balance_usd, holding.summary.apy.one_day.total, compound_weekly
        )
        vaults.append(
            SummaryVault(
                **_vault_fields(holding),
                weight=holding.balance_usd / total_balance if total_balance > 0 else 0,
                projections=projections,
            )
        )

    return SummaryResponse(
        wallet=wallet,
        compound_weekly=compound_weekly,
        totals=SummaryTotals(
            balance_usd=total_balance,
            blended_apy=blended_apy,
            projections=aggregate_projections([v.projections for v in vaults]),
        ),
        vaults=vaults,
        snapshots_persisted=snapshots_persisted,
        fetched_at=int(time.time() * 1000),
    )
