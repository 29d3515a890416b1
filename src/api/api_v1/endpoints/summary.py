import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.api_v1.deps import OnchainServiceDep, SessionDep, VaultServiceDep
from api.api_v1.params import is_true
from core.config import settings
from core.exceptions import InvalidAddressError
from schemas.portfolio import SummaryResponse
from services.onchain_service import normalize_address
from services.portfolio_service import build_summary_response, read_holdings
from services.snapshot_service import SnapshotOverrides, record_snapshot_for_summary

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("", response_model=SummaryResponse)
async def get_summary(
    session: SessionDep,
    vault_service: VaultServiceDep,
    onchain_service: OnchainServiceDep,
    wallet: Optional[str] = None,
    compound: Optional[str] = None,
    weekly_compounding: Optional[str] = Query(None, alias="weeklyCompounding"),
    refresh: Optional[str] = None,
    persist: Optional[str] = None,
):
    wallet = wallet or settings.DEFAULT_WALLET
    if not wallet:
        raise HTTPException(
            status_code=400,
            detail="Wallet address required (set DEFAULT_WALLET or use ?wallet=...)",
        )

    try:
        wallet = normalize_address(wallet)
    except InvalidAddressError:
        raise HTTPException(status_code=400, detail="Invalid address")

    compound_weekly = compound == "weekly" or is_true(weekly_compounding)

    try:
        summaries = await vault_service.get_tracked_vault_summaries(
            refresh=is_true(refresh)
        )
        holdings = await read_holdings(onchain_service, wallet, summaries)

        snapshots_persisted = 0
        if persist != "false":
            for holding in holdings:
                try:
                    await record_snapshot_for_summary(
                        session,
                        holding.summary,
                        SnapshotOverrides(balance_usd=holding.balance_usd),
                    )
                    snapshots_persisted += 1
                except Exception as e:
                    await session.rollback()
                    logger.warning(
                        "Failed to persist snapshot for %s: %s",
                        holding.summary.key,
                        e,
                    )

        return build_summary_response(
            wallet, holdings, compound_weekly, snapshots_persisted
        )
    except Exception as e:
        logger.error("Failed to build summary: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build summary")
