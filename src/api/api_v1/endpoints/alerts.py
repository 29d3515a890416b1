import logging
import time
from typing import Optional

from fastapi import APIRouter, HTTPException

from api.api_v1.deps import SessionDep, VaultServiceDep
from api.api_v1.params import is_true
from core.config import settings
from schemas.alert import AlertsResponse, AlertThresholds
from services.alert_service import detect_alerts
from services.snapshot_service import ensure_platform_for_summary, get_latest_snapshot

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("", response_model=AlertsResponse)
async def get_alerts(
    session: SessionDep,
    vault_service: VaultServiceDep,
    refresh: Optional[str] = None,
):
    apy_delta_threshold = settings.THRESHOLD_APY_DELTA
    tvl_drop_threshold = settings.THRESHOLD_TVL_DROP

    try:
        summaries = await vault_service.get_tracked_vault_summaries(
            refresh=is_true(refresh)
        )
    except Exception as e:
        logger.error("Failed to fetch vaults for alerts: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to evaluate alerts")

    alerts = []
    for summary in summaries:
        platform = await ensure_platform_for_summary(session, summary)
        latest_snapshot = await get_latest_snapshot(session, platform.id)
        alerts.extend(
            detect_alerts(
                summary, latest_snapshot, apy_delta_threshold, tvl_drop_threshold
            )
        )

    return AlertsResponse(
        count=len(alerts),
        alerts=alerts,
        fetched_at=int(time.time() * 1000),
        thresholds=AlertThresholds(
            apy_delta=apy_delta_threshold, tvl_drop=tvl_drop_threshold
        ),
    )
