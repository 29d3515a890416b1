import logging
import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from api.api_v1.deps import SessionDep, VaultServiceDep
from api.api_v1.params import clamp_limit, is_true
from core import constants
from schemas.snapshot import (
    SnapshotCreate,
    SnapshotCreatedResponse,
    SnapshotSchema,
    SnapshotsResponse,
)
from services.snapshot_service import (
    SnapshotOverrides,
    list_snapshots,
    record_snapshot_for_summary,
)

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("", response_model=SnapshotsResponse)
async def get_snapshots(
    session: SessionDep,
    platform_key: Optional[str] = Query(None, alias="platformKey"),
    limit: Optional[str] = None,
):
    if platform_key and platform_key not in constants.TRACKED_VAULT_KEYS:
        raise HTTPException(status_code=400, detail="Invalid platformKey")

    take = clamp_limit(
        limit, constants.SNAPSHOTS_DEFAULT_LIMIT, constants.SNAPSHOTS_MAX_LIMIT
    )
    rows = await list_snapshots(session, platform_key=platform_key or None, limit=take)
    return SnapshotsResponse(
        count=len(rows),
        data=[SnapshotSchema.from_row(snapshot, platform) for snapshot, platform in rows],
        fetched_at=int(time.time() * 1000),
    )


@router.post(
    "",
    response_model=SnapshotCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_snapshot(
    session: SessionDep,
    vault_service: VaultServiceDep,
    payload: SnapshotCreate,
    refresh: Optional[str] = None,
):
    if payload.platform_key not in constants.TRACKED_VAULT_KEYS:
        raise HTTPException(status_code=400, detail="Invalid platformKey")

    try:
        summary = await vault_service.get_vault_summary_by_key(
            payload.platform_key, refresh=is_true(refresh)
        )
        snapshot, platform = await record_snapshot_for_summary(
            session,
            summary,
            SnapshotOverrides(
                taken_at=payload.taken_at,
                apy_1d=payload.apy_1d,
                apy_7d=payload.apy_7d,
                apy_30d=payload.apy_30d,
                tvl_usd=payload.tvl_usd,
                balance_usd=payload.balance_usd,
                earnings_to_date=payload.earnings_to_date,
            ),
        )
    except Exception as e:
        logger.error(
            "Failed to record snapshot for %s: %s", payload.platform_key, e, exc_info=True
        )
        raise HTTPException(status_code=500, detail="Failed to record snapshot")

    return SnapshotCreatedResponse(
        snapshot=SnapshotSchema.from_row(snapshot, platform),
        created_at=int(time.time() * 1000),
    )
