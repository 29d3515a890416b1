import asyncio
import logging
import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.api_v1.deps import VaultServiceDep
from api.api_v1.params import is_true, parse_enum, parse_int
from core import constants
from core.constants import ApyInterval, Granularity
from core.exceptions import InvalidAddressError
from schemas.vault import (
    VaultDetailResponse,
    VaultHistoryOptions,
    VaultListEntry,
    VaultsResponse,
)
from services.onchain_service import normalize_address

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/vaults", response_model=VaultsResponse)
async def get_vaults(
    vault_service: VaultServiceDep,
    history: Optional[str] = None,
    refresh: Optional[str] = None,
    apy_interval: Optional[str] = Query(None, alias="apyInterval"),
    granularity: Optional[str] = None,
    page: Optional[str] = None,
    per_page: Optional[str] = Query(None, alias="perPage"),
):
    refresh_cache = is_true(refresh)
    try:
        summaries = await vault_service.get_tracked_vault_summaries(
            refresh=refresh_cache
        )

        histories = [None] * len(summaries)
        if is_true(history):
            options = VaultHistoryOptions(
                apy_interval=parse_enum(ApyInterval, apy_interval),
                granularity=parse_enum(Granularity, granularity),
                page=parse_int(page),
                per_page=parse_int(per_page),
                refresh=refresh_cache,
            )
            histories = await asyncio.gather(
                *[
                    vault_service.get_vault_history(summary.key, options)
                    for summary in summaries
                ]
            )
    except Exception as e:
        logger.error("Failed to fetch vaults: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch vault data")

    return VaultsResponse(
        data=[
            VaultListEntry.from_summary(summary, vault_history)
            for summary, vault_history in zip(summaries, histories)
        ],
        fetched_at=int(time.time() * 1000),
    )


@router.get("/vault/{network}/{address}", response_model=VaultDetailResponse)
async def get_vault_detail(
    vault_service: VaultServiceDep,
    network: str,
    address: str,
    summary: Optional[str] = None,
    history: Optional[str] = None,
    refresh: Optional[str] = None,
    apy_interval: Optional[str] = Query(None, alias="apyInterval"),
    granularity: Optional[str] = None,
    from_timestamp: Optional[str] = Query(None, alias="fromTimestamp"),
    to_timestamp: Optional[str] = Query(None, alias="toTimestamp"),
    page: Optional[str] = None,
    per_page: Optional[str] = Query(None, alias="perPage"),
):
    normalized_network = network.lower()
    if normalized_network != constants.CHAIN_BASE:
        raise HTTPException(
            status_code=400, detail=f'Unsupported network "{network}"'
        )

    try:
        checksum = normalize_address(address)
    except InvalidAddressError:
        raise HTTPException(status_code=400, detail="Invalid address")

    include_summary = summary != "false"
    include_history = is_true(history)
    refresh_cache = is_true(refresh)

    try:
        detail = await vault_service.get_vault_detail(
            normalized_network, checksum, refresh=refresh_cache
        )
        response = VaultDetailResponse(detail=detail, fetched_at=0)

        if include_summary or include_history:
            detail_address = str(detail.get("address") or checksum).lower()
            summaries = await vault_service.get_tracked_vault_summaries(
                refresh=refresh_cache
            )
            tracked = next(
                (s for s in summaries if s.address.lower() == detail_address), None
            )

            if include_summary:
                response.summary = tracked

            if include_history:
                if tracked is None:
                    raise HTTPException(
                        status_code=404,
                        detail="History available only for tracked vaults",
                    )

                response.history = await vault_service.get_vault_history(
                    tracked.key,
                    VaultHistoryOptions(
                        apy_interval=parse_enum(ApyInterval, apy_interval),
                        granularity=parse_enum(Granularity, granularity),
                        from_timestamp=parse_int(from_timestamp),
                        to_timestamp=parse_int(to_timestamp),
                        page=parse_int(page),
                        per_page=parse_int(per_page),
                        refresh=refresh_cache,
                    ),
                )
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to fetch vault detail: %s", e, exc_info=True)
        raise HTTPException(status_code=404, detail="Vault not found")

    response.fetched_at = int(time.time() * 1000)
    return response
