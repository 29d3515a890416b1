import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from core.constants import TRACKED_VAULTS
from core.exceptions import UnknownVaultError
from models.platforms import Platform
from models.snapshots import Snapshot
from schemas.base import ensure_utc
from schemas.vault import VaultSummary

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class SnapshotOverrides:
    taken_at: Optional[datetime] = None
    apy_1d: Optional[float] = None
    apy_7d: Optional[float] = None
    apy_30d: Optional[float] = None
    tvl_usd: Optional[float] = None
    balance_usd: Optional[float] = None
    earnings_to_date: Optional[float] = None


async def ensure_platform(
    session: AsyncSession,
    key: str,
    name: str,
    network: str,
    vault_addr=_UNSET,
) -> Platform:
    """Insert or update the platform row identified by ``key``.

    ``name`` and ``network`` are always brought in sync; ``vault_addr`` only
    when explicitly passed (``None`` clears it).
    """
    platform = (
        await session.exec(select(Platform).where(Platform.key == key))
    ).first()

    if platform is None:
        platform = Platform(
            key=key,
            name=name,
            network=network,
            vault_addr=None if vault_addr is _UNSET else vault_addr,
        )
        session.add(platform)
    else:
        platform.name = name
        platform.network = network
        if vault_addr is not _UNSET:
            platform.vault_addr = vault_addr
        platform.updated_at = datetime.now(timezone.utc)

    await session.commit()
    await session.refresh(platform)
    return platform


async def ensure_platform_for_summary(
    session: AsyncSession, summary: VaultSummary
) -> Platform:
    return await ensure_platform(
        session,
        key=summary.key,
        name=summary.name,
        network=summary.network,
        vault_addr=summary.address,
    )


async def ensure_tracked_platforms(session: AsyncSession) -> List[Platform]:
    return [
        await ensure_platform(
            session, key=vault.key, name=vault.name, network=vault.network
        )
        for vault in TRACKED_VAULTS
    ]


async def get_platform_by_key(session: AsyncSession, key: str) -> Optional[Platform]:
    return (await session.exec(select(Platform).where(Platform.key == key))).first()


async def get_platform_or_raise(session: AsyncSession, key: str) -> Platform:
    platform = await get_platform_by_key(session, key)
    if platform is not None:
        return platform

    await ensure_tracked_platforms(session)
    platform = await get_platform_by_key(session, key)
    if platform is None:
        raise UnknownVaultError(key)
    return platform


async def list_platforms(session: AsyncSession) -> List[Platform]:
    return list(
        (await session.exec(select(Platform).order_by(Platform.created_at))).all()
    )


async def record_snapshot_for_summary(
    session: AsyncSession,
    summary: VaultSummary,
    overrides: Optional[SnapshotOverrides] = None,
) -> Tuple[Snapshot, Platform]:
    """Persist a new snapshot row for ``summary``; existing rows are never touched."""
    overrides = overrides or SnapshotOverrides()
    platform = await ensure_platform_for_summary(session, summary)

    def pick(override: Optional[float], fallback: float) -> float:
        return override if override is not None else fallback

    snapshot = Snapshot(
        platform_id=platform.id,
        taken_at=(
            ensure_utc(overrides.taken_at)
            if overrides.taken_at
            else datetime.now(timezone.utc)
        ),
        apy_1d=pick(overrides.apy_1d, summary.apy.one_day.total),
        apy_7d=pick(overrides.apy_7d, summary.apy.seven_days.total),
        apy_30d=pick(overrides.apy_30d, summary.apy.thirty_days.total),
        tvl_usd=pick(overrides.tvl_usd, summary.tvl_usd),
        balance_usd=overrides.balance_usd,
        earnings_to_date=overrides.earnings_to_date,
    )
    session.add(snapshot)
    await session.commit()
    await session.refresh(snapshot)

    logger.info(
        "Recorded snapshot for %s: apy_1d=%s tvl_usd=%s balance_usd=%s",
        summary.key,
        snapshot.apy_1d,
        snapshot.tvl_usd,
        snapshot.balance_usd,
    )
    return snapshot, platform


async def list_snapshots(
    session: AsyncSession, platform_key: Optional[str] = None, limit: int = 50
) -> List[Tuple[Snapshot, Platform]]:
    statement = select(Snapshot, Platform).join(
        Platform, Snapshot.platform_id == Platform.id
    )
    if platform_key:
        statement = statement.where(Platform.key == platform_key)

    statement = statement.order_by(Snapshot.taken_at.desc()).limit(limit)
    return list((await session.exec(statement)).all())


async def get_latest_snapshot(
    session: AsyncSession, platform_id
) -> Optional[Snapshot]:
    return (
        await session.exec(
            select(Snapshot)
            .where(Snapshot.platform_id == platform_id)
            .order_by(Snapshot.taken_at.desc())
        )
    ).first()
