import asyncio
import logging
import signal
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import click
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlmodel.ext.asyncio.session import AsyncSession

from core.config import settings
from core.db import async_session, engine
from log import setup_logging_to_console, setup_logging_to_file
from schemas.vault import VaultSummary
from services.onchain_service import OnchainService, to_usd_value
from services.snapshot_service import SnapshotOverrides, record_snapshot_for_summary
from services.vault_service import VaultService
from services.vaultsfyi_service import VaultsFyiClient

# Initialize logger
logger = logging.getLogger("hourly_refresh")

REFRESH_JOB_ID = "hourly_refresh"


@dataclass
class RefreshResult:
    taken_at: datetime
    recorded: int
    failed: int


async def _record_vault_snapshot(
    summary: VaultSummary,
    onchain_service: OnchainService,
    session_factory: Callable[[], AsyncSession],
    wallet: Optional[str],
    taken_at: datetime,
) -> None:
    balance_usd = None
    if wallet:
        try:
            position = await onchain_service.get_vault_position(wallet, summary.address)
            balance_usd = to_usd_value(
                position.underlying.amount, summary.asset.price_usd
            )
        except Exception as e:
            logger.warning(
                "Failed to fetch wallet position for %s in %s: %s",
                wallet,
                summary.address,
                e,
            )

    async with session_factory() as session:
        await record_snapshot_for_summary(
            session,
            summary,
            SnapshotOverrides(taken_at=taken_at, balance_usd=balance_usd),
        )


async def run_refresh_cycle(
    vault_service: VaultService,
    onchain_service: OnchainService,
    session_factory: Callable[[], AsyncSession] = async_session,
    wallet: Optional[str] = None,
) -> RefreshResult:
    """Force-refresh tracked vaults and record one snapshot per vault.

    Vaults are processed concurrently and independently: a failed balance read
    still records the snapshot without a balance, and a failed insert only
    affects its own vault.
    """
    summaries = await vault_service.get_tracked_vault_summaries(refresh=True)
    wallet = wallet if wallet is not None else settings.DEFAULT_WALLET
    taken_at = datetime.now(timezone.utc)

    results = await asyncio.gather(
        *[
            _record_vault_snapshot(
                summary, onchain_service, session_factory, wallet, taken_at
            )
            for summary in summaries
        ],
        return_exceptions=True,
    )

    failed = 0
    for summary, result in zip(summaries, results):
        if isinstance(result, BaseException):
            failed += 1
            logger.error(
                "Failed to record snapshot for %s: %s",
                summary.key,
                result,
                exc_info=result,
            )

    return RefreshResult(
        taken_at=taken_at, recorded=len(summaries) - failed, failed=failed
    )


async def refresh_job(vault_service: VaultService, onchain_service: OnchainService):
    try:
        result = await run_refresh_cycle(vault_service, onchain_service)
        logger.info(
            "Snapshot cycle completed at %s (%d recorded, %d failed)",
            result.taken_at.isoformat(),
            result.recorded,
            result.failed,
        )
    except Exception as e:
        logger.error("Snapshot cycle failed: %s", e, exc_info=True)


def start_hourly_refresh(
    vault_service: VaultService,
    onchain_service: OnchainService,
    cron_expression: str = settings.REFRESH_CRON,
) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        refresh_job,
        CronTrigger.from_crontab(cron_expression, timezone="UTC"),
        args=[vault_service, onchain_service],
        id=REFRESH_JOB_ID,
        name="Hourly vault snapshot refresh",
        coalesce=True,
        max_instances=1,
        replace_existing=True,
    )
    scheduler.start()
    logger.info('Hourly refresh scheduled with cron "%s"', cron_expression)
    return scheduler


async def shutdown_refresh_job(
    scheduler: Optional[AsyncIOScheduler], vault_service: VaultService
) -> None:
    logger.info("Shutting down refresh worker...")
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
    await vault_service.aclose()
    await engine.dispose()


async def run_worker(cron_expression: str, once: bool = False) -> None:
    logger.info("Booting hourly refresh worker...")
    vault_service = VaultService(VaultsFyiClient())
    onchain_service = OnchainService()

    if once:
        try:
            await refresh_job(vault_service, onchain_service)
        finally:
            await shutdown_refresh_job(None, vault_service)
        return

    scheduler = start_hourly_refresh(vault_service, onchain_service, cron_expression)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await refresh_job(vault_service, onchain_service)
    logger.info("Initial snapshot cycle completed")

    await stop_event.wait()
    await shutdown_refresh_job(scheduler, vault_service)


@click.command()
@click.option("--once", is_flag=True, help="Run a single refresh cycle and exit")
@click.option(
    "--cron",
    "cron_expression",
    default=settings.REFRESH_CRON,
    help="Crontab expression for the refresh schedule",
)
def main(once: bool, cron_expression: str):
    setup_logging_to_console()
    setup_logging_to_file("hourly_refresh", logger=logger)
    asyncio.run(run_worker(cron_expression, once=once))


if __name__ == "__main__":
    main()
