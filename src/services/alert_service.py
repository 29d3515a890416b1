import logging
from typing import List, Optional

from core.constants import AlertLevel, AlertType
from models.snapshots import Snapshot
from schemas.alert import Alert
from schemas.vault import VaultSummary

logger = logging.getLogger(__name__)


def _level(value: float, threshold: float) -> AlertLevel:
    return AlertLevel.HIGH if value >= threshold * 2 else AlertLevel.MEDIUM


def detect_apy_delta(
    summary: VaultSummary, snapshot: Snapshot, threshold: float
) -> Optional[Alert]:
    if snapshot.apy_1d is None:
        return None

    current = summary.apy.one_day.total
    delta = abs(current - snapshot.apy_1d)
    if delta < threshold:
        return None

    return Alert(
        type=AlertType.APY_DELTA,
        platform_key=summary.key,
        level=_level(delta, threshold),
        message=f"APY changed by {delta:.2f}% (threshold {threshold:g}%)",
        metrics={"previous": snapshot.apy_1d, "current": current, "delta": delta},
        snapshot_taken_at=snapshot.taken_at,
    )


def detect_tvl_drop(
    summary: VaultSummary, snapshot: Snapshot, threshold: float
) -> Optional[Alert]:
    if snapshot.tvl_usd is None or snapshot.tvl_usd <= 0:
        return None

    drop_percentage = (snapshot.tvl_usd - summary.tvl_usd) / snapshot.tvl_usd * 100
    if drop_percentage < threshold:
        return None

    return Alert(
        type=AlertType.TVL_DROP,
        platform_key=summary.key,
        level=_level(drop_percentage, threshold),
        message=f"TVL dropped by {drop_percentage:.2f}% (threshold {threshold:g}%)",
        metrics={
            "previous": snapshot.tvl_usd,
            "current": summary.tvl_usd,
            "dropPercentage": drop_percentage,
        },
        snapshot_taken_at=snapshot.taken_at,
    )


def detect_alerts(
    summary: VaultSummary,
    latest_snapshot: Optional[Snapshot],
    apy_delta_threshold: float,
    tvl_drop_threshold: float,
) -> List[Alert]:
    """Compare the live summary against the most recent stored snapshot."""
    if latest_snapshot is None:
        return []

    alerts = [
        detect_apy_delta(summary, latest_snapshot, apy_delta_threshold),
        detect_tvl_drop(summary, latest_snapshot, tvl_drop_threshold),
    ]
    alerts = [alert for alert in alerts if alert is not None]
    for alert in alerts:
        logger.info("Alert %s for %s: %s", alert.type.value, alert.platform_key, alert.message)
    return alerts
