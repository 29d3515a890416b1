from typing import Dict, List

from core.constants import AlertLevel, AlertType
from schemas.base import CamelModel, UtcDatetime


class Alert(CamelModel):
    type: AlertType
    platform_key: str
    level: AlertLevel
    message: str
    metrics: Dict[str, float]
    snapshot_taken_at: UtcDatetime


class AlertThresholds(CamelModel):
    apy_delta: float
    tvl_drop: float


class AlertsResponse(CamelModel):
    count: int
    alerts: List[Alert]
    fetched_at: int
    thresholds: AlertThresholds
