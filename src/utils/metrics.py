import math
from dataclasses import dataclass
from typing import Dict, Iterable, List

from core.constants import DAYS_IN_YEAR, PROJECTION_PERIODS, WEEKS_IN_YEAR


@dataclass(frozen=True)
class BlendedApyInput:
    balance_usd: float
    apy_percent: float


def _to_decimal_rate(apy_percent: float) -> float:
    if apy_percent is None or not math.isfinite(apy_percent):
        return 0.0
    return apy_percent / 100


def calculate_blended_apy(inputs: Iterable[BlendedApyInput]) -> float:
    """Balance-weighted APY across positions; non-positive balances carry no weight."""
    inputs = list(inputs)
    total_balance = sum(max(item.balance_usd, 0) for item in inputs)
    if total_balance <= 0:
        return 0.0

    blended = 0.0
    for item in inputs:
        weight = item.balance_usd / total_balance if item.balance_usd > 0 else 0
        blended += weight * item.apy_percent
    return blended


def calculate_daily_earnings(balance_usd: float, apy_percent: float) -> float:
    if balance_usd <= 0:
        return 0.0

    return balance_usd * _to_decimal_rate(apy_percent) / DAYS_IN_YEAR


def calculate_earnings_projection(
    balance_usd: float,
    apy_percent: float,
    period_days: float,
    compound_weekly: bool = False,
) -> float:
    """Project earnings over ``period_days``.

    Without compounding the annual rate is applied pro rata. With weekly
    compounding the annual rate is converted to the equivalent weekly rate
    ``(1 + r) ** (1 / 52) - 1`` and compounded over ``period_days / 7`` weeks.
    """
    if balance_usd <= 0 or period_days <= 0:
        return 0.0

    apy_decimal = _to_decimal_rate(apy_percent)
    if apy_decimal <= 0:
        return 0.0

    if not compound_weekly:
        return balance_usd * apy_decimal * (period_days / DAYS_IN_YEAR)

    weekly_rate = math.pow(1 + apy_decimal, 1 / WEEKS_IN_YEAR) - 1
    weeks = period_days / 7
    growth = math.pow(1 + weekly_rate, weeks) - 1
    return balance_usd * growth


def build_earnings_projections(
    balance_usd: float, apy_percent: float, compound_weekly: bool = False
) -> Dict[str, float]:
    return {
        key: calculate_earnings_projection(
            balance_usd, apy_percent, days, compound_weekly
        )
        for key, days in PROJECTION_PERIODS.items()
    }


def aggregate_projections(projections: List[Dict[str, float]]) -> Dict[str, float]:
    return {
        key: sum(item.get(key, 0.0) for item in projections)
        for key in PROJECTION_PERIODS
    }
