import math

import pytest

from utils.metrics import (
    BlendedApyInput,
    aggregate_projections,
    build_earnings_projections,
    calculate_blended_apy,
    calculate_daily_earnings,
    calculate_earnings_projection,
)


def test_blended_apy_is_balance_weighted():
    result = calculate_blended_apy(
        [
            BlendedApyInput(balance_usd=1000, apy_percent=10),
            BlendedApyInput(balance_usd=4000, apy_percent=5),
        ]
    )
    assert result == pytest.approx(6.0)


def test_blended_apy_ignores_non_positive_balances():
    result = calculate_blended_apy(
        [
            BlendedApyInput(balance_usd=1000, apy_percent=8),
            BlendedApyInput(balance_usd=0, apy_percent=50),
            BlendedApyInput(balance_usd=-200, apy_percent=50),
        ]
    )
    assert result == pytest.approx(8.0)


def test_blended_apy_without_balance_is_zero():
    assert calculate_blended_apy([]) == 0
    assert calculate_blended_apy([BlendedApyInput(balance_usd=0, apy_percent=7)]) == 0


def test_daily_earnings():
    assert calculate_daily_earnings(36500, 10) == pytest.approx(10.0)
    assert calculate_daily_earnings(0, 10) == 0
    assert calculate_daily_earnings(-5, 10) == 0
    assert calculate_daily_earnings(1000, math.nan) == 0


def test_linear_projection_is_pro_rata():
    assert calculate_earnings_projection(1000, 10, 365) == pytest.approx(100.0)
    assert calculate_earnings_projection(1000, 10, 30) == pytest.approx(
        1000 * 0.1 * 30 / 365
    )


def test_weekly_compounding_over_a_year_matches_apy():
    # 52 weeks of the equivalent weekly rate compound back to the annual rate
    result = calculate_earnings_projection(1000, 10, 364, compound_weekly=True)
    assert result == pytest.approx(100.0, rel=1e-9)


def test_weekly_compounding_fractional_weeks():
    weekly_rate = math.pow(1.1, 1 / 52) - 1
    expected = 1000 * (math.pow(1 + weekly_rate, 30 / 7) - 1)
    assert calculate_earnings_projection(
        1000, 10, 30, compound_weekly=True
    ) == pytest.approx(expected)


@pytest.mark.parametrize(
    "balance, apy, days",
    [(0, 10, 30), (-10, 10, 30), (1000, 0, 30), (1000, -3, 30), (1000, 10, 0)],
)
def test_projection_degenerate_inputs_are_zero(balance, apy, days):
    assert calculate_earnings_projection(balance, apy, days) == 0
    assert calculate_earnings_projection(balance, apy, days, compound_weekly=True) == 0


def test_build_earnings_projections_has_all_horizons():
    projections = build_earnings_projections(1000, 10)
    assert list(projections) == ["1d", "7d", "30d", "90d", "365d"]
    assert projections["365d"] == pytest.approx(100.0)
    assert projections["1d"] < projections["7d"] < projections["30d"]


def test_aggregate_projections_sums_per_horizon():
    totals = aggregate_projections(
        [build_earnings_projections(1000, 10), build_earnings_projections(4000, 5)]
    )
    assert totals["365d"] == pytest.approx(300.0)
    assert set(totals) == {"1d", "7d", "30d", "90d", "365d"}
