from datetime import datetime, timezone

import pytest

from models.snapshots import Snapshot
from schemas.alert import Alert
from services.alert_service import detect_alerts
from services.snapshot_service import SnapshotOverrides, record_snapshot_for_summary


async def test_alerts_compare_against_latest_snapshot(
    client, db_session, make_summary
):
    live = make_summary(apy_1d=10.0, tvl_usd=1_000_000)
    await record_snapshot_for_summary(
        db_session,
        live,
        SnapshotOverrides(
            taken_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            apy_1d=10.0,
            tvl_usd=1_000_000,
        ),
    )
    await record_snapshot_for_summary(
        db_session,
        live,
        SnapshotOverrides(
            taken_at=datetime(2025, 1, 2, tzinfo=timezone.utc),
            apy_1d=9.0,
            tvl_usd=1_100_000,
        ),
    )

    response = await client.get("/api/alerts")

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert body["thresholds"] == {"apyDelta": 0.5, "tvlDrop": 5.0}

    apy_alert, tvl_alert = body["alerts"]
    assert apy_alert["type"] == "apy_delta"
    assert apy_alert["platformKey"] == "gauntlet-usd-alpha"
    assert apy_alert["level"] == "high"
    assert apy_alert["metrics"]["delta"] == pytest.approx(1.0)
    assert apy_alert["message"] == "APY changed by 1.00% (threshold 0.5%)"

    assert tvl_alert["type"] == "tvl_drop"
    assert tvl_alert["level"] == "medium"
    assert tvl_alert["metrics"]["dropPercentage"] == pytest.approx(100 / 11)


async def test_alerts_without_snapshots(client):
    response = await client.get("/api/alerts")

    assert response.json()["count"] == 0
    assert response.json()["alerts"] == []


def snapshot_like(apy_1d=None, tvl_usd=None):
    return Snapshot(
        platform_id=None,
        taken_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        apy_1d=apy_1d,
        tvl_usd=tvl_usd,
    )


def test_detect_alerts_below_thresholds(make_summary):
    summary = make_summary(apy_1d=10.0, tvl_usd=1_000_000)
    snapshot = snapshot_like(apy_1d=10.4, tvl_usd=1_040_000)

    assert detect_alerts(summary, snapshot, 0.5, 5.0) == []


def test_detect_alerts_at_threshold(make_summary):
    summary = make_summary(apy_1d=10.5, tvl_usd=950_000)
    snapshot = snapshot_like(apy_1d=10.0, tvl_usd=1_000_000)

    alerts = detect_alerts(summary, snapshot, 0.5, 5.0)

    assert [a.type.value for a in alerts] == ["apy_delta", "tvl_drop"]
    assert all(isinstance(a, Alert) and a.level.value == "medium" for a in alerts)


def test_detect_alerts_skips_missing_values(make_summary):
    summary = make_summary(apy_1d=50.0, tvl_usd=1)
    snapshot = snapshot_like(apy_1d=None, tvl_usd=0)

    assert detect_alerts(summary, snapshot, 0.5, 5.0) == []


def test_tvl_growth_is_not_an_alert(make_summary):
    summary = make_summary(tvl_usd=2_000_000)
    snapshot = snapshot_like(apy_1d=10.0, tvl_usd=1_000_000)

    assert detect_alerts(summary, snapshot, 0.5, 5.0) == []


def test_no_snapshot_no_alerts(make_summary):
    assert detect_alerts(make_summary(), None, 0.5, 5.0) == []
