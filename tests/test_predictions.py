"""
Tests for trend-based delay and maintenance predictions.
"""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from linebalancer.models import BottleneckFinding, Severity
from linebalancer.predictions import calc_trend_slope, generate_predictions

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def trend_frame(series: dict[str, list[float]]) -> pd.DataFrame:
    rows = []
    for station_id, values in series.items():
        for i, value in enumerate(values):
            rows.append({
                "hour": f"2026-03-01 {i % 24:02d}:00:00",
                "station_id": station_id,
                "value": value,
            })
    return pd.DataFrame(rows)


def finding(station_id: str, name: str) -> BottleneckFinding:
    return BottleneckFinding(
        station_id=station_id,
        station_name=name,
        severity=Severity.CRITICAL,
        avg_cycle_time=110.0,
        target_cycle_time=90.0,
        variance_percent=22.2,
        frequency=5,
        impact_score=54,
    )


class TestTrendSlope:

    def test_linear_series(self):
        assert calc_trend_slope([100 + 2 * i for i in range(12)]) == pytest.approx(2.0)

    def test_too_short(self):
        assert calc_trend_slope([5.0]) == 0.0


class TestGeneratePredictions:

    def test_rising_station_predicts_delay_and_maintenance(self):
        df = trend_frame({"ST003": [100 + 2 * i for i in range(24)]})
        predictions = generate_predictions(df, [finding("ST003", "Welding Cell")], now=NOW)

        by_type = {p.type: p for p in predictions}
        assert set(by_type) == {"delay", "maintenance_needed"}

        delay = by_type["delay"]
        assert delay.predicted_time == NOW + timedelta(hours=4)
        assert delay.confidence == pytest.approx(0.7)
        assert delay.description.startswith("Welding Cell")

        maintenance = by_type["maintenance_needed"]
        assert maintenance.predicted_time == NOW + timedelta(hours=24)
        assert maintenance.confidence == 0.7

    def test_delay_confidence_is_capped(self):
        df = trend_frame({"ST003": [100 + 10 * i for i in range(24)]})
        delay = [p for p in generate_predictions(df, [], now=NOW) if p.type == "delay"][0]
        assert delay.confidence == 0.85
        assert delay.description.startswith("ST003")

    def test_flat_station_is_quiet(self):
        df = trend_frame({"ST001": [45.0] * 24})
        assert generate_predictions(df, [], now=NOW) == []

    def test_short_series_is_skipped(self):
        df = trend_frame({"ST003": [100 + 5 * i for i in range(9)]})
        assert generate_predictions(df, [], now=NOW) == []

    def test_empty_trend(self):
        assert generate_predictions(pd.DataFrame(columns=["hour", "station_id", "value"]), []) == []

    def test_to_dict(self):
        df = trend_frame({"ST003": [100 + 2 * i for i in range(24)]})
        data = generate_predictions(df, [], now=NOW)[0].to_dict()
        assert data["predicted_time"] == (NOW + timedelta(hours=4)).isoformat()
        assert isinstance(data["preventive_actions"], list)
