"""
Tests for the dashboard entry points, including storage-failure fallbacks.
"""

import pandas as pd
import pytest

from linebalancer import dashboard
from linebalancer.dashboard import (
    acknowledge,
    answer_question,
    get_active_alerts,
    get_bottleneck_report,
    get_line_overview,
    get_predictions,
    get_shift_comparison,
    get_station_status,
    get_trends,
    run_what_if,
)

OVERVIEW_KEYS = {
    "current_throughput", "target_throughput", "line_efficiency", "availability_rate",
    "performance_rate", "quality_rate", "oee", "active_alerts", "bottleneck_count",
}


class TestSeededDashboard:

    def test_line_overview(self, seeded_engine):
        overview = get_line_overview(seeded_engine, window_hours=24)

        assert set(overview) == OVERVIEW_KEYS
        assert overview["active_alerts"] == 5
        assert overview["target_throughput"] == 30
        assert overview["current_throughput"] > 0
        for key in ("line_efficiency", "availability_rate", "quality_rate", "oee"):
            assert 0.0 <= overview[key] <= 100.0
        assert overview["bottleneck_count"] >= 2

    def test_station_status(self, seeded_engine):
        status = get_station_status(seeded_engine)
        assert len(status) == 10
        assert status["utilization"].max() == 100.0

    def test_bottleneck_report(self, seeded_engine):
        report = get_bottleneck_report(seeded_engine)

        assert len(report) == 10
        scores = [f["impact_score"] for f in report]
        assert scores == sorted(scores, reverse=True)
        assert "ST003" in {f["station_id"] for f in report[:2]}
        st003 = next(f for f in report if f["station_id"] == "ST003")
        assert st003["severity"] == "critical"

    def test_shift_comparison(self, seeded_engine):
        shifts = get_shift_comparison(seeded_engine, window_hours=48)
        by_shift = shifts.set_index("shift")["avg_cycle_time"]
        assert by_shift["night"] > by_shift["day"]

    def test_what_if_without_changes(self, seeded_engine):
        outcome = run_what_if(seeded_engine, [])
        assert outcome["baseline"] == outcome["projected"]

    def test_what_if_speeds_up_bottleneck(self, seeded_engine):
        baseline = run_what_if(seeded_engine, [])["baseline"]
        slowest = baseline["bottleneck_station"]

        outcome = run_what_if(seeded_engine, [
            {"type": "change_cycle_time", "stationId": slowest, "value": 30},
        ])
        assert outcome["projected"]["bottleneck_station"] != slowest
        assert outcome["projected"]["throughput_per_hour"] >= baseline["throughput_per_hour"]

    def test_what_if_rejects_bad_payload(self, seeded_engine):
        with pytest.raises(ValueError):
            run_what_if(seeded_engine, {"type": "add_operator"})

    def test_answer_question(self, seeded_engine):
        response = answer_question(seeded_engine, "Compare shifts over the last 3 days")

        assert response["sql"].startswith("SELECT")
        assert len(response["data"]) == 3
        assert response["confidence"] == 0.7
        assert response["answer"].startswith("Shift comparison analysis")

    def test_answer_question_limits_rows(self, seeded_engine):
        response = answer_question(seeded_engine, "Which operator is slowest?")
        assert len(response["data"]) <= 10

    def test_answer_question_requires_text(self, seeded_engine):
        with pytest.raises(ValueError):
            answer_question(seeded_engine, "   ")

    def test_trends_and_predictions(self, seeded_engine):
        trend = get_trends(seeded_engine, "cycle_time", hours=48)
        assert not trend.empty
        assert set(trend["station_id"]) == {f"ST{i:03d}" for i in range(1, 11)}

        for prediction in get_predictions(seeded_engine, hours=48):
            assert prediction["type"] in {"delay", "maintenance_needed"}
            assert 0.0 <= prediction["confidence"] <= 0.85

    def test_alerts(self, seeded_engine):
        alerts = get_active_alerts(seeded_engine)
        assert acknowledge(seeded_engine, alerts["id"].iloc[0]) is True
        assert len(get_active_alerts(seeded_engine)) == len(alerts) - 1


class TestStorageFallbacks:

    def test_overview_is_zeroed(self, broken_engine):
        overview = get_line_overview(broken_engine)
        assert set(overview) == OVERVIEW_KEYS
        assert all(value == 0 for value in overview.values())

    def test_empty_results(self, broken_engine):
        assert get_bottleneck_report(broken_engine) == []
        assert get_predictions(broken_engine) == []
        assert get_station_status(broken_engine).empty
        assert get_shift_comparison(broken_engine).empty
        assert get_trends(broken_engine).empty
        assert get_active_alerts(broken_engine).empty
        assert acknowledge(broken_engine, "ALT001") is False

    def test_what_if_is_zeroed(self, broken_engine):
        outcome = run_what_if(broken_engine, [{"type": "add_operator", "station_id": "ST003", "value": 1}])
        assert outcome["baseline"]["bottleneck_station"] is None
        assert outcome["projected"]["throughput_per_hour"] == 0

    def test_failed_query_is_answered_over_no_rows(self, broken_engine):
        response = answer_question(broken_engine, "Which station hurt output?")
        assert response["answer"] == "No data found for the specified query and time range."
        assert response["confidence"] == 0.3
        assert response["data"] == []

    def test_bad_payload_still_raises(self, broken_engine):
        with pytest.raises(ValueError):
            run_what_if(broken_engine, "add an operator")


class TestWrappedDriverErrors:
    """pandas.read_sql reports driver failures as pandas.errors.DatabaseError."""

    @pytest.fixture
    def failing_reads(self, monkeypatch):
        def fail(*args, **kwargs):
            raise pd.errors.DatabaseError("Execution failed on sql: no such table: production_records")

        for name in (
            "fetch_production_stats", "fetch_station_aggregates", "fetch_sim_stations",
            "fetch_station_metrics", "fetch_trend_data", "fetch_active_alerts",
            "fetch_shift_comparison", "execute_select",
        ):
            monkeypatch.setattr(dashboard, name, fail)

    def test_overview_is_zeroed(self, engine, failing_reads):
        overview = get_line_overview(engine)
        assert all(value == 0 for value in overview.values())

    def test_reads_fall_back_to_empty(self, engine, failing_reads):
        assert get_bottleneck_report(engine) == []
        assert get_predictions(engine) == []
        assert get_station_status(engine).empty
        assert get_shift_comparison(engine).empty
        assert get_trends(engine).empty
        assert get_active_alerts(engine).empty

    def test_what_if_is_zeroed(self, engine, failing_reads):
        outcome = run_what_if(engine, [{"type": "add_operator", "station_id": "ST003", "value": 1}])
        assert outcome["projected"]["bottleneck_station"] is None

    def test_question_is_answered_over_no_rows(self, engine, failing_reads):
        response = answer_question(engine, "Which station hurt output?")
        assert response["data"] == []
        assert response["confidence"] == 0.3
