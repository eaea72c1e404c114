"""
Tests for KPI helpers and the overview/status rollups.
"""

import math

import pandas as pd
import pytest

from linebalancer.kpis import (
    calc_oee,
    calc_variance,
    classify_trend,
    count_bottlenecks,
    summarise_line_kpis,
    summarise_station_status,
)

from conftest import make_station


class TestCalcVariance:

    def test_above_target(self):
        absolute, pct = calc_variance(110, 100)
        assert absolute == 10
        assert pct == pytest.approx(10.0)

    def test_zero_target(self):
        assert calc_variance(5, 0) == (5, None)


class TestClassifyTrend:

    @pytest.mark.parametrize("current, target, expected", [
        (90, 100, "improving"),
        (110, 100, "declining"),
        (102, 100, "stable"),
        (95, 100, "stable"),
        (50, 0, "unknown"),
        (math.nan, 100, "unknown"),
    ])
    def test_lower_is_better(self, current, target, expected):
        assert classify_trend(current, target) == expected


class TestOverview:

    def test_oee(self):
        assert calc_oee(90, 80, 100) == pytest.approx(72.0)

    def test_summarise_line_kpis(self):
        production = {
            "total_output": 2400,
            "avg_cycle_time": 100.0,
            "total_defects": 24,
            "total_downtime": 144.0,
            "record_count": 2400,
        }
        stations = {"station_count": 2, "total_target": 180.0, "max_target": 100.0}

        kpis = summarise_line_kpis(production, stations, active_alerts=3, bottleneck_count=1)

        assert kpis["current_throughput"] == 100
        assert kpis["target_throughput"] == 36
        assert kpis["performance_rate"] == 90.0
        assert kpis["line_efficiency"] == 90.0
        assert kpis["availability_rate"] == 90.0
        assert kpis["quality_rate"] == 99.0
        assert kpis["oee"] == 80.2
        assert kpis["active_alerts"] == 3
        assert kpis["bottleneck_count"] == 1

    def test_no_production_avoids_division_by_zero(self):
        production = {
            "total_output": None,
            "avg_cycle_time": math.nan,
            "total_defects": None,
            "total_downtime": None,
            "record_count": 0,
        }
        stations = {"station_count": 0, "total_target": None, "max_target": None}

        kpis = summarise_line_kpis(production, stations)

        assert kpis["current_throughput"] == 0
        assert kpis["target_throughput"] == 0
        assert kpis["performance_rate"] == 0.0
        assert kpis["quality_rate"] == 100.0
        assert kpis["availability_rate"] == 100.0
        assert kpis["oee"] == 0.0

    def test_performance_is_capped(self):
        production = {"total_output": 10, "avg_cycle_time": 50.0}
        stations = {"station_count": 1, "total_target": 100.0, "max_target": 100.0}
        assert summarise_line_kpis(production, stations)["performance_rate"] == 100.0

    def test_count_bottlenecks(self):
        stations = [
            make_station("ST001", target=100, avg=125),
            make_station("ST002", target=100, avg=110),
            make_station("ST003", target=100, avg=None),
            make_station("ST004", target=100, avg=111),
        ]
        assert count_bottlenecks(stations) == 2


class TestStationStatus:

    def test_status_table(self):
        df = pd.DataFrame([
            {"station_id": "ST001", "station_name": "Loading", "target_cycle_time": 45.0,
             "status": "running", "current_cycle_time": 50.0, "throughput": 100,
             "defect_rate": 2.04, "record_count": 100},
            {"station_id": "ST002", "station_name": "CNC", "target_cycle_time": 120.0,
             "status": None, "current_cycle_time": None, "throughput": None,
             "defect_rate": None, "record_count": 0},
        ])
        status = summarise_station_status(df)

        assert list(status["station_id"]) == ["ST001", "ST002"]
        st002 = status.iloc[1]
        # no records: current defaults to target, which makes it the slowest
        assert st002["current_cycle_time"] == 120.0
        assert st002["utilization"] == 100.0
        assert st002["trend"] == "stable"
        assert st002["status"] == "running"
        assert st002["throughput"] == 0

        st001 = status.iloc[0]
        assert st001["utilization"] == 41.7
        assert st001["trend"] == "declining"
        assert st001["defect_rate"] == 2.0

    def test_empty_frame(self):
        status = summarise_station_status(pd.DataFrame())
        assert status.empty
        assert "utilization" in status.columns
