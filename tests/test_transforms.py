"""
Tests for loader-frame and payload reshaping.
"""

import math

import pandas as pd
import pytest

from linebalancer.models import ChangeType
from linebalancer.transforms import (
    build_shift_aggregates,
    build_sim_stations,
    build_simulation_changes,
    build_station_aggregates,
)


class TestStationAggregates:

    def test_rows_are_cleaned(self):
        df = pd.DataFrame([
            {"station_id": "ST001", "station_name": "Loading", "target_cycle_time": 45.0,
             "avg_cycle_time": 49.5, "variance_cycle_time": -1e-9, "sample_count": 12,
             "total_downtime": math.nan},
            {"station_id": "ST002", "station_name": "CNC", "target_cycle_time": 120.0,
             "avg_cycle_time": math.nan, "variance_cycle_time": math.nan, "sample_count": 0,
             "total_downtime": math.nan},
            {"station_id": "ST003", "station_name": "Welding", "target_cycle_time": 0.0,
             "avg_cycle_time": 100.0, "variance_cycle_time": 4.0, "sample_count": 3,
             "total_downtime": 5.0},
        ])
        aggregates = build_station_aggregates(df)

        assert [a.station_id for a in aggregates] == ["ST001", "ST002"]
        loading, cnc = aggregates
        assert loading.variance_cycle_time == 0.0
        assert loading.total_downtime == 0.0
        assert loading.variance_percent == pytest.approx(10.0)
        assert loading.sample_count == 12
        assert cnc.avg_cycle_time is None
        assert cnc.variance_percent == 0.0

    def test_empty_frame(self):
        assert build_station_aggregates(pd.DataFrame()) == []

    def test_shift_aggregates_drop_missing_averages(self):
        df = pd.DataFrame([
            {"shift": "day", "station_id": "ST001", "avg_cycle_time": 46.0, "sample_count": 8},
            {"shift": "night", "station_id": "ST001", "avg_cycle_time": None, "sample_count": 0},
        ])
        shifts = build_shift_aggregates(df)
        assert len(shifts) == 1
        assert shifts[0].shift == "day"
        assert shifts[0].avg_cycle_time == 46.0


class TestSimStations:

    def test_defaults(self):
        df = pd.DataFrame([
            {"id": "ST001", "name": "Loading", "target_cycle_time": 45.0,
             "operator_count": 0, "avg_cycle_time": None},
            {"id": "ST002", "name": "CNC", "target_cycle_time": 120.0,
             "operator_count": 3, "avg_cycle_time": 131.5},
        ])
        stations = build_sim_stations(df)

        assert stations[0].avg_cycle_time == 45.0
        assert stations[0].operator_count == 1
        assert stations[1].avg_cycle_time == 131.5
        assert stations[1].operator_count == 3


class TestSimulationChanges:

    def test_accepts_both_station_keys(self):
        changes = build_simulation_changes([
            {"type": "add_operator", "station_id": "ST003", "value": 1},
            {"type": "change_cycle_time", "stationId": "ST007", "value": "85.5",
             "description": "New fixture"},
        ])
        assert [c.station_id for c in changes] == ["ST003", "ST007"]
        assert changes[0].type is ChangeType.ADD_OPERATOR
        assert changes[1].value == 85.5
        assert changes[1].description == "New fixture"

    @pytest.mark.parametrize("payload", [
        None,
        {"type": "add_operator", "station_id": "ST003", "value": 1},
        "add_operator",
    ])
    def test_non_list_payload(self, payload):
        with pytest.raises(ValueError):
            build_simulation_changes(payload)

    @pytest.mark.parametrize("item", [
        {"type": "hire_robot", "station_id": "ST003", "value": 1},
        {"station_id": "ST003", "value": 1},
        {"type": "add_operator", "value": 1},
        {"type": "add_operator", "station_id": "ST003", "value": "lots"},
        "add_operator",
    ])
    def test_bad_items(self, item):
        with pytest.raises(ValueError):
            build_simulation_changes([item])

    @pytest.mark.parametrize("item", [
        {"type": "add_operator", "station_id": "ST003", "value": 1.5},
        {"type": "remove_operator", "station_id": "ST003", "value": "0.5"},
        {"type": "change_cycle_time", "station_id": "ST003", "value": 0},
        {"type": "change_cycle_time", "station_id": "ST003", "value": -10},
    ])
    def test_out_of_range_values(self, item):
        with pytest.raises(ValueError):
            build_simulation_changes([item])

    def test_whole_and_negative_operator_deltas(self):
        changes = build_simulation_changes([
            {"type": "add_operator", "station_id": "ST003", "value": 2.0},
            {"type": "add_operator", "station_id": "ST003", "value": "-1"},
        ])
        assert [c.value for c in changes] == [2.0, -1.0]

    def test_empty_list(self):
        assert build_simulation_changes([]) == []
