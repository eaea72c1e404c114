"""
Tests for question dispatch and answer phrasing.
"""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from linebalancer.query import (
    build_agent_response,
    extract_time_range,
    parse_query,
    sql_modifier,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class TestTimeRange:

    @pytest.mark.parametrize("question, expected", [
        ("defects in the last 3 days", "3 days"),
        ("downtime last 2 weeks", "2 weeks"),
        ("output last 12 hours", "12 hours"),
        ("what happened today", "1 day"),
        ("and yesterday?", "2 days"),
        ("trend this week", "7 days"),
        ("operators this month", "30 days"),
        ("which station is slow", "7 days"),
    ])
    def test_extract(self, question, expected):
        assert extract_time_range(question) == expected

    @pytest.mark.parametrize("time_range, expected", [
        ("2 weeks", "-14 days"),
        ("3 days", "-3 days"),
        ("12 hours", "-12 hours"),
        ("1 month", "-1 months"),
    ])
    def test_sqlite_modifier(self, time_range, expected):
        assert sql_modifier(time_range) == expected


class TestParseQuery:

    @pytest.mark.parametrize("question, action, metrics", [
        ("Which station hurt output the most?", "find", ("throughput",)),
        ("Compare day and night shifts", "compare", ("cycle_time", "throughput")),
        ("Show the cycle time trend", "trend", ("cycle_time",)),
        ("Where are defects coming from?", "find", ("defect_rate",)),
        ("How much downtime did we have?", "find", ("downtime",)),
        ("Which operator is slowest?", "find", ("operator_performance",)),
        ("How is the line doing?", "find", ("cycle_time",)),
    ])
    def test_dispatch(self, question, action, metrics):
        parsed = parse_query(question, now=NOW)
        assert parsed.intent.action == action
        assert parsed.intent.metrics == metrics
        assert parsed.sql.strip().upper().startswith("SELECT")
        assert "{time_range}" not in parsed.sql

    def test_first_match_wins(self):
        parsed = parse_query("compare defect rates across shifts", now=NOW)
        assert parsed.intent.action == "compare"

    def test_output_question_is_limited(self):
        parsed = parse_query("which station caused the production drop", now=NOW)
        assert "LIMIT 5" in parsed.sql

    def test_time_range_flows_into_sql_and_intent(self):
        parsed = parse_query("show defects over the last 2 weeks", now=NOW)
        assert parsed.time_range == "2 weeks"
        assert "datetime('now', '-14 days')" in parsed.sql
        assert parsed.intent.start == NOW - timedelta(days=14)
        assert parsed.intent.end == NOW

    def test_explanation(self):
        parsed = parse_query("Compare shifts today", now=NOW)
        assert parsed.explanation == "Comparing cycle time, throughput across different dimensions for the 1 day"


class TestAgentResponse:

    def test_find_answer(self):
        parsed = parse_query("Which station hurt output?", now=NOW)
        rows = pd.DataFrame([
            {"station_name": "Welding Cell", "station_id": "ST003", "avg_cycle_time": 110.2,
             "target_cycle_time": 90, "variance_pct": 22.4},
            {"station_name": "Final Assembly", "station_id": "ST007", "avg_cycle_time": 118.0,
             "target_cycle_time": 100, "variance_pct": 18.0},
        ])
        response = build_agent_response("Which station hurt output?", rows, parsed)

        assert "**Welding Cell**" in response["answer"]
        assert "22% above target" in response["answer"]
        assert "Final Assembly is the second most impacted station" in response["insights"]
        assert response["confidence"] == 0.7
        assert [step["step"] for step in response["reasoning"]] == [1, 2, 3, 4]

    def test_defect_answer(self):
        parsed = parse_query("defects", now=NOW)
        rows = [{"station_name": "CNC Machining", "defect_rate": 4.83}]
        response = build_agent_response("defects", rows, parsed)
        assert "4.8%" in response["answer"]

    def test_compare_answer(self):
        parsed = parse_query("compare shifts", now=NOW)
        rows = [
            {"shift": "day", "avg_cycle_time": 70.0, "total_output": 900},
            {"shift": "night", "avg_cycle_time": 80.0, "total_output": 850},
            {"shift": "swing", "avg_cycle_time": 72.0, "total_output": 880},
        ]
        response = build_agent_response("compare shifts", rows, parsed)
        assert "**night**: 80.0s avg cycle time, 850 units" in response["answer"]
        assert response["insights"] == [
            "day shift has the best performance",
            "night shift may need attention",
        ]

    def test_trend_answer(self):
        parsed = parse_query("cycle time trend", now=NOW)
        rows = [{"date": f"2026-02-{d:02d}", "avg_cycle_time": 70 + d} for d in range(1, 13)]
        response = build_agent_response("cycle time trend", rows, parsed)
        assert "increased by" in response["answer"]
        assert response["confidence"] == 0.85

    def test_no_rows(self):
        parsed = parse_query("anything", now=NOW)
        response = build_agent_response("anything", pd.DataFrame(), parsed)
        assert response["answer"] == "No data found for the specified query and time range."
        assert response["confidence"] == 0.3
        assert response["insights"] == []
        assert len(response["suggestions"]) == 3
