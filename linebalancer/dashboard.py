"""
Dashboard-ready output functions.

These are the primary entry points for the Streamlit front end (and the
smoke run in main.py). Each takes the engine created at startup and returns
plain dicts, lists or DataFrames suitable for rendering cards, charts and
tables.

Storage failures (SQLAlchemy errors, or pandas' DatabaseError wrapping them
inside read_sql) are logged and answered with an empty result of the same
shape, so a page can still render. Bad input (ValueError) propagates.
"""

import logging
from datetime import datetime

import pandas as pd
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .bottlenecks import analyze_bottlenecks
from .config import DEFAULT_WINDOW_HOURS, TREND_WINDOW_HOURS
from .kpis import count_bottlenecks, summarise_line_kpis, summarise_station_status
from .loaders import (
    acknowledge_alert,
    execute_select,
    fetch_active_alerts,
    fetch_production_stats,
    fetch_shift_aggregates,
    fetch_shift_comparison,
    fetch_sim_stations,
    fetch_station_aggregates,
    fetch_station_metrics,
    fetch_station_stats,
    fetch_trend_data,
)
from .models import BottleneckFinding
from .predictions import generate_predictions
from .query import build_agent_response, parse_query
from .simulator import run_simulation
from .transforms import (
    build_shift_aggregates,
    build_sim_stations,
    build_simulation_changes,
    build_station_aggregates,
)
from .utils import cutoff_timestamp

logger = logging.getLogger(__name__)

MAX_ANSWER_ROWS = 10

# pandas.read_sql re-raises driver failures as its own DatabaseError
STORAGE_ERRORS = (SQLAlchemyError, pd.errors.DatabaseError)

_EMPTY_OVERVIEW = {
    "current_throughput": 0,
    "target_throughput": 0,
    "line_efficiency": 0.0,
    "availability_rate": 0.0,
    "performance_rate": 0.0,
    "quality_rate": 0.0,
    "oee": 0.0,
    "active_alerts": 0,
    "bottleneck_count": 0,
}

_STATUS_COLUMNS = [
    "station_id", "station_name", "current_cycle_time", "target_cycle_time",
    "utilization", "throughput", "defect_rate", "status", "trend",
]


def get_line_overview(
    engine: Engine,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    now: datetime | None = None,
) -> dict:
    """KPI cards for the line over the last `window_hours`.

    Returns
    -------
    Dict from kpis.summarise_line_kpis(); all zeros if storage is unavailable.
    """
    since = cutoff_timestamp(window_hours, now)
    try:
        production_stats = fetch_production_stats(engine, since)
        station_stats = fetch_station_stats(engine)
        aggregates = build_station_aggregates(fetch_station_aggregates(engine, since))
        active_alerts = len(fetch_active_alerts(engine))
    except STORAGE_ERRORS:
        logger.exception("Could not load line overview")
        return dict(_EMPTY_OVERVIEW)

    return summarise_line_kpis(
        production_stats,
        station_stats,
        active_alerts=active_alerts,
        bottleneck_count=count_bottlenecks(aggregates),
        window_hours=window_hours,
    )


def get_station_status(
    engine: Engine,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    now: datetime | None = None,
) -> pd.DataFrame:
    """Per-station status table in line order (see kpis.summarise_station_status)."""
    try:
        df = fetch_station_metrics(engine, cutoff_timestamp(window_hours, now))
    except STORAGE_ERRORS:
        logger.exception("Could not load station status")
        return pd.DataFrame(columns=_STATUS_COLUMNS)
    return summarise_station_status(df)


def _analyze(engine: Engine, since: str) -> list[BottleneckFinding]:
    stations = build_station_aggregates(fetch_station_aggregates(engine, since))
    shifts = build_shift_aggregates(fetch_shift_aggregates(engine, since))
    return analyze_bottlenecks(stations, shifts)


def get_bottleneck_report(
    engine: Engine,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    now: datetime | None = None,
) -> list[dict]:
    """Bottleneck findings, highest impact first, as plain dicts."""
    try:
        findings = _analyze(engine, cutoff_timestamp(window_hours, now))
    except STORAGE_ERRORS:
        logger.exception("Could not run bottleneck analysis")
        return []
    return [f.to_dict() for f in findings]


def get_shift_comparison(
    engine: Engine,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    now: datetime | None = None,
) -> pd.DataFrame:
    """Average cycle time, output, defect rate and downtime per shift."""
    try:
        return fetch_shift_comparison(engine, cutoff_timestamp(window_hours, now))
    except STORAGE_ERRORS:
        logger.exception("Could not load shift comparison")
        return pd.DataFrame(
            columns=["shift", "avg_cycle_time", "total_quantity", "avg_defect_rate", "total_downtime"]
        )


def run_what_if(
    engine: Engine,
    changes: list,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    now: datetime | None = None,
) -> dict:
    """Baseline vs projected line metrics for a list of change dicts.

    Parameters
    ----------
    changes : list of {"type", "station_id" (or "stationId"), "value",
        "description"} dicts.

    Returns
    -------
    {"baseline": {...}, "projected": {...}}; both zeroed if storage is
    unavailable.

    Raises
    ------
    ValueError for a malformed change list.
    """
    parsed = build_simulation_changes(changes)
    try:
        stations = build_sim_stations(fetch_sim_stations(engine, cutoff_timestamp(window_hours, now)))
    except STORAGE_ERRORS:
        logger.exception("Could not load stations for simulation")
        stations = []
    return run_simulation(stations, parsed).to_dict()


def answer_question(engine: Engine, question: str) -> dict:
    """Answer a free-text question about the line.

    Returns
    -------
    Dict from query.build_agent_response() plus "sql", "explanation" and
    "data" (first 10 result rows). A query that fails to run is answered
    over zero rows.

    Raises
    ------
    ValueError if question is empty or not a string.
    """
    if not isinstance(question, str) or not question.strip():
        raise ValueError("question must be a non-empty string")

    parsed = parse_query(question)
    try:
        rows = execute_select(engine, parsed.sql)
    except STORAGE_ERRORS:
        logger.exception("Generated query failed for question: %s", question)
        rows = pd.DataFrame()

    response = build_agent_response(question, rows, parsed)
    response["sql"] = parsed.sql.strip()
    response["explanation"] = parsed.explanation
    response["data"] = rows.head(MAX_ANSWER_ROWS).to_dict("records")
    return response


def get_trends(
    engine: Engine,
    metric: str = "cycle_time",
    hours: float = TREND_WINDOW_HOURS,
    station_id: str | None = None,
    now: datetime | None = None,
) -> pd.DataFrame:
    """Hourly metric values per station (columns hour, station_id, value)."""
    try:
        return fetch_trend_data(engine, cutoff_timestamp(hours, now), metric, station_id)
    except STORAGE_ERRORS:
        logger.exception("Could not load %s trend", metric)
        return pd.DataFrame(columns=["hour", "station_id", "value"])


def get_predictions(
    engine: Engine,
    hours: float = TREND_WINDOW_HOURS,
    now: datetime | None = None,
) -> list[dict]:
    """Delay and maintenance warnings from the hourly cycle-time trend."""
    since = cutoff_timestamp(hours, now)
    try:
        trend = fetch_trend_data(engine, since, "cycle_time")
        findings = _analyze(engine, since)
    except STORAGE_ERRORS:
        logger.exception("Could not load data for predictions")
        return []
    return [p.to_dict() for p in generate_predictions(trend, findings, now)]


def get_active_alerts(engine: Engine) -> pd.DataFrame:
    """Unacknowledged alerts, most severe and newest first."""
    try:
        return fetch_active_alerts(engine)
    except STORAGE_ERRORS:
        logger.exception("Could not load alerts")
        return pd.DataFrame(
            columns=["id", "type", "severity", "station_id", "message", "details",
                     "timestamp", "acknowledged", "resolved_at"]
        )


def acknowledge(engine: Engine, alert_id: str) -> bool:
    """Acknowledge an alert; False if it does not exist or storage failed."""
    try:
        return acknowledge_alert(engine, alert_id)
    except STORAGE_ERRORS:
        logger.exception("Could not acknowledge alert %s", alert_id)
        return False
