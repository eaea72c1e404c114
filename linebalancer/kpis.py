"""
KPI computation functions: pure functions with no side effects.

Provides variance calculation, cycle-time trend classification, OEE, and
the line overview and per-station status rollups.
"""

import logging

import pandas as pd

from .config import BOTTLENECK_COUNT_THRESHOLD_PCT, SECONDS_PER_HOUR, TREND_BAND_PCT
from .models import StationAggregate
from .utils import round_half_up, round_int, safe_float

logger = logging.getLogger(__name__)


def calc_variance(actual: float, target: float) -> tuple[float, float | None]:
    """Return (absolute_variance, pct_variance).

    pct_variance is None if target == 0.
    """
    absolute = actual - target
    if target == 0:
        return absolute, None
    pct = (absolute / target) * 100
    return absolute, pct


def classify_trend(
    current: float,
    target: float,
    band_pct: float = TREND_BAND_PCT,
) -> str:
    """Return 'improving', 'stable', 'declining' or 'unknown' for a cycle time.

    Logic
    -----
    Cycle time is lower-is-better:
        improving  if current is more than band_pct below target
        declining  if current is more than band_pct above target
        stable     otherwise
    """
    if pd.isna(current) or pd.isna(target) or target == 0:
        return "unknown"

    _, pct = calc_variance(current, target)
    if pct < -band_pct:
        return "improving"
    if pct > band_pct:
        return "declining"
    return "stable"


def calc_oee(availability_pct: float, performance_pct: float, quality_pct: float) -> float:
    """OEE = availability x performance x quality, as a percentage."""
    return (availability_pct / 100) * (performance_pct / 100) * (quality_pct / 100) * 100


def count_bottlenecks(
    stations: list[StationAggregate],
    threshold_pct: float = BOTTLENECK_COUNT_THRESHOLD_PCT,
) -> int:
    """Number of stations running more than threshold_pct over target."""
    return sum(
        1 for s in stations
        if s.avg_cycle_time is not None and s.variance_percent > threshold_pct
    )


def summarise_line_kpis(
    production_stats: dict,
    station_stats: dict,
    active_alerts: int = 0,
    bottleneck_count: int = 0,
    window_hours: float = 24,
) -> dict:
    """Line overview cards for the query window.

    Parameters
    ----------
    production_stats : dict with total_output, avg_cycle_time, total_defects,
        total_downtime, record_count (from fetch_production_stats).
    station_stats : dict with station_count, total_target, max_target
        (from fetch_station_stats).

    Returns
    -------
    Dict with structure:
    {
        "current_throughput": units/hour over the window,
        "target_throughput": units/hour the slowest target allows,
        "line_efficiency": %, "availability_rate": %, "performance_rate": %,
        "quality_rate": %, "oee": %,
        "active_alerts": int, "bottleneck_count": int,
    }
    """
    total_output = safe_float(production_stats.get("total_output")) or 0.0
    avg_cycle_time = safe_float(production_stats.get("avg_cycle_time")) or 0.0
    total_defects = safe_float(production_stats.get("total_defects")) or 0.0
    total_downtime = safe_float(production_stats.get("total_downtime")) or 0.0

    station_count = safe_float(station_stats.get("station_count")) or 0.0
    total_target = safe_float(station_stats.get("total_target")) or 0.0
    max_target = safe_float(station_stats.get("max_target")) or 0.0

    current_throughput = round_int(total_output / window_hours) if window_hours > 0 else 0
    target_throughput = round_int(SECONDS_PER_HOUR / max_target) if max_target > 0 else 0

    avg_target = total_target / station_count if station_count > 0 else 0.0
    if avg_target > 0 and avg_cycle_time > 0:
        performance_rate = min(100.0, avg_target / avg_cycle_time * 100)
    else:
        performance_rate = 0.0

    window_minutes = window_hours * 60
    availability_rate = 100.0
    if window_minutes > 0:
        availability_rate = max(0.0, min(100.0, 100 - total_downtime / window_minutes * 100))

    quality_rate = 100.0
    if total_output > 0:
        quality_rate = (total_output - total_defects) / total_output * 100

    oee = calc_oee(availability_rate, performance_rate, quality_rate)

    return {
        "current_throughput": current_throughput,
        "target_throughput": target_throughput,
        "line_efficiency": round_half_up(performance_rate, 1),
        "availability_rate": round_half_up(availability_rate, 1),
        "performance_rate": round_half_up(performance_rate, 1),
        "quality_rate": round_half_up(quality_rate, 1),
        "oee": round_half_up(oee, 1),
        "active_alerts": int(active_alerts),
        "bottleneck_count": int(bottleneck_count),
    }


def summarise_station_status(df_stations: pd.DataFrame) -> pd.DataFrame:
    """Per-station status table for the production-line view.

    Parameters
    ----------
    df_stations : From fetch_station_metrics(), one row per station with
        station_id, station_name, target_cycle_time, status,
        current_cycle_time, throughput, defect_rate, record_count.

    Returns
    -------
    DataFrame with columns:
        station_id, station_name, current_cycle_time, target_cycle_time,
        utilization, throughput, defect_rate, status, trend
    """
    columns = [
        "station_id", "station_name", "current_cycle_time", "target_cycle_time",
        "utilization", "throughput", "defect_rate", "status", "trend",
    ]
    if df_stations.empty:
        logger.warning("Empty station metrics, returning empty status table")
        return pd.DataFrame(columns=columns)

    df = df_stations.copy()
    # Stations without records fall back to their target
    df["current_cycle_time"] = df["current_cycle_time"].fillna(df["target_cycle_time"])
    max_cycle_time = df["current_cycle_time"].max()

    if pd.notna(max_cycle_time) and max_cycle_time > 0:
        df["utilization"] = (df["current_cycle_time"] / max_cycle_time * 100).apply(
            lambda x: round_half_up(x, 1)
        )
    else:
        df["utilization"] = 0.0

    df["trend"] = [
        classify_trend(current, target)
        for current, target in zip(df["current_cycle_time"], df["target_cycle_time"])
    ]
    df["current_cycle_time"] = df["current_cycle_time"].apply(lambda x: round_half_up(x, 1))
    df["throughput"] = df["throughput"].fillna(0).astype(int)
    df["defect_rate"] = df["defect_rate"].fillna(0.0).apply(lambda x: round_half_up(x, 1))
    df["status"] = df["status"].fillna("running")

    return df[columns].reset_index(drop=True)
