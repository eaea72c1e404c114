"""
Synthetic data generator for the production line dashboard.

Generates stations, operators, production records and alerts that look like
a real assembly line: two chronically slow stations, a slower night shift,
operator efficiency effects and start/end-of-week drift.
All values are synthetic.
"""

import logging
from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
from sqlalchemy.engine import Engine

from .config import SHIFTS, STATION_CATALOGUE, TIMESTAMP_FORMAT
from .loaders import insert_alerts, reset_schema
from .utils import format_timestamp, utc_now

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Line behaviour
# ---------------------------------------------------------------------------
PROBLEM_STATIONS = ("ST003", "ST007")

BASE_DEFECT_PROB = 0.02
BASE_DOWNTIME_PROB = 0.05
CYCLE_NOISE_PCT = 0.15
CYCLE_FLOOR_RATIO = 0.8

_OPERATOR_NAMES = [
    "Marcus Chen", "Sarah Williams", "James Rodriguez", "Emily Thompson", "Michael Kim",
    "Jessica Brown", "David Singh", "Amanda Lee", "Robert Taylor", "Maria Garcia",
    "William Johnson", "Jennifer Davis", "Christopher Martinez", "Lisa Anderson", "Daniel Wilson",
    "Michelle Thomas", "Steven Jackson", "Kimberly White", "Paul Harris", "Nancy Martin",
    "Kevin Robinson", "Laura Clark", "Brian Lewis", "Sandra Walker", "Joseph Hall",
    "Rebecca Allen", "Charles Young", "Elizabeth King", "Matthew Wright", "Patricia Scott",
]

# None entries: downtime logged without a reason
_DOWNTIME_REASONS = [
    "Equipment maintenance", "Material shortage", "Quality issue upstream",
    "Operator break", "Tool change", "System calibration", "Power fluctuation",
    None, None, None, None, None,
]

# (hours ago, type, severity, station, message, details, acknowledged)
_ALERTS = [
    (2, "bottleneck", "critical", "ST003",
     "Welding Cell consistently exceeding target cycle time",
     "Average cycle time 23% above target over the last 24 hours. This is causing downstream delays.", 0),
    (4, "bottleneck", "warning", "ST007",
     "Final Assembly showing increased variability",
     "Cycle time variance has increased 40% compared to last week. Pattern suggests operator-related issues.", 0),
    (8, "pattern_change", "warning", "ST003",
     "Night shift performance degradation detected",
     "Night shift cycle times are 18% higher than day shift average. Recommend investigation.", 0),
    (6, "quality", "warning", "ST002",
     "Defect rate spike at CNC Machining",
     "Defect rate increased from 2.1% to 4.8% in the last 6 hours.", 0),
    (12, "maintenance", "info", "ST004",
     "Scheduled maintenance reminder",
     "Surface Treatment equipment due for preventive maintenance in 48 hours.", 1),
    (1, "delay", "critical", None,
     "Line efficiency dropped below 75%",
     "Overall line efficiency at 72.3%. Multiple bottlenecks detected affecting throughput.", 0),
]


def shift_for_hours(hours: np.ndarray) -> np.ndarray:
    """Day 06-14, swing 14-22, night otherwise."""
    return np.where(
        (hours >= 6) & (hours < 14), "day",
        np.where((hours >= 14) & (hours < 22), "swing", "night"),
    )


def generate_stations() -> pd.DataFrame:
    return pd.DataFrame(
        STATION_CATALOGUE,
        columns=["id", "name", "description", "target_cycle_time", "position", "operator_count"],
    )


def generate_operators(stations: pd.DataFrame, rng: np.random.Generator) -> pd.DataFrame:
    """One operator per station slot per shift, skill 3-5, efficiency 85-100%."""
    rows = []
    for station in stations.itertuples(index=False):
        for i in range(station.operator_count * len(SHIFTS)):
            idx = len(rows)
            rows.append({
                "id": f"OP{idx + 1:03d}",
                "name": _OPERATOR_NAMES[idx % len(_OPERATOR_NAMES)],
                "shift": SHIFTS[i % len(SHIFTS)],
                "skill_level": int(rng.integers(3, 6)),
                "station_id": station.id,
                "efficiency": float(rng.uniform(85, 100)),
            })
    return pd.DataFrame(rows)


def generate_production_records(
    stations: pd.DataFrame,
    operators: pd.DataFrame,
    start: datetime,
    end: datetime,
    interval_minutes: int,
    rng: np.random.Generator,
) -> pd.DataFrame:
    """One record per station every `interval_minutes` in [start, end).

    Parameters
    ----------
    start, end : naive UTC datetimes.

    Returns
    -------
    DataFrame matching the production_records table.
    """
    timestamps = pd.date_range(start, end, freq=f"{interval_minutes}min", inclusive="left")
    n = len(timestamps)
    if n == 0:
        logger.warning("Empty seeding window %s - %s", start, end)
        return pd.DataFrame()

    shifts = shift_for_hours(timestamps.hour.to_numpy())
    weekday = timestamps.dayofweek.to_numpy()
    stamp_strings = timestamps.strftime(TIMESTAMP_FORMAT)
    reasons_pool = np.array(_DOWNTIME_REASONS, dtype=object)

    frames = []
    for station in stations.itertuples(index=False):
        station_ops = operators[operators["station_id"] == station.id]
        operator_ids = np.full(n, None, dtype=object)
        efficiency = np.full(n, 100.0)

        for shift in SHIFTS:
            mask = shifts == shift
            shift_ops = station_ops[station_ops["shift"] == shift]
            if shift_ops.empty or not mask.any():
                continue
            pick = rng.integers(0, len(shift_ops), size=int(mask.sum()))
            operator_ids[mask] = shift_ops["id"].to_numpy()[pick]
            efficiency[mask] = shift_ops["efficiency"].to_numpy()[pick]

        multiplier = np.ones(n)
        defect_prob = np.full(n, BASE_DEFECT_PROB)
        downtime_prob = np.full(n, BASE_DOWNTIME_PROB)

        if station.id in PROBLEM_STATIONS:
            multiplier += rng.uniform(0.15, 0.35, n)
            defect_prob += 0.03
            downtime_prob += 0.1

        night = shifts == "night"
        multiplier += np.where(night, rng.uniform(0.08, 0.18, n), 0.0)
        defect_prob += np.where(night, 0.02, 0.0)

        # Less efficient operators are slower
        multiplier *= (200 - efficiency) / 100

        # Monday and Friday drift
        multiplier += np.where(weekday == 0, 0.05, 0.0)
        multiplier += np.where(weekday == 4, 0.03, 0.0)

        base = station.target_cycle_time * multiplier
        noise = rng.uniform(-1, 1, n) * base * CYCLE_NOISE_PCT
        cycle_time = np.maximum(station.target_cycle_time * CYCLE_FLOOR_RATIO, base + noise)

        defects = np.where(rng.random(n) < defect_prob, rng.integers(1, 4, n), 0)
        has_downtime = rng.random(n) < downtime_prob
        downtime = np.where(has_downtime, rng.integers(2, 17, n), 0)
        reasons = np.where(has_downtime, reasons_pool[rng.integers(0, len(reasons_pool), n)], None)

        frame = pd.DataFrame({
            "id": [f"PR-{station.id}-{i:06d}" for i in range(n)],
            "station_id": station.id,
            "operator_id": operator_ids,
            "timestamp": stamp_strings,
            "cycle_time": np.round(cycle_time, 1),
            "quantity": 1,
            "defects": defects.astype(int),
            "shift": shifts,
            "downtime_minutes": downtime.astype(float),
            "downtime_reason": reasons,
        })
        frames.append(frame[frame["operator_id"].notna()])

    records = pd.concat(frames, ignore_index=True)
    logger.info("Generated %d production records over %d intervals", len(records), n)
    return records


def generate_alerts(now: datetime) -> pd.DataFrame:
    rows = []
    for i, (hours_ago, kind, severity, station_id, message, details, acked) in enumerate(_ALERTS, 1):
        rows.append({
            "id": f"ALT{i:03d}",
            "type": kind,
            "severity": severity,
            "station_id": station_id,
            "message": message,
            "details": details,
            "timestamp": format_timestamp(now - timedelta(hours=hours_ago)),
            "acknowledged": acked,
        })
    return pd.DataFrame(rows)


def seed_database(
    engine: Engine,
    days: int = 30,
    interval_minutes: int = 5,
    seed: int = 42,
    now: datetime | None = None,
) -> dict[str, int]:
    """Drop and recreate the schema, then fill it with synthetic line data.

    Returns
    -------
    Row counts per table.
    """
    rng = np.random.default_rng(seed)
    if now is None:
        now = utc_now()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)

    stations = generate_stations()
    operators = generate_operators(stations, rng)
    records = generate_production_records(
        stations, operators, now - timedelta(days=days), now, interval_minutes, rng,
    )
    alerts = generate_alerts(now)

    reset_schema(engine)
    with engine.begin() as conn:
        stations.to_sql("stations", conn, if_exists="append", index=False)
        operators.to_sql("operators", conn, if_exists="append", index=False)
        if not records.empty:
            records.to_sql("production_records", conn, if_exists="append", index=False, chunksize=5000)
    insert_alerts(engine, alerts)

    counts = {
        "stations": len(stations),
        "operators": len(operators),
        "production_records": len(records),
        "alerts": len(alerts),
    }
    logger.info("Seeded database: %s", counts)
    return counts
