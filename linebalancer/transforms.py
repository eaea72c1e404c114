"""
Data transforms: turn loader DataFrames and request payloads into the
record types consumed by the bottleneck analyzer and the line simulator.
"""

import logging

import pandas as pd

from .kpis import calc_variance
from .models import ChangeType, ShiftAggregate, SimStation, SimulationChange, StationAggregate
from .utils import safe_float

logger = logging.getLogger(__name__)


def _valid_target(station_id, target: float | None) -> bool:
    if target is None or target <= 0:
        logger.warning("Dropping station %s: missing or non-positive target %s", station_id, target)
        return False
    return True


def build_station_aggregates(df_stations: pd.DataFrame) -> list[StationAggregate]:
    """Build analyzer input rows from fetch_station_aggregates().

    Parameters
    ----------
    df_stations : columns station_id, station_name, target_cycle_time,
        avg_cycle_time, variance_cycle_time, sample_count, total_downtime

    Returns
    -------
    One StationAggregate per usable station. Stations without records keep
    avg_cycle_time None (the analyzer skips them); variance_percent is the
    percent deviation of the average from target.
    """
    aggregates: list[StationAggregate] = []
    if df_stations.empty:
        logger.warning("No station rows to aggregate")
        return aggregates

    for _, row in df_stations.iterrows():
        station_id = str(row["station_id"])
        target = safe_float(row.get("target_cycle_time"))
        if not _valid_target(station_id, target):
            continue

        avg = safe_float(row.get("avg_cycle_time"))
        variance_percent = 0.0
        if avg is not None:
            _, pct = calc_variance(avg, target)
            variance_percent = pct or 0.0

        # E[x^2] - E[x]^2 can dip just below zero
        variance = max(0.0, safe_float(row.get("variance_cycle_time")) or 0.0)

        aggregates.append(StationAggregate(
            station_id=station_id,
            station_name=str(row.get("station_name") or station_id),
            target_cycle_time=target,
            avg_cycle_time=avg,
            variance_cycle_time=variance,
            sample_count=int(safe_float(row.get("sample_count")) or 0),
            total_downtime=safe_float(row.get("total_downtime")) or 0.0,
            variance_percent=variance_percent,
        ))

    logger.info("Built %d station aggregates", len(aggregates))
    return aggregates


def build_shift_aggregates(df_shifts: pd.DataFrame) -> list[ShiftAggregate]:
    """Build (shift, station) averages from fetch_shift_aggregates().

    Rows without an average are dropped.
    """
    aggregates: list[ShiftAggregate] = []
    for _, row in df_shifts.iterrows():
        avg = safe_float(row.get("avg_cycle_time"))
        if avg is None:
            continue
        aggregates.append(ShiftAggregate(
            shift=str(row["shift"]),
            station_id=str(row["station_id"]),
            avg_cycle_time=avg,
            sample_count=int(safe_float(row.get("sample_count")) or 0),
        ))
    return aggregates


def build_sim_stations(df_stations: pd.DataFrame) -> list[SimStation]:
    """Build simulator stations from fetch_sim_stations(), keeping line order.

    A missing average falls back to the target; operator counts are
    floored at 1.
    """
    stations: list[SimStation] = []
    for _, row in df_stations.iterrows():
        station_id = str(row["id"])
        target = safe_float(row.get("target_cycle_time"))
        if not _valid_target(station_id, target):
            continue

        avg = safe_float(row.get("avg_cycle_time"))
        operators = int(safe_float(row.get("operator_count")) or 1)

        stations.append(SimStation(
            id=station_id,
            name=str(row.get("name") or station_id),
            target_cycle_time=target,
            avg_cycle_time=avg if avg is not None else target,
            operator_count=max(1, operators),
        ))

    logger.info("Built %d simulator stations", len(stations))
    return stations


def build_simulation_changes(payload) -> list[SimulationChange]:
    """Validate a list of change dicts from the UI or an API caller.

    Each item needs "type", "value" and a station id under "station_id"
    (or "stationId"); "description" is optional.

    Raises
    ------
    ValueError for a non-list payload, a non-dict item, a missing station
    id, a non-numeric value, an unknown change type, a fractional operator
    delta, or a non-positive cycle time override.
    """
    if not isinstance(payload, list):
        raise ValueError("changes must be a list")

    changes: list[SimulationChange] = []
    for i, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValueError(f"change #{i} must be an object")

        station_id = item.get("station_id", item.get("stationId"))
        if not station_id:
            raise ValueError(f"change #{i} has no station id")

        value = safe_float(item.get("value"))
        if value is None:
            raise ValueError(f"change #{i} has a non-numeric value: {item.get('value')!r}")

        change = SimulationChange(
            type=item.get("type"),
            station_id=str(station_id),
            value=value,
            description=str(item.get("description") or ""),
        )
        if change.type is ChangeType.CHANGE_CYCLE_TIME:
            if value <= 0:
                raise ValueError(f"change #{i} needs a positive cycle time, got {value:g}")
        elif not value.is_integer():
            raise ValueError(f"change #{i} needs a whole number of operators, got {value:g}")
        changes.append(change)

    return changes
