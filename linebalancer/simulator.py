"""
What-if line simulator.

Projects line-level metrics (bottleneck, throughput, efficiency, station
utilisation, wait time) before and after a set of proposed staffing or
cycle-time changes. Changes are applied to copies; input stations are never
modified.
"""

import logging
import math
from dataclasses import replace

from .config import ADD_OPERATOR_GAIN, REMOVE_OPERATOR_PENALTY, SECONDS_PER_HOUR
from .models import (
    ChangeType,
    SimStation,
    SimulationChange,
    SimulationOutcome,
    SimulationResult,
)
from .utils import round_half_up, round_int

logger = logging.getLogger(__name__)


def compute_line_metrics(stations: list[SimStation]) -> SimulationResult:
    """Line metrics for a list of stations in line order.

    The bottleneck is the station with the strictly greatest average cycle
    time (first one wins ties). With no stations, or none with a positive
    cycle time, there is no bottleneck and throughput, efficiency, wait
    time and utilisation are all zero.
    """
    if not stations:
        return SimulationResult(
            throughput_per_hour=0,
            avg_cycle_time=0.0,
            line_efficiency=0.0,
            bottleneck_station=None,
            wait_time_total=0,
            utilization_by_station={},
        )

    bottleneck: str | None = None
    max_cycle_time = 0.0
    for station in stations:
        if station.avg_cycle_time > max_cycle_time:
            max_cycle_time = station.avg_cycle_time
            bottleneck = station.id

    avg_cycle_time = sum(s.avg_cycle_time for s in stations) / len(stations)

    if bottleneck is None:
        logger.warning("No station has a positive cycle time; line metrics are degenerate")
        return SimulationResult(
            throughput_per_hour=0,
            avg_cycle_time=round_half_up(avg_cycle_time, 1),
            line_efficiency=0.0,
            bottleneck_station=None,
            wait_time_total=0,
            utilization_by_station={s.id: 0.0 for s in stations},
        )

    utilization: dict[str, float] = {}
    wait_time_total = 0.0
    for station in stations:
        utilization[station.id] = max(0.0, min(1.0, station.avg_cycle_time / max_cycle_time))
        wait_time_total += max_cycle_time - station.avg_cycle_time

    total_target = sum(s.target_cycle_time for s in stations)
    line_efficiency = total_target / (max_cycle_time * len(stations)) * 100

    return SimulationResult(
        throughput_per_hour=math.floor(SECONDS_PER_HOUR / max_cycle_time),
        avg_cycle_time=round_half_up(avg_cycle_time, 1),
        line_efficiency=round_half_up(line_efficiency, 1),
        bottleneck_station=bottleneck,
        wait_time_total=round_int(wait_time_total),
        utilization_by_station=utilization,
    )


def apply_change(
    working: SimStation,
    baseline: SimStation,
    change: SimulationChange,
) -> SimStation:
    """Return a new station with one change applied.

    Operator changes always scale the *baseline* average cycle time, so
    repeated operator changes to one station do not compound.
    """
    if change.type is ChangeType.ADD_OPERATOR:
        n = int(change.value)
        operators = max(1, working.operator_count + n)
        # Diminishing returns per added operator
        factor = 1 - ADD_OPERATOR_GAIN * n * (1 / math.sqrt(operators))
        return replace(
            working,
            operator_count=operators,
            avg_cycle_time=baseline.avg_cycle_time * factor,
        )

    if change.type is ChangeType.REMOVE_OPERATOR:
        n = int(change.value)
        operators = max(1, working.operator_count - n)
        factor = 1 + REMOVE_OPERATOR_PENALTY * n
        return replace(
            working,
            operator_count=operators,
            avg_cycle_time=baseline.avg_cycle_time * factor,
        )

    if change.type is ChangeType.CHANGE_CYCLE_TIME:
        return replace(working, avg_cycle_time=float(change.value))

    raise ValueError(f"Unknown change type: {change.type!r}")


def apply_changes(
    stations: list[SimStation],
    changes: list[SimulationChange],
) -> list[SimStation]:
    """Apply every change, in list order, to per-station copies."""
    known_ids = {s.id for s in stations}
    for change in changes:
        if change.station_id not in known_ids:
            logger.debug("Ignoring change for unknown station %s", change.station_id)

    modified = []
    for station in stations:
        working = station
        for change in changes:
            if change.station_id == station.id:
                working = apply_change(working, station, change)
        modified.append(working)
    return modified


def run_simulation(
    stations: list[SimStation],
    changes: list[SimulationChange],
) -> SimulationOutcome:
    """Baseline metrics for `stations` and projected metrics after `changes`."""
    baseline = compute_line_metrics(stations)
    projected = compute_line_metrics(apply_changes(stations, changes))

    logger.info(
        "Simulated %d changes: throughput %d -> %d/h, bottleneck %s -> %s",
        len(changes),
        baseline.throughput_per_hour, projected.throughput_per_hour,
        baseline.bottleneck_station, projected.bottleneck_station,
    )
    return SimulationOutcome(baseline=baseline, projected=projected)


simulate = run_simulation
