"""
Shared fixtures: temporary SQLite engines and hand-built station records.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from linebalancer.kpis import calc_variance
from linebalancer.loaders import get_engine, init_schema
from linebalancer.models import SimStation, StationAggregate
from linebalancer.seed import seed_database


@pytest.fixture
def engine(tmp_path):
    """Empty database with the schema created."""
    eng = get_engine(f"sqlite:///{tmp_path / 'line.db'}")
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def seeded_engine(tmp_path):
    """Two days of synthetic data, one record per station every 30 minutes."""
    eng = get_engine(f"sqlite:///{tmp_path / 'seeded.db'}")
    seed_database(eng, days=2, interval_minutes=30, seed=7)
    yield eng
    eng.dispose()


@pytest.fixture
def broken_engine(tmp_path):
    """Engine whose database has no tables, so every query fails."""
    eng = get_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    yield eng
    eng.dispose()


def make_station(
    station_id="ST003",
    target=90.0,
    avg=110.0,
    variance=0.0,
    downtime=0.0,
    samples=10,
    name=None,
) -> StationAggregate:
    """Station aggregate with variance_percent derived from avg and target."""
    variance_percent = 0.0
    if avg is not None:
        _, pct = calc_variance(avg, target)
        variance_percent = pct or 0.0
    return StationAggregate(
        station_id=station_id,
        station_name=name or f"Station {station_id}",
        target_cycle_time=target,
        avg_cycle_time=avg,
        variance_cycle_time=variance,
        sample_count=samples,
        total_downtime=downtime,
        variance_percent=variance_percent,
    )


@pytest.fixture
def two_station_line():
    """A slow first station (the bottleneck) and a faster second one."""
    return [
        SimStation(id="ST001", name="Welding", target_cycle_time=90, avg_cycle_time=100, operator_count=2),
        SimStation(id="ST002", name="Assembly", target_cycle_time=80, avg_cycle_time=80, operator_count=1),
    ]
