"""
Read queries over stations and production records.

Each function takes an engine plus a storage-format cutoff timestamp
(see utils.cutoff_timestamp) and returns a pandas DataFrame or dict.
Variance is computed as E[x^2] - E[x]^2 since SQLite has no variance
aggregate; tiny negative values from float error are clamped downstream.
"""

import logging

import pandas as pd
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# metric name -> aggregate expression; unknown metrics fall back to cycle time
TREND_METRICS = {
    "cycle_time": "AVG(cycle_time)",
    "throughput": "SUM(quantity)",
    "defect_rate": "AVG(defects * 1.0 / NULLIF(quantity, 0) * 100)",
    "downtime": "SUM(downtime_minutes)",
}


def _read(engine: Engine, sql: str, params: tuple = ()) -> pd.DataFrame:
    with engine.connect() as conn:
        return pd.read_sql(sql, conn, params=params or None)


def fetch_station_aggregates(engine: Engine, since: str) -> pd.DataFrame:
    """Per-station cycle-time statistics since `since`.

    Returns
    -------
    DataFrame with columns:
        station_id, station_name, target_cycle_time, avg_cycle_time,
        variance_cycle_time, sample_count, total_downtime
    Stations without records have NULL (NaN) averages and sample_count 0.
    """
    df = _read(engine, """
        SELECT
            s.id AS station_id,
            s.name AS station_name,
            s.target_cycle_time,
            AVG(pr.cycle_time) AS avg_cycle_time,
            AVG(pr.cycle_time * pr.cycle_time) - AVG(pr.cycle_time) * AVG(pr.cycle_time)
                AS variance_cycle_time,
            COUNT(pr.id) AS sample_count,
            SUM(pr.downtime_minutes) AS total_downtime
        FROM stations s
        LEFT JOIN production_records pr
            ON s.id = pr.station_id AND pr.timestamp >= ?
        GROUP BY s.id
        ORDER BY s.position
    """, (since,))
    logger.info("Fetched %d station aggregates since %s", len(df), since)
    return df


def fetch_shift_aggregates(engine: Engine, since: str) -> pd.DataFrame:
    """Average cycle time per (shift, station) since `since`.

    Returns
    -------
    DataFrame with columns: shift, station_id, avg_cycle_time, sample_count
    """
    return _read(engine, """
        SELECT
            shift,
            station_id,
            AVG(cycle_time) AS avg_cycle_time,
            COUNT(*) AS sample_count
        FROM production_records
        WHERE timestamp >= ?
        GROUP BY shift, station_id
        ORDER BY station_id, shift
    """, (since,))


def fetch_sim_stations(engine: Engine, since: str) -> pd.DataFrame:
    """Stations in line order with their current average cycle time.

    The average defaults to the target when no records exist yet.

    Returns
    -------
    DataFrame with columns:
        id, name, target_cycle_time, operator_count, avg_cycle_time
    """
    return _read(engine, """
        SELECT
            s.id,
            s.name,
            s.target_cycle_time,
            s.operator_count,
            COALESCE(AVG(pr.cycle_time), s.target_cycle_time) AS avg_cycle_time
        FROM stations s
        LEFT JOIN production_records pr
            ON s.id = pr.station_id AND pr.timestamp >= ?
        GROUP BY s.id
        ORDER BY s.position
    """, (since,))


def fetch_station_metrics(engine: Engine, since: str) -> pd.DataFrame:
    """Per-station output, defect rate and current cycle time since `since`.

    Returns
    -------
    DataFrame with columns:
        station_id, station_name, target_cycle_time, status,
        current_cycle_time, throughput, defect_rate, record_count
    """
    return _read(engine, """
        SELECT
            s.id AS station_id,
            s.name AS station_name,
            s.target_cycle_time,
            s.status,
            AVG(pr.cycle_time) AS current_cycle_time,
            SUM(pr.quantity) AS throughput,
            AVG(pr.defects * 1.0 / NULLIF(pr.quantity, 0) * 100) AS defect_rate,
            COUNT(pr.id) AS record_count
        FROM stations s
        LEFT JOIN production_records pr
            ON s.id = pr.station_id AND pr.timestamp >= ?
        GROUP BY s.id
        ORDER BY s.position
    """, (since,))


def fetch_production_stats(engine: Engine, since: str) -> dict:
    """Line-wide totals since `since`.

    Returns
    -------
    Dict with keys: total_output, avg_cycle_time, total_defects,
    total_downtime, record_count (sums are None when there are no records).
    """
    df = _read(engine, """
        SELECT
            SUM(quantity) AS total_output,
            AVG(cycle_time) AS avg_cycle_time,
            SUM(defects) AS total_defects,
            SUM(downtime_minutes) AS total_downtime,
            COUNT(*) AS record_count
        FROM production_records
        WHERE timestamp >= ?
    """, (since,))
    return df.iloc[0].to_dict()


def fetch_station_stats(engine: Engine) -> dict:
    """Station count and target cycle-time totals.

    Returns
    -------
    Dict with keys: station_count, total_target, max_target
    """
    df = _read(engine, """
        SELECT
            COUNT(*) AS station_count,
            SUM(target_cycle_time) AS total_target,
            MAX(target_cycle_time) AS max_target
        FROM stations
    """)
    return df.iloc[0].to_dict()


def fetch_trend_data(
    engine: Engine,
    since: str,
    metric: str = "cycle_time",
    station_id: str | None = None,
) -> pd.DataFrame:
    """Hourly metric values per station since `since`.

    Returns
    -------
    DataFrame with columns: hour, station_id, value (ordered by hour)
    """
    if metric not in TREND_METRICS:
        logger.warning("Unknown trend metric '%s', using cycle_time", metric)
    expression = TREND_METRICS.get(metric, TREND_METRICS["cycle_time"])

    sql = f"""
        SELECT
            strftime('%Y-%m-%d %H:00:00', timestamp) AS hour,
            station_id,
            {expression} AS value
        FROM production_records
        WHERE timestamp >= ?
    """
    params: tuple = (since,)
    if station_id:
        sql += " AND station_id = ?"
        params = (since, station_id)
    sql += " GROUP BY hour, station_id ORDER BY hour, station_id"

    return _read(engine, sql, params)


def fetch_shift_comparison(engine: Engine, since: str) -> pd.DataFrame:
    """Cycle time, output, defect rate and downtime per shift since `since`."""
    return _read(engine, """
        SELECT
            shift,
            AVG(cycle_time) AS avg_cycle_time,
            SUM(quantity) AS total_quantity,
            AVG(defects * 1.0 / NULLIF(quantity, 0) * 100) AS avg_defect_rate,
            SUM(downtime_minutes) AS total_downtime
        FROM production_records
        WHERE timestamp >= ?
        GROUP BY shift
        ORDER BY shift
    """, (since,))


def execute_select(engine: Engine, sql: str) -> pd.DataFrame:
    """Run a generated read-only query.

    Raises
    ------
    ValueError if the statement is not a SELECT.
    """
    if not sql.strip().lower().startswith("select"):
        raise ValueError("Only SELECT queries are allowed")
    return _read(engine, sql)
