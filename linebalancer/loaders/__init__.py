"""Storage access for production line data (SQLAlchemy engine + SQLite queries)."""

from .schema import get_engine, init_schema, reset_schema
from .production import fetch_station_aggregates, fetch_shift_aggregates
from .production import fetch_sim_stations, fetch_station_metrics
from .production import fetch_production_stats, fetch_station_stats
from .production import fetch_trend_data, fetch_shift_comparison, execute_select
from .alerts import fetch_active_alerts, acknowledge_alert, insert_alerts

__all__ = [
    "get_engine",
    "init_schema",
    "reset_schema",
    "fetch_station_aggregates",
    "fetch_shift_aggregates",
    "fetch_sim_stations",
    "fetch_station_metrics",
    "fetch_production_stats",
    "fetch_station_stats",
    "fetch_trend_data",
    "fetch_shift_comparison",
    "execute_select",
    "fetch_active_alerts",
    "acknowledge_alert",
    "insert_alerts",
]
