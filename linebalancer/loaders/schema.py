"""
Engine construction and schema management for the production store.

The engine is created once by the entry point and handed to every loader;
init_schema() runs once at startup and is idempotent.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from ..config import DATABASE_URL

logger = logging.getLogger(__name__)

TABLES = ("alerts", "production_records", "operators", "stations")

_SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS stations (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        target_cycle_time REAL NOT NULL,
        position INTEGER NOT NULL,
        operator_count INTEGER DEFAULT 1,
        status TEXT DEFAULT 'running',
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS operators (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        shift TEXT NOT NULL,
        skill_level INTEGER DEFAULT 3,
        station_id TEXT,
        efficiency REAL DEFAULT 100,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (station_id) REFERENCES stations(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS production_records (
        id TEXT PRIMARY KEY,
        station_id TEXT NOT NULL,
        operator_id TEXT NOT NULL,
        timestamp DATETIME NOT NULL,
        cycle_time REAL NOT NULL,
        quantity INTEGER DEFAULT 1,
        defects INTEGER DEFAULT 0,
        shift TEXT NOT NULL,
        downtime_minutes REAL DEFAULT 0,
        downtime_reason TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (station_id) REFERENCES stations(id),
        FOREIGN KEY (operator_id) REFERENCES operators(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS alerts (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL,
        severity TEXT NOT NULL,
        station_id TEXT,
        message TEXT NOT NULL,
        details TEXT,
        timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
        acknowledged INTEGER DEFAULT 0,
        resolved_at DATETIME,
        FOREIGN KEY (station_id) REFERENCES stations(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_production_station ON production_records(station_id)",
    "CREATE INDEX IF NOT EXISTS idx_production_timestamp ON production_records(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_production_shift ON production_records(shift)",
    "CREATE INDEX IF NOT EXISTS idx_alerts_type ON alerts(type)",
    "CREATE INDEX IF NOT EXISTS idx_alerts_severity ON alerts(severity)",
]


def get_engine(url: str | None = None) -> Engine:
    """Create the SQLAlchemy engine for `url` (defaults to config.DATABASE_URL)."""
    url = url or DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    logger.info("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def init_schema(engine: Engine) -> None:
    """Create tables and indexes if they do not exist."""
    with engine.begin() as conn:
        for statement in _SCHEMA_STATEMENTS:
            conn.exec_driver_sql(statement)
    logger.info("Schema ready (%d statements)", len(_SCHEMA_STATEMENTS))


def reset_schema(engine: Engine) -> None:
    """Drop every table and recreate the schema. Used when seeding."""
    with engine.begin() as conn:
        for table in TABLES:
            conn.exec_driver_sql(f"DROP TABLE IF EXISTS {table}")
    logger.warning("Dropped tables: %s", ", ".join(TABLES))
    init_schema(engine)
