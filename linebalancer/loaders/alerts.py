"""
Alert storage: active alert listing, acknowledgement, bulk insert.
"""

import logging

import pandas as pd
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

ALERT_COLUMNS = [
    "id", "type", "severity", "station_id", "message", "details",
    "timestamp", "acknowledged",
]


def fetch_active_alerts(engine: Engine) -> pd.DataFrame:
    """Unacknowledged alerts, critical first, then warning, then the rest;
    newest first within a severity."""
    with engine.connect() as conn:
        return pd.read_sql("""
            SELECT id, type, severity, station_id, message, details,
                timestamp, acknowledged, resolved_at
            FROM alerts
            WHERE acknowledged = 0
            ORDER BY
                CASE severity
                    WHEN 'critical' THEN 1
                    WHEN 'warning' THEN 2
                    ELSE 3
                END,
                timestamp DESC
        """, conn)


def acknowledge_alert(engine: Engine, alert_id: str) -> bool:
    """Mark an alert acknowledged and resolved. Returns False if no such alert."""
    with engine.begin() as conn:
        result = conn.exec_driver_sql(
            "UPDATE alerts SET acknowledged = 1, resolved_at = CURRENT_TIMESTAMP WHERE id = ?",
            (alert_id,),
        )
    if result.rowcount == 0:
        logger.warning("No alert with id %s to acknowledge", alert_id)
        return False
    logger.info("Acknowledged alert %s", alert_id)
    return True


def insert_alerts(engine: Engine, df_alerts: pd.DataFrame) -> int:
    """Append alert rows (columns as ALERT_COLUMNS). Returns rows written."""
    if df_alerts.empty:
        return 0
    missing = [c for c in ALERT_COLUMNS if c not in df_alerts.columns]
    if missing:
        raise ValueError(f"Alert rows missing columns: {missing}")

    with engine.begin() as conn:
        df_alerts[ALERT_COLUMNS].to_sql("alerts", conn, if_exists="append", index=False)
    logger.info("Inserted %d alerts", len(df_alerts))
    return len(df_alerts)
