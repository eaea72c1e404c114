"""
Early-warning predictions from hourly cycle-time trends.
"""

import logging
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from .config import (
    DELAY_RECENT_RATIO,
    DELAY_SLOPE_THRESHOLD,
    MAINTENANCE_VARIANCE_RATIO,
    MIN_TREND_POINTS,
)
from .models import BottleneckFinding, Prediction
from .utils import utc_now

logger = logging.getLogger(__name__)


def calc_trend_slope(values: np.ndarray) -> float:
    """Least-squares slope of values against their index."""
    if len(values) < 2:
        return 0.0
    x = np.arange(len(values), dtype=float)
    slope, _ = np.polyfit(x, values, 1)
    return float(slope)


def generate_predictions(
    trend_df: pd.DataFrame,
    findings: list[BottleneckFinding],
    now: datetime | None = None,
) -> list[Prediction]:
    """Flag stations whose cycle time is drifting up or becoming erratic.

    Parameters
    ----------
    trend_df : Hourly trend from fetch_trend_data("cycle_time"), with
        columns hour, station_id, value; rows in time order.
    findings : Current bottleneck findings, used for station names.
    now : Reference time for predicted timestamps (defaults to UTC now).

    Rules
    -----
    - slope > 0.5 and mean of the last 5 points > 1.1 x overall mean
      -> "delay" expected within 4 hours.
    - population variance of the last 20 points > 0.3 x overall mean
      -> "maintenance_needed" within 24 hours.
    Stations with fewer than 10 points are skipped.
    """
    if trend_df.empty:
        return []
    if now is None:
        now = utc_now()

    names = {f.station_id: f.station_name for f in findings}
    predictions: list[Prediction] = []

    for station_id, group in trend_df.groupby("station_id", sort=False):
        values = group["value"].dropna().to_numpy(dtype=float)
        if len(values) < MIN_TREND_POINTS:
            continue

        slope = calc_trend_slope(values)
        recent_avg = float(values[-5:].mean())
        historical_avg = float(values.mean())

        if slope > DELAY_SLOPE_THRESHOLD and recent_avg > historical_avg * DELAY_RECENT_RATIO:
            predictions.append(Prediction(
                id=f"pred-{station_id}-delay",
                type="delay",
                station_id=station_id,
                predicted_time=now + timedelta(hours=4),
                confidence=min(0.85, 0.5 + slope * 0.1),
                description=(
                    f"{names.get(station_id, station_id)} showing deteriorating trend"
                    " - expect delays within 4 hours"
                ),
                preventive_actions=(
                    "Monitor station closely",
                    "Prepare backup operators",
                    "Check equipment status",
                ),
            ))

        if float(np.var(values[-20:])) > historical_avg * MAINTENANCE_VARIANCE_RATIO:
            predictions.append(Prediction(
                id=f"pred-{station_id}-maintenance",
                type="maintenance_needed",
                station_id=station_id,
                predicted_time=now + timedelta(hours=24),
                confidence=0.7,
                description=f"Increased variability at {station_id} suggests equipment wear",
                preventive_actions=(
                    "Schedule preventive maintenance",
                    "Inspect critical components",
                    "Prepare spare parts",
                ),
            ))

    logger.info("Generated %d predictions", len(predictions))
    return predictions
