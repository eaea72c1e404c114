"""
Configuration: database location, station catalogue, analysis thresholds,
recommendation playbook.

RECOMMENDATION_PLAYBOOK maps each recommendation key to its type, the
multiplier applied to the triggering cause's confidence, cost tier, lead
time, and description template.
"""

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Storage (override the URL with LINEBALANCER_DATABASE_URL)
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent

DATABASE_FILE = DATA_DIR / "linebalancer.db"
DATABASE_URL = os.getenv("LINEBALANCER_DATABASE_URL", f"sqlite:///{DATABASE_FILE}")

# SQLite's own datetime() format, so Python cutoffs and SQL modifiers compare
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL = os.getenv("LINEBALANCER_LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# Line identity
# ---------------------------------------------------------------------------
LINE_NAME = "Assembly Line 1"

SHIFTS = ("day", "night", "swing")

# (id, name, description, target cycle time s, position, operators per shift)
STATION_CATALOGUE = [
    ("ST001", "Material Loading", "Raw material input and verification", 45, 1, 2),
    ("ST002", "CNC Machining", "Precision metal cutting and shaping", 120, 2, 3),
    ("ST003", "Welding Cell", "Automated and manual welding operations", 90, 3, 4),
    ("ST004", "Surface Treatment", "Cleaning, coating, and finishing", 75, 4, 2),
    ("ST005", "Sub-Assembly A", "Component sub-assembly station", 60, 5, 3),
    ("ST006", "Sub-Assembly B", "Secondary component assembly", 55, 6, 3),
    ("ST007", "Final Assembly", "Main product assembly", 100, 7, 5),
    ("ST008", "Quality Inspection", "Final quality check and testing", 50, 8, 2),
    ("ST009", "Packaging", "Product packaging and labeling", 40, 9, 2),
    ("ST010", "Shipping Prep", "Palletizing and shipping preparation", 35, 10, 2),
]

# ---------------------------------------------------------------------------
# Analysis windows (hours)
# ---------------------------------------------------------------------------
DEFAULT_WINDOW_HOURS = int(os.getenv("LINEBALANCER_WINDOW_HOURS", "24"))
TREND_WINDOW_HOURS = 168

# ---------------------------------------------------------------------------
# Bottleneck thresholds
# ---------------------------------------------------------------------------
# Lower bound of each bucket is exclusive: exactly 20.0 is "high".
SEVERITY_THRESHOLDS = [
    (20.0, "critical"),
    (10.0, "high"),
    (5.0, "medium"),
]

# Sub-score caps for the 0-100 impact score
VARIANCE_SCORE_CAP = 40.0
CONSISTENCY_SCORE_CAP = 20.0
POSITION_SCORE_CAP = 20.0
DOWNTIME_SCORE_CAP = 20.0

SHIFT_SPREAD_THRESHOLD_PCT = 10.0
OPERATOR_CV_THRESHOLD_PCT = 15.0
EQUIPMENT_VARIANCE_THRESHOLD_PCT = 15.0
EQUIPMENT_MAX_CV_PCT = 10.0
DOWNTIME_THRESHOLD_MIN = 60.0
REBALANCE_IMPACT_THRESHOLD = 50

# Stations above this variance percent count toward the overview's bottleneck count
BOTTLENECK_COUNT_THRESHOLD_PCT = 10.0

# ---------------------------------------------------------------------------
# Recommendation playbook
# ---------------------------------------------------------------------------
# multiplier: expected_improvement = round(confidence * multiplier)
# fixed_improvement: used instead of a multiplier (rebalance)
RECOMMENDATION_PLAYBOOK: dict[str, dict] = {
    "shift": {
        "type": "training",
        "multiplier": 15,
        "cost": "low",
        "time": "1-2 weeks",
        "description": "Provide additional training for underperforming shift at {station}",
    },
    "operator": {
        "type": "add_operator",
        "multiplier": 20,
        "cost": "medium",
        "time": "2-4 weeks",
        "description": "Add operator to {station} to reduce workload and improve consistency",
    },
    "training": {
        "type": "training",
        "multiplier": 10,
        "cost": "low",
        "time": "1 week",
        "description": "Standardize work procedures at {station}",
    },
    "equipment": {
        "type": "equipment",
        "multiplier": 25,
        "cost": "high",
        "time": "4-8 weeks",
        "description": "Upgrade or maintain equipment at {station}",
    },
    "maintenance": {
        "type": "maintenance",
        "multiplier": 12,
        "cost": "medium",
        "time": "2 weeks",
        "description": "Implement predictive maintenance schedule for {station}",
    },
    "rebalance": {
        "type": "rebalance",
        "fixed_improvement": 15,
        "cost": "medium",
        "time": "2-3 weeks",
        "description": "Consider redistributing work from {station} to adjacent stations",
    },
}

# Root-cause type -> playbook keys emitted, in order
CAUSE_PLAYBOOK: dict[str, tuple[str, ...]] = {
    "shift": ("shift",),
    "operator": ("operator", "training"),
    "equipment": ("equipment", "maintenance"),
}

# ---------------------------------------------------------------------------
# Simulator constants
# ---------------------------------------------------------------------------
SECONDS_PER_HOUR = 3600
ADD_OPERATOR_GAIN = 0.15
REMOVE_OPERATOR_PENALTY = 0.2

# ---------------------------------------------------------------------------
# KPI / trend constants
# ---------------------------------------------------------------------------
TREND_BAND_PCT = 5.0
MIN_TREND_POINTS = 10
DELAY_SLOPE_THRESHOLD = 0.5
DELAY_RECENT_RATIO = 1.1
MAINTENANCE_VARIANCE_RATIO = 0.3
