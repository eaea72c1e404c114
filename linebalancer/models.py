"""
Record types exchanged between the storage layer, the analysis engines and
the dashboard.

All records are frozen dataclasses. ``to_dict()`` returns plain
JSON-serialisable data (enum values as strings, tuples as lists, datetimes
as ISO strings) so a front end can pass results through unchanged.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Severity(str, Enum):
    """Bottleneck severity, ordered low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.value]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {"low": 0, "medium": 1, "high": 2, "critical": 3}


class CauseType(str, Enum):
    SHIFT = "shift"
    OPERATOR = "operator"
    EQUIPMENT = "equipment"
    MATERIAL = "material"
    PROCESS = "process"


class RecommendationType(str, Enum):
    ADD_OPERATOR = "add_operator"
    TRAINING = "training"
    EQUIPMENT = "equipment"
    REBALANCE = "rebalance"
    MAINTENANCE = "maintenance"


class CostTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ChangeType(str, Enum):
    ADD_OPERATOR = "add_operator"
    REMOVE_OPERATOR = "remove_operator"
    CHANGE_CYCLE_TIME = "change_cycle_time"


# ---------------------------------------------------------------------------
# Analyzer inputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class StationAggregate:
    """Per-station statistics over the query window."""

    station_id: str
    station_name: str
    target_cycle_time: float
    avg_cycle_time: float | None
    variance_cycle_time: float = 0.0
    sample_count: int = 0
    total_downtime: float = 0.0
    variance_percent: float = 0.0


@dataclass(frozen=True)
class ShiftAggregate:
    """Average cycle time for one (shift, station) pair."""

    shift: str
    station_id: str
    avg_cycle_time: float
    sample_count: int = 0


# ---------------------------------------------------------------------------
# Analyzer outputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RootCause:
    type: CauseType
    description: str
    confidence: float
    evidence: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "description": self.description,
            "confidence": self.confidence,
            "evidence": list(self.evidence),
        }


@dataclass(frozen=True)
class Recommendation:
    id: str
    type: RecommendationType
    description: str
    expected_improvement: int
    implementation_cost: CostTier
    time_to_implement: str
    priority: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "expected_improvement": self.expected_improvement,
            "implementation_cost": self.implementation_cost.value,
            "time_to_implement": self.time_to_implement,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class BottleneckFinding:
    station_id: str
    station_name: str
    severity: Severity
    avg_cycle_time: float
    target_cycle_time: float
    variance_percent: float
    frequency: int
    impact_score: int
    root_causes: tuple[RootCause, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()

    def to_dict(self) -> dict:
        return {
            "station_id": self.station_id,
            "station_name": self.station_name,
            "severity": self.severity.value,
            "avg_cycle_time": self.avg_cycle_time,
            "target_cycle_time": self.target_cycle_time,
            "variance_percent": self.variance_percent,
            "frequency": self.frequency,
            "impact_score": self.impact_score,
            "root_causes": [c.to_dict() for c in self.root_causes],
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SimStation:
    id: str
    name: str
    target_cycle_time: float
    avg_cycle_time: float
    operator_count: int = 1


@dataclass(frozen=True)
class SimulationChange:
    type: ChangeType
    station_id: str
    value: float
    description: str = ""

    def __post_init__(self):
        # Accept plain strings; an unknown type raises ValueError here
        object.__setattr__(self, "type", ChangeType(self.type))

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "station_id": self.station_id,
            "value": self.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class SimulationResult:
    throughput_per_hour: int
    avg_cycle_time: float
    line_efficiency: float
    bottleneck_station: str | None
    wait_time_total: int
    utilization_by_station: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "throughput_per_hour": self.throughput_per_hour,
            "avg_cycle_time": self.avg_cycle_time,
            "line_efficiency": self.line_efficiency,
            "bottleneck_station": self.bottleneck_station,
            "wait_time_total": self.wait_time_total,
            "utilization_by_station": dict(self.utilization_by_station),
        }


@dataclass(frozen=True)
class SimulationOutcome:
    baseline: SimulationResult
    projected: SimulationResult

    def to_dict(self) -> dict:
        return {
            "baseline": self.baseline.to_dict(),
            "projected": self.projected.to_dict(),
        }


# ---------------------------------------------------------------------------
# Predictions and queries
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Prediction:
    id: str
    type: str
    station_id: str
    predicted_time: datetime
    confidence: float
    description: str
    preventive_actions: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "station_id": self.station_id,
            "predicted_time": self.predicted_time.isoformat(),
            "confidence": self.confidence,
            "description": self.description,
            "preventive_actions": list(self.preventive_actions),
        }


@dataclass(frozen=True)
class QueryIntent:
    action: str
    metrics: tuple[str, ...]
    start: datetime
    end: datetime

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "metrics": list(self.metrics),
            "time_range": {
                "start": self.start.isoformat(),
                "end": self.end.isoformat(),
            },
        }


@dataclass(frozen=True)
class ParsedQuery:
    intent: QueryIntent
    sql: str
    explanation: str
    time_range: str

    def to_dict(self) -> dict:
        return {
            "intent": self.intent.to_dict(),
            "sql": self.sql,
            "explanation": self.explanation,
            "time_range": self.time_range,
        }
