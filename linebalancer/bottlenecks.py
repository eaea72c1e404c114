"""
Bottleneck analysis: pure functions with no side effects.

Scores each station's deviation from its target cycle time, infers likely
root causes (shift, operator, equipment), and turns those causes into a
prioritised list of recommendations.
"""

import logging
import math
from collections import Counter

from .config import (
    CAUSE_PLAYBOOK,
    CONSISTENCY_SCORE_CAP,
    DOWNTIME_SCORE_CAP,
    DOWNTIME_THRESHOLD_MIN,
    EQUIPMENT_MAX_CV_PCT,
    EQUIPMENT_VARIANCE_THRESHOLD_PCT,
    OPERATOR_CV_THRESHOLD_PCT,
    POSITION_SCORE_CAP,
    REBALANCE_IMPACT_THRESHOLD,
    RECOMMENDATION_PLAYBOOK,
    SEVERITY_THRESHOLDS,
    SHIFT_SPREAD_THRESHOLD_PCT,
    VARIANCE_SCORE_CAP,
)
from .models import (
    BottleneckFinding,
    CauseType,
    CostTier,
    Recommendation,
    RecommendationType,
    RootCause,
    Severity,
    ShiftAggregate,
    StationAggregate,
)
from .utils import round_int, station_number

logger = logging.getLogger(__name__)


def classify_severity(variance_percent: float) -> Severity:
    """Return the severity bucket for a variance percent.

    Buckets are exclusive on their lower bound: 20.0 is "high", 20.01 is
    "critical".
    """
    for threshold, label in SEVERITY_THRESHOLDS:
        if variance_percent > threshold:
            return Severity(label)
    return Severity.LOW


def coefficient_of_variation(station: StationAggregate) -> float:
    """Standard deviation as a percentage of the mean cycle time (0 if mean is 0)."""
    if not station.avg_cycle_time:
        return 0.0
    std_dev = math.sqrt(max(0.0, station.variance_cycle_time or 0.0))
    return std_dev / station.avg_cycle_time * 100


def calc_impact_score(
    station: StationAggregate,
    total_downtime: float,
) -> int:
    """Composite 0-100 impact score.

    Components
    ----------
    - variance:    min(40, variance_percent * 2), never below 0
    - consistency: min(20, coefficient of variation)
    - position:    max(0, 20 - station_number * 2); earlier stations weigh more
    - downtime:    share of the line's total downtime, scaled to 20
    """
    variance_score = max(0.0, min(VARIANCE_SCORE_CAP, station.variance_percent * 2))
    consistency_score = min(CONSISTENCY_SCORE_CAP, coefficient_of_variation(station))
    position_score = max(0.0, POSITION_SCORE_CAP - station_number(station.station_id) * 2)

    downtime_score = 0.0
    if total_downtime > 0:
        downtime_score = (station.total_downtime or 0.0) / total_downtime * DOWNTIME_SCORE_CAP

    score = round_int(variance_score + consistency_score + position_score + downtime_score)
    return max(0, min(100, score))


def infer_root_causes(
    station: StationAggregate,
    shifts: list[ShiftAggregate],
) -> list[RootCause]:
    """Apply the shift, operator and equipment rules in order.

    A station may collect several causes, including two separate equipment
    causes (consistent slowness and high downtime).
    """
    causes: list[RootCause] = []
    target = station.target_cycle_time

    # Shift spread
    by_shift: dict[str, float] = {}
    for row in shifts:
        if row.station_id == station.station_id and row.avg_cycle_time is not None:
            by_shift[row.shift] = row.avg_cycle_time

    if len(by_shift) >= 2:
        spread_pct = (max(by_shift.values()) - min(by_shift.values())) / target * 100
        if spread_pct > SHIFT_SPREAD_THRESHOLD_PCT:
            worst_shift, worst_avg = max(by_shift.items(), key=lambda item: item[1])
            causes.append(RootCause(
                type=CauseType.SHIFT,
                description=f"{worst_shift} shift shows {round_int(spread_pct)}% higher cycle times",
                confidence=min(0.9, spread_pct / 20),
                evidence=(
                    f"{worst_shift} shift average: {round_int(worst_avg)}s",
                    f"Target: {target:g}s",
                ),
            ))

    # Variability points at operators
    cv = coefficient_of_variation(station)
    if cv > OPERATOR_CV_THRESHOLD_PCT:
        std_dev = math.sqrt(max(0.0, station.variance_cycle_time or 0.0))
        causes.append(RootCause(
            type=CauseType.OPERATOR,
            description="High cycle time variability suggests inconsistent operator performance",
            confidence=min(0.85, cv / 25),
            evidence=(
                f"Coefficient of variation: {round_int(cv)}%",
                f"Standard deviation: {round_int(std_dev)}s",
            ),
        ))

    # Slow but steady points at equipment
    if station.variance_percent > EQUIPMENT_VARIANCE_THRESHOLD_PCT and cv < EQUIPMENT_MAX_CV_PCT:
        causes.append(RootCause(
            type=CauseType.EQUIPMENT,
            description="Consistently slow performance suggests equipment limitations",
            confidence=0.75,
            evidence=(
                f"Consistent {round_int(station.variance_percent)}% above target",
                "Low variability indicates systematic issue",
            ),
        ))

    downtime = station.total_downtime or 0.0
    if downtime > DOWNTIME_THRESHOLD_MIN:
        causes.append(RootCause(
            type=CauseType.EQUIPMENT,
            description="Significant downtime indicates equipment reliability issues",
            confidence=0.8,
            evidence=(f"Total downtime: {round_int(downtime)} minutes",),
        ))

    return causes


def _build_recommendation(
    key: str,
    station: StationAggregate,
    confidence: float | None,
    priority: int,
    seen: Counter,
) -> Recommendation:
    entry = RECOMMENDATION_PLAYBOOK[key]

    if "fixed_improvement" in entry:
        improvement = int(entry["fixed_improvement"])
    else:
        improvement = round_int(confidence * entry["multiplier"])

    seen[key] += 1
    rec_id = f"rec-{station.station_id}-{key}"
    if seen[key] > 1:
        rec_id = f"{rec_id}-{seen[key]}"

    return Recommendation(
        id=rec_id,
        type=RecommendationType(entry["type"]),
        description=entry["description"].format(station=station.station_name),
        expected_improvement=improvement,
        implementation_cost=CostTier(entry["cost"]),
        time_to_implement=entry["time"],
        priority=priority,
    )


def generate_recommendations(
    station: StationAggregate,
    causes: list[RootCause],
    impact_score: int,
) -> list[Recommendation]:
    """Turn root causes into recommendations with a running priority counter."""
    recommendations: list[Recommendation] = []
    seen: Counter = Counter()

    for cause in causes:
        for key in CAUSE_PLAYBOOK.get(cause.type.value, ()):
            recommendations.append(_build_recommendation(
                key, station, cause.confidence, len(recommendations) + 1, seen,
            ))

    if impact_score > REBALANCE_IMPACT_THRESHOLD:
        recommendations.append(_build_recommendation(
            "rebalance", station, None, len(recommendations) + 1, seen,
        ))

    return recommendations


def analyze_bottlenecks(
    stations: list[StationAggregate],
    shifts: list[ShiftAggregate],
) -> list[BottleneckFinding]:
    """Score every station with samples and return findings, highest impact first.

    Stations without an average cycle time, or with a non-positive target,
    produce no finding. Ties in impact score keep input order.
    """
    total_downtime = sum((s.total_downtime or 0.0) for s in stations)
    findings: list[BottleneckFinding] = []

    for station in stations:
        if station.avg_cycle_time is None:
            continue
        if not station.target_cycle_time or station.target_cycle_time <= 0:
            logger.warning(
                "Skipping station %s: non-positive target cycle time %s",
                station.station_id, station.target_cycle_time,
            )
            continue

        impact_score = calc_impact_score(station, total_downtime)
        causes = infer_root_causes(station, shifts)
        recommendations = generate_recommendations(station, causes, impact_score)

        findings.append(BottleneckFinding(
            station_id=station.station_id,
            station_name=station.station_name,
            severity=classify_severity(station.variance_percent),
            avg_cycle_time=station.avg_cycle_time,
            target_cycle_time=station.target_cycle_time,
            variance_percent=station.variance_percent,
            frequency=impact_score // 10,
            impact_score=impact_score,
            root_causes=tuple(causes),
            recommendations=tuple(recommendations),
        ))

    findings.sort(key=lambda f: f.impact_score, reverse=True)
    logger.info("Analysed %d stations, %d findings", len(stations), len(findings))
    return findings
