"""
Question dispatch: map a free-text question onto one of a fixed set of SQL
templates, and phrase the result rows as a short answer.

This is an ordered list of (pattern, template) pairs evaluated
first-match-wins, not language understanding. Templates target SQLite.
"""

import logging
import re
from datetime import datetime, timedelta

import pandas as pd

from .models import ParsedQuery, QueryIntent
from .utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TIME_RANGE = "7 days"

_UNIT_HOURS = {"hour": 1, "day": 24, "week": 24 * 7, "month": 24 * 30}

_TIME_RANGE_PATTERN = re.compile(r"last\s+(\d+)\s+(day|week|hour|month)s?", re.IGNORECASE)
_DURATION_PATTERN = re.compile(r"(\d+)\s*(day|week|hour|month)s?", re.IGNORECASE)

# Relative phrases checked in order when no explicit "last N units" is given
_RELATIVE_RANGES = [
    ("today", "1 day"),
    ("yesterday", "2 days"),
    ("this week", "7 days"),
    ("this month", "30 days"),
]

_STATION_VARIANCE_SQL = """
    SELECT s.name AS station_name, s.id AS station_id,
        AVG(pr.cycle_time) AS avg_cycle_time,
        s.target_cycle_time,
        ((AVG(pr.cycle_time) - s.target_cycle_time) / s.target_cycle_time * 100) AS variance_pct
    FROM stations s
    JOIN production_records pr ON s.id = pr.station_id
    WHERE pr.timestamp >= datetime('now', '{time_range}')
    GROUP BY s.id
    ORDER BY variance_pct DESC
"""

# (pattern, action, metrics, sql template); first match wins
QUERY_PATTERNS = (
    (
        re.compile(r"which station (hurt|affected|impacted|caused).*(output|throughput|production)", re.IGNORECASE),
        "find",
        ("throughput",),
        _STATION_VARIANCE_SQL + "    LIMIT 5\n",
    ),
    (
        re.compile(r"compare.*(shifts?|day|night|swing)", re.IGNORECASE),
        "compare",
        ("cycle_time", "throughput"),
        """
    SELECT shift,
        AVG(cycle_time) AS avg_cycle_time,
        SUM(quantity) AS total_output,
        AVG(defects * 1.0 / NULLIF(quantity, 0) * 100) AS defect_rate
    FROM production_records
    WHERE timestamp >= datetime('now', '{time_range}')
    GROUP BY shift
    ORDER BY shift
""",
    ),
    (
        re.compile(r"trend|trending|over time|history", re.IGNORECASE),
        "trend",
        ("cycle_time",),
        """
    SELECT strftime('%Y-%m-%d', timestamp) AS date,
        AVG(cycle_time) AS avg_cycle_time,
        SUM(quantity) AS total_output
    FROM production_records
    WHERE timestamp >= datetime('now', '{time_range}')
    GROUP BY date
    ORDER BY date
""",
    ),
    (
        re.compile(r"defect|quality|reject", re.IGNORECASE),
        "find",
        ("defect_rate",),
        """
    SELECT s.name AS station_name, s.id AS station_id,
        SUM(pr.defects) AS total_defects,
        SUM(pr.quantity) AS total_quantity,
        (SUM(pr.defects) * 1.0 / NULLIF(SUM(pr.quantity), 0) * 100) AS defect_rate
    FROM stations s
    JOIN production_records pr ON s.id = pr.station_id
    WHERE pr.timestamp >= datetime('now', '{time_range}')
    GROUP BY s.id
    ORDER BY defect_rate DESC
""",
    ),
    (
        re.compile(r"downtime|down time|stopped|idle", re.IGNORECASE),
        "find",
        ("downtime",),
        """
    SELECT s.name AS station_name, s.id AS station_id,
        SUM(pr.downtime_minutes) AS total_downtime,
        pr.downtime_reason,
        COUNT(*) AS occurrences
    FROM stations s
    JOIN production_records pr ON s.id = pr.station_id
    WHERE pr.timestamp >= datetime('now', '{time_range}')
        AND pr.downtime_minutes > 0
    GROUP BY s.id, pr.downtime_reason
    ORDER BY total_downtime DESC
""",
    ),
    (
        re.compile(r"operator|worker|employee", re.IGNORECASE),
        "find",
        ("operator_performance",),
        """
    SELECT o.name AS operator_name, o.shift, s.name AS station_name,
        AVG(pr.cycle_time) AS avg_cycle_time,
        SUM(pr.defects) AS total_defects,
        COUNT(*) AS records
    FROM operators o
    JOIN production_records pr ON o.id = pr.operator_id
    JOIN stations s ON o.station_id = s.id
    WHERE pr.timestamp >= datetime('now', '{time_range}')
    GROUP BY o.id
    ORDER BY avg_cycle_time DESC
    LIMIT 10
""",
    ),
)

_SUGGESTIONS = [
    "Would you like to see a detailed breakdown by station?",
    "Should I run a simulation to test improvement scenarios?",
    "Want me to analyze trends over a different time period?",
]


def extract_time_range(question: str) -> str:
    """Return a human time range such as "7 days" or "2 weeks"."""
    match = _TIME_RANGE_PATTERN.search(question)
    if match:
        num, unit = match.groups()
        return f"{num} {unit.lower()}s"

    lowered = question.lower()
    for phrase, time_range in _RELATIVE_RANGES:
        if phrase in lowered:
            return time_range
    return DEFAULT_TIME_RANGE


def parse_duration(time_range: str) -> timedelta:
    match = _DURATION_PATTERN.search(time_range)
    if not match:
        return timedelta(days=7)
    num, unit = match.groups()
    return timedelta(hours=int(num) * _UNIT_HOURS[unit.lower()])


def sql_modifier(time_range: str) -> str:
    """SQLite datetime() modifier for a time range ("2 weeks" -> "-14 days").

    SQLite has no week modifier, so weeks become days.
    """
    match = _DURATION_PATTERN.search(time_range)
    if not match:
        return "-7 days"
    num, unit = int(match.group(1)), match.group(2).lower()
    if unit == "week":
        return f"-{num * 7} days"
    return f"-{num} {unit}s"


def explain(action: str, metrics: tuple[str, ...], time_range: str) -> str:
    metric_names = ", ".join(m.replace("_", " ") for m in metrics)
    if action == "find":
        return f"Finding stations with notable {metric_names} patterns over the {time_range}"
    if action == "compare":
        return f"Comparing {metric_names} across different dimensions for the {time_range}"
    if action == "trend":
        return f"Analyzing {metric_names} trends over the {time_range}"
    return f"Analyzing {metric_names} for the {time_range}"


def parse_query(question: str, now: datetime | None = None) -> ParsedQuery:
    """Match a question to its SQL template.

    Falls back to a station variance ranking when nothing matches.
    """
    if now is None:
        now = utc_now()
    time_range = extract_time_range(question)
    start = now - parse_duration(time_range)
    modifier = sql_modifier(time_range)

    for pattern, action, metrics, template in QUERY_PATTERNS:
        if pattern.search(question):
            logger.debug("Question matched %s / %s", action, metrics)
            return ParsedQuery(
                intent=QueryIntent(action=action, metrics=metrics, start=start, end=now),
                sql=template.replace("{time_range}", modifier),
                explanation=explain(action, metrics, time_range),
                time_range=time_range,
            )

    return ParsedQuery(
        intent=QueryIntent(action="find", metrics=("cycle_time",), start=start, end=now),
        sql=_STATION_VARIANCE_SQL.replace("{time_range}", modifier),
        explanation=f"Analyzing overall station performance for the {time_range}",
        time_range=time_range,
    )


def _records(rows) -> list[dict]:
    if isinstance(rows, pd.DataFrame):
        return rows.to_dict("records")
    return list(rows)


def _num(row: dict, key: str) -> float:
    value = row.get(key)
    if value is None or pd.isna(value):
        return 0.0
    return float(value)


def build_agent_response(question: str, rows, parsed: ParsedQuery) -> dict:
    """Phrase result rows as an answer with reasoning steps and insights.

    Returns
    -------
    Dict with keys: answer, reasoning, insights, confidence, sources,
    suggestions.
    """
    data = _records(rows)
    intent = parsed.intent

    reasoning = [
        {
            "step": 1,
            "thought": "Parsing user query to understand intent and extract parameters",
            "action": "Parse natural language",
            "observation": f"Detected {intent.action} query about {', '.join(intent.metrics) or 'general metrics'}",
        },
        {
            "step": 2,
            "thought": "Generating SQL query to fetch relevant data",
            "action": "Generate SQL",
            "observation": f"Created query to analyze data from {intent.start.date().isoformat()}",
        },
        {
            "step": 3,
            "thought": "Executing query and analyzing results",
            "action": "Execute and analyze",
            "observation": f"Retrieved {len(data)} data points for analysis",
        },
        {
            "step": 4,
            "thought": "Synthesizing findings into actionable insights",
            "action": "Generate response",
            "observation": "Formulating natural language response with key findings",
        },
    ]

    answer = ""
    insights: list[str] = []

    if not data:
        answer = "No data found for the specified query and time range."
    elif intent.action == "find":
        worst = data[0]
        label = worst.get("station_name") or worst.get("station_id") or worst.get("operator_name")
        answer = f"Based on the analysis, **{label}** shows the most significant issues"

        if "variance_pct" in worst:
            answer += f" with cycle times **{round(_num(worst, 'variance_pct'))}% above target**."
            insights.append("The top 3 underperforming stations account for most of the throughput loss")
        elif "defect_rate" in worst:
            answer += f" with a defect rate of **{_num(worst, 'defect_rate'):.1f}%**."
            insights.append("Quality issues are concentrated in specific stations")
        elif "total_downtime" in worst:
            answer += f" with **{round(_num(worst, 'total_downtime'))} minutes** of total downtime."
            insights.append("Downtime patterns suggest equipment reliability issues")
        else:
            answer += "."

        if len(data) > 1:
            second = data[1]
            second_label = second.get("station_name") or second.get("station_id") or second.get("operator_name")
            insights.append(f"{second_label} is the second most impacted station")

    elif intent.action == "compare":
        answer = "Shift comparison analysis:\n\n"
        for row in data:
            answer += (
                f"**{row.get('shift')}**: {_num(row, 'avg_cycle_time'):.1f}s avg cycle time, "
                f"{int(_num(row, 'total_output'))} units\n"
            )
        by_time = sorted(data, key=lambda r: _num(r, "avg_cycle_time"))
        insights.append(f"{by_time[0].get('shift')} shift has the best performance")
        if len(by_time) > 1:
            insights.append(f"{by_time[-1].get('shift')} shift may need attention")

    elif intent.action == "trend":
        answer = "Trend analysis shows "
        if len(data) >= 2:
            first_avg = _num(data[0], "avg_cycle_time")
            last_avg = _num(data[-1], "avg_cycle_time")
            change = (last_avg - first_avg) / first_avg * 100 if first_avg else 0.0

            if change > 5:
                answer += f"cycle times have **increased by {abs(change):.1f}%** over the period."
                insights.append("Performance is trending downward - investigation recommended")
            elif change < -5:
                answer += f"cycle times have **improved by {abs(change):.1f}%** over the period."
                insights.append("Performance is improving - current strategies appear effective")
            else:
                answer += "relatively **stable performance** over the period."
                insights.append("Performance is consistent but may have room for improvement")
        else:
            answer += "too few data points to establish a direction."

    if len(data) > 10:
        confidence = 0.85
    elif data:
        confidence = 0.7
    else:
        confidence = 0.3

    return {
        "answer": answer,
        "reasoning": reasoning,
        "insights": insights,
        "confidence": confidence,
        "sources": ["Production database", "Real-time metrics"],
        "suggestions": list(_SUGGESTIONS),
    }
