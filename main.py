"""
LineBalancer: End-to-end analytics pipeline.

Seeds the database with synthetic line data, runs every dashboard entry
point and prints smoke-test summaries.

Usage:
    python main.py [--days N] [--keep]
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from linebalancer.config import DEFAULT_WINDOW_HOURS, LINE_NAME, LOG_LEVEL
from linebalancer.loaders import fetch_station_stats, get_engine, init_schema
from linebalancer.seed import seed_database
from linebalancer.dashboard import (
    answer_question,
    get_active_alerts,
    get_bottleneck_report,
    get_line_overview,
    get_predictions,
    get_station_status,
    get_trends,
    run_what_if,
)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Run the full analytics pipeline and print smoke-test outputs."""
    parser = argparse.ArgumentParser(description="LineBalancer pipeline smoke test")
    parser.add_argument("--days", type=int, default=30, help="days of synthetic history to seed")
    parser.add_argument("--keep", action="store_true", help="reuse existing data instead of reseeding")
    args = parser.parse_args()

    print("=" * 70)
    print(f"  LINEBALANCER: {LINE_NAME}")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Storage
    # ------------------------------------------------------------------
    print("[ 1 ] PREPARING DATABASE")
    print("-" * 40)

    engine = get_engine()
    init_schema(engine)
    if args.keep and fetch_station_stats(engine)["station_count"]:
        print("\nReusing existing data")
    else:
        counts = seed_database(engine, days=args.days)
        for table, count in counts.items():
            print(f"  {table:20s} {count:>8,d} rows")

    # ------------------------------------------------------------------
    # 2. Line overview
    # ------------------------------------------------------------------
    print("\n")
    print(f"[ 2 ] LINE OVERVIEW (last {DEFAULT_WINDOW_HOURS}h)")
    print("-" * 40)

    overview = get_line_overview(engine)
    for key, value in overview.items():
        print(f"  {key:20s} | {value}")

    status = get_station_status(engine)
    print()
    print(status.to_string(index=False))

    # ------------------------------------------------------------------
    # 3. Bottlenecks
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] BOTTLENECK ANALYSIS")
    print("-" * 40)

    findings = get_bottleneck_report(engine)
    summary = pd.DataFrame(findings)
    if not summary.empty:
        print(summary[
            ["station_id", "station_name", "severity", "variance_percent", "impact_score"]
        ].to_string(index=False))

    for finding in findings[:2]:
        print(f"\n  {finding['station_name']} ({finding['severity']}, impact {finding['impact_score']})")
        for cause in finding["root_causes"]:
            print(f"    cause: {cause['type']:10s} {cause['confidence']:.2f}  {cause['description']}")
        for rec in finding["recommendations"]:
            print(f"    rec {rec['priority']}: {rec['id']:28s} +{rec['expected_improvement']}%  {rec['description']}")

    # ------------------------------------------------------------------
    # 4. What-if
    # ------------------------------------------------------------------
    print("\n")
    print("[ 4 ] WHAT-IF SIMULATION")
    print("-" * 40)

    target = findings[0]["station_id"] if findings else "ST003"
    outcome = run_what_if(engine, [
        {"type": "add_operator", "station_id": target, "value": 1,
         "description": f"Add 1 operator to {target}"},
    ])
    for label in ("baseline", "projected"):
        result = outcome[label]
        print(
            f"  {label:10s} | {result['throughput_per_hour']:>4d}/h | "
            f"eff {result['line_efficiency']:5.1f}% | wait {result['wait_time_total']:>4d}s | "
            f"bottleneck {result['bottleneck_station']}"
        )

    # ------------------------------------------------------------------
    # 5. Questions
    # ------------------------------------------------------------------
    print("\n")
    print("[ 5 ] QUESTIONS")
    print("-" * 40)

    for question in (
        "Which station hurt output the most last 7 days?",
        "Compare shifts this week",
        "Where are defects concentrated?",
    ):
        response = answer_question(engine, question)
        print(f"\n  Q: {question}")
        print(f"  A: {response['answer'].strip()}")
        print(f"     confidence {response['confidence']}, {len(response['data'])} rows shown")

    # ------------------------------------------------------------------
    # 6. Trends, predictions, alerts
    # ------------------------------------------------------------------
    print("\n")
    print("[ 6 ] TRENDS, PREDICTIONS AND ALERTS")
    print("-" * 40)

    trend = get_trends(engine)
    print(f"\nCycle-time trend: {len(trend)} hourly points")

    predictions = get_predictions(engine)
    print(f"Predictions: {len(predictions)}")
    for prediction in predictions:
        print(f"  {prediction['type']:20s} {prediction['station_id']}  {prediction['description']}")

    alerts = get_active_alerts(engine)
    print(f"\nActive alerts: {len(alerts)}")
    if not alerts.empty:
        print(alerts[["severity", "station_id", "message"]].to_string(index=False))

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
