"""
LineBalancer: Interactive Dashboard

Run with:  streamlit run app.py
"""

import logging
import sys
from pathlib import Path

import streamlit as st
import plotly.graph_objects as go
import plotly.express as px
import pandas as pd

sys.path.insert(0, str(Path(__file__).resolve().parent))

from linebalancer.config import (
    DEFAULT_WINDOW_HOURS,
    LINE_NAME,
    LOG_LEVEL,
    STATION_CATALOGUE,
    TREND_WINDOW_HOURS,
)
from linebalancer.loaders import fetch_station_stats, get_engine, init_schema
from linebalancer.models import ChangeType
from linebalancer.seed import seed_database
from linebalancer.dashboard import (
    acknowledge,
    answer_question,
    get_active_alerts,
    get_bottleneck_report,
    get_line_overview,
    get_predictions,
    get_shift_comparison,
    get_station_status,
    get_trends,
    run_what_if,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="LineBalancer",
    page_icon="🏭",
    layout="wide",
    initial_sidebar_state="expanded",
)

SEVERITY_COLORS = {
    "critical": "#e74c3c",
    "high": "#e67e22",
    "medium": "#f39c12",
    "low": "#2ecc71",
    "warning": "#f39c12",
    "info": "#3498db",
}

TREND_METRICS = {
    "Cycle time (s)": "cycle_time",
    "Throughput (units)": "throughput",
    "Defect rate (%)": "defect_rate",
    "Downtime (min)": "downtime",
}

EXAMPLE_QUESTIONS = [
    "Which station hurt output the most last 7 days?",
    "Compare day and night shifts this week",
    "Show the cycle time trend over the last 2 weeks",
    "Where are defects concentrated today?",
    "Which stations had the most downtime this month?",
]


# ---------------------------------------------------------------------------
# Engine (created once per process)
# ---------------------------------------------------------------------------
@st.cache_resource
def load_engine():
    engine = get_engine()
    init_schema(engine)
    if not fetch_station_stats(engine)["station_count"]:
        seed_database(engine)
    return engine


engine = load_engine()

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("LineBalancer")
st.sidebar.markdown(LINE_NAME)
st.sidebar.divider()

window_hours = st.sidebar.selectbox(
    "Analysis window (hours)",
    [8, 24, 72, 168],
    index=[8, 24, 72, 168].index(DEFAULT_WINDOW_HOURS) if DEFAULT_WINDOW_HOURS in (8, 24, 72, 168) else 1,
)

page = st.sidebar.radio(
    "Navigate",
    ["Line Overview", "Bottlenecks", "What-If Simulator", "Ask the Line", "Trends", "Alerts"],
)

st.sidebar.divider()
if st.sidebar.button("Regenerate demo data"):
    seed_database(engine)
    st.sidebar.success("Demo data regenerated")
st.sidebar.caption("Data: synthetic production records")


def severity_badge(severity: str) -> str:
    color = SEVERITY_COLORS.get(severity, "#95a5a6")
    return (
        f"<span style='background:{color}22; color:{color}; border-radius:4px; "
        f"padding:2px 8px; font-weight:600; text-transform:uppercase; font-size:12px;'>"
        f"{severity}</span>"
    )


# ===========================================================================
# PAGE: Line Overview
# ===========================================================================
if page == "Line Overview":
    st.title("Line Overview")
    st.caption(f"Last **{window_hours} hours**")

    overview = get_line_overview(engine, window_hours)

    cols = st.columns(4)
    cols[0].metric(
        "Throughput",
        f"{overview['current_throughput']}/h",
        delta=f"{overview['current_throughput'] - overview['target_throughput']:+d} vs target",
    )
    cols[1].metric("OEE", f"{overview['oee']:.1f}%")
    cols[2].metric("Line Efficiency", f"{overview['line_efficiency']:.1f}%")
    cols[3].metric("Bottlenecks", overview["bottleneck_count"], delta=f"{overview['active_alerts']} alerts",
                   delta_color="off")

    cols = st.columns(3)
    cols[0].metric("Availability", f"{overview['availability_rate']:.1f}%")
    cols[1].metric("Performance", f"{overview['performance_rate']:.1f}%")
    cols[2].metric("Quality", f"{overview['quality_rate']:.1f}%")

    st.divider()

    status = get_station_status(engine, window_hours)
    if status.empty:
        st.warning("No station data available.")
    else:
        st.subheader("Station Utilisation")
        colors = [
            "#e74c3c" if trend == "declining" else "#2ecc71" if trend == "improving" else "#3498db"
            for trend in status["trend"]
        ]
        fig = go.Figure(go.Bar(
            x=status["station_name"],
            y=status["utilization"],
            marker_color=colors,
            text=status["current_cycle_time"].apply(lambda x: f"{x:.1f}s"),
            textposition="outside",
        ))
        fig.update_layout(
            height=400,
            yaxis_title="Utilisation vs slowest station (%)",
            plot_bgcolor="rgba(0,0,0,0)",
            margin=dict(l=10, r=10, t=10, b=40),
        )
        st.plotly_chart(fig, use_container_width=True)

        st.subheader("Station Status")
        st.dataframe(status, use_container_width=True, hide_index=True)


# ===========================================================================
# PAGE: Bottlenecks
# ===========================================================================
elif page == "Bottlenecks":
    st.title("Bottleneck Analysis")
    st.caption(f"Last **{window_hours} hours**, ranked by impact score")

    findings = get_bottleneck_report(engine, window_hours)

    if not findings:
        st.info("No production data in this window.")
    else:
        chart_df = pd.DataFrame(findings)
        fig = px.bar(
            chart_df,
            x="impact_score",
            y="station_name",
            orientation="h",
            color="severity",
            color_discrete_map=SEVERITY_COLORS,
            hover_data=["avg_cycle_time", "target_cycle_time", "variance_percent"],
        )
        fig.update_layout(
            height=400,
            xaxis_title="Impact score",
            yaxis_title="",
            yaxis=dict(autorange="reversed"),
            plot_bgcolor="rgba(0,0,0,0)",
            margin=dict(l=10, r=10, t=10, b=40),
        )
        st.plotly_chart(fig, use_container_width=True)

        for finding in findings:
            if finding["severity"] == "low" and not finding["root_causes"]:
                continue
            header = (
                f"{finding['station_name']} ({finding['station_id']}) · "
                f"{finding['variance_percent']:+.1f}% vs target · impact {finding['impact_score']}"
            )
            with st.expander(header, expanded=finding["severity"] == "critical"):
                st.markdown(severity_badge(finding["severity"]), unsafe_allow_html=True)
                col1, col2 = st.columns(2)
                with col1:
                    st.markdown("**Root causes**")
                    if not finding["root_causes"]:
                        st.caption("None identified")
                    for cause in finding["root_causes"]:
                        st.markdown(f"- **{cause['type']}**: {cause['description']} "
                                    f"({cause['confidence']:.0%})")
                        for item in cause["evidence"]:
                            st.caption(f"    {item}")
                with col2:
                    st.markdown("**Recommendations**")
                    if not finding["recommendations"]:
                        st.caption("None")
                    for rec in finding["recommendations"]:
                        st.markdown(
                            f"{rec['priority']}. {rec['description']}  \n"
                            f"<span style='color:#666; font-size:13px;'>"
                            f"+{rec['expected_improvement']}% · {rec['implementation_cost']} cost · "
                            f"{rec['time_to_implement']}</span>",
                            unsafe_allow_html=True,
                        )

    st.subheader("Shift Comparison")
    shifts = get_shift_comparison(engine, window_hours)
    if not shifts.empty:
        st.dataframe(shifts, use_container_width=True, hide_index=True)


# ===========================================================================
# PAGE: What-If Simulator
# ===========================================================================
elif page == "What-If Simulator":
    st.title("What-If Simulator")
    st.caption("Project throughput after staffing or cycle-time changes")

    station_names = {sid: name for sid, name, *_ in STATION_CATALOGUE}

    if "changes" not in st.session_state:
        st.session_state["changes"] = [
            {"type": "add_operator", "station_id": "ST003", "value": 1.0, "description": ""},
        ]

    editor = st.data_editor(
        pd.DataFrame(st.session_state["changes"]),
        num_rows="dynamic",
        use_container_width=True,
        column_config={
            "type": st.column_config.SelectboxColumn(
                "Change", options=[c.value for c in ChangeType], required=True,
            ),
            "station_id": st.column_config.SelectboxColumn(
                "Station", options=list(station_names), required=True,
            ),
            "value": st.column_config.NumberColumn("Value", min_value=0.0, step=1.0, required=True),
            "description": st.column_config.TextColumn("Note"),
        },
    )

    changes = editor.dropna(subset=["type", "station_id", "value"]).fillna("").to_dict("records")
    try:
        outcome = run_what_if(engine, changes, window_hours)
    except ValueError as exc:
        st.error(f"Invalid change: {exc}")
        st.stop()

    baseline, projected = outcome["baseline"], outcome["projected"]

    cols = st.columns(4)
    cols[0].metric("Throughput / h", projected["throughput_per_hour"],
                   delta=projected["throughput_per_hour"] - baseline["throughput_per_hour"])
    cols[1].metric("Line Efficiency", f"{projected['line_efficiency']:.1f}%",
                   delta=f"{projected['line_efficiency'] - baseline['line_efficiency']:+.1f}")
    cols[2].metric("Wait Time", f"{projected['wait_time_total']}s",
                   delta=projected["wait_time_total"] - baseline["wait_time_total"], delta_color="inverse")
    cols[3].metric("Bottleneck", station_names.get(projected["bottleneck_station"], "-"),
                   delta=f"was {station_names.get(baseline['bottleneck_station'], '-')}", delta_color="off")

    util = pd.DataFrame({
        "station": list(baseline["utilization_by_station"]),
        "Baseline": list(baseline["utilization_by_station"].values()),
        "Projected": [projected["utilization_by_station"].get(s, 0.0)
                      for s in baseline["utilization_by_station"]],
    })
    fig = go.Figure()
    fig.add_trace(go.Bar(x=util["station"], y=util["Baseline"], name="Baseline", marker_color="#95a5a6"))
    fig.add_trace(go.Bar(x=util["station"], y=util["Projected"], name="Projected", marker_color="#3498db"))
    fig.update_layout(
        title="Utilisation by Station",
        barmode="group",
        yaxis_tickformat=".0%",
        height=400,
        plot_bgcolor="rgba(0,0,0,0)",
    )
    st.plotly_chart(fig, use_container_width=True)


# ===========================================================================
# PAGE: Ask the Line
# ===========================================================================
elif page == "Ask the Line":
    st.title("Ask the Line")

    example = st.selectbox("Examples", [""] + EXAMPLE_QUESTIONS)
    question = st.text_input("Question", value=example)

    if question.strip():
        response = answer_question(engine, question)

        st.markdown(response["answer"])
        st.progress(response["confidence"], text=f"Confidence {response['confidence']:.0%}")

        for insight in response["insights"]:
            st.info(insight)

        with st.expander("Reasoning"):
            for step in response["reasoning"]:
                st.markdown(f"**{step['step']}. {step['action']}**: {step['observation']}")
        with st.expander("Generated SQL"):
            st.code(response["sql"], language="sql")
            st.caption(response["explanation"])
        if response["data"]:
            st.dataframe(pd.DataFrame(response["data"]), use_container_width=True, hide_index=True)

        st.caption(" · ".join(response["suggestions"]))


# ===========================================================================
# PAGE: Trends
# ===========================================================================
elif page == "Trends":
    st.title("Trends")

    col1, col2, col3 = st.columns(3)
    metric_label = col1.selectbox("Metric", list(TREND_METRICS))
    hours = col2.selectbox("Window (hours)", [24, 72, 168, 336], index=2)
    station = col3.selectbox("Station", ["All"] + [sid for sid, *_ in STATION_CATALOGUE])

    trend = get_trends(
        engine,
        metric=TREND_METRICS[metric_label],
        hours=hours,
        station_id=None if station == "All" else station,
    )

    if trend.empty:
        st.warning("No trend data available.")
    else:
        trend["hour"] = pd.to_datetime(trend["hour"])
        fig = px.line(trend, x="hour", y="value", color="station_id")
        fig.update_layout(
            height=450,
            yaxis_title=metric_label,
            xaxis_title="",
            plot_bgcolor="rgba(0,0,0,0)",
        )
        st.plotly_chart(fig, use_container_width=True)

    st.subheader("Predictions")
    predictions = get_predictions(engine, TREND_WINDOW_HOURS)
    if not predictions:
        st.caption("No early warnings.")
    for prediction in predictions:
        st.warning(
            f"**{prediction['description']}** ({prediction['confidence']:.0%} confidence)  \n"
            + "  \n".join(f"- {action}" for action in prediction["preventive_actions"])
        )


# ===========================================================================
# PAGE: Alerts
# ===========================================================================
elif page == "Alerts":
    st.title("Active Alerts")

    alerts = get_active_alerts(engine)
    if alerts.empty:
        st.success("No active alerts.")
    else:
        for alert in alerts.itertuples(index=False):
            col1, col2 = st.columns([5, 1])
            with col1:
                station = f" · {alert.station_id}" if pd.notna(alert.station_id) else ""
                st.markdown(
                    f"{severity_badge(alert.severity)} **{alert.message}**{station}  \n"
                    f"<span style='color:#666; font-size:13px;'>{alert.details if pd.notna(alert.details) else ''} ({alert.timestamp})</span>",
                    unsafe_allow_html=True,
                )
            with col2:
                if st.button("Acknowledge", key=f"ack-{alert.id}"):
                    acknowledge(engine, alert.id)
                    st.rerun()
