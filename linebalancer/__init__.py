"""
LineBalancer: production line bottleneck dashboard

Analytics backend that turns per-station production records into line KPIs,
ranked bottleneck findings with root causes and recommendations, what-if
throughput projections, trend warnings and canned answers to common
questions about the line.

To point at another database:
    Set LINEBALANCER_DATABASE_URL. The engine is built once by the entry
    point (loaders.get_engine) and passed to every dashboard function.

To connect to Streamlit/Dash:
    Call dashboard.get_line_overview(engine) for KPI cards,
    dashboard.get_bottleneck_report(engine) for findings, and
    dashboard.run_what_if(engine, changes) for the simulator.

To change recommendations:
    Edit config.RECOMMENDATION_PLAYBOOK (multiplier, cost, lead time,
    description template) and config.CAUSE_PLAYBOOK (which recommendations
    a root cause produces).
"""
