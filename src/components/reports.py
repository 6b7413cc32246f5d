"""
Reports component: population summary and grouped status breakdowns.
"""

from typing import Dict

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from anthro.zscores import STATUSES
from src.config import CHART_CONFIG, PLOT_COLORS, PLOT_HEIGHT, STATUS_LABELS


def breakdown_to_frame(breakdown: Dict) -> pd.DataFrame:
    """
    Flatten a ``rollup_by`` result into a category x status table.

    Returns
    -------
    pd.DataFrame
        Index: category. Columns: total plus one per status.
    """
    rows = []
    for category, tally in breakdown["breakdown"].items():
        row = {"category": category, "total": tally["total"]}
        row.update(tally["byStatus"])
        rows.append(row)
    return pd.DataFrame(rows, columns=["category", "total"] + list(STATUSES)).set_index("category")


def breakdown_chart(breakdown: Dict, title: str) -> go.Figure:
    """Stacked bars of status counts per category."""
    table = breakdown_to_frame(breakdown)
    fig = go.Figure()
    for status in STATUSES:
        fig.add_trace(go.Bar(
            x=table.index,
            y=table[status],
            name=STATUS_LABELS[status],
            marker_color=PLOT_COLORS[status],
        ))
    fig.update_layout(
        barmode="stack",
        height=PLOT_HEIGHT,
        title=dict(text=title, x=0.5, font=dict(size=16, color="black")),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        yaxis=dict(title="Children", showgrid=True, gridcolor="lightgray"),
    )
    return fig


def render_summary(summary: Dict) -> None:
    """Render the population summary metrics."""
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Children", summary["total"])
    for col, status in zip((col2, col3, col4), STATUSES):
        with col:
            st.metric(STATUS_LABELS[status], summary["byStatus"][status])


def render_breakdown(breakdown: Dict, title: str, key: str) -> None:
    """Render a breakdown as a stacked bar chart and table."""
    st.plotly_chart(breakdown_chart(breakdown, title), config=CHART_CONFIG, key=key)
    st.dataframe(breakdown_to_frame(breakdown), use_container_width=True)
