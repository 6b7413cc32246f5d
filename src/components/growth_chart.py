"""
Growth chart component: z-scores vs age with severe/moderate cut-offs.
"""

import plotly.graph_objects as go
import pandas as pd
from typing import Optional

from anthro.zscores import MODERATE_CUTOFF, SEVERE_CUTOFF
from src.config import PLOT_COLORS, PLOT_HEIGHT, STATUS_LABELS

SCORE_LINES = {
    "waz": ("Weight-for-age", "wa", "solid"),
    "whz": ("Weight-for-height", "wh", "dash"),
    "haz": ("Height-for-age", "ha", "dot"),
}


def render_growth_chart(
    timeline: pd.DataFrame,
    child_name: str = "",
    selected_index: Optional[int] = None,
) -> go.Figure:
    """
    Render interactive z-score chart for one child.

    Parameters
    ----------
    timeline : pd.DataFrame
        Output of ``timeline_frame``
    child_name : str
        Shown in the title
    selected_index : int, optional
        Timeline row to highlight

    Returns
    -------
    go.Figure
        Plotly figure object
    """
    fig = go.Figure()
    if timeline.empty:
        return fig

    ages = timeline["age_months"].values
    x_range = [min(ages.min(), 0), ages.max() + 1]

    # Severe band below -3 and moderate band between -3 and -2
    fig.add_hrect(
        y0=-6, y1=SEVERE_CUTOFF, fillcolor=PLOT_COLORS["severe"], opacity=0.08, line_width=0
    )
    fig.add_hrect(
        y0=SEVERE_CUTOFF, y1=MODERATE_CUTOFF, fillcolor=PLOT_COLORS["moderate"],
        opacity=0.08, line_width=0,
    )
    fig.add_hline(y=0, line=dict(color="green", width=1, dash="dash"))

    for score, (label, key, dash) in SCORE_LINES.items():
        values = pd.to_numeric(timeline[score], errors="coerce")
        statuses = timeline[key]
        hover_text = [
            f"<b>{label}</b><br>"
            f"Date: {pd.Timestamp(recorded):%Y-%m-%d}<br>"
            f"Age: {age:.1f} months<br>"
            + (f"z-score: {z:.2f}<br>" if pd.notna(z) else "z-score: —<br>")
            + f"Status: {STATUS_LABELS.get(status, status)}"
            for recorded, age, z, status in zip(
                timeline["recorded_at"], ages, values, statuses
            )
        ]
        fig.add_trace(go.Scatter(
            x=ages,
            y=values,
            mode="lines+markers",
            name=label,
            line=dict(color=PLOT_COLORS["primary"], width=2, dash=dash),
            marker=dict(
                size=9,
                color=[PLOT_COLORS.get(s, PLOT_COLORS["normal"]) for s in statuses],
                line=dict(color="white", width=1),
            ),
            customdata=list(range(len(timeline))),
            hovertext=hover_text,
            hoverinfo="text",
            connectgaps=False,
        ))

    if selected_index is not None and 0 <= selected_index < len(timeline):
        row = timeline.iloc[selected_index]
        selected = [pd.to_numeric(row[s], errors="coerce") for s in SCORE_LINES]
        fig.add_trace(go.Scatter(
            x=[row["age_months"]] * len(selected),
            y=selected,
            mode="markers",
            name="Selected",
            marker=dict(
                size=14,
                color=PLOT_COLORS["selected"],
                line=dict(color="white", width=3),
            ),
            hoverinfo="skip",
        ))

    fig.update_layout(
        height=PLOT_HEIGHT,
        title=dict(
            text=f"Z-scores vs. Age - {child_name}" if child_name else "Z-scores vs. Age",
            x=0.5,
            font=dict(size=16, color="black"),
        ),
        hovermode="closest",
        showlegend=True,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        xaxis=dict(
            title="Age (months)",
            range=x_range,
            showgrid=True,
            gridcolor="lightgray",
            zeroline=False,
        ),
        yaxis=dict(
            title="z-score",
            range=[-6, 4],
            showgrid=True,
            gridcolor="lightgray",
            zeroline=False,
        ),
    )

    return fig


def render_measurement_chart(timeline: pd.DataFrame) -> go.Figure:
    """Weight and height over age on twin axes."""
    fig = go.Figure()
    if timeline.empty:
        return fig

    fig.add_trace(go.Scatter(
        x=timeline["age_months"],
        y=timeline["weight_kg"],
        mode="lines+markers",
        name="Weight (kg)",
        line=dict(color=PLOT_COLORS["primary"], width=2),
    ))
    fig.add_trace(go.Scatter(
        x=timeline["age_months"],
        y=timeline["height_cm"],
        mode="lines+markers",
        name="Height (cm)",
        line=dict(color=PLOT_COLORS["selected"], width=2),
        yaxis="y2",
    ))
    fig.update_layout(
        height=PLOT_HEIGHT,
        hovermode="x unified",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        xaxis=dict(title="Age (months)", showgrid=True, gridcolor="lightgray"),
        yaxis=dict(title="Weight (kg)", showgrid=True, gridcolor="lightgray"),
        yaxis2=dict(title="Height (cm)", overlaying="y", side="right"),
    )
    return fig
