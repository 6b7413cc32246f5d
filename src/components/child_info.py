"""
Child Information Display Component

This module provides the child header showing key demographics, the current
nutritional status and a measurement summary.
"""

import html

import streamlit as st

from anthro.models import Child, ClassificationResult
from anthro.rollups import aggregate_status
from src.config import PLOT_COLORS, STATUS_LABELS
from src.utils.calculations import calculate_age_in_months


def _text(value) -> str:
    """Escape free text for the HTML card; empty values show a dash."""
    return html.escape(str(value)) if value else "—"


def child_card_html(child: Child, result: ClassificationResult, collector_name: str = "") -> str:
    """HTML for the child header card. Record text is escaped."""
    status = aggregate_status(result.classification)
    color = PLOT_COLORS.get(status, PLOT_COLORS["primary"])
    n_measurements = 1 + len(child.follow_ups)
    age_months = calculate_age_in_months(result.age_days)

    return f"""
        <div style="
            background-color: #f0f2f6;
            padding: 20px;
            border-radius: 10px;
            border-left: 5px solid {color};
            margin-bottom: 20px;
        ">
            <div style="display: flex; align-items: center; justify-content: space-between;">
                <h2 style="margin: 0; color: {PLOT_COLORS['primary']};">{_text(child.name)}</h2>
                <span style="font-weight: bold; color: {color};">
                    {STATUS_LABELS[status]}
                </span>
            </div>
            <div style="display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 15px;">
                <div><strong>Local ID:</strong><br>{_text(child.local_id)}</div>
                <div><strong>Sex:</strong><br>{child.sex.title()}</div>
                <div><strong>Age:</strong><br>{age_months} months ({result.age_days} days)</div>
                <div><strong>Mother:</strong><br>{_text(child.mother_name)}</div>
                <div><strong>Region:</strong><br>{_text(child.region or child.address)}</div>
                <div><strong>Measurements:</strong><br>{n_measurements}</div>
                <div><strong>Collected by:</strong><br>{_text(collector_name or child.created_by_id)}</div>
            </div>
        </div>
        """


def render_child_info(child: Child, result: ClassificationResult, collector_name: str = "") -> None:
    """
    Render child information card with demographics and current status.

    Args:
        child: Child record
        result: Classification of the latest measurement at the current age
        collector_name: Display name of the registering health worker
    """
    st.markdown(child_card_html(child, result, collector_name), unsafe_allow_html=True)

    col1, col2, col3 = st.columns(3)
    for col, name, label in (
        (col1, "waz", "Weight-for-age"),
        (col2, "whz", "Weight-for-height"),
        (col3, "haz", "Height-for-age"),
    ):
        value = getattr(result, name)
        with col:
            st.metric(label, f"{value:.2f}" if value is not None else "—")
