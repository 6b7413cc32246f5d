"""
Main Streamlit Application for NutriMap

This application lets community health workers register children and record
measurements, and lets nutritionists and admins review nutritional status
classifications and population reports. Health workers and nutritionists
discuss cases in conversations; admins manage user accounts.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
import pandas as pd

# Opt into pandas' future behavior to avoid silent dtype downcasting warnings
pd.set_option("future.no_silent_downcasting", True)
from typing import List

# Import components
from src.components.sidebar import render_sidebar
from src.components.child_info import render_child_info
from src.components.conversations import render_conversations
from src.components.child_forms import (
    render_edit_form,
    render_follow_up_form,
    render_register_form,
    render_selected_point_metrics,
)
from src.components.data_table import (
    render_children_table,
    render_table_summary,
    render_timeline_table,
)
from src.components.growth_chart import render_growth_chart, render_measurement_chart
from src.components.reports import render_breakdown, render_summary
from src.components.users import render_users_page

# Import core and utilities
from anthro.aggregator import classify_child
from anthro.models import Child, User
from anthro.rollups import breakdown_by_marital_status, breakdown_by_region, scope_children, summarize
from src.auth import get_current_user, user_names
from src.data.loader import get_child, load_children, search_children
from src.utils.calculations import children_overview, timeline_frame
from src.utils.persistence import export_children_csv
from src.utils.state_manager import (
    get_current_child_id,
    get_current_page,
    initialize_session_state,
    open_child,
    set_current_child_id,
    set_current_page,
    set_export_feedback,
)

# Import config
from src.config import CHART_CONFIG, PROJECT_ROOT, STATE_KEYS


def load_all_children() -> List[Child]:
    """Load all child records from the record store."""
    return load_children()


def handle_export(children: List[Child]) -> None:
    """Export the visible children and stash feedback for the sidebar."""
    try:
        output_path = export_children_csv(children, user_names())
        try:
            display_path = output_path.relative_to(PROJECT_ROOT)
        except ValueError:
            display_path = output_path

        with open(output_path, "rb") as f:
            csv_data = f.read()

        set_export_feedback(
            "success", f"Exported {len(children)} children to {display_path}",
            csv_data, output_path.name,
        )
    except Exception as e:
        set_export_feedback("error", f"Failed to export children: {e}")


def render_dashboard(children: List[Child], user: User) -> None:
    st.markdown("## 📊 Dashboard")
    overview = children_overview(children)
    render_table_summary(overview)

    st.markdown("### Children needing attention")
    flagged = overview[overview["status"] != "normal"]
    clicked_id = render_children_table(flagged, key="flagged_table")
    if clicked_id:
        open_child(clicked_id)
        st.rerun()


def render_children_page(children: List[Child], user: User) -> None:
    st.markdown("## 👶 Children")
    query = st.text_input(
        "Search by child name, mother name or address",
        key=STATE_KEYS["search_query"],
    )
    results = search_children(children, query=query)
    st.caption(f"{len(results)} of {len(children)} children")

    clicked_id = render_children_table(children_overview(results))
    if clicked_id:
        open_child(clicked_id)
        st.rerun()


def render_child_detail(children: List[Child], user: User) -> None:
    child_id = get_current_child_id()
    if not child_id:
        st.info("Select a child on the Children page.")
        return
    try:
        child = get_child(children, child_id)
    except KeyError:
        set_current_child_id(None)
        st.warning("This child is no longer available.")
        return

    result = classify_child(child)
    render_child_info(child, result, user_names().get(child.created_by_id, ""))

    timeline = timeline_frame(child)
    selected_key = f"selected_measurement_{child.id}"
    selected_index = st.session_state.get(selected_key, len(timeline) - 1)

    col_left, col_right = st.columns([6, 4])
    with col_left:
        st.markdown("### 📈 Growth")
        try:
            chart_selection = st.plotly_chart(
                render_growth_chart(timeline, child.name, selected_index),
                key=f"growth_chart_{child.id}",
                config=CHART_CONFIG,
                on_select="rerun",
                selection_mode="points",
            )
            if chart_selection and len(chart_selection.selection.points) > 0:
                clicked_point = chart_selection.selection.points[0]
                if clicked_point.get("customdata") is not None:
                    clicked_index = int(clicked_point["customdata"])
                    if clicked_index != selected_index:
                        st.session_state[selected_key] = clicked_index
                        st.rerun()
            st.plotly_chart(render_measurement_chart(timeline), config=CHART_CONFIG)
        except Exception as e:
            st.error(f"Error rendering charts: {e}")

    with col_right:
        render_selected_point_metrics(timeline, selected_index)
        recorded = render_follow_up_form(user, child)
        edited = render_edit_form(user, child)
        if recorded or edited:
            st.rerun()

    st.markdown("### 📋 Measurements")
    render_timeline_table(timeline, child.id)


def render_reports(all_children: List[Child], user: User) -> None:
    st.markdown("## 🗺️ Reports")

    st.markdown("### Population summary")
    render_summary(summarize(all_children))

    col_left, col_right = st.columns(2)
    with col_left:
        render_breakdown(
            breakdown_by_region(all_children, user), "Status by region", "region_chart"
        )
    with col_right:
        render_breakdown(
            breakdown_by_marital_status(all_children, user),
            "Status by mother's marital status",
            "marital_chart",
        )


def main():
    """Main application entry point."""
    user = get_current_user()
    if user is None:
        st.error("Please log in.")
        return

    try:
        with st.spinner("Loading child records..."):
            all_children = load_all_children()
    except Exception as e:
        st.error(f"Error loading data: {e}")
        return

    children = scope_children(all_children, user)
    initialize_session_state(default_child_id=children[0].id if children else None)

    new_page = render_sidebar(
        user=user,
        child_count=len(children),
        on_export=lambda: handle_export(children),
    )
    if new_page:
        set_current_page(new_page)
        st.rerun()
        return

    page = get_current_page()
    if page == "Dashboard":
        render_dashboard(children, user)
    elif page == "Children":
        render_children_page(children, user)
    elif page == "Child Detail":
        render_child_detail(children, user)
    elif page == "Reports":
        render_reports(all_children, user)
    elif page == "Register Child":
        child = render_register_form(user)
        if child is not None:
            open_child(child.id)
            st.rerun()
    elif page == "Conversations":
        if render_conversations(user, all_children, user_names()):
            st.rerun()
    elif page == "Users":
        if render_users_page(user):
            st.rerun()


if __name__ == "__main__":
    main()
