"""
Sidebar Navigation Component

This module provides the sidebar with page navigation, the signed-in user's
role and the CSV export control.
"""

import streamlit as st
from typing import Callable, Optional

from anthro.models import User
from src.config import PAGES, ROLE_ADMIN, ROLE_LABELS, ROLE_NUTRITIONIST, STATE_KEYS
from src.utils.state_manager import get_current_page, pop_export_feedback

PAGE_ICONS = {
    "Dashboard": "📊",
    "Children": "👶",
    "Child Detail": "📈",
    "Reports": "🗺️",
    "Register Child": "➕",
    "Conversations": "💬",
    "Users": "👥",
}


def available_pages(user: User) -> list:
    """Nutritionists do not register children; only admins manage users."""
    pages = list(PAGES)
    if user.role == ROLE_NUTRITIONIST:
        pages.remove("Register Child")
    if user.role != ROLE_ADMIN:
        pages.remove("Users")
    return pages


def render_sidebar(
    user: User,
    child_count: int,
    on_export: Optional[Callable[[], None]] = None,
) -> Optional[str]:
    """
    Render the sidebar with navigation and export.

    Args:
        user: Signed-in user
        child_count: Number of children visible to the user
        on_export: Callback run when the export button is pressed

    Returns:
        Selected page name if changed, None otherwise
    """
    with st.sidebar:
        st.title("🥣 NutriMap")
        st.caption(f"{ROLE_LABELS[user.role]} · {child_count} children")

        st.divider()

        pages = available_pages(user)
        current_page = get_current_page()
        if current_page not in pages:
            current_page = pages[0]

        selected_page = current_page
        for page in pages:
            if st.button(
                f"{PAGE_ICONS.get(page, '')} {page}",
                key=f"nav_{page}",
                use_container_width=True,
                type="primary" if page == current_page else "secondary",
            ):
                selected_page = page

        st.divider()

        if st.button(
            "📤 Export Children CSV",
            use_container_width=True,
            help="Export the children visible to you with their initial measurement",
        ):
            if on_export:
                on_export()

        feedback = pop_export_feedback()
        if feedback:
            status, message, csv_data, filename = feedback
            if status == "success":
                st.success(message)
                if csv_data and filename:
                    st.download_button(
                        label="📥 Download Copy",
                        data=csv_data,
                        file_name=filename,
                        mime="text/csv",
                        use_container_width=True,
                        key=f"download_{filename}",
                    )
            else:
                st.error(message)
            st.session_state[STATE_KEYS["export_feedback"]] = None

        if selected_page != get_current_page():
            return selected_page
        return None
