"""
NutriMap dashboard entry point: ``streamlit run main.py``.

Shows the login page until a user is authenticated, then the dashboard.
"""

import sys
from pathlib import Path

import streamlit as st

sys.path.insert(0, str(Path(__file__).parent))

st.set_page_config(
    page_title="NutriMap",
    page_icon="🥣",
    layout="wide",
    initial_sidebar_state="expanded",
)

from src.app import main
from src.auth import get_current_user, is_authenticated, logout, render_login_page
from src.config import ROLE_LABELS


def render_account_panel() -> None:
    """Current account and logout button at the top of the sidebar."""
    user = get_current_user()
    if user is None:
        return
    with st.sidebar:
        st.success(f"👤 **{user.name}** · {ROLE_LABELS[user.role]}")
        if st.button("🚪 Logout", use_container_width=True):
            logout()
            st.rerun()
        st.divider()


if __name__ == "__main__":
    if is_authenticated():
        render_account_panel()
        main()
    else:
        render_login_page()
