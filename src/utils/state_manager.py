"""
Session state management utilities for Streamlit.
"""

import streamlit as st
from typing import Optional, Tuple

from src.config import PAGES, STATE_KEYS


def initialize_session_state(default_child_id: Optional[str] = None) -> None:
    """
    Initialize Streamlit session state with default values.

    Parameters
    ----------
    default_child_id : str, optional
        Child shown on the detail page on first load
    """
    if STATE_KEYS["initialized"] in st.session_state:
        if STATE_KEYS["export_feedback"] not in st.session_state:
            st.session_state[STATE_KEYS["export_feedback"]] = None
        return

    st.session_state[STATE_KEYS["current_page"]] = PAGES[0]
    st.session_state[STATE_KEYS["current_child_id"]] = default_child_id
    st.session_state[STATE_KEYS["search_query"]] = ""
    st.session_state[STATE_KEYS["export_feedback"]] = None
    st.session_state[STATE_KEYS["current_conversation_id"]] = None

    st.session_state[STATE_KEYS["initialized"]] = True


def get_current_page() -> str:
    """Get the active page name."""
    return st.session_state.get(STATE_KEYS["current_page"], PAGES[0])


def set_current_page(page: str) -> None:
    """
    Switch to another page.

    Raises
    ------
    ValueError
        If the page is unknown
    """
    if page not in PAGES:
        raise ValueError(f"Unknown page: {page}")
    st.session_state[STATE_KEYS["current_page"]] = page


def get_current_child_id() -> Optional[str]:
    """Get the child shown on the detail page."""
    return st.session_state.get(STATE_KEYS["current_child_id"])


def set_current_child_id(child_id: Optional[str]) -> None:
    """Select a child for the detail page."""
    st.session_state[STATE_KEYS["current_child_id"]] = child_id


def open_child(child_id: str) -> None:
    """Select a child and jump to its detail page."""
    set_current_child_id(child_id)
    set_current_page("Child Detail")


def get_current_conversation_id() -> Optional[str]:
    """Get the conversation open on the Conversations page."""
    return st.session_state.get(STATE_KEYS["current_conversation_id"])


def set_current_conversation_id(conversation_id: Optional[str]) -> None:
    st.session_state[STATE_KEYS["current_conversation_id"]] = conversation_id


def set_export_feedback(status: str, message: str, data: Optional[bytes] = None,
                        filename: Optional[str] = None) -> None:
    """Store the outcome of an export for display on the next rerun."""
    st.session_state[STATE_KEYS["export_feedback"]] = (status, message, data, filename)


def pop_export_feedback() -> Optional[Tuple]:
    """Return and clear the pending export feedback."""
    return st.session_state.pop(STATE_KEYS["export_feedback"], None)
