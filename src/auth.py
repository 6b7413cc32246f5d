"""
Authentication module for the nutrition dashboard.

Provides simple username/password authentication against the account store
with role-based access: community health workers (chw) register and follow
up their own children, nutritionists review all records, admins manage
everything including the accounts. Only activated accounts may log in.
"""

import streamlit as st
from pathlib import Path
from typing import Optional, Dict

from anthro.models import Child, User
from src.config import ROLE_ADMIN, ROLE_CHW, ROLE_LABELS
from src.utils.accounts import SEED_ACCOUNTS, authenticate, find_account, load_accounts

USERS = SEED_ACCOUNTS

REGISTERING_ROLES = (ROLE_CHW, ROLE_ADMIN)


def check_credentials(username: str, password: str, data_dir: Optional[Path] = None) -> bool:
    """
    Verify user credentials.

    Parameters
    ----------
    username : str
        Username to check
    password : str
        Password to verify
    data_dir : Path, optional
        Directory holding users.csv; defaults to RAW_DATA_DIR

    Returns
    -------
    bool
        True if credentials are valid and the account is activated
    """
    account = find_account(username, data_dir)
    return account is not None and account.is_active and account.password == password


def get_user(username: str, data_dir: Optional[Path] = None) -> Optional[User]:
    """Look up a user account by username."""
    account = find_account(username, data_dir)
    return account.to_user() if account is not None else None


def user_names(data_dir: Optional[Path] = None) -> Dict[str, str]:
    """Map user id -> display name."""
    return {account.id: account.name for account in load_accounts(data_dir)}


def can_register_child(user: Optional[User]) -> bool:
    """Only activated community health workers and admins register children."""
    return user is not None and user.role in REGISTERING_ROLES and user.is_active


def can_modify_child(user: Optional[User], child: Child) -> bool:
    """Admins modify any child; others only the children they collected."""
    if user is None:
        return False
    return user.role == ROLE_ADMIN or user.id == child.created_by_id


def get_current_user() -> Optional[User]:
    """
    Get the currently logged-in user.

    Returns
    -------
    Optional[User]
        User if logged in, None otherwise
    """
    username = st.session_state.get("authenticated_user")
    return get_user(username) if username else None


def is_authenticated() -> bool:
    """
    Check if a user is currently authenticated.

    Returns
    -------
    bool
        True if user is logged in
    """
    return st.session_state.get("authenticated", False)


def login(username: str, password: str) -> bool:
    """
    Attempt to log in a user.

    Parameters
    ----------
    username : str
        Username
    password : str
        Password

    Returns
    -------
    bool
        True if login successful

    Raises
    ------
    PermissionError
        If the account exists but is not activated
    """
    if authenticate(username, password) is not None:
        st.session_state["authenticated"] = True
        st.session_state["authenticated_user"] = username
        return True
    return False


def logout() -> None:
    """Log out the current user and clear all session state."""
    st.session_state["authenticated"] = False
    st.session_state["authenticated_user"] = None

    # Clear all other session state to prevent data leakage between roles
    keys_to_clear = [key for key in st.session_state.keys()
                     if key not in ["authenticated", "authenticated_user"]]
    for key in keys_to_clear:
        del st.session_state[key]


def render_login_page() -> bool:
    """
    Render the login page.

    Returns
    -------
    bool
        True if user successfully logged in
    """
    st.title("🥣 NutriMap")
    st.markdown("### Please log in to continue")

    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown("---")
        with st.form("login_form"):
            username = st.text_input("Username", placeholder="Enter your username")
            password = st.text_input("Password", type="password", placeholder="Enter your password")
            submit = st.form_submit_button("Log In", use_container_width=True)

            if submit:
                if username and password:
                    try:
                        logged_in = login(username, password)
                    except PermissionError as e:
                        st.error(f"❌ {e}")
                    else:
                        if logged_in:
                            user = get_user(username)
                            st.success(f"✅ Logged in as {ROLE_LABELS[user.role]}. Redirecting...")
                            st.rerun()
                        else:
                            st.error("❌ Invalid username or password")
                else:
                    st.warning("⚠️ Please enter both username and password")

    return False
