"""
User Management Component

Admin page to create accounts, activate them, edit profiles, reset
passwords and delete accounts.
"""

import streamlit as st
import pandas as pd
from typing import List

from anthro.models import User
from src.config import ROLES, ROLE_LABELS
from src.utils.accounts import (
    DEFAULT_PASSWORD,
    Account,
    activate_user,
    create_user,
    delete_user,
    list_users,
    update_user,
    update_user_password,
)

ACCOUNT_TABLE_COLUMNS = ["username", "name", "email", "role", "is_active", "region", "district", "created_at"]


def accounts_frame(accounts: List[Account]) -> pd.DataFrame:
    """Account table for display; passwords are left out."""
    rows = [account.model_dump(include=set(ACCOUNT_TABLE_COLUMNS)) for account in accounts]
    df = pd.DataFrame(rows, columns=ACCOUNT_TABLE_COLUMNS)
    df["role"] = df["role"].map(ROLE_LABELS)
    return df


def _optional(value: str):
    value = (value or "").strip()
    return value or None


def render_create_user_form(admin: User) -> bool:
    with st.expander("➕ Create user"):
        with st.form("create_user_form", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                username = st.text_input("Username")
                name = st.text_input("Name")
                email = st.text_input("Email")
            with col2:
                role = st.selectbox("Role", ROLES, format_func=ROLE_LABELS.get)
                region = st.text_input("Region")
                district = st.text_input("District")
            password = st.text_input(
                "Password", type="password", help=f"Defaults to '{DEFAULT_PASSWORD}'"
            )
            submitted = st.form_submit_button("Create", use_container_width=True)

        if submitted:
            try:
                account = create_user(
                    admin,
                    username=username,
                    name=name,
                    role=role,
                    password=password or None,
                    email=_optional(email),
                    region=_optional(region),
                    district=_optional(district),
                )
                status = "active" if account.is_active else "awaiting activation"
                st.success(f"Created {account.username} ({status})")
                return True
            except (PermissionError, ValueError, IOError) as e:
                st.error(f"Could not create user: {e}")
    return False


def render_manage_user(admin: User, account: Account) -> bool:
    """Activation, profile edits, password reset and deletion for one account."""
    changed = False

    if not account.is_active and st.button("✅ Activate", key=f"activate_{account.id}"):
        try:
            activate_user(admin, account.id)
            changed = True
        except (PermissionError, KeyError, IOError) as e:
            st.error(f"Could not activate user: {e}")

    with st.form(f"edit_user_form_{account.id}"):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Name", value=account.name)
            email = st.text_input("Email", value=account.email or "")
            role = st.selectbox(
                "Role", ROLES, index=ROLES.index(account.role), format_func=ROLE_LABELS.get
            )
        with col2:
            region = st.text_input("Region", value=account.region or "")
            district = st.text_input("District", value=account.district or "")
            is_active = st.checkbox("Active", value=account.is_active)
        if st.form_submit_button("Save changes", use_container_width=True):
            try:
                update_user(
                    admin,
                    account.id,
                    {
                        "name": name,
                        "email": email,
                        "role": role,
                        "is_active": is_active,
                        "region": region,
                        "district": district,
                    },
                )
                changed = True
            except (PermissionError, KeyError, ValueError, IOError) as e:
                st.error(f"Could not update user: {e}")

    with st.form(f"password_form_{account.id}", clear_on_submit=True):
        password = st.text_input("New password", type="password")
        if st.form_submit_button("Set password", use_container_width=True):
            try:
                update_user_password(admin, account.id, password)
                st.success("Password updated")
            except (PermissionError, KeyError, ValueError, IOError) as e:
                st.error(f"Could not set password: {e}")

    confirm = st.checkbox("Confirm deletion", key=f"confirm_delete_user_{account.id}")
    if st.button("🗑️ Delete user", key=f"delete_user_{account.id}", disabled=not confirm):
        try:
            delete_user(admin, account.id)
            changed = True
        except (PermissionError, KeyError, IOError) as e:
            st.error(f"Could not delete user: {e}")

    return changed


def render_users_page(admin: User) -> bool:
    """
    Render the admin user management page.

    Returns:
        True if accounts changed and the page should be rerun
    """
    st.markdown("## 👥 Users")
    try:
        accounts = list_users(admin)
    except PermissionError as e:
        st.error(f"Access denied: {e}")
        return False
    except ValueError as e:
        st.error(f"Error loading users: {e}")
        return False

    if render_create_user_form(admin):
        return True

    st.dataframe(accounts_frame(accounts), hide_index=True, use_container_width=True)

    by_username = {account.username: account for account in accounts}
    selected = st.selectbox("Manage user", list(by_username))
    if selected is None:
        return False
    return render_manage_user(admin, by_username[selected])
