"""
Record-keeping forms: registration, follow-ups, demographic edits and
deletion, plus the metrics panel for a selected measurement.
"""

import logging
from datetime import date, datetime, time
from typing import Any, Dict, Optional

import pandas as pd
import streamlit as st

from anthro.models import Child, Measurement, User
from anthro.rollups import MARITAL_STATUSES, REGIONS
from src.auth import can_modify_child
from src.config import STATUS_LABELS
from src.utils.calculations import get_point_metrics
from src.utils.persistence import add_follow_up, delete_child, register_child, update_child

SEX_OPTIONS = ["male", "female"]


def _optional(value: Any) -> Optional[Any]:
    if isinstance(value, str):
        value = value.strip()
    return value or None


def _measurement_inputs(prefix: str) -> Dict[str, Any]:
    col1, col2, col3 = st.columns(3)
    with col1:
        weight = st.number_input("Weight (kg)", min_value=0.0, step=0.1, key=f"{prefix}_weight")
    with col2:
        height = st.number_input("Height (cm)", min_value=0.0, step=0.5, key=f"{prefix}_height")
    with col3:
        head = st.number_input(
            "Head circumference (cm)", min_value=0.0, step=0.5, key=f"{prefix}_head"
        )
    recorded_on = st.date_input("Measured on", value=date.today(), key=f"{prefix}_date")
    return {
        "weight_kg": weight,
        "height_cm": height,
        "head_circ_cm": head or None,
        "recorded_at": datetime.combine(recorded_on, time()),
    }


def render_register_form(user: User) -> Optional[Child]:
    """
    Render the child registration form.

    Returns:
        The registered child on successful submission, None otherwise
    """
    st.markdown("### ➕ Register Child")
    with st.form("register_child_form", clear_on_submit=True):
        name = st.text_input("Child name")
        col1, col2 = st.columns(2)
        with col1:
            sex = st.selectbox("Sex", SEX_OPTIONS, format_func=str.title)
        with col2:
            dob = st.date_input("Date of birth", max_value=date.today())

        st.markdown("#### Family")
        col1, col2 = st.columns(2)
        with col1:
            mother_name = st.text_input("Mother's name")
            mother_national_id = st.text_input("Mother's national ID")
            mother_marital_status = st.selectbox(
                "Mother's marital status", ("",) + MARITAL_STATUSES
            )
            mother_age = st.number_input("Mother's age", min_value=0, max_value=80, step=1)
        with col2:
            father_name = st.text_input("Father's name")
            father_national_id = st.text_input("Father's national ID")

        st.markdown("#### Location")
        col1, col2 = st.columns(2)
        with col1:
            region = st.selectbox("Region", ("",) + REGIONS)
            district = st.text_input("District")
            address = st.text_input("Address")
        with col2:
            latitude = st.number_input("Latitude", format="%.6f")
            longitude = st.number_input("Longitude", format="%.6f")
        complications = st.text_area("Complications")

        st.markdown("#### Initial measurement")
        measurement = _measurement_inputs("register")

        submitted = st.form_submit_button("Register", use_container_width=True)

    if not submitted:
        return None
    if not name.strip():
        st.warning("⚠️ Please enter the child's name")
        return None

    fields = {
        "name": name.strip(),
        "sex": sex,
        "dob": dob,
        "mother_name": _optional(mother_name),
        "mother_national_id": _optional(mother_national_id),
        "mother_marital_status": _optional(mother_marital_status),
        "mother_age": int(mother_age) if mother_age else None,
        "father_name": _optional(father_name),
        "father_national_id": _optional(father_national_id),
        "region": _optional(region),
        "district": _optional(district),
        "address": _optional(address),
        "latitude": latitude,
        "longitude": longitude,
        "complications": _optional(complications),
    }
    try:
        child = register_child(user, fields, Measurement(**measurement))
    except (PermissionError, ValueError, IOError) as e:
        st.error(f"❌ {e}")
        return None

    logging.debug(f"Registered child {child.id} ({child.local_id})")
    st.success(f"✅ Registered {child.name} as {child.local_id}")
    return child


def render_follow_up_form(user: User, child: Child) -> bool:
    """
    Render the follow-up measurement form.

    Returns:
        True if a follow-up was recorded
    """
    if not can_modify_child(user, child):
        return False

    with st.expander("📏 Add follow-up measurement"):
        with st.form(f"follow_up_form_{child.id}", clear_on_submit=True):
            measurement = _measurement_inputs(f"follow_up_{child.id}")
            submitted = st.form_submit_button("Save follow-up", use_container_width=True)

    if not submitted:
        return False
    try:
        add_follow_up(user, child.id, Measurement(**measurement))
    except (KeyError, PermissionError, ValueError, IOError) as e:
        st.error(f"❌ {e}")
        return False
    st.success("✅ Follow-up saved")
    return True


def render_edit_form(user: User, child: Child) -> bool:
    """
    Render demographic edit and delete controls.

    Returns:
        True if the child was changed or deleted
    """
    if not can_modify_child(user, child):
        return False

    changed = False
    with st.expander("✏️ Edit details"):
        with st.form(f"edit_child_form_{child.id}"):
            name = st.text_input("Child name", value=child.name)
            mother_name = st.text_input("Mother's name", value=child.mother_name or "")
            marital_options = ("",) + MARITAL_STATUSES
            current_marital = (child.mother_marital_status or "").lower()
            mother_marital_status = st.selectbox(
                "Mother's marital status",
                marital_options,
                index=marital_options.index(current_marital) if current_marital in marital_options else 0,
            )
            address = st.text_input("Address", value=child.address or "")
            region_options = ("",) + REGIONS
            region = st.selectbox(
                "Region",
                region_options,
                index=region_options.index(child.region) if child.region in region_options else 0,
            )
            complications = st.text_area("Complications", value=child.complications or "")
            submitted = st.form_submit_button("Save changes", use_container_width=True)

        if submitted:
            try:
                update_child(
                    user,
                    child.id,
                    {
                        "name": _optional(name),
                        "mother_name": _optional(mother_name),
                        "mother_marital_status": _optional(mother_marital_status),
                        "address": _optional(address),
                        "region": _optional(region),
                        "complications": _optional(complications),
                    },
                )
                st.success("✅ Details updated")
                changed = True
            except (KeyError, PermissionError, ValueError, IOError) as e:
                st.error(f"❌ {e}")

    with st.expander("🗑️ Delete record"):
        st.warning("Deleting removes the child and all follow-up measurements.")
        confirm = st.checkbox("I understand", key=f"confirm_delete_{child.id}")
        if st.button("Delete child", disabled=not confirm, key=f"delete_{child.id}"):
            try:
                delete_child(user, child.id)
                st.success("✅ Record deleted")
                changed = True
            except (KeyError, PermissionError, IOError) as e:
                st.error(f"❌ {e}")

    return changed


def render_selected_point_metrics(timeline: pd.DataFrame, selected_index: Optional[int]) -> None:
    """
    Display scores and percentiles for the selected measurement.

    Parameters
    ----------
    timeline : pd.DataFrame
        Output of ``timeline_frame``
    selected_index : int, optional
        Row of the selected measurement
    """
    metrics = get_point_metrics(timeline, selected_index) if selected_index is not None else {}
    if not metrics:
        st.info("👆 Select a measurement on the chart to view details")
        return

    st.markdown(
        f"### Measurement #{selected_index + 1} - {STATUS_LABELS[metrics['status']]}"
    )
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Age", f"{metrics['age_months']:.1f} months", help=f"{metrics['age_days']} days")
    with col2:
        st.metric("Weight", f"{metrics['weight_kg']:.1f} kg")
    with col3:
        st.metric("Height", f"{metrics['height_cm']:.1f} cm")

    col1, col2, col3 = st.columns(3)
    for col, name, label in ((col1, "waz", "WAZ"), (col2, "whz", "WHZ"), (col3, "haz", "HAZ")):
        with col:
            value = metrics[name]
            percentile = metrics[f"{name}_percentile"]
            if value is None:
                st.metric(label, "N/A")
            else:
                st.metric(label, f"{value:.2f}", help=f"{percentile:.1f}th percentile")
