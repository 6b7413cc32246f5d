"""Interactive data table components for children and their measurements."""

from typing import Optional

import pandas as pd
import streamlit as st
from st_aggrid import AgGrid, GridOptionsBuilder, GridUpdateMode, JsCode

from src.config import STATUS_LABELS, TABLE_COLUMNS

STATUS_ICONS = {"normal": "🟢", "moderate": "🟠", "severe": "🔴"}

# Row colouring by aggregate status
GET_ROW_STYLE = JsCode("""
    function(params) {
        if (!params.data) return {};
        const status = params.data._status;
        if (status === 'severe') {
            return {'background-color': '#FFE5E6'};
        }
        if (status === 'moderate') {
            return {'background-color': '#FEF5E5'};
        }
        return {};
    }
""")


def _round_scores(df: pd.DataFrame) -> pd.DataFrame:
    for col in ("waz", "whz", "haz", "bmi"):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce").round(2)
    return df


def render_children_table(overview: pd.DataFrame, key: str = "children_table") -> Optional[str]:
    """
    Render the children overview grid.

    Args:
        overview: Table from ``children_overview``
        key: Widget key

    Returns:
        Id of the clicked child, or None
    """
    if overview.empty:
        st.info("No children to display.")
        return None

    grid_data = overview[["id"] + [c for c in TABLE_COLUMNS if c in overview.columns]].copy()
    grid_data = _round_scores(grid_data)
    grid_data.insert(1, "Status", grid_data["status"].map(
        lambda s: f"{STATUS_ICONS.get(s, '')} {STATUS_LABELS.get(s, s)}"
    ))
    grid_data["_status"] = grid_data["status"]
    grid_data = grid_data.drop(columns=["status"])

    st.caption("🟢 = Normal | 🟠 = MAM (Moderate) | 🔴 = SAM (Severe)")

    builder = GridOptionsBuilder.from_dataframe(grid_data)
    builder.configure_default_column(resizable=True, filter=True, sortable=True)
    builder.configure_selection("single", use_checkbox=False)
    builder.configure_column("id", hide=True)
    builder.configure_column("_status", hide=True)
    builder.configure_column("Status", pinned="left", width=140, suppressSizeToFit=True)
    builder.configure_grid_options(
        getRowStyle=GET_ROW_STYLE,
        getRowId=JsCode("function(params) { return params.data.id; }"),
        suppressScrollOnNewData=True,
    )

    grid_response = AgGrid(
        grid_data,
        gridOptions=builder.build(),
        height=500,
        theme="streamlit",
        update_mode=GridUpdateMode.SELECTION_CHANGED,
        allow_unsafe_jscode=True,
        fit_columns_on_grid_load=True,
        key=key,
    )

    selected_rows = grid_response.get("selected_rows")
    if isinstance(selected_rows, pd.DataFrame):
        selected_rows = selected_rows.to_dict("records")
    if not selected_rows:
        return None
    return selected_rows[0].get("id")


def render_timeline_table(timeline: pd.DataFrame, child_id: str) -> None:
    """Render a child's measurements with scores at each recorded age."""
    if timeline.empty:
        st.info("No measurements recorded for this child.")
        return

    display = _round_scores(timeline.copy())
    display["recorded_at"] = pd.to_datetime(display["recorded_at"]).dt.strftime("%Y-%m-%d")
    display.insert(0, "#", range(1, len(display) + 1))
    display["_status"] = display["status"]

    builder = GridOptionsBuilder.from_dataframe(display)
    builder.configure_default_column(resizable=True, filter=False, sortable=False)
    builder.configure_column("_status", hide=True)
    builder.configure_column("#", pinned="left", width=50, suppressSizeToFit=True)
    builder.configure_grid_options(getRowStyle=GET_ROW_STYLE)

    AgGrid(
        display,
        gridOptions=builder.build(),
        height=300,
        theme="streamlit",
        update_mode=GridUpdateMode.NO_UPDATE,
        allow_unsafe_jscode=True,
        fit_columns_on_grid_load=False,
        key=f"timeline_table_{child_id}",
    )


def render_table_summary(overview: pd.DataFrame) -> None:
    """
    Render summary counts for the children table.

    Parameters
    ----------
    overview : pd.DataFrame
        Table from ``children_overview``
    """
    col1, col2, col3, col4 = st.columns(4)
    counts = overview["status"].value_counts() if not overview.empty else {}

    with col1:
        st.metric("Children", len(overview))
    with col2:
        st.metric("Normal", int(counts.get("normal", 0)))
    with col3:
        st.metric("MAM", int(counts.get("moderate", 0)))
    with col4:
        st.metric("SAM", int(counts.get("severe", 0)))
