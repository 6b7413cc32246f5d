"""
Configuration constants for the nutrition dashboard.
"""

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = Path(os.environ.get("NUTRIMAP_DATA_DIR", PROJECT_ROOT / "data"))
RAW_DATA_DIR = DATA_DIR / "raw"
EXPORTS_DIR = DATA_DIR / "exports"
CHILDREN_CSV = RAW_DATA_DIR / "children.csv"
FOLLOW_UPS_CSV = RAW_DATA_DIR / "follow_ups.csv"
USERS_CSV = RAW_DATA_DIR / "users.csv"
CONVERSATIONS_CSV = RAW_DATA_DIR / "conversations.csv"
MESSAGES_CSV = RAW_DATA_DIR / "messages.csv"

# Data constants
DAYS_PER_YEAR = 365.25
DAYS_PER_MONTH = 30.4375

# Roles
ROLE_CHW = "chw"
ROLE_NUTRITIONIST = "nutritionist"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CHW, ROLE_NUTRITIONIST, ROLE_ADMIN)
ROLE_LABELS = {
    ROLE_CHW: "Community Health Worker",
    ROLE_NUTRITIONIST: "Nutritionist",
    ROLE_ADMIN: "Administrator",
}

# Status display
STATUS_LABELS = {
    "normal": "Normal",
    "moderate": "MAM (Moderate)",
    "severe": "SAM (Severe)",
}

# Plot configuration
PLOT_HEIGHT = 400
PLOT_COLORS = {
    "primary": "#1f77b4",
    "normal": "#2ca02c",
    "moderate": "#ff7f0e",
    "severe": "#d62728",
    "selected": "#9467bd",
}

CHART_CONFIG = {
    "displayModeBar": True,
    "displaylogo": False,
    "staticPlot": False,
    "responsive": True,
    "modeBarButtonsToRemove": [],
}

# Record store columns
CHILD_COLUMNS = [
    "id",
    "local_id",
    "name",
    "sex",
    "dob",
    "mother_name",
    "mother_national_id",
    "mother_marital_status",
    "mother_age",
    "father_name",
    "father_national_id",
    "address",
    "region",
    "district",
    "latitude",
    "longitude",
    "complications",
    "created_by_id",
    "initial_recorded_at",
    "initial_weight_kg",
    "initial_height_cm",
    "initial_head_circ_cm",
]

FOLLOW_UP_COLUMNS = [
    "child_id",
    "recorded_at",
    "weight_kg",
    "height_cm",
    "head_circ_cm",
    "collector_id",
]

USER_COLUMNS = [
    "id",
    "username",
    "name",
    "email",
    "role",
    "password",
    "is_active",
    "region",
    "district",
    "created_at",
]

CONVERSATION_COLUMNS = [
    "id",
    "title",
    "child_id",
    "created_by_id",
    "created_at",
    "updated_at",
]

MESSAGE_COLUMNS = [
    "id",
    "conversation_id",
    "author_id",
    "text",
    "created_at",
]

REQUIRED_CHILD_COLUMNS = [
    "id",
    "name",
    "sex",
    "dob",
    "created_by_id",
    "initial_recorded_at",
    "initial_weight_kg",
    "initial_height_cm",
]

# Children overview table columns
TABLE_COLUMNS = [
    "local_id",
    "name",
    "sex",
    "age_months",
    "region",
    "weight_kg",
    "height_cm",
    "waz",
    "whz",
    "haz",
    "status",
]

# Session state keys
STATE_KEYS = {
    "current_page": "current_page",
    "current_child_id": "current_child_id",
    "search_query": "search_query",
    "export_feedback": "export_feedback",
    "current_conversation_id": "current_conversation_id",
    "initialized": "initialized",
}

PAGES = [
    "Dashboard",
    "Children",
    "Child Detail",
    "Reports",
    "Register Child",
    "Conversations",
    "Users",
]
