"""
User account store.

Accounts live in ``users.csv`` next to the child records. Until an admin
changes anything, the store holds the demo accounts below. Accounts created
by an admin start inactive unless they are admins themselves, and an
inactive account can neither log in nor register children.
"""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ValidationError

from anthro.models import User
from src.config import ROLE_ADMIN, ROLES, USER_COLUMNS, USERS_CSV
from src.utils.csv_store import read_records, records_to_frame, write_frame

DEFAULT_PASSWORD = "changeme123"
MIN_PASSWORD_LENGTH = 6

# Fields an admin may change with update_user
UPDATABLE_FIELDS = {"name", "email", "role", "is_active", "region", "district"}

# Demo accounts - in production, these should be stored securely
SEED_ACCOUNTS: Dict[str, Dict[str, str]] = {
    "admin": {
        "id": "0c3ae863-eb0c-4687-8b89-812fdab4444b",
        "name": "Admin User",
        "role": "admin",
        "password": "admin123",
    },
    "chw": {
        "id": "10aa0fde-fdaf-4aa9-8191-1089e361888d",
        "name": "CHW Demo",
        "role": "chw",
        "password": "chw123",
    },
    "chw2": {
        "id": "ebceee7e-db1b-4581-9d06-d3fd93f7b3ff",
        "name": "CHW Demo 2",
        "role": "chw",
        "password": "chw223",
    },
    "nutritionist": {
        "id": "7c653310-be08-41c6-a500-df843fd66bee",
        "name": "Nutritionist Demo",
        "role": "nutritionist",
        "password": "nutri123",
    },
}


class Account(BaseModel):
    """A stored login account. ``to_user`` gives the session-facing view."""

    id: str
    username: str
    name: str = ""
    email: Optional[str] = None
    role: Literal["chw", "nutritionist", "admin"]
    password: str
    is_active: bool = False
    region: Optional[str] = None
    district: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_user(self) -> User:
        return User(id=self.id, name=self.name, role=self.role, is_active=self.is_active)


def seed_accounts() -> List[Account]:
    """The demo accounts, all active."""
    return [
        Account(username=username, is_active=True, **account)
        for username, account in SEED_ACCOUNTS.items()
    ]


def _users_path(data_dir: Optional[Path]) -> Path:
    return USERS_CSV if data_dir is None else Path(data_dir) / "users.csv"


def load_accounts(data_dir: Optional[Path] = None) -> List[Account]:
    """
    Load all accounts; a store that was never written holds the demo accounts.

    Raises
    ------
    ValueError
        If a stored account is invalid
    """
    path = _users_path(data_dir)
    if not path.exists():
        return seed_accounts()
    try:
        return [Account.model_validate(row) for row in read_records(path, USER_COLUMNS)]
    except ValidationError as e:
        raise ValueError(f"Invalid user record in {path.name}: {e}") from e


def save_accounts(accounts: List[Account], data_dir: Optional[Path] = None) -> None:
    """
    Persist accounts to users.csv.

    Raises
    ------
    IOError
        If unable to write the file
    """
    write_frame(records_to_frame(accounts, USER_COLUMNS), _users_path(data_dir))


def find_account(username: str, data_dir: Optional[Path] = None) -> Optional[Account]:
    """Look up an account by username."""
    for account in load_accounts(data_dir):
        if account.username == username:
            return account
    return None


def authenticate(
    username: str, password: str, data_dir: Optional[Path] = None
) -> Optional[User]:
    """
    Check a username/password pair.

    Returns
    -------
    Optional[User]
        The user, or None when the credentials do not match

    Raises
    ------
    PermissionError
        If the credentials match an account that is not activated
    """
    account = find_account(username, data_dir)
    if account is None or account.password != password:
        return None
    if not account.is_active:
        raise PermissionError("Account not activated by admin")
    return account.to_user()


def _require_admin(actor: Optional[User]) -> None:
    if actor is None or actor.role != ROLE_ADMIN:
        raise PermissionError("Forbidden")


def _validate_password(password: Any) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be a string with at least {MIN_PASSWORD_LENGTH} characters"
        )


def _get_account(accounts: List[Account], user_id: str) -> Account:
    for account in accounts:
        if account.id == user_id:
            return account
    raise KeyError("User not found")


def list_users(actor: Optional[User], data_dir: Optional[Path] = None) -> List[Account]:
    """
    List all accounts (admin only).

    Raises
    ------
    PermissionError
        If the actor is not an admin
    """
    _require_admin(actor)
    return load_accounts(data_dir)


def create_user(
    actor: Optional[User],
    username: str,
    name: str,
    role: str,
    password: Optional[str] = None,
    email: Optional[str] = None,
    region: Optional[str] = None,
    district: Optional[str] = None,
    data_dir: Optional[Path] = None,
) -> Account:
    """
    Create an account (admin only).

    Admin accounts are active immediately; everyone else waits for
    activation. Without a password the account gets DEFAULT_PASSWORD.

    Raises
    ------
    PermissionError
        If the actor is not an admin
    ValueError
        If the role is invalid, the username is taken or the password too short
    """
    _require_admin(actor)
    if role not in ROLES:
        raise ValueError("Invalid role")
    username = (username or "").strip()
    if not username:
        raise ValueError("Username is required")
    if password:
        _validate_password(password)

    accounts = load_accounts(data_dir)
    if any(a.username == username for a in accounts):
        raise ValueError(f"Username already exists: {username}")

    account = Account(
        id=str(uuid.uuid4()),
        username=username,
        name=name,
        email=email,
        role=role,
        password=password or DEFAULT_PASSWORD,
        is_active=role == ROLE_ADMIN,
        region=region,
        district=district,
        created_at=datetime.now(),
    )
    accounts.append(account)
    save_accounts(accounts, data_dir)
    return account


def update_user(
    actor: Optional[User],
    user_id: str,
    fields: Dict[str, Any],
    data_dir: Optional[Path] = None,
) -> Account:
    """
    Update profile fields, role or activation of an account (admin only).

    ``None`` values are ignored and an unknown role leaves the role unchanged.

    Raises
    ------
    PermissionError
        If the actor is not an admin
    KeyError
        If the user does not exist
    ValueError
        If a field may not be updated here
    """
    _require_admin(actor)
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")

    accounts = load_accounts(data_dir)
    account = _get_account(accounts, user_id)
    changes = {k: v for k, v in fields.items() if v is not None}
    if changes.get("role") not in (None, *ROLES):
        del changes["role"]
    if "is_active" in changes:
        changes["is_active"] = bool(changes["is_active"])

    try:
        updated = Account.model_validate({**account.model_dump(), **changes})
    except ValidationError as e:
        raise ValueError(f"Invalid user record: {e}") from e
    save_accounts([updated if a.id == user_id else a for a in accounts], data_dir)
    return updated


def activate_user(
    actor: Optional[User], user_id: str, data_dir: Optional[Path] = None
) -> Account:
    """Activate an account (admin only)."""
    return update_user(actor, user_id, {"is_active": True}, data_dir)


def update_user_password(
    actor: Optional[User],
    user_id: str,
    password: str,
    data_dir: Optional[Path] = None,
) -> Account:
    """
    Set a new password (admin only).

    Raises
    ------
    PermissionError
        If the actor is not an admin
    KeyError
        If the user does not exist
    ValueError
        If the password is shorter than MIN_PASSWORD_LENGTH
    """
    _require_admin(actor)
    _validate_password(password)
    accounts = load_accounts(data_dir)
    account = _get_account(accounts, user_id)
    updated = account.model_copy(update={"password": password})
    save_accounts([updated if a.id == user_id else a for a in accounts], data_dir)
    return updated


def delete_user(
    actor: Optional[User], user_id: str, data_dir: Optional[Path] = None
) -> None:
    """
    Delete an account (admin only). Records the user collected are kept.

    Raises
    ------
    PermissionError
        If the actor is not an admin
    KeyError
        If the user does not exist
    """
    _require_admin(actor)
    accounts = load_accounts(data_dir)
    _get_account(accounts, user_id)
    save_accounts([a for a in accounts if a.id != user_id], data_dir)
