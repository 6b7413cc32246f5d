import pytest

from anthro.models import User
from src.auth import (
    USERS,
    can_modify_child,
    can_register_child,
    check_credentials,
    get_user,
    user_names,
)
from src.utils.accounts import create_user


@pytest.mark.parametrize(
    "username,password,expected",
    [
        ("chw", "chw123", True),
        ("admin", "admin123", True),
        ("chw", "wrong", False),
        ("ghost", "chw123", False),
        ("", "", False),
    ],
)
def test_tc001_check_credentials(tmp_path, username, password, expected) -> None:
    assert check_credentials(username, password, data_dir=tmp_path) is expected


def test_tc002_get_user(tmp_path) -> None:
    user = get_user("nutritionist", data_dir=tmp_path)
    assert user == User(
        id=USERS["nutritionist"]["id"], name="Nutritionist Demo", role="nutritionist"
    )
    assert user.is_active
    assert get_user("ghost", data_dir=tmp_path) is None


def test_tc003_user_names_keyed_by_id(tmp_path) -> None:
    names = user_names(data_dir=tmp_path)
    assert names[USERS["chw"]["id"]] == "CHW Demo"
    assert len(names) == len(USERS)


def test_tc004_can_register_child(chw, admin, nutritionist, inactive_chw) -> None:
    assert can_register_child(chw)
    assert can_register_child(admin)
    assert not can_register_child(nutritionist)
    assert not can_register_child(inactive_chw)
    assert not can_register_child(None)


def test_tc005_can_modify_child(sample_children, chw, other_chw, admin, nutritionist) -> None:
    child = sample_children[0]
    assert can_modify_child(chw, child)
    assert can_modify_child(admin, child)
    assert not can_modify_child(other_chw, child)
    assert not can_modify_child(nutritionist, child)
    assert not can_modify_child(None, child)


def test_tc006_inactive_account_cannot_log_in(tmp_path, admin) -> None:
    create_user(admin, "newchw", "New CHW", "chw", password="secret1", data_dir=tmp_path)
    assert check_credentials("newchw", "secret1", data_dir=tmp_path) is False
    user = get_user("newchw", data_dir=tmp_path)
    assert user.role == "chw"
    assert not user.is_active
    assert user_names(data_dir=tmp_path)[user.id] == "New CHW"
