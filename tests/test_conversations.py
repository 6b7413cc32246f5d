from datetime import datetime

import pytest

from src.utils.conversations import (
    create_conversation,
    get_messages,
    list_conversations,
    load_conversations,
    post_message,
)
from src.utils.persistence import save_children

T0 = datetime(2024, 6, 1, 9, 0)
T1 = datetime(2024, 6, 1, 10, 0)
T2 = datetime(2024, 6, 1, 11, 0)
T3 = datetime(2024, 6, 1, 12, 0)


@pytest.fixture
def store(tmp_path, sample_children):
    """c1, c2 collected by chw-1; c3 by chw-2."""
    save_children(sample_children, data_dir=tmp_path)
    return tmp_path


@pytest.fixture
def threads(store, chw, other_chw, nutritionist):
    """One thread per starter: chw-1 on c1, chw-2 on c3, nutritionist on c2, nutritionist general."""
    return {
        "own": create_conversation(chw, "Weight loss", "c1", data_dir=store, now=T0),
        "other": create_conversation(other_chw, "Oedema", "c3", data_dir=store, now=T1),
        "on_chw_child": create_conversation(nutritionist, "Diet plan", "c2", data_dir=store, now=T2),
        "general": create_conversation(nutritionist, "Training", None, data_dir=store, now=T3),
    }


def test_tc001_create_conversation_persists(store, chw) -> None:
    conversation = create_conversation(chw, "  Weight loss ", "c1", data_dir=store, now=T0)
    assert conversation.title == "Weight loss"
    assert conversation.child_id == "c1"
    assert conversation.created_by_id == chw.id
    assert conversation.updated_at == T0
    assert load_conversations(store) == [conversation]


def test_tc002_admin_cannot_start_conversation(store, admin) -> None:
    with pytest.raises(PermissionError, match="Admins are not allowed"):
        create_conversation(admin, "Audit", data_dir=store)
    assert load_conversations(store) == []


def test_tc003_chw_cannot_attach_other_chws_child(store, chw) -> None:
    with pytest.raises(PermissionError, match="Forbidden"):
        create_conversation(chw, "Question", "c3", data_dir=store)


def test_tc004_unknown_child(store, nutritionist) -> None:
    with pytest.raises(KeyError, match="Child not found"):
        create_conversation(nutritionist, "Question", "missing", data_dir=store)


def test_tc005_chw_sees_own_and_own_children(store, threads, chw) -> None:
    visible = list_conversations(chw, data_dir=store)
    assert [c.id for c in visible] == [threads["on_chw_child"].id, threads["own"].id]


@pytest.mark.parametrize("user_fixture", ["nutritionist", "admin"])
def test_tc006_nutritionist_and_admin_see_all(store, threads, request, user_fixture) -> None:
    user = request.getfixturevalue(user_fixture)
    visible = list_conversations(user, data_dir=store)
    assert [c.id for c in visible] == [
        threads["general"].id,
        threads["on_chw_child"].id,
        threads["other"].id,
        threads["own"].id,
    ]


def test_tc007_list_filtered_by_child(store, threads, nutritionist) -> None:
    visible = list_conversations(nutritionist, child_id="c3", data_dir=store)
    assert [c.id for c in visible] == [threads["other"].id]


def test_tc008_messages_in_posting_order(store, threads, chw, nutritionist) -> None:
    thread = threads["on_chw_child"]
    post_message(nutritionist, thread.id, "Please weigh again", data_dir=store, now=T3)
    post_message(chw, thread.id, "Done, 7.4 kg", data_dir=store, now=datetime(2024, 6, 2))

    messages = get_messages(chw, thread.id, data_dir=store)
    assert [m.text for m in messages] == ["Please weigh again", "Done, 7.4 kg"]
    assert [m.author_id for m in messages] == [nutritionist.id, chw.id]


def test_tc009_post_bumps_conversation(store, threads, chw) -> None:
    post_message(chw, threads["own"].id, "Any advice?", data_dir=store, now=datetime(2024, 6, 3))
    visible = list_conversations(chw, data_dir=store)
    assert visible[0].id == threads["own"].id
    assert visible[0].updated_at == datetime(2024, 6, 3)


def test_tc010_chw_cannot_read_or_post_elsewhere(store, threads, chw) -> None:
    with pytest.raises(PermissionError, match="Forbidden"):
        get_messages(chw, threads["other"].id, data_dir=store)
    with pytest.raises(PermissionError, match="Forbidden"):
        post_message(chw, threads["general"].id, "Hello", data_dir=store)


def test_tc011_admin_reads_but_cannot_post(store, threads, admin, nutritionist) -> None:
    post_message(nutritionist, threads["general"].id, "Welcome", data_dir=store, now=T3)
    assert [m.text for m in get_messages(admin, threads["general"].id, data_dir=store)] == ["Welcome"]
    with pytest.raises(PermissionError, match="Admins are not allowed"):
        post_message(admin, threads["general"].id, "Hi", data_dir=store)


@pytest.mark.parametrize("text", ["", "   ", None])
def test_tc012_empty_message_rejected(store, threads, chw, text) -> None:
    with pytest.raises(ValueError, match="Invalid message"):
        post_message(chw, threads["own"].id, text, data_dir=store)
    assert get_messages(chw, threads["own"].id, data_dir=store) == []


def test_tc013_unknown_conversation(store, nutritionist) -> None:
    with pytest.raises(KeyError, match="Conversation not found"):
        get_messages(nutritionist, "missing", data_dir=store)
    with pytest.raises(KeyError, match="Conversation not found"):
        post_message(nutritionist, "missing", "Hello", data_dir=store)


def test_tc014_message_text_survives_store(store, threads, chw) -> None:
    text = 'Weight 7,4 kg\nsays "fine"'
    post_message(chw, threads["own"].id, text, data_dir=store, now=T3)
    (message,) = get_messages(chw, threads["own"].id, data_dir=store)
    assert message.text == text


def test_tc015_anonymous_user_rejected(store, threads) -> None:
    with pytest.raises(PermissionError):
        list_conversations(None, data_dir=store)
    with pytest.raises(PermissionError):
        get_messages(None, threads["own"].id, data_dir=store)
