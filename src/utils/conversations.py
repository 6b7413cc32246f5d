"""
Conversation store: discussion threads between health workers and
nutritionists, optionally attached to a child.

Visibility follows the child records. Nutritionists and admins see every
conversation; a CHW sees the conversations they started and those attached
to children they registered. Admins only read: they cannot start a
conversation or post to one.
"""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ValidationError

from anthro.models import User
from src.config import (
    CONVERSATION_COLUMNS,
    CONVERSATIONS_CSV,
    MESSAGE_COLUMNS,
    MESSAGES_CSV,
    ROLE_ADMIN,
    ROLE_CHW,
)
from src.data.loader import get_child, load_children
from src.utils.csv_store import read_records, records_to_frame, write_frame


class Conversation(BaseModel):
    id: str
    title: Optional[str] = None
    child_id: Optional[str] = None
    created_by_id: str
    created_at: datetime
    updated_at: datetime


class Message(BaseModel):
    id: str
    conversation_id: str
    author_id: str
    text: str
    created_at: datetime


def _store_paths(data_dir: Optional[Path]) -> tuple:
    if data_dir is None:
        return CONVERSATIONS_CSV, MESSAGES_CSV
    return Path(data_dir) / "conversations.csv", Path(data_dir) / "messages.csv"


def load_conversations(data_dir: Optional[Path] = None) -> List[Conversation]:
    """
    Load all conversations.

    Raises
    ------
    ValueError
        If a stored conversation is invalid
    """
    path, _ = _store_paths(data_dir)
    try:
        return [
            Conversation.model_validate(row)
            for row in read_records(path, CONVERSATION_COLUMNS)
        ]
    except ValidationError as e:
        raise ValueError(f"Invalid conversation record: {e}") from e


def load_messages(data_dir: Optional[Path] = None) -> List[Message]:
    """
    Load all messages in stored order.

    Raises
    ------
    ValueError
        If a stored message is invalid
    """
    _, path = _store_paths(data_dir)
    try:
        return [Message.model_validate(row) for row in read_records(path, MESSAGE_COLUMNS)]
    except ValidationError as e:
        raise ValueError(f"Invalid message record: {e}") from e


def save_conversations(
    conversations: List[Conversation], data_dir: Optional[Path] = None
) -> None:
    path, _ = _store_paths(data_dir)
    write_frame(records_to_frame(conversations, CONVERSATION_COLUMNS), path)


def save_messages(messages: List[Message], data_dir: Optional[Path] = None) -> None:
    _, path = _store_paths(data_dir)
    write_frame(records_to_frame(messages, MESSAGE_COLUMNS), path)


def _child_owners(data_dir: Optional[Path]) -> Dict[str, str]:
    return {child.id: child.created_by_id for child in load_children(data_dir)}


def can_view_conversation(
    user: Optional[User], conversation: Conversation, child_owners: Dict[str, str]
) -> bool:
    """CHWs see their own threads and threads on their children; other roles see all."""
    if user is None:
        return False
    if user.role != ROLE_CHW:
        return True
    if conversation.created_by_id == user.id:
        return True
    owner = child_owners.get(conversation.child_id) if conversation.child_id else None
    return owner == user.id


def _get_conversation(conversations: List[Conversation], conversation_id: str) -> Conversation:
    for conversation in conversations:
        if conversation.id == conversation_id:
            return conversation
    raise KeyError("Conversation not found")


def _require_participant(user: Optional[User], action: str) -> None:
    if user is None:
        raise PermissionError("Unauthorized")
    if user.role == ROLE_ADMIN:
        raise PermissionError(f"Admins are not allowed to {action}")


def create_conversation(
    user: Optional[User],
    title: Optional[str] = None,
    child_id: Optional[str] = None,
    data_dir: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> Conversation:
    """
    Start a conversation, optionally attached to a child.

    Raises
    ------
    PermissionError
        If the user is an admin, or a CHW attaching another CHW's child
    KeyError
        If the child does not exist
    """
    _require_participant(user, "participate in discussions")
    if child_id:
        child = get_child(load_children(data_dir), child_id)
        if user.role == ROLE_CHW and child.created_by_id != user.id:
            raise PermissionError("Forbidden")

    now = now or datetime.now()
    conversation = Conversation(
        id=str(uuid.uuid4()),
        title=(title or "").strip() or None,
        child_id=child_id or None,
        created_by_id=user.id,
        created_at=now,
        updated_at=now,
    )
    conversations = load_conversations(data_dir)
    conversations.append(conversation)
    save_conversations(conversations, data_dir)
    return conversation


def list_conversations(
    user: Optional[User],
    child_id: Optional[str] = None,
    data_dir: Optional[Path] = None,
) -> List[Conversation]:
    """
    Conversations visible to ``user``, most recently active first.

    Parameters
    ----------
    child_id : str, optional
        Only conversations attached to this child

    Raises
    ------
    PermissionError
        If there is no user
    """
    if user is None:
        raise PermissionError("Unauthorized")
    child_owners = _child_owners(data_dir)
    conversations = [
        c
        for c in load_conversations(data_dir)
        if can_view_conversation(user, c, child_owners)
        and (child_id is None or c.child_id == child_id)
    ]
    return sorted(conversations, key=lambda c: c.updated_at, reverse=True)


def get_messages(
    user: Optional[User], conversation_id: str, data_dir: Optional[Path] = None
) -> List[Message]:
    """
    Messages of a conversation, oldest first.

    Raises
    ------
    KeyError
        If the conversation does not exist
    PermissionError
        If the user may not see the conversation
    """
    conversation = _get_conversation(load_conversations(data_dir), conversation_id)
    if not can_view_conversation(user, conversation, _child_owners(data_dir)):
        raise PermissionError("Forbidden")
    messages = [m for m in load_messages(data_dir) if m.conversation_id == conversation_id]
    return sorted(messages, key=lambda m: m.created_at)


def post_message(
    user: Optional[User],
    conversation_id: str,
    text: str,
    data_dir: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> Message:
    """
    Post a message and mark the conversation as updated.

    Raises
    ------
    PermissionError
        If the user is an admin or may not see the conversation
    ValueError
        If the text is empty
    KeyError
        If the conversation does not exist
    """
    _require_participant(user, "post messages")
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Invalid message")

    conversations = load_conversations(data_dir)
    conversation = _get_conversation(conversations, conversation_id)
    if not can_view_conversation(user, conversation, _child_owners(data_dir)):
        raise PermissionError("Forbidden")

    now = now or datetime.now()
    message = Message(
        id=str(uuid.uuid4()),
        conversation_id=conversation_id,
        author_id=user.id,
        text=text,
        created_at=now,
    )
    messages = load_messages(data_dir)
    messages.append(message)
    save_messages(messages, data_dir)

    bumped = conversation.model_copy(update={"updated_at": now})
    save_conversations(
        [bumped if c.id == conversation_id else c for c in conversations], data_dir
    )
    return message
