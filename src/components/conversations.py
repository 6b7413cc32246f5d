"""
Conversations Component

Threads between health workers and nutritionists, optionally about a child:
the list of visible conversations, the open thread and the forms to start a
conversation or reply.
"""

import streamlit as st
from typing import Dict, List, Optional

from anthro.models import Child, User
from src.config import ROLE_ADMIN, ROLE_CHW
from src.utils.conversations import (
    Conversation,
    create_conversation,
    get_messages,
    list_conversations,
    post_message,
)
from src.utils.state_manager import get_current_conversation_id, set_current_conversation_id


def conversation_label(conversation: Conversation, child_names: Dict[str, str]) -> str:
    """Title, child and last activity for the conversation list."""
    title = conversation.title or "Untitled conversation"
    if conversation.child_id:
        title += f" · {child_names.get(conversation.child_id, 'unknown child')}"
    return f"{title} ({conversation.updated_at:%Y-%m-%d %H:%M})"


def render_new_conversation_form(user: User, children: List[Child]) -> Optional[Conversation]:
    """
    Form to start a conversation. CHWs may attach only their own children.

    Returns:
        The created conversation, None otherwise
    """
    if user.role == ROLE_CHW:
        children = [c for c in children if c.created_by_id == user.id]
    options = [None] + [c.id for c in children]
    names = {c.id: f"{c.name} ({c.local_id or c.id})" for c in children}

    with st.expander("➕ Start a conversation"):
        with st.form("new_conversation_form", clear_on_submit=True):
            title = st.text_input("Title")
            child_id = st.selectbox(
                "About child",
                options,
                format_func=lambda cid: "No child" if cid is None else names[cid],
            )
            submitted = st.form_submit_button("Start", use_container_width=True)

        if submitted:
            try:
                conversation = create_conversation(user, title=title, child_id=child_id)
                st.success("Conversation started")
                return conversation
            except (PermissionError, KeyError, ValueError, IOError) as e:
                st.error(f"Could not start conversation: {e}")
    return None


def render_thread(user: User, conversation: Conversation, names: Dict[str, str]) -> bool:
    """
    Show the messages of a conversation and, for participants, a reply form.

    Returns:
        True if a message was posted
    """
    try:
        messages = get_messages(user, conversation.id)
    except (PermissionError, KeyError) as e:
        st.error(f"Could not open conversation: {e}")
        return False

    if not messages:
        st.info("No messages yet.")
    for message in messages:
        with st.chat_message("user" if message.author_id == user.id else "assistant"):
            st.caption(
                f"{names.get(message.author_id, message.author_id)} · "
                f"{message.created_at:%Y-%m-%d %H:%M}"
            )
            st.text(message.text)

    if user.role == ROLE_ADMIN:
        st.caption("Admins can read conversations but do not take part.")
        return False

    with st.form(f"reply_form_{conversation.id}", clear_on_submit=True):
        text = st.text_area("Message")
        submitted = st.form_submit_button("Send", use_container_width=True)

    if submitted:
        try:
            post_message(user, conversation.id, text)
            return True
        except (PermissionError, KeyError, ValueError, IOError) as e:
            st.error(f"Could not send message: {e}")
    return False


def render_conversations(user: User, children: List[Child], names: Dict[str, str]) -> bool:
    """
    Render the Conversations page.

    Args:
        user: Signed-in user
        children: All child records, used for labels and the child picker
        names: Map of user id to display name

    Returns:
        True if the page changed data and should be rerun
    """
    st.markdown("## 💬 Conversations")
    child_names = {c.id: c.name for c in children}

    if user.role != ROLE_ADMIN:
        created = render_new_conversation_form(user, children)
        if created is not None:
            set_current_conversation_id(created.id)
            return True

    try:
        conversations = list_conversations(user)
    except (PermissionError, ValueError) as e:
        st.error(f"Error loading conversations: {e}")
        return False

    if not conversations:
        st.info("No conversations yet.")
        return False

    ids = [c.id for c in conversations]
    current_id = get_current_conversation_id()
    by_id = {c.id: c for c in conversations}
    selected_id = st.radio(
        "Conversation",
        ids,
        index=ids.index(current_id) if current_id in by_id else 0,
        format_func=lambda cid: conversation_label(by_id[cid], child_names),
        label_visibility="collapsed",
    )
    if selected_id != current_id:
        set_current_conversation_id(selected_id)

    st.divider()
    return render_thread(user, by_id[selected_id], names)
