"""Pure list operations over the in-memory conversation list.

None of these mutate their input. The list is kept most-recent-first.
"""

from typing import Callable, Optional

from .models import Conversation

Updater = Callable[[Conversation], Conversation]


def create_conversation(title: str = "New Chat") -> Conversation:
    return Conversation(title=title, messages=[])


def prepend_conversation(
    conversations: list[Conversation], conv: Conversation
) -> list[Conversation]:
    """Insert *conv* at the head, dropping any entry that shares its id."""
    return [conv, *(c for c in conversations if c.id != conv.id)]


def find_conversation(
    conversations: list[Conversation], conversation_id: str
) -> Optional[Conversation]:
    for conv in conversations:
        if conv.id == conversation_id:
            return conv
    return None


def update_conversation(
    conversations: list[Conversation],
    conversation_id: str,
    updater: Updater,
) -> list[Conversation]:
    """Replace the matching conversation with ``updater(conversation)``.

    Unrelated entries are carried over by reference. When the id is not in
    the list the same list object is returned.
    """
    if find_conversation(conversations, conversation_id) is None:
        return conversations
    return [
        updater(conv) if conv.id == conversation_id else conv
        for conv in conversations
    ]


def delete_conversation(
    conversations: list[Conversation], conversation_id: str
) -> list[Conversation]:
    if find_conversation(conversations, conversation_id) is None:
        return conversations
    return [conv for conv in conversations if conv.id != conversation_id]
