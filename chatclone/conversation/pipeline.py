"""Message pipeline: builds outgoing requests and folds replies back into state.

Every exchange is two explicit transitions against the live conversation
list: the optimistic commit (user message or truncated history) and, once the
remote call resolves, the reply commit. Both go through
``state.update_conversation(conversation_id, updater)`` so they always apply
to the current list by id, never to a stale snapshot.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from ..errors import NotFound
from ..llm.base import LLMProvider
from .models import Conversation, Message, now_iso
from .repository import Updater

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE_ID = "system-not-chat"
# "Not Chat" tells the model to follow the framing literally rather than
# answering it as a dialogue turn
SYSTEM_PREFIX = "Not Chat"
TITLE_PREFIX_LEN = 50


class ConversationState(Protocol):
    def update_conversation(self, conversation_id: str, updater: Updater) -> None:
        ...


def format_current_datetime(now: Optional[datetime] = None) -> str:
    """e.g. ``Saturday, October 17, 2026 at 02:30 PM UTC``."""
    now = (now or datetime.now()).astimezone()
    zone = now.strftime("%Z") or now.strftime("%z")
    return f"{now:%A, %B} {now.day}, {now:%Y at %I:%M %p} {zone}"


def build_system_message(now: Optional[datetime] = None) -> Message:
    return Message(
        id=SYSTEM_MESSAGE_ID,
        role="system",
        content=f"{SYSTEM_PREFIX}. Current date and time: {format_current_datetime(now)}",
    )


def strip_system_messages(messages: list[Message]) -> list[Message]:
    return [m for m in messages if m.role != "system"]


def build_outgoing(
    history: list[Message],
    new_message: Optional[Message] = None,
    now: Optional[datetime] = None,
) -> list[Message]:
    """``[fresh system message, *history without system messages, new_message]``."""
    outgoing = [build_system_message(now), *strip_system_messages(history)]
    if new_message is not None:
        outgoing.append(new_message)
    return outgoing


@dataclass
class Exchange:
    """A pending request: what gets committed now and what gets sent."""

    conversation_id: str
    outgoing: list[Message]
    commit: Updater
    first_exchange: bool = False

    def wire_messages(self) -> list[dict]:
        return [m.to_wire() for m in self.outgoing]


def begin_send(conversation: Conversation, content: str) -> Exchange:
    history = strip_system_messages(conversation.messages)
    first_exchange = not history
    user_message = Message(role="user", content=content)

    def commit(conv: Conversation) -> Conversation:
        # Measured against the conversation at commit time, not the snapshot
        stored = strip_system_messages(conv.messages)
        return conv.model_copy(
            update={
                "messages": [*stored, user_message],
                "updated_at": now_iso(),
                "title": content[:TITLE_PREFIX_LEN] if not conv.messages else conv.title,
            }
        )

    return Exchange(
        conversation_id=conversation.id,
        outgoing=build_outgoing(history, user_message),
        commit=commit,
        first_exchange=first_exchange,
    )


def begin_edit(
    conversation: Conversation, message_id: str, new_content: str
) -> Optional[Exchange]:
    """Branch truncation: keep everything before the target, then the edited target.

    Returns ``None`` for blank content. Raises ``NotFound`` when the target id
    is not in the conversation.
    """
    if not new_content or not new_content.strip():
        return None

    index = next(
        (i for i, m in enumerate(conversation.messages) if m.id == message_id),
        None,
    )
    if index is None:
        raise NotFound(f"Message {message_id} not found in conversation {conversation.id}")

    edited = conversation.messages[index].model_copy(update={"content": new_content})
    truncated = [*conversation.messages[:index], edited]

    def commit(conv: Conversation) -> Conversation:
        return conv.model_copy(update={"messages": truncated, "updated_at": now_iso()})

    return Exchange(
        conversation_id=conversation.id,
        outgoing=build_outgoing(truncated),
        commit=commit,
    )


def append_reply(reply: Message) -> Updater:
    def commit(conv: Conversation) -> Conversation:
        return conv.model_copy(
            update={"messages": [*conv.messages, reply], "updated_at": now_iso()}
        )

    return commit


async def run_exchange(
    state: ConversationState,
    exchange: Exchange,
    provider: LLMProvider,
    model: str,
    api_token: str,
) -> Message:
    """Commit optimistically, call the provider, then commit the reply.

    On failure the optimistic commit stays and the error propagates; nothing
    is retried.
    """
    state.update_conversation(exchange.conversation_id, exchange.commit)

    content = await provider.complete(exchange.wire_messages(), model, api_token)

    reply = Message(role="assistant", content=content)
    state.update_conversation(exchange.conversation_id, append_reply(reply))
    logger.info(
        "Assistant reply appended to conversation %s (%d chars)",
        exchange.conversation_id,
        len(content),
    )
    return reply
