import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

Role = Literal["user", "assistant", "system"]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_message_id() -> str:
    return uuid.uuid4().hex[:12]


def new_conversation_id() -> str:
    # uuid1 is time-based and still unique within the same millisecond
    return uuid.uuid1().hex


class Message(BaseModel):
    id: str = Field(default_factory=new_message_id)
    role: Role
    content: str
    timestamp: str = Field(default_factory=now_iso)

    def to_wire(self) -> dict:
        """The ``{role, content}`` shape the completion API expects."""
        return {"role": self.role, "content": self.content}


class Conversation(BaseModel):
    id: str = Field(default_factory=new_conversation_id)
    title: str = "New Chat"
    messages: list[Message] = []
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)


class ConversationSummary(BaseModel):
    """Lightweight metadata for the sidebar list."""

    id: str
    title: str
    message_count: int = 0
    preview: str = ""  # First ~80 chars of first user message
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_conversation(cls, conv: Conversation) -> "ConversationSummary":
        preview = ""
        for m in conv.messages:
            if m.role == "user":
                preview = m.content[:80]
                break
        return cls(
            id=conv.id,
            title=conv.title,
            message_count=len(conv.messages),
            preview=preview,
            created_at=conv.created_at,
            updated_at=conv.updated_at,
        )
