"""Conversation title generation.

``request_title`` is the server side of the title endpoint and raises on any
problem. ``generate_conversation_title`` wraps it for the background task and
always returns something usable.
"""

import asyncio
import logging
from typing import Optional

from ..errors import ChatCloneError, InvalidRequest, MissingCredential
from ..llm.base import LLMProvider
from .pipeline import ConversationState
from .models import Conversation

logger = logging.getLogger(__name__)

TITLE_MODEL = "grok-4-fast"
MAX_TITLE_LEN = 60
FALLBACK_LEN = 50
DEFAULT_TITLE = "New Chat"

_TITLE_PROMPT = (
    "Not Chat. Generate a concise, descriptive title (maximum 5 words) for a "
    'conversation that starts with: "{excerpt}". Return only the title, nothing else.'
)


def fallback_title(first_message: str) -> str:
    return first_message[:FALLBACK_LEN].strip() or DEFAULT_TITLE


def clean_title(raw: Optional[str], first_message: str) -> str:
    title = (raw or "").strip() or first_message[:FALLBACK_LEN]
    if title[:1] in ("'", '"'):
        title = title[1:]
    if title[-1:] in ("'", '"'):
        title = title[:-1]
    return title[:MAX_TITLE_LEN]


def build_title_messages(first_message: str) -> list[dict]:
    return [
        {"role": "system", "content": "Not Chat"},
        {"role": "user", "content": _TITLE_PROMPT.format(excerpt=first_message[:200])},
    ]


async def request_title(
    first_message: str, api_token: str, provider: LLMProvider
) -> str:
    if not api_token:
        raise MissingCredential("API token is required")
    if not first_message:
        raise InvalidRequest("First message is required")

    raw = await provider.complete(
        build_title_messages(first_message), TITLE_MODEL, api_token
    )
    return clean_title(raw, first_message)


async def generate_conversation_title(
    first_message: str, api_token: str, provider: LLMProvider
) -> str:
    try:
        title = await request_title(first_message, api_token, provider)
    except ChatCloneError as e:
        logger.warning("Title generation failed: %s", e)
        return fallback_title(first_message)
    except Exception as e:
        logger.warning("Title generation failed unexpectedly: %s", e, exc_info=True)
        return fallback_title(first_message)
    return title or fallback_title(first_message)


async def _generate_and_patch(
    state: ConversationState,
    conversation_id: str,
    first_message: str,
    api_token: str,
    provider: LLMProvider,
) -> str:
    title = await generate_conversation_title(first_message, api_token, provider)

    def set_title(conv: Conversation) -> Conversation:
        return conv.model_copy(update={"title": title})

    # A conversation deleted meanwhile simply isn't found
    state.update_conversation(conversation_id, set_title)
    logger.info("Titled conversation %s: %s", conversation_id, title)
    return title


def trigger_title_generation(
    state: ConversationState,
    conversation_id: str,
    first_message: str,
    api_token: str,
    provider: LLMProvider,
) -> Optional["asyncio.Task[str]"]:
    """Schedule title generation as a background task."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("Could not schedule title generation (no event loop)")
        return None
    return loop.create_task(
        _generate_and_patch(state, conversation_id, first_message, api_token, provider)
    )
