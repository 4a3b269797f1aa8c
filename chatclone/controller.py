import asyncio
import logging
from typing import Optional

from .config import AppConfig, get_config, get_storage_path, is_known_model, storage_mode, update_config
from .conversation import repository
from .conversation.models import Conversation, Message
from .conversation.pipeline import begin_edit, begin_send, run_exchange
from .conversation.repository import Updater
from .conversation.storage import ConversationStore, LocalStorage
from .conversation.titles import trigger_title_generation
from .errors import InvalidRequest, MissingCredential, NotFound
from .llm.base import LLMProvider
from .llm.builder_provider import get_provider

logger = logging.getLogger(__name__)


class ChatController:
    """Owns the conversation list and the current selection.

    All mutations go through :meth:`update_conversation` or replace the list
    wholesale via :meth:`_commit`; both save right away.
    """

    def __init__(
        self,
        store: ConversationStore,
        provider: LLMProvider,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.store = store
        self.provider = provider
        self._config = config
        self.conversations: list[Conversation] = []
        self.current_conversation_id: Optional[str] = None
        self._title_tasks: set[asyncio.Task] = set()

    # ---- Config ----

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = get_config()
        return self._config

    def set_api_token(self, token: str) -> None:
        self._config = update_config(self.config.model_copy(update={"api_token": token.strip()}))

    def set_model(self, model: str) -> None:
        if not is_known_model(model):
            raise InvalidRequest(f"Unknown model '{model}'")
        self._config = update_config(self.config.model_copy(update={"selected_model": model}))

    # ---- State ----

    def load(self) -> None:
        self.conversations = self.store.load()
        self.current_conversation_id = self.conversations[0].id if self.conversations else None
        logger.info("Loaded %d conversations", len(self.conversations))

    def _commit(self, conversations: list[Conversation]) -> None:
        if conversations is self.conversations:
            return
        self.conversations = conversations
        self.store.save(conversations)

    def update_conversation(self, conversation_id: str, updater: Updater) -> None:
        self._commit(repository.update_conversation(self.conversations, conversation_id, updater))

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return repository.find_conversation(self.conversations, conversation_id)

    @property
    def current_conversation(self) -> Optional[Conversation]:
        if self.current_conversation_id is None:
            return None
        return self.get_conversation(self.current_conversation_id)

    # ---- Intents ----

    def new_conversation(self) -> Conversation:
        conv = repository.create_conversation()
        self._commit(repository.prepend_conversation(self.conversations, conv))
        self.current_conversation_id = conv.id
        return conv

    def select_conversation(self, conversation_id: str) -> bool:
        if self.get_conversation(conversation_id) is None:
            logger.debug("Ignoring selection of unknown conversation %s", conversation_id)
            return False
        self.current_conversation_id = conversation_id
        return True

    def delete_conversation(self, conversation_id: str) -> bool:
        updated = repository.delete_conversation(self.conversations, conversation_id)
        if updated is self.conversations:
            return False
        self._commit(updated)
        if self.current_conversation_id == conversation_id:
            self.current_conversation_id = updated[0].id if updated else None
        return True

    def _require_token(self) -> str:
        token = self.config.api_token
        if not token:
            raise MissingCredential()
        return token

    async def send_message(self, content: str) -> Optional[Message]:
        content = content.strip()
        if not content:
            return None
        token = self._require_token()

        conv = self.current_conversation
        if conv is None:
            conv = self.new_conversation()

        exchange = begin_send(conv, content)
        model = self.config.selected_model
        reply = await run_exchange(self, exchange, self.provider, model, token)

        if exchange.first_exchange:
            task = trigger_title_generation(
                self, exchange.conversation_id, content, token, self.provider
            )
            if task is not None:
                self._title_tasks.add(task)
                task.add_done_callback(self._title_tasks.discard)
        return reply

    async def edit_message(self, message_id: str, new_content: str) -> Optional[Message]:
        token = self._require_token()
        conv = self.current_conversation
        if conv is None:
            raise NotFound("No conversation selected")

        exchange = begin_edit(conv, message_id, new_content.strip())
        if exchange is None:
            return None
        return await run_exchange(
            self, exchange, self.provider, self.config.selected_model, token
        )

    async def wait_for_titles(self) -> None:
        if self._title_tasks:
            await asyncio.gather(*list(self._title_tasks), return_exceptions=True)


def build_store() -> ConversationStore:
    if storage_mode() == "memory":
        return ConversationStore(None)
    return ConversationStore(LocalStorage(get_storage_path()))


_controller: Optional[ChatController] = None


def get_controller() -> ChatController:
    global _controller
    if _controller is None:
        _controller = ChatController(build_store(), get_provider())
        _controller.load()
    return _controller
