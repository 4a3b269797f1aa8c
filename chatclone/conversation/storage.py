import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import PersistenceFailure
from .models import Conversation
from .pipeline import strip_system_messages

logger = logging.getLogger(__name__)

STORAGE_KEY = "chatgpt-clone-conversations"


class LocalStorage:
    """Durable key-value store kept in a single JSON file."""

    def __init__(self, path: Path):
        self.path = path

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise PersistenceFailure(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceFailure(f"{self.path} does not hold a JSON object")
        return data

    def _write_all(self, data: dict[str, Any]) -> None:
        payload = json.dumps(data, indent=2, ensure_ascii=False)
        tmp = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, self.path)
        except OSError as e:
            if tmp is not None:
                Path(tmp).unlink(missing_ok=True)
            raise PersistenceFailure(f"Cannot write {self.path}: {e}") from e

    def get_item(self, key: str) -> Any:
        return self._read_all().get(key)

    def set_item(self, key: str, value: Any) -> None:
        try:
            data = self._read_all()
        except PersistenceFailure:
            # A corrupt file is replaced by the next successful write
            logger.warning("Overwriting unreadable storage file %s", self.path)
            data = {}
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class ConversationStore:
    """Mirror of the conversation list in durable storage.

    With no storage (``storage is None``) both operations are no-ops and
    ``load()`` returns an empty list.
    """

    def __init__(self, storage: Optional[LocalStorage]):
        self.storage = storage

    def load(self) -> list[Conversation]:
        if self.storage is None:
            return []
        try:
            raw = self.storage.get_item(STORAGE_KEY)
        except PersistenceFailure as e:
            logger.warning("Error loading conversations: %s", e)
            return []
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Error loading conversations: stored value is not a list")
            return []

        conversations: list[Conversation] = []
        seen: set[str] = set()
        for item in raw:
            if not isinstance(item, dict) or not item.get("id"):
                logger.warning("Skipping conversation entry without an id")
                continue
            try:
                conv = Conversation(**item)
            except (TypeError, ValidationError):
                logger.warning("Skipping unreadable conversation entry")
                continue
            if conv.id in seen:
                continue
            seen.add(conv.id)
            conversations.append(conv)
        return conversations

    def save(self, conversations: list[Conversation]) -> None:
        if self.storage is None:
            return
        try:
            payload = [
                conv.model_copy(
                    update={"messages": strip_system_messages(conv.messages)}
                ).model_dump()
                for conv in conversations
            ]
            self.storage.set_item(STORAGE_KEY, payload)
        except (PersistenceFailure, OSError, TypeError, ValueError) as e:
            logger.error("Error saving conversations: %s", e)
