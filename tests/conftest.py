"""Root conftest — shared fixtures for all chatclone tests."""

from __future__ import annotations

import os
import tempfile

# Keep the config dir out of the real home before chatclone is imported
os.environ.setdefault("CHATCLONE_CONFIG_DIR", tempfile.mkdtemp(prefix="chatclone-test-"))
os.environ.pop("AI_BUILDER_TOKEN", None)
os.environ.pop("AI_BUILDER_API_URL", None)
os.environ.pop("NEXT_PUBLIC_AI_BUILDER_API_URL", None)

import pytest

from chatclone import config, crypto
from chatclone.config import AppConfig
from chatclone.controller import ChatController
from chatclone.conversation.storage import ConversationStore, LocalStorage
from chatclone.errors import RemoteFailure
from chatclone.llm.base import LLMProvider


class FakeProvider(LLMProvider):
    """Records every call; answers from ``replies`` or raises ``error``."""

    name = "fake"

    def __init__(self, replies=None, error: Exception | None = None):
        self.replies = list(replies or ["Hello!"])
        self.error = error
        self.calls: list[dict] = []

    async def complete(self, messages, model, api_token, **kwargs):
        self.calls.append({"messages": messages, "model": model, "api_token": api_token})
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path, monkeypatch):
    """Point config, key file and storage at a per-test directory."""
    monkeypatch.setattr(config, "_config_dir", tmp_path)
    monkeypatch.setattr(config, "_config_file", tmp_path / "config.json")
    monkeypatch.setattr(config, "_storage_file", tmp_path / "storage.json")
    monkeypatch.setattr(crypto, "_config_dir", tmp_path)
    monkeypatch.setattr(crypto, "_key_file", tmp_path / ".key")
    crypto.reset_fernet()
    config.reset_config()
    yield
    crypto.reset_fernet()
    config.reset_config()


@pytest.fixture
def provider():
    return FakeProvider(replies=["Hello!"])


@pytest.fixture
def failing_provider():
    return FakeProvider(
        error=RemoteFailure(
            "Network error: Unable to reach API at http://api.test/v1/chat/completions.",
            endpoint="http://api.test/v1/chat/completions",
        )
    )


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(tmp_path / "storage.json")


@pytest.fixture
def store(local_storage):
    return ConversationStore(local_storage)


@pytest.fixture
def controller(store, provider):
    ctrl = ChatController(store, provider, config=AppConfig(api_token="tok-123"))
    ctrl.load()
    return ctrl
