"""Tests for the local key-value storage and the conversation mirror."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from chatclone.conversation.models import Conversation, Message
from chatclone.conversation.storage import STORAGE_KEY, ConversationStore, LocalStorage
from chatclone.errors import PersistenceFailure


def _sample():
    return [
        Conversation(
            id="c2",
            title="Second",
            messages=[Message(role="user", content="**bold** <b>kept</b>"), Message(role="assistant", content="ok")],
        ),
        Conversation(id="c1", title="First"),
    ]


class TestLocalStorage:
    def test_set_and_get(self, local_storage):
        local_storage.set_item("a", [1, 2])
        local_storage.set_item("b", "x")
        assert local_storage.get_item("a") == [1, 2]
        assert local_storage.get_item("b") == "x"
        assert local_storage.get_item("missing") is None

    def test_remove(self, local_storage):
        local_storage.set_item("a", 1)
        local_storage.remove_item("a")
        assert local_storage.get_item("a") is None

    def test_corrupt_file_raises_persistence_failure(self, local_storage):
        local_storage.path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceFailure):
            local_storage.get_item("a")

    def test_set_replaces_corrupt_file(self, local_storage):
        local_storage.path.write_text("[]", encoding="utf-8")
        local_storage.set_item("a", 1)
        assert json.loads(local_storage.path.read_text(encoding="utf-8")) == {"a": 1}


class TestConversationStore:
    def test_save_then_load_preserves_order_and_content(self, store):
        store.save(_sample())
        loaded = store.load()
        assert [c.id for c in loaded] == ["c2", "c1"]
        assert loaded[0].messages[0].content == "**bold** <b>kept</b>"

    def test_load_without_data_is_empty(self, store):
        assert store.load() == []

    def test_no_storage_is_noop(self):
        store = ConversationStore(None)
        store.save(_sample())
        assert store.load() == []

    def test_corrupt_file_loads_empty(self, store, local_storage):
        local_storage.path.write_text("garbage", encoding="utf-8")
        assert store.load() == []

    def test_non_list_value_loads_empty(self, store, local_storage):
        local_storage.set_item(STORAGE_KEY, {"oops": True})
        assert store.load() == []

    def test_invalid_entries_are_skipped(self, store, local_storage):
        local_storage.set_item(
            STORAGE_KEY,
            [{"id": "ok", "title": "Fine"}, {"messages": "nope"}, 42, {"id": "ok", "title": "dup"}],
        )
        loaded = store.load()
        assert [c.id for c in loaded] == ["ok"]
        assert loaded[0].title == "Fine"

    def test_system_messages_never_persisted(self, store, local_storage):
        conv = Conversation(
            id="c1",
            messages=[Message(role="system", content="Not Chat."), Message(role="user", content="Hi")],
        )
        store.save([conv])
        raw = local_storage.get_item(STORAGE_KEY)
        assert [m["role"] for m in raw[0]["messages"]] == ["user"]

    def test_save_failure_is_swallowed(self, store, caplog):
        with patch.object(LocalStorage, "_write_all", side_effect=PersistenceFailure("quota exceeded")):
            store.save(_sample())
        assert "Error saving conversations" in caplog.text

    def test_unwritable_location_is_logged_not_raised(self, tmp_path, caplog):
        blocker = tmp_path / "afile"
        blocker.write_text("not a directory", encoding="utf-8")
        store = ConversationStore(LocalStorage(blocker / "storage.json"))

        store.save(_sample())

        assert "Error saving conversations" in caplog.text
        assert store.load() == []

    def test_entries_without_id_are_skipped(self, store, local_storage):
        local_storage.set_item(STORAGE_KEY, [{"title": "no id"}, {"id": "", "title": "blank"}, {"id": "ok"}])
        assert [c.id for c in store.load()] == ["ok"]
        assert [c.id for c in store.load()] == ["ok"]
