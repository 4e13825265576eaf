"""
Unit tests for chat persistence and the active chat.
"""
import json

import pytest

from ChatStore import ChatManager, ChatStore
from errors import ChatNotFoundError


@pytest.fixture
def store(tmp_path):
    return ChatStore(str(tmp_path / "data"))


@pytest.fixture
def manager(store):
    return ChatManager(store)


def test_store_starts_with_empty_file(store):
    with open(store.path, encoding="utf-8") as f:
        assert json.load(f) == []
    assert store.load_chats() == []


def test_corrupt_file_loads_as_empty(store):
    with open(store.path, "w", encoding="utf-8") as f:
        f.write("{not json")

    assert store.load_chats() == []


def test_create_chat_and_add_message(store):
    chat = store.create_chat()

    message = store.add_message(chat["id"], "user", "hello", {"source": "voice"})

    saved = store.get_chat(chat["id"])
    assert chat["title"] == "New Chat"
    assert saved["messages"] == [message]
    assert message["metadata"] == {"source": "voice"}
    assert saved["updatedAt"] == message["timestamp"] >= saved["createdAt"]


def test_add_message_validates_role_and_chat(store):
    chat = store.create_chat()

    with pytest.raises(ValueError, match="Invalid message role: robot"):
        store.add_message(chat["id"], "robot", "beep")
    with pytest.raises(ChatNotFoundError) as exc_info:
        store.add_message("missing", "user", "hello")
    assert str(exc_info.value) == "Chat with ID missing not found"


def test_no_temp_files_left_behind(store, tmp_path):
    store.create_chat()

    assert sorted(p.name for p in (tmp_path / "data").iterdir()) == ["chats.json"]


def test_active_chat_is_created_on_demand(manager, store):
    chat = manager.get_active_chat()

    assert store.load_chats() == [chat]
    assert manager.get_active_chat()["id"] == chat["id"]


def test_most_recently_updated_chat_becomes_active(store):
    old = store.create_chat("old")
    recent = store.create_chat("recent")
    chats = store.load_chats()
    for chat in chats:
        chat["updatedAt"] = 2000 if chat["id"] == recent["id"] else 1000
    store.save_chats(chats)

    assert ChatManager(store).get_active_chat()["id"] == recent["id"]
    assert old["id"] != recent["id"]


def test_set_active_chat(manager, store):
    first = manager.create_new_chat()
    manager.create_new_chat()

    assert manager.set_active_chat(first["id"])["id"] == first["id"]
    manager.add_message("user", "back again")
    assert store.get_chat(first["id"])["messages"][0]["content"] == "back again"

    with pytest.raises(ChatNotFoundError):
        manager.set_active_chat("missing")


def test_clear_chat_keeps_previous_chats(manager, store):
    manager.add_message("user", "hello")

    cleared = manager.clear_chat()

    assert cleared["messages"] == []
    assert manager.get_messages() == []
    assert len(store.load_chats()) == 2


def test_history_for_prompt(manager):
    manager.add_message("system", "note")
    manager.add_message("user", "one")
    manager.add_message("assistant", "two")
    manager.add_message("user", "three")

    assert manager.history_for_prompt() == [
        {"role": "user", "content": "one"},
        {"role": "assistant", "content": "two"},
        {"role": "user", "content": "three"},
    ]
    assert manager.history_for_prompt(2) == [
        {"role": "assistant", "content": "two"},
        {"role": "user", "content": "three"},
    ]
