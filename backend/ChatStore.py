import json
import logging
import os
import tempfile
import threading
import time
import uuid
from typing import Any, Dict, List, Optional

from errors import ChatNotFoundError

logger = logging.getLogger(__name__)

CHATS_FILE = "chats.json"
VALID_ROLES = ("user", "assistant", "system")
DEFAULT_TITLE = "New Chat"


def now_ms() -> int:
    return int(time.time() * 1000)


class ChatStore:
    """
    Persists chats as a list in a single JSON file.

    Each chat is `{id, title, createdAt, updatedAt, messages}` and each message
    `{id, role, content, timestamp, metadata?}`, timestamps in epoch milliseconds.
    """

    def __init__(self, data_dir: str):
        os.makedirs(data_dir, exist_ok=True)
        self.path = os.path.join(data_dir, CHATS_FILE)
        self._lock = threading.RLock()

        if not os.path.exists(self.path):
            self.save_chats([])

    def load_chats(self) -> List[Dict[str, Any]]:
        """Returns all chats, or an empty list if the file cannot be read."""
        with self._lock:
            try:
                with open(self.path, encoding="utf-8") as f:
                    chats = json.load(f)
                return chats if isinstance(chats, list) else []
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error loading chats from {self.path}: {e}")
                return []

    def save_chats(self, chats: List[Dict[str, Any]]) -> None:
        """Writes all chats, replacing the file atomically."""
        with self._lock:
            directory = os.path.dirname(self.path)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(chats, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise

    def get_chat(self, chat_id: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.load_chats() if c["id"] == chat_id), None)

    def create_chat(self, title: str = DEFAULT_TITLE) -> Dict[str, Any]:
        with self._lock:
            timestamp = now_ms()
            chat = {
                "id": str(uuid.uuid4()),
                "title": title,
                "createdAt": timestamp,
                "updatedAt": timestamp,
                "messages": [],
            }
            chats = self.load_chats()
            chats.append(chat)
            self.save_chats(chats)

        logger.info(f"Created chat {chat['id']}")
        return chat

    def add_message(
        self,
        chat_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Appends a message to a chat.

        Args:
            chat_id: Id of the chat.
            role: One of "user", "assistant" or "system".
            content: Message text.
            metadata: Optional extra data stored with the message.

        Returns:
            Dict[str, Any]: The stored message.

        Raises:
            ValueError: If the role is invalid.
            ChatNotFoundError: If the chat does not exist.
        """
        if role not in VALID_ROLES:
            raise ValueError(f"Invalid message role: {role}")

        with self._lock:
            chats = self.load_chats()
            chat = next((c for c in chats if c["id"] == chat_id), None)
            if chat is None:
                raise ChatNotFoundError(chat_id)

            message = {
                "id": str(uuid.uuid4()),
                "role": role,
                "content": content,
                "timestamp": now_ms(),
            }
            if metadata:
                message["metadata"] = metadata

            chat["messages"].append(message)
            chat["updatedAt"] = message["timestamp"]
            self.save_chats(chats)

        return message


class ChatManager:
    """Tracks the active chat on top of a ChatStore."""

    def __init__(self, store: ChatStore):
        self.store = store
        self.active_chat_id: Optional[str] = None

    def get_active_chat(self) -> Dict[str, Any]:
        """
        Returns the active chat.

        Without an active chat, the most recently updated chat becomes active, or
        a new chat is created if there are none.
        """
        if self.active_chat_id:
            chat = self.store.get_chat(self.active_chat_id)
            if chat:
                return chat

        chats = self.store.load_chats()
        if chats:
            chat = max(chats, key=lambda c: c.get("updatedAt", 0))
        else:
            chat = self.store.create_chat()

        self.active_chat_id = chat["id"]
        return chat

    def set_active_chat(self, chat_id: str) -> Dict[str, Any]:
        chat = self.store.get_chat(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        self.active_chat_id = chat_id
        return chat

    def create_new_chat(self, title: str = DEFAULT_TITLE) -> Dict[str, Any]:
        chat = self.store.create_chat(title)
        self.active_chat_id = chat["id"]
        return chat

    def clear_chat(self) -> Dict[str, Any]:
        # previous chats are kept; clearing starts a fresh one
        return self.create_new_chat()

    def get_chats(self) -> List[Dict[str, Any]]:
        return self.store.load_chats()

    def add_message(
        self, role: str, content: str, metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        chat = self.get_active_chat()
        return self.store.add_message(chat["id"], role, content, metadata)

    def get_messages(self) -> List[Dict[str, Any]]:
        return self.get_active_chat()["messages"]

    def history_for_prompt(self, limit: Optional[int] = None) -> List[Dict[str, str]]:
        """Returns the active chat's user and assistant messages as `{"role", "content"}`."""
        messages = [
            {"role": m["role"], "content": m["content"]}
            for m in self.get_messages()
            if m["role"] in ("user", "assistant") and m.get("content")
        ]
        return messages[-limit:] if limit else messages
