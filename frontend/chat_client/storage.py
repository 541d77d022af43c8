"""Durable key-value storage for conversation persistence."""
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .models import ConversationSnapshot, Turn, generate_id, parse_timestamp

logger = logging.getLogger(__name__)

KEY_PREFIX = "scoper-chat-"
STORAGE_KEYS = {
    "CONVERSATION_HISTORY": f"{KEY_PREFIX}conversation-history",
    "SESSION_ID": f"{KEY_PREFIX}session-id",
}
_PROBE_KEY = "__storage_test__"


class KeyValueStore(Protocol):
    """String-to-string store; any method may raise when the backing medium fails."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStore:
    """In-process store; nothing survives the process."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)


class FileStore:
    """
    Store backed by a single JSON object on disk.

    Every write rewrites the whole file through a temporary file and an
    atomic rename, so a crash never leaves a half-written document.
    """

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            # Next write replaces the unreadable document
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class StorageManager:
    """
    JSON-encoding wrapper around a KeyValueStore.

    Availability is probed once at construction. When the store is unavailable,
    or an operation fails, methods return False / the default instead of raising.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.is_available = self._check_availability()

    def _check_availability(self) -> bool:
        try:
            self.store.set_item(_PROBE_KEY, "test")
            self.store.remove_item(_PROBE_KEY)
            return True
        except Exception as e:
            logger.warning(f"Storage is not available: {e}")
            return False

    def set_item(self, key: str, value: Any) -> bool:
        if not self.is_available:
            return False
        try:
            self.store.set_item(key, json.dumps(value))
            return True
        except Exception as e:
            logger.error(f"Failed to save '{key}' to storage: {e}")
            return False

    def get_item(self, key: str, default: Any = None) -> Any:
        if not self.is_available:
            return default
        try:
            item = self.store.get_item(key)
            return json.loads(item) if item else default
        except Exception as e:
            logger.error(f"Failed to read '{key}' from storage: {e}")
            return default

    def remove_item(self, key: str) -> bool:
        if not self.is_available:
            return False
        try:
            self.store.remove_item(key)
            return True
        except Exception as e:
            logger.error(f"Failed to remove '{key}' from storage: {e}")
            return False

    def clear(self) -> bool:
        """Remove this application's keys only."""
        if not self.is_available:
            return False
        try:
            for key in STORAGE_KEYS.values():
                self.store.remove_item(key)
            return True
        except Exception as e:
            logger.error(f"Failed to clear storage: {e}")
            return False


class ConversationStorage:
    """Saves and restores the conversation and its session id."""

    def __init__(self, storage: StorageManager):
        self.storage = storage
        # Used only while the store is unavailable, so the id stays stable per process
        self._fallback_session_id: Optional[str] = None

    def save_conversation(self, turns: List[Turn]) -> bool:
        """Overwrite the stored snapshot with the given turns."""
        conversation_data = {
            "messages": [turn.to_dict() for turn in turns],
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
            "sessionId": self.get_session_id(),
        }
        return self.storage.set_item(STORAGE_KEYS["CONVERSATION_HISTORY"], conversation_data)

    def load_conversation(self) -> ConversationSnapshot:
        """
        Restore the stored snapshot.

        Returns an empty turn list with the current (or a new) session id when
        nothing is stored or the stored data cannot be decoded.
        """
        data = self.storage.get_item(STORAGE_KEYS["CONVERSATION_HISTORY"])

        if not isinstance(data, dict) or not data.get("messages"):
            return ConversationSnapshot(turns=[], session_id=self.get_session_id())

        try:
            turns = [Turn.from_dict(item) for item in data["messages"]]
            last_updated = parse_timestamp(data["lastUpdated"]) if data.get("lastUpdated") else None
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Discarding unreadable stored conversation: {e}")
            return ConversationSnapshot(turns=[], session_id=self.get_session_id())

        return ConversationSnapshot(
            turns=turns,
            session_id=data.get("sessionId") or self.get_session_id(),
            last_updated=last_updated,
        )

    def get_session_id(self) -> str:
        """Return the stored session id, creating and storing one if absent."""
        session_id = self.storage.get_item(STORAGE_KEYS["SESSION_ID"])
        if session_id:
            return session_id

        if not self.storage.is_available:
            if self._fallback_session_id is None:
                self._fallback_session_id = generate_id()
            return self._fallback_session_id

        session_id = generate_id()
        self.storage.set_item(STORAGE_KEYS["SESSION_ID"], session_id)
        return session_id

    def clear_conversation(self) -> bool:
        """Remove all stored data and start a new session id."""
        success = self.storage.clear()
        if success:
            self.storage.set_item(STORAGE_KEYS["SESSION_ID"], generate_id())
        return success

    def is_storage_available(self) -> bool:
        return self.storage.is_available

    def get_storage_info(self) -> Dict[str, Any]:
        """Storage status for debugging."""
        return {
            "available": self.storage.is_available,
            "hasConversation": bool(self.storage.get_item(STORAGE_KEYS["CONVERSATION_HISTORY"])),
            "sessionId": self.get_session_id(),
        }
