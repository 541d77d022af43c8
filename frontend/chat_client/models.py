"""Conversation data models for the chat client."""
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

_ID_ALPHABET = string.digits + string.ascii_lowercase


class Role(str, Enum):
    """Author of a turn."""
    USER = "user"
    ASSISTANT = "assistant"


class ErrorKind(str, Enum):
    """Classification of a failed request."""
    NETWORK = "network"
    VALIDATION = "validation"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    SERVICE = "service"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class ConnectionStatus(str, Enum):
    """Result of the startup liveness probe."""
    CHECKING = "checking"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


def generate_id() -> str:
    """Opaque unique id: millisecond clock followed by nine random base-36 characters."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{int(time.time() * 1000)}{suffix}"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z' for UTC."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class Turn:
    """A single message in the conversation."""
    id: str
    role: Role
    content: str
    timestamp: datetime

    @classmethod
    def create(cls, role: Role, content: str) -> "Turn":
        """Build a new turn stamped with a fresh id and the current time."""
        return cls(
            id=generate_id(),
            role=Role(role),
            content=content,
            timestamp=datetime.now(timezone.utc),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        return cls(
            id=str(data["id"]),
            role=Role(data["role"]),
            content=data["content"],
            timestamp=parse_timestamp(data["timestamp"]),
        )


@dataclass
class ConversationSnapshot:
    """What is restored from durable storage."""
    turns: List[Turn] = field(default_factory=list)
    session_id: Optional[str] = None
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class ErrorInfo:
    """User-facing description of a failure."""
    message: str
    kind: ErrorKind
    retryable: bool
