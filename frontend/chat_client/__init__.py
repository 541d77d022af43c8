"""Client-side conversation management for the Scoper chat relay."""
from .api import ApiError, ChatApiClient, get_error_info
from .controller import ChatController
from .models import ConnectionStatus, ConversationSnapshot, ErrorInfo, ErrorKind, Role, Turn
from .retry import retry_with_backoff
from .state import ChatState
from .storage import ConversationStorage, FileStore, KeyValueStore, MemoryStore, StorageManager

__all__ = [
    "ApiError",
    "ChatApiClient",
    "get_error_info",
    "ChatController",
    "ConnectionStatus",
    "ConversationSnapshot",
    "ErrorInfo",
    "ErrorKind",
    "Role",
    "Turn",
    "retry_with_backoff",
    "ChatState",
    "ConversationStorage",
    "FileStore",
    "KeyValueStore",
    "MemoryStore",
    "StorageManager",
]
