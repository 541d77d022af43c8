"""Validation of incoming chat requests."""
import json
import logging
from typing import Any, Optional

from models.api import ChatRequest, HistoryMessage

logger = logging.getLogger(__name__)

ALLOWED_ROLES = ("user", "assistant")


class ChatValidationError(Exception):
    """Raised when a chat request is malformed; the message is client-facing."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def check_content_type(content_type: Optional[str]) -> None:
    """Reject requests whose Content-Type is not JSON."""
    if not content_type or "application/json" not in content_type:
        raise ChatValidationError("Content-Type must be application/json")


def parse_body(raw: bytes) -> Any:
    """Decode the raw request body as JSON."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.debug(f"Rejected unparseable body: {e}")
        raise ChatValidationError("Invalid JSON in request body")


def validate_chat_payload(body: Any) -> ChatRequest:
    """
    Validate a decoded POST /chat body.

    Checks run in a fixed order and the first failure wins:
    message presence and type, message emptiness, history type, then
    the shape of every history entry.

    Args:
        body: Decoded JSON body

    Returns:
        ChatRequest with the original message and typed history

    Raises:
        ChatValidationError: With the client-facing reason
    """
    if not isinstance(body, dict):
        body = {}

    message = body.get("message")
    if not message or not isinstance(message, str):
        raise ChatValidationError("Message is required and must be a string")

    if not message.strip():
        raise ChatValidationError("Message cannot be empty")

    history = body.get("conversationHistory")
    if history is None:
        history = []
    if not isinstance(history, list):
        raise ChatValidationError("conversationHistory must be an array")

    entries = []
    for entry in history:
        if not isinstance(entry, dict):
            raise ChatValidationError("Invalid conversation history format")
        role = entry.get("role")
        content = entry.get("content")
        if role not in ALLOWED_ROLES or not content or not isinstance(content, str):
            raise ChatValidationError("Invalid conversation history format")
        entries.append(HistoryMessage(role=role, content=content))

    return ChatRequest(message=message, conversation_history=entries)
