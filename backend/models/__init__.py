"""Data models for the Scoper chat relay."""
from .api import HistoryMessage, ChatRequest, ChatResponse, HealthResponse

__all__ = [
    "HistoryMessage",
    "ChatRequest",
    "ChatResponse",
    "HealthResponse",
]
