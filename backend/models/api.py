"""API request/response models."""
from typing import List, Literal, Optional
from pydantic import BaseModel


class HistoryMessage(BaseModel):
    """A prior conversation turn as accepted by the chat endpoint."""
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Validated body of POST /chat."""
    message: str
    conversation_history: List[HistoryMessage] = []


class ChatResponse(BaseModel):
    """Body returned by POST /chat; exactly one of the fields is set."""
    response: Optional[str] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Body returned by the liveness probe."""
    status: str
    message: str
    environment: str
