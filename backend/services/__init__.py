"""Services for the Scoper chat relay."""
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .request_validator import ChatValidationError, validate_chat_payload
from .cors import get_cors_headers
from .system_prompt import SCOPER_SYSTEM_PROMPT

__all__ = [
    'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError',
    'ChatValidationError', 'validate_chat_payload',
    'get_cors_headers', 'SCOPER_SYSTEM_PROMPT',
]
