"""LLM Client for the upstream chat completion service (Groq)."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import GROQ_API_KEY, CHAT_MODEL, MAX_OUTPUT_TOKENS
from models.api import HistoryMessage

logger = logging.getLogger(__name__)

EMPTY_REPLY = "No response generated"


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for relaying a conversation to the Groq chat completions API."""

    def __init__(self, api_key: Optional[str] = None):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.client = Groq(api_key=self.api_key)
        logger.info("LLMClient initialized successfully")

    def generate(
        self,
        messages: List[Dict[str, str]],
        system_prompt: str,
        model: str = CHAT_MODEL,
        max_tokens: int = MAX_OUTPUT_TOKENS
    ) -> LLMResponse:
        """
        Send one non-streaming completion request.

        Args:
            messages: Conversation turns as {"role", "content"} dicts, oldest first
            system_prompt: Instruction text placed ahead of the conversation
            model: Upstream model identifier
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}, turns: {len(messages)}")

            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "system", "content": system_prompt}, *messages],
                max_tokens=max_tokens,
            )

            latency_ms = int((time.time() - start_time) * 1000)

            text = response.choices[0].message.content if response.choices else None
            usage = response.usage
            tokens_input = usage.prompt_tokens if usage else 0
            tokens_output = usage.completion_tokens if usage else 0

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text or EMPTY_REPLY,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except RateLimitError as e:
            raise self._failure(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                model, start_time, e,
                retry_after=60,
            )
        except AuthenticationError as e:
            raise self._failure(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                model, start_time, e,
            )
        except APITimeoutError as e:
            raise self._failure(
                "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                model, start_time, e,
            )
        except APIError as e:
            raise self._failure(
                "API_ERROR",
                f"Groq API error: {str(e)}",
                model, start_time, e,
            )
        except Exception as e:
            raise self._failure(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                model, start_time, e,
                error_type=type(e).__name__,
            )

    @staticmethod
    def _failure(
        code: str,
        message: str,
        model: str,
        start_time: float,
        exc: Exception,
        **extra_details: Any
    ) -> LLMClientError:
        """Log an upstream failure and wrap it in an LLMClientError."""
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": model,
                "latency_ms": latency_ms,
                "original_error": str(exc),
                **extra_details,
            }
        )
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={exc}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)

    @staticmethod
    def build_messages(
        message: str,
        conversation_history: Optional[List[HistoryMessage]] = None
    ) -> List[Dict[str, str]]:
        """
        Assemble the upstream turn list: prior history followed by the new user turn.

        Args:
            message: The new user message, passed through unchanged
            conversation_history: Prior turns, oldest first

        Returns:
            List of {"role", "content"} dicts
        """
        turns = [
            {"role": turn.role, "content": turn.content}
            for turn in (conversation_history or [])
        ]
        turns.append({"role": "user", "content": message})
        return turns
