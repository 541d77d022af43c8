"""HTTP client for the chat relay and error classification."""
import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from .config import CHAT_API_URL, REQUEST_TIMEOUT
from .models import ErrorInfo, ErrorKind, Turn

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Relay call failure. A status of 0 means the relay could not be reached."""

    def __init__(self, message: str, status: int, response: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status = status
        self.response = response
        super().__init__(message)


def _decode(response: httpx.Response) -> Dict[str, Any]:
    data = response.json()
    return data if isinstance(data, dict) else {}


class ChatApiClient:
    """Async client for the relay's HTTP surface."""

    def __init__(
        self,
        base_url: str = CHAT_API_URL,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: Relay base URL
            timeout: Transport-level timeout in seconds; there is no other cancellation
            transport: Optional httpx transport, used by tests to stub the relay
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def post(
        self,
        endpoint: str,
        data: Dict[str, Any],
        max_retries: int = 3,
        retry_delay: float = 1.0
    ) -> Dict[str, Any]:
        """
        POST JSON to the relay.

        Transport failures and undecodable bodies are retried with exponential
        backoff; an HTTP error status raises ApiError straight away.
        """
        for attempt in range(1, max_retries + 1):
            try:
                async with self._client() as client:
                    response = await client.post(endpoint, json=data)
                response_data = _decode(response)

                if not response.is_success:
                    raise ApiError(
                        response_data.get("error") or f"HTTP {response.status_code}",
                        response.status_code,
                        response_data,
                    )
                return response_data

            except ApiError:
                raise
            except (httpx.HTTPError, ValueError) as e:
                if attempt == max_retries:
                    raise
                delay = retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    f"POST {endpoint} failed on attempt {attempt}/{max_retries}: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

    async def get(self, endpoint: str) -> Dict[str, Any]:
        """GET from the relay. Transport failures become ApiError with status 0."""
        try:
            async with self._client() as client:
                response = await client.get(endpoint)

            if not response.is_success:
                try:
                    error_data = _decode(response)
                except ValueError:
                    error_data = {}
                raise ApiError(
                    error_data.get("error") or f"HTTP {response.status_code}",
                    response.status_code,
                    error_data,
                )

            return _decode(response)
        except ApiError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"GET {endpoint} failed: {e}")
            raise ApiError("Network error", 0, None)

    async def send_message(self, message: str, conversation_history: Iterable[Turn] = ()) -> str:
        """
        Send one user message with prior turns and return the assistant reply.

        Raises:
            ValueError: If the message is empty
            ApiError: For any relay or transport failure
        """
        if not message or not isinstance(message, str) or not message.strip():
            raise ValueError("Message is required and must be a non-empty string")

        formatted_history = [
            {"role": turn.role.value, "content": turn.content}
            for turn in conversation_history
        ]

        try:
            response = await self.post("/chat", {
                "message": message.strip(),
                "conversationHistory": formatted_history,
            })
        except ApiError:
            raise
        except httpx.HTTPError:
            raise ApiError("Unable to connect to server. Please check your connection.", 0, None)
        except Exception as e:
            raise ApiError(str(e) or "An unexpected error occurred", 500, None)

        if response.get("error"):
            raise ApiError(response["error"], 400, response)
        if not response.get("response"):
            raise ApiError("No response generated", 500, response)

        return response["response"]

    async def health_check(self) -> Dict[str, Any]:
        """Probe the relay's liveness endpoint."""
        try:
            return await self.get("/")
        except ApiError as e:
            raise ApiError("Health check failed", e.status or 0, None)


_STATUS_ERRORS = {
    0: ErrorInfo(
        "Unable to connect to server. Please check your internet connection.",
        ErrorKind.NETWORK, True,
    ),
    # TODO: 401 cannot succeed on retry with the same relay credential; decide whether to mark it non-retryable.
    401: ErrorInfo("Authentication failed. Please try again.", ErrorKind.AUTH, True),
    429: ErrorInfo("Too many requests. Please wait a moment and try again.", ErrorKind.RATE_LIMIT, True),
    500: ErrorInfo("Server error. Please try again later.", ErrorKind.SERVER, True),
    503: ErrorInfo(
        "Service temporarily unavailable. Please try again in a few minutes.",
        ErrorKind.SERVICE, True,
    ),
}


def get_error_info(error: BaseException) -> ErrorInfo:
    """Classify a failure into a user-facing message, kind and retryability."""
    if isinstance(error, ApiError):
        if error.status in _STATUS_ERRORS:
            return _STATUS_ERRORS[error.status]
        if error.status == 400:
            return ErrorInfo(
                error.message or "Invalid request. Please check your input.",
                ErrorKind.VALIDATION, False,
            )
        return ErrorInfo(
            error.message or "An unexpected error occurred.",
            ErrorKind.UNKNOWN, True,
        )

    return ErrorInfo(
        str(error) or "An unexpected error occurred.",
        ErrorKind.UNKNOWN, True,
    )
