"""Conversation controller: drives sends, retries, persistence and the liveness probe."""
import asyncio
import logging
from typing import Awaitable, Callable

from .api import ApiError, ChatApiClient, get_error_info
from .config import (
    BASE_RETRY_DELAY,
    HEALTH_CHECK_ATTEMPTS,
    HEALTH_CHECK_DELAY,
    MAX_RETRIES,
)
from .models import ConnectionStatus, ErrorInfo, ErrorKind, Role, Turn
from .retry import retry_with_backoff
from .state import (
    ChatState,
    connection_changed,
    conversation_cleared,
    conversation_loaded,
    error_dismissed,
    error_raised,
    last_user_turn_index,
    retry_requested,
    send_failed,
    send_started,
    send_succeeded,
)
from .storage import ConversationStorage

logger = logging.getLogger(__name__)


class ChatController:
    """
    Owns the conversation state for one chat session.

    Sends are sequential: ``send_message`` refuses to start while another send
    is outstanding, mirroring a disabled input box. No exception escapes a
    send; every failure ends up in ``state.error``.
    """

    def __init__(
        self,
        api: ChatApiClient,
        storage: ConversationStorage,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.storage = storage
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep
        self.state = ChatState()

    def load(self) -> ChatState:
        """Restore the persisted conversation into state."""
        snapshot = self.storage.load_conversation()
        available = self.storage.is_storage_available()
        if not available:
            logger.warning("Storage not available - conversation will not persist")

        self.state = conversation_loaded(self.state, snapshot.turns, snapshot.session_id, available)
        logger.info(f"Loaded {len(snapshot.turns)} turns for session {snapshot.session_id}")
        return self.state

    async def check_connection(
        self,
        max_attempts: int = HEALTH_CHECK_ATTEMPTS,
        delay: float = HEALTH_CHECK_DELAY
    ) -> ConnectionStatus:
        """Probe the relay, retrying with linear backoff, and record the outcome."""
        self.state = connection_changed(self.state, ConnectionStatus.CHECKING)

        for attempt in range(1, max_attempts + 1):
            try:
                await self.api.health_check()
                self.state = connection_changed(self.state, ConnectionStatus.CONNECTED)
                return self.state.connection_status
            except ApiError as e:
                logger.error(f"Relay health check failed (attempt {attempt}/{max_attempts}): {e}")
                if attempt < max_attempts:
                    await self._sleep(delay * attempt)

        self.state = connection_changed(self.state, ConnectionStatus.DISCONNECTED)
        return self.state.connection_status

    async def send_message(self, content: str, is_retry: bool = False) -> ChatState:
        """
        Send a user message and append the reply.

        A fresh send appends the user turn optimistically and removes it again
        if the send ultimately fails. A retry re-sends text already in the
        history: it appends nothing up front and removes nothing on failure.

        Args:
            content: Message text
            is_retry: True when re-sending the last user turn

        Returns:
            The resulting state
        """
        if not content or not content.strip():
            return self.state
        if self.state.is_loading:
            logger.warning("Send ignored: another message is still in flight")
            return self.state

        if is_retry:
            index = last_user_turn_index(self.state)
            history = self.state.turns[:index] if index is not None else self.state.turns
            user_turn = None
        else:
            history = self.state.turns
            user_turn = Turn.create(Role.USER, content)

        self.state = send_started(self.state, user_turn)
        if user_turn is not None:
            self._persist()

        try:
            reply = await retry_with_backoff(
                lambda: self.api.send_message(content, history),
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                sleep=self._sleep,
            )
            if not reply:
                raise ApiError("No response generated", 500)
        except Exception as e:
            error_info = get_error_info(e)
            logger.error(f"Failed to send message ({error_info.kind.value}): {e}")
            self.state = send_failed(
                self.state,
                error_info,
                user_turn.id if user_turn is not None else None,
            )
            if user_turn is not None:
                self._persist()
            return self.state

        self.state = send_succeeded(self.state, Turn.create(Role.ASSISTANT, reply))
        self._persist()
        return self.state

    async def retry_last_message(self) -> ChatState:
        """Re-send the most recent user turn in retry mode."""
        index = last_user_turn_index(self.state)
        if index is None:
            return self.state

        self.state = retry_requested(self.state)
        return await self.send_message(self.state.turns[index].content, is_retry=True)

    def clear_conversation(self) -> ChatState:
        """Drop the conversation from memory and storage and rotate the session id."""
        cleared = self.storage.clear_conversation()
        self.state = conversation_cleared(self.state, self.storage.get_session_id())

        if not cleared and self.storage.is_storage_available():
            self.state = error_raised(self.state, ErrorInfo(
                "Failed to clear conversation history",
                ErrorKind.STORAGE,
                False,
            ))
        return self.state

    def dismiss_error(self) -> ChatState:
        self.state = error_dismissed(self.state)
        return self.state

    def _persist(self) -> None:
        if not self.state.storage_available:
            return
        if not self.storage.save_conversation(list(self.state.turns)):
            logger.warning("Conversation could not be saved")
