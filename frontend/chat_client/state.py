"""Chat UI state and its pure transition functions.

Every function takes the current ``ChatState`` and returns a new one; nothing
here performs I/O. ``ChatController`` owns the single live value.
"""
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from .models import ConnectionStatus, ErrorInfo, Role, Turn


@dataclass(frozen=True)
class ChatState:
    turns: Tuple[Turn, ...] = ()
    is_loading: bool = False
    error: Optional[ErrorInfo] = None
    retry_count: int = 0
    connection_status: ConnectionStatus = ConnectionStatus.CHECKING
    session_id: Optional[str] = None
    storage_available: bool = True

    @property
    def can_send(self) -> bool:
        """Input is disabled while a send is outstanding or the relay is unreachable."""
        return not self.is_loading and self.connection_status != ConnectionStatus.DISCONNECTED


def message_appended(state: ChatState, turn: Turn) -> ChatState:
    return replace(state, turns=state.turns + (turn,))


def last_message_removed(state: ChatState, turn_id: str) -> ChatState:
    """Drop the trailing turn if it is the one given; otherwise leave turns alone."""
    if state.turns and state.turns[-1].id == turn_id:
        return replace(state, turns=state.turns[:-1])
    return state


def send_started(state: ChatState, user_turn: Optional[Turn] = None) -> ChatState:
    """Begin a send. A new user turn is appended optimistically; retries pass None."""
    state = replace(state, error=None, is_loading=True)
    if user_turn is not None:
        state = message_appended(replace(state, retry_count=0), user_turn)
    return state


def send_succeeded(state: ChatState, assistant_turn: Turn) -> ChatState:
    state = message_appended(state, assistant_turn)
    return replace(state, is_loading=False, retry_count=0)


def send_failed(state: ChatState, error: ErrorInfo, user_turn_id: Optional[str] = None) -> ChatState:
    """Record the failure, removing the optimistic user turn when one was added."""
    if user_turn_id is not None:
        state = last_message_removed(state, user_turn_id)
    return replace(state, error=error, is_loading=False)


def retry_requested(state: ChatState) -> ChatState:
    return replace(state, retry_count=state.retry_count + 1)


def error_raised(state: ChatState, error: ErrorInfo) -> ChatState:
    return replace(state, error=error)


def error_dismissed(state: ChatState) -> ChatState:
    return replace(state, error=None)


def conversation_loaded(
    state: ChatState,
    turns: Sequence[Turn],
    session_id: Optional[str],
    storage_available: bool
) -> ChatState:
    return replace(
        state,
        turns=tuple(turns),
        session_id=session_id,
        storage_available=storage_available,
    )


def conversation_cleared(state: ChatState, session_id: Optional[str]) -> ChatState:
    return replace(state, turns=(), session_id=session_id, error=None, retry_count=0)


def connection_changed(state: ChatState, status: ConnectionStatus) -> ChatState:
    return replace(state, connection_status=status)


def last_user_turn_index(state: ChatState) -> Optional[int]:
    """Index of the most recent user turn, scanning backward."""
    for index in range(len(state.turns) - 1, -1, -1):
        if state.turns[index].role == Role.USER:
            return index
    return None
