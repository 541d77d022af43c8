"""Tests for ChatController send, retry, clear and liveness flows."""
import os
import sys

import httpx
import pytest
from unittest.mock import AsyncMock, Mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'frontend'))

from chat_client.api import ApiError, ChatApiClient
from chat_client.controller import ChatController
from chat_client.models import ConnectionStatus, ErrorKind, Role, Turn
from chat_client.state import ChatState
from chat_client.storage import STORAGE_KEYS, ConversationStorage, MemoryStore, StorageManager


class FakeApi:
    """Stands in for ChatApiClient; replies are consumed in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []
        self.health_check = AsyncMock(return_value={"status": "ok"})

    async def send_message(self, message, history):
        self.calls.append((message, list(history)))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def store():
    return MemoryStore()


def make_controller(api, store):
    storage = ConversationStorage(StorageManager(store))
    controller = ChatController(api, storage, sleep=AsyncMock())
    controller.load()
    return controller


class TestSendMessage:
    """Tests for ChatController.send_message."""

    @pytest.mark.asyncio
    async def test_success_appends_exactly_one_assistant_turn(self, store):
        controller = make_controller(FakeApi("Hi there"), store)

        state = await controller.send_message("Hello")

        assert [(t.role, t.content) for t in state.turns] == [
            (Role.USER, "Hello"),
            (Role.ASSISTANT, "Hi there"),
        ]
        assert state.is_loading is False
        assert state.error is None

    @pytest.mark.asyncio
    async def test_success_is_persisted(self, store):
        controller = make_controller(FakeApi("Hi there"), store)

        state = await controller.send_message("Hello")

        restored = ConversationStorage(StorageManager(store)).load_conversation()
        assert restored.turns == list(state.turns)

    @pytest.mark.asyncio
    async def test_history_sent_excludes_new_turn(self, store):
        api = FakeApi("first reply", "second reply")
        controller = make_controller(api, store)

        await controller.send_message("first")
        await controller.send_message("second")

        message, history = api.calls[-1]
        assert message == "second"
        assert [t.content for t in history] == ["first", "first reply"]

    @pytest.mark.asyncio
    async def test_non_retryable_failure_removes_user_turn(self, store):
        api = FakeApi("Hi", ApiError("Message cannot be empty", 400))
        controller = make_controller(api, store)
        await controller.send_message("Hello")
        before = controller.state.turns

        state = await controller.send_message("Again")

        assert state.turns == before
        assert state.error.kind == ErrorKind.VALIDATION
        assert state.error.retryable is False
        assert len(api.calls) == 2
        restored = ConversationStorage(StorageManager(store)).load_conversation()
        assert restored.turns == list(before)

    @pytest.mark.asyncio
    async def test_exhausted_retries_remove_user_turn(self, store):
        api = FakeApi(ApiError("Server error", 500))
        controller = make_controller(api, store)

        state = await controller.send_message("Hello")

        assert state.turns == ()
        assert state.error.kind == ErrorKind.SERVER
        assert state.error.retryable is True
        assert len(api.calls) == 3

    @pytest.mark.asyncio
    async def test_unexpected_exception_never_escapes(self, store):
        controller = make_controller(FakeApi(RuntimeError("bug")), store)

        state = await controller.send_message("Hello")

        assert state.error.kind == ErrorKind.UNKNOWN
        assert state.is_loading is False

    @pytest.mark.asyncio
    async def test_blank_message_is_ignored(self, store):
        api = FakeApi("unused")
        controller = make_controller(api, store)

        state = await controller.send_message("   ")

        assert state.turns == ()
        assert api.calls == []

    @pytest.mark.asyncio
    async def test_send_refused_while_loading(self, store):
        api = FakeApi("unused")
        controller = make_controller(api, store)
        controller.state = ChatState(is_loading=True)

        await controller.send_message("Hello")

        assert api.calls == []


class TestRetryLastMessage:
    """Tests for ChatController.retry_last_message."""

    @pytest.mark.asyncio
    async def test_retry_resends_last_user_turn_without_reappending(self, store):
        api = FakeApi("Hi")
        controller = make_controller(api, store)
        await controller.send_message("Hello")
        api.replies = ["Hi again"]

        state = await controller.retry_last_message()

        assert [t.content for t in state.turns] == ["Hello", "Hi", "Hi again"]
        message, history = api.calls[-1]
        assert message == "Hello"
        assert history == []
        assert state.retry_count == 0

    @pytest.mark.asyncio
    async def test_failed_retry_keeps_turns_and_counts(self, store):
        api = FakeApi("Hi")
        controller = make_controller(api, store)
        await controller.send_message("Hello")
        api.replies = [ApiError("down", 0)]

        state = await controller.retry_last_message()

        assert [t.content for t in state.turns] == ["Hello", "Hi"]
        assert state.retry_count == 1
        assert state.error.kind == ErrorKind.NETWORK

    @pytest.mark.asyncio
    async def test_retry_with_no_user_turn_is_noop(self, store):
        api = FakeApi("unused")
        controller = make_controller(api, store)

        state = await controller.retry_last_message()

        assert state.retry_count == 0
        assert api.calls == []


class TestLoadAndClear:
    """Tests for loading and clearing the conversation."""

    def test_load_restores_persisted_turns(self, store):
        storage = ConversationStorage(StorageManager(store))
        turns = [Turn.create(Role.USER, "Hello"), Turn.create(Role.ASSISTANT, "Hi")]
        storage.save_conversation(turns)

        controller = make_controller(FakeApi("unused"), store)

        assert list(controller.state.turns) == turns
        assert controller.state.session_id == storage.get_session_id()
        assert controller.state.storage_available is True

    @pytest.mark.asyncio
    async def test_clear_rotates_session(self, store):
        controller = make_controller(FakeApi("Hi"), store)
        await controller.send_message("Hello")
        before = controller.state.session_id

        state = controller.clear_conversation()

        assert state.turns == ()
        assert state.session_id != before
        assert STORAGE_KEYS["CONVERSATION_HISTORY"] not in store.data

    def test_clear_failure_surfaces_storage_error(self, store):
        controller = make_controller(FakeApi("unused"), store)
        controller.storage.clear_conversation = Mock(return_value=False)

        state = controller.clear_conversation()

        assert state.error.kind == ErrorKind.STORAGE
        assert state.error.retryable is False

    def test_dismiss_error(self, store):
        controller = make_controller(FakeApi("unused"), store)
        controller.storage.clear_conversation = Mock(return_value=False)
        controller.clear_conversation()

        assert controller.dismiss_error().error is None


class TestCheckConnection:
    """Tests for the startup liveness probe."""

    @pytest.mark.asyncio
    async def test_connected(self, store):
        controller = make_controller(FakeApi("unused"), store)

        status = await controller.check_connection()

        assert status == ConnectionStatus.CONNECTED
        assert controller.state.connection_status == ConnectionStatus.CONNECTED

    @pytest.mark.asyncio
    async def test_recovers_on_second_probe(self, store):
        api = FakeApi("unused")
        api.health_check = AsyncMock(side_effect=[ApiError("Health check failed", 0), {"status": "ok"}])
        controller = make_controller(api, store)

        status = await controller.check_connection()

        assert status == ConnectionStatus.CONNECTED
        assert api.health_check.await_count == 2

    @pytest.mark.asyncio
    async def test_disconnected_after_two_retries_with_linear_backoff(self, store):
        api = FakeApi("unused")
        api.health_check = AsyncMock(side_effect=ApiError("Health check failed", 0))
        controller = make_controller(api, store)

        status = await controller.check_connection(delay=2.0)

        assert status == ConnectionStatus.DISCONNECTED
        assert api.health_check.await_count == 3
        assert [c.args[0] for c in controller._sleep.await_args_list] == [2.0, 4.0]
        assert controller.state.can_send is False

    @pytest.mark.asyncio
    async def test_redirect_loop_ends_disconnected(self, store):
        def handler(request):
            raise httpx.TooManyRedirects("boom", request=request)

        api = ChatApiClient("http://relay.test", transport=httpx.MockTransport(handler))
        controller = make_controller(api, store)

        status = await controller.check_connection()

        assert status == ConnectionStatus.DISCONNECTED


class TestEmptyReply:
    """A success without reply text counts as a failed send."""

    @pytest.mark.asyncio
    async def test_missing_reply_removes_user_turn(self, store):
        controller = make_controller(FakeApi(None), store)

        state = await controller.send_message("Hello")

        assert state.turns == ()
        assert state.error.kind == ErrorKind.SERVER
        assert ConversationStorage(StorageManager(store)).load_conversation().turns == []
