"""Terminal front-end for the Scoper chat client.

Usage:
    scoper-chat [--api-url URL] [--storage-path PATH | --no-persist]

Commands typed at the prompt:
    /retry   re-send the last user message
    /clear   forget the conversation and start a new session
    /quit    exit
"""
import argparse
import asyncio
import logging
import sys

from .api import ChatApiClient
from .config import CHAT_API_URL, CHAT_STORAGE_PATH, LOG_LEVEL
from .controller import ChatController
from .models import ConnectionStatus, Role
from .state import ChatState
from .storage import ConversationStorage, FileStore, MemoryStore, StorageManager


def render_turn(turn) -> str:
    speaker = "You" if turn.role == Role.USER else "Scoper"
    return f"[{turn.timestamp.astimezone():%H:%M}] {speaker}: {turn.content}"


def render_error(state: ChatState) -> str:
    error = state.error
    lines = [f"! {error.message}"]
    if state.retry_count > 0:
        lines.append(f"  Retry attempt: {state.retry_count}")
    if error.retryable:
        lines.append("  Type /retry to try again.")
    return "\n".join(lines)


def build_controller(args: argparse.Namespace) -> ChatController:
    store = MemoryStore() if args.no_persist else FileStore(args.storage_path)
    storage = ConversationStorage(StorageManager(store))
    return ChatController(ChatApiClient(args.api_url), storage)


async def run_chat(controller: ChatController) -> None:
    state = controller.load()
    if not state.storage_available:
        print("Storage unavailable: this session will not be saved.")
    for turn in state.turns:
        print(render_turn(turn))

    print(f"Connecting to {controller.api.base_url}...")
    status = await controller.check_connection()
    if status == ConnectionStatus.DISCONNECTED:
        print("Disconnected: the relay could not be reached.")
        return
    print("Connected. Type /quit to exit.")

    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        text = line.strip()

        if text == "/quit":
            break
        if text == "/clear":
            state = controller.clear_conversation()
            print(f"Conversation cleared (session {state.session_id}).")
        elif text == "/retry":
            state = await controller.retry_last_message()
        elif text:
            state = await controller.send_message(text)
        else:
            continue

        if state.error:
            print(render_error(state))
        elif text != "/clear" and state.turns:
            print(render_turn(state.turns[-1]))


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Chat with the Scoper business-consulting assistant"
    )
    parser.add_argument(
        "--api-url",
        default=CHAT_API_URL,
        help=f"Base URL of the chat relay (default: {CHAT_API_URL})"
    )
    parser.add_argument(
        "--storage-path",
        default=CHAT_STORAGE_PATH,
        help=f"File used to persist the conversation (default: {CHAT_STORAGE_PATH})"
    )
    parser.add_argument(
        "--no-persist",
        action="store_true",
        help="Keep the conversation in memory only"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        asyncio.run(run_chat(build_controller(args)))
    except KeyboardInterrupt:
        print()
        sys.exit(130)


if __name__ == "__main__":
    main()
