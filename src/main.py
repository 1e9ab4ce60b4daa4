"""
Clearwater Assistant - command line chat.

Reads user messages from stdin, answers them through the DialogueOrchestrator
and prints replies prefixed with "Assistant > ". Type 'exit' to quit.

Usage:
    python src/main.py [session_key]
"""

from __future__ import annotations

import asyncio
import sys
import uuid

from app.bootstrap import initialize_application
from app.state import AppState
from core.constants import SESSION_GREETING, SESSION_ID_LENGTH

EXIT_COMMANDS = {"exit", "quit"}
PROMPT = "User > "
REPLY_PREFIX = "Assistant > "


def read_user_input() -> str:
    """Blocking stdin read (run in an executor)."""
    return input(PROMPT)


async def chat_loop(app_state: AppState, session_key: str) -> None:
    """Run the REPL for one session until 'exit' or end of input."""
    loop = asyncio.get_running_loop()
    print(f"{REPLY_PREFIX}{SESSION_GREETING}")

    while True:
        try:
            user_input = await loop.run_in_executor(None, read_user_input)
        except EOFError:
            app_state.logger.info("End of input stream, shutting down")
            break

        text = user_input.strip()
        if not text:
            continue
        if text.lower() in EXIT_COMMANDS:
            break

        reply = await app_state.orchestrator.respond(session_key, text)
        print(f"{REPLY_PREFIX}{reply}")


async def main() -> None:
    """Main entry point: bootstrap, chat, clean up."""
    session_key = sys.argv[1] if len(sys.argv) > 1 else f"cli_{uuid.uuid4().hex[:SESSION_ID_LENGTH]}"
    app_state = await initialize_application()
    sys.stderr.write("Type 'exit' to quit\n")

    try:
        await chat_loop(app_state, session_key)
    except KeyboardInterrupt:
        app_state.logger.info("Keyboard interrupt received")
    finally:
        await app_state.aclose()
        app_state.logger.info("Clearwater shutdown complete")


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
