"""
Command-line entry point: stream one answer to stdout.

    python -m chatstream.main "What is SSE?"
"""

from __future__ import annotations

import asyncio
import logging
import sys

from .config import Configuration
from .llm import ChatGPTClient, LLMError
from .logging_utils import ErrorHandler


def _print_delta(fragment: str) -> None:
    sys.stdout.write(fragment)
    sys.stdout.flush()


async def main(argv: list[str] | None = None) -> int:
    """Ask the question given on the command line."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("usage: python -m chatstream.main QUESTION", file=sys.stderr)
        return 2

    try:
        config = Configuration()
        logging.basicConfig(
            level=config.get_logging_config().get("level", "WARNING"),
            format="%(asctime)s - %(levelname)s - %(message)s",
        )
        client = ChatGPTClient.from_config(config)
    except ValueError as e:
        ErrorHandler.log_error(e, "config.load")
        return 1

    async with client:
        try:
            await client.ask(" ".join(args), on_delta=_print_delta)
        except LLMError as e:
            ErrorHandler.log_error(e, "chat.ask", {"model": client.config.model})
            return 1

    sys.stdout.write("\n")
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
