"""
Command-line chat with the design assistant.

Reads one prompt per line from stdin and streams each reply to stdout,
keeping the conversation across turns.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Iterable

from design_chat.config import Configuration
from design_chat.conversation import Conversation
from design_chat.llm.client import StreamingChatClient
from design_chat.llm.models import StreamOutcome
from design_chat.logging_utils import configure_logging
from design_chat.notifications import RecordingNotifier


def _write(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


async def run_chat(client: StreamingChatClient, prompts: Iterable[str]) -> int:
    """Stream a reply for each prompt. Returns the number of failed turns."""
    conversation = Conversation()
    notifier = client.notifier
    failures = 0

    for raw_prompt in prompts:
        prompt = raw_prompt.strip()
        if not prompt:
            continue

        outcome = await conversation.send(client, prompt, on_delta=_write)
        _write("\n")

        if outcome is StreamOutcome.FAILED:
            failures += 1
            if isinstance(notifier, RecordingNotifier):
                for message in notifier.messages:
                    print(f"error: {message}", file=sys.stderr)
                notifier.clear()

    return failures


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Chat with the design assistant")
    parser.add_argument("--config", help="Path to a config.yaml override")
    args = parser.parse_args(argv)

    config = Configuration(args.config)
    configure_logging(config.get_logging_config().get("level", "WARNING"))

    async with StreamingChatClient.from_config(
        config, notifier=RecordingNotifier()
    ) as client:
        failures = await run_chat(client, sys.stdin)

    return 1 if failures else 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
