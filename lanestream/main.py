"""Entry point for lanestream: stream one request and print every lane."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from lanestream.config import get_config
from lanestream.core.cancellation import CancellationToken
from lanestream.core.errors import StreamTransportError
from lanestream.core.logging_config import setup_logging
from lanestream.models.client import CompletionClient

if TYPE_CHECKING:
    from lanestream.core.events import Snapshot

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lanestream",
        description="Send one streaming request; each content string becomes one lane.",
    )
    parser.add_argument("contents", nargs="*", help="Content strings, one per lane.")
    parser.add_argument(
        "--file",
        type=Path,
        help="Read content strings from a file, one per non-empty line.",
    )
    parser.add_argument("--label", action="append", default=[], help="Lane label (repeatable).")
    parser.add_argument("--config", type=Path, help="Path to a YAML config file.")
    return parser.parse_args(argv)


def _read_contents(args: argparse.Namespace) -> list[str]:
    contents = list(args.contents)
    if args.file:
        text = args.file.read_text(encoding="utf-8")
        contents.extend(line.strip() for line in text.splitlines() if line.strip())
    return contents


def format_snapshot(snapshot: Snapshot) -> str:
    if len(snapshot.lanes) == 1:
        return snapshot.lanes[0].text.strip()
    out = []
    for lane in snapshot.lanes:
        name = lane.label or f"lane {lane.index}"
        out.append(f"[{name}] {lane.text.strip()}")
    return "\n".join(out)


async def run(client: CompletionClient, contents: list[str], labels: list[str]) -> Snapshot:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no signal handlers
        pass
    try:
        return await client.start_stream(
            client.request_for(contents), len(contents), cancel_token=token, labels=labels
        )
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config = get_config(args.config)
    setup_logging(config.logging.level, use_json=config.logging.use_json)
    contents = _read_contents(args)
    if not contents:
        print("nothing to send: pass content strings or --file", file=sys.stderr)
        return 2
    client = CompletionClient.from_config(config)
    try:
        snapshot = asyncio.run(run(client, contents, args.label))
    except StreamTransportError as e:
        logger.error("request failed", extra={"status_code": e.status_code})
        print(str(e), file=sys.stderr)
        return 1
    print(format_snapshot(snapshot))
    return 0


if __name__ == "__main__":
    sys.exit(main())
