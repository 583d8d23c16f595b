"""Command-line entrypoint: run a command under a PTY and feed it paced input."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console

from ptyfeed.config import PacingConfig, load_config
from ptyfeed.session import PtySession

_log = logging.getLogger(__name__)

EXIT_TIMEOUT = 124
EXIT_USAGE = 2


def _project_version() -> str:
    try:
        return version("ptyfeed")
    except PackageNotFoundError:
        return "0.1.0"


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="ptyfeed",
        description="Feed lines to a command on a pseudo-terminal, one at a time.",
    )
    parser.add_argument("--version", action="version", version=_project_version())
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML file with a [ptyfeed] table (default: $PTYFEED_CONFIG)",
    )
    parser.add_argument(
        "--input",
        type=Path,
        default=None,
        help="File whose lines are sent (default: stdin)",
    )
    parser.add_argument(
        "--transcript",
        type=Path,
        default=None,
        help="Append a timestamped record of every send and watchdog timeout here",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up after this many seconds (exit status 124)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("command", help="Shell command to run under the PTY")
    return parser.parse_args(argv if argv is not None else sys.argv[1:])


def _read_lines(path: Path | None) -> list[str]:
    if path is None:
        return sys.stdin.read().splitlines()
    return path.read_text().splitlines()


def _write_output(data: bytes) -> None:
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


async def _run(args: argparse.Namespace, config: PacingConfig, lines: list[str]) -> int:
    session = await PtySession.start(args.command, config=config, transcript=args.transcript)
    session.add_listener(_write_output)
    console = Console(stderr=True)
    try:
        async with asyncio.timeout(args.timeout):
            session.send_lines(lines)
            await session.wait_idle()
            code = await session.wait()
    except TimeoutError:
        _log.warning("Timed out after %ss", args.timeout)
        code = EXIT_TIMEOUT
    finally:
        await session.aclose()
    console.print(
        f"[bold]ptyfeed[/bold] {args.command!r}: exit {code}, "
        f"{session.sent_count} sent, {session.timeout_count} watchdog timeouts"
    )
    return code


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_cli_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        config = load_config(args.config)
    except (OSError, ValueError, ValidationError) as exc:
        Console(stderr=True).print(f"[red]Invalid configuration:[/red] {exc}")
        return EXIT_USAGE
    lines = _read_lines(args.input)
    return asyncio.run(_run(args, config, lines))


if __name__ == "__main__":
    raise SystemExit(main())
