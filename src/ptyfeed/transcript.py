"""Append-only transcript of what a session sent and when the watchdog fired."""

from __future__ import annotations

import datetime
from pathlib import Path


class Transcript:
    def __init__(self, path: Path) -> None:
        self.path = path

    def sent(self, data: bytes) -> None:
        self._append(f"sent {data!r}")

    def timed_out(self) -> None:
        self._append("watchdog timeout")

    def _append(self, entry: str) -> None:
        ts = datetime.datetime.now(tz=datetime.UTC).isoformat()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a") as f:
            f.write(f"[{ts}] {entry}\n")
