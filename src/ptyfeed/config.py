"""Pacing configuration: defaults, a TOML file, then ``PTYFEED_*`` env vars.

A config file holds a single ``[ptyfeed]`` table::

    [ptyfeed]
    watchdog_delay = 1.0
    debounce_delay = 0.05

Dependencies: (none, leaf module)
Wired in: cli.py → main(), session.py → PtySession.start()
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "PTYFEED_"
CONFIG_ENV_VAR = "PTYFEED_CONFIG"

_TOML_TABLE = "ptyfeed"
_NONE_VALUES = frozenset({"", "none", "off"})


class PacingConfig(BaseModel):
    """Timing and encoding knobs for one send queue and its session."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    watchdog_delay: float = Field(default=0.5, ge=0)
    """Seconds to wait for output after a send before resuming with TIMEOUT."""

    debounce_delay: float = Field(default=0.1, ge=0)
    """Quiet period after output arrives before the next string is sent."""

    poll_max_wait: float = Field(default=0.0, ge=0)
    """Bound on the watchdog's last-chance poll for unprocessed output."""

    max_empty_yields: Annotated[int, Field(ge=1)] | None = 10_000
    """Consecutive empty yields tolerated before a producer is discarded.
    ``None`` disables the guard."""

    encoding: str = "utf-8"
    line_ending: str = "\n"

    max_output_bytes: int = Field(default=1_048_576, ge=0)
    """Output kept in memory per session; older bytes are dropped first."""


def _read_toml(path: Path) -> dict[str, object]:
    with path.open("rb") as fh:
        data = tomllib.load(fh)
    raw = data.get(_TOML_TABLE, {})
    if not isinstance(raw, dict):
        msg = f"{path}: [{_TOML_TABLE}] must be a table."
        raise ValueError(msg)
    unknown = set(raw) - set(PacingConfig.model_fields)
    if unknown:
        msg = f"{path}: unknown [{_TOML_TABLE}] keys: {', '.join(sorted(unknown))}"
        raise ValueError(msg)
    return dict(raw)


def _read_env(env: Mapping[str, str]) -> dict[str, object]:
    values: dict[str, object] = {}
    for name in PacingConfig.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key not in env:
            continue
        raw = env[key]
        if name == "max_empty_yields" and raw.strip().lower() in _NONE_VALUES:
            values[name] = None
        elif name == "line_ending":
            values[name] = raw.encode().decode("unicode_escape")
        else:
            values[name] = raw
    return values


def load_config(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> PacingConfig:
    """Build a ``PacingConfig``; environment variables win over the file.

    Raises ``ValueError`` for unknown file keys and pydantic's
    ``ValidationError`` for out-of-range values.
    """
    env = os.environ if env is None else env
    if path is None and env.get(CONFIG_ENV_VAR):
        path = Path(env[CONFIG_ENV_VAR])
    values: dict[str, object] = {}
    if path is not None:
        values.update(_read_toml(path))
    values.update(_read_env(env))
    return PacingConfig.model_validate(values)
