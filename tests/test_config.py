"""Tests for PacingConfig defaults, TOML loading and env overrides."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ptyfeed.config import PacingConfig, load_config


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "ptyfeed.toml"
    path.write_text(body)
    return path


def test_defaults() -> None:
    config = load_config(env={})
    assert config == PacingConfig()
    assert config.watchdog_delay == 0.5
    assert config.debounce_delay == 0.1
    assert config.poll_max_wait == 0.0
    assert config.max_empty_yields == 10_000


def test_toml_table_is_applied(tmp_path: Path) -> None:
    path = _write(tmp_path, "[ptyfeed]\nwatchdog_delay = 1.5\nline_ending = \"\\r\"\n")
    config = load_config(path, env={})
    assert config.watchdog_delay == 1.5
    assert config.line_ending == "\r"
    assert config.debounce_delay == 0.1


def test_env_overrides_toml(tmp_path: Path) -> None:
    path = _write(tmp_path, "[ptyfeed]\nwatchdog_delay = 1.5\n")
    env = {
        "PTYFEED_WATCHDOG_DELAY": "2.5",
        "PTYFEED_MAX_EMPTY_YIELDS": "none",
        "PTYFEED_LINE_ENDING": "\\r\\n",
    }
    config = load_config(path, env=env)
    assert config.watchdog_delay == 2.5
    assert config.max_empty_yields is None
    assert config.line_ending == "\r\n"


def test_config_path_from_env(tmp_path: Path) -> None:
    path = _write(tmp_path, "[ptyfeed]\ndebounce_delay = 0.3\n")
    config = load_config(env={"PTYFEED_CONFIG": str(path)})
    assert config.debounce_delay == 0.3


def test_missing_table_means_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path, "[other]\nx = 1\n")
    assert load_config(path, env={}) == PacingConfig()


def test_unknown_keys_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "[ptyfeed]\nwatchdog = 1\n")
    with pytest.raises(ValueError, match="unknown"):
        load_config(path, env={})


def test_negative_delay_rejected() -> None:
    with pytest.raises(ValidationError):
        load_config(env={"PTYFEED_DEBOUNCE_DELAY": "-1"})


def test_zero_empty_yield_limit_rejected() -> None:
    with pytest.raises(ValidationError):
        PacingConfig(max_empty_yields=0)


def test_config_is_frozen() -> None:
    config = PacingConfig()
    with pytest.raises(ValidationError):
        config.watchdog_delay = 3.0  # type: ignore[misc]


def test_non_table_section_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path, "ptyfeed = 3\n")
    with pytest.raises(ValueError, match="must be a table"):
        load_config(path, env={})
