"""Configuration loading for pimon.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/pimon/config.toml → defaults only.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "interval": 1.0,
    "history_size": 20,
    "page_size": 10,
    "log_file": "pimon.log",
    "log_level": "INFO",
    "disk_path": "/",
    "thermal_zone": "/sys/class/thermal/thermal_zone0/temp",
    "thresholds": {
        "cpu_percent": {"warning": 80.0, "critical": 95.0},
        "mem_percent": {"warning": 85.0, "critical": 95.0},
        "disk_percent": {"warning": 85.0, "critical": 95.0},
        "temperature": {"warning": 70.0, "critical": 80.0},
    },
}

_DEFAULT_PATH = Path.home() / ".config" / "pimon" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _validate(config: dict[str, Any], source: Path | str) -> dict[str, Any]:
    problems: list[str] = []
    try:
        if float(config["interval"]) <= 0:
            problems.append("interval must be > 0")
    except (TypeError, ValueError):
        problems.append("interval must be a number")
    for key in ("history_size", "page_size"):
        value = config[key]
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            problems.append(f"{key} must be an integer >= 1")
    if problems:
        for problem in problems:
            print(f"pimon: {source}: {problem}", file=sys.stderr)
        raise SystemExit(1)
    return config


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/pimon/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed, or
            if the merged values are out of range.
    """
    if path is not None:
        if not path.is_file():
            print(f"pimon: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"pimon: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _validate(_deep_merge(DEFAULT_CONFIG, user_config), path)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _validate(_deep_merge(DEFAULT_CONFIG, user_config), _DEFAULT_PATH)
        except tomllib.TOMLDecodeError:
            print(
                f"pimon: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# pimon configuration",
        "# Place this file at ~/.config/pimon/config.toml",
        "",
        f"interval = {DEFAULT_CONFIG['interval']}",
        f"history_size = {DEFAULT_CONFIG['history_size']}",
        f"page_size = {DEFAULT_CONFIG['page_size']}",
        f'log_file = "{DEFAULT_CONFIG["log_file"]}"',
        f'log_level = "{DEFAULT_CONFIG["log_level"]}"',
        f'disk_path = "{DEFAULT_CONFIG["disk_path"]}"',
        f'thermal_zone = "{DEFAULT_CONFIG["thermal_zone"]}"',
        "",
    ]

    for metric, levels in DEFAULT_CONFIG["thresholds"].items():
        lines.append(f"[thresholds.{metric}]")
        lines.append(f"warning = {levels['warning']}")
        lines.append(f"critical = {levels['critical']}")
        lines.append("")

    return "\n".join(lines) + "\n"
