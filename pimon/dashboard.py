"""Interactive terminal dashboard for a single-board computer.

Shows a system overview (CPU/memory/disk gauges, temperature, uptime, CPU
sparkline), a scrollable process list and network throughput, one view at a
time, using curses. Tab cycles the views, arrow keys / PgUp / PgDn / Home /
End move through the process list, q quits.

Usage:
    pimon
    pimon --interval 2 --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import logging
import sys
import time
from pathlib import Path
from typing import Any

from pimon.config import dump_default_config, load_config
from pimon.scheduler import CursesEventSource, DashboardContext, RefreshScheduler
from pimon.views import (
    SEVERITY_CRITICAL,
    SEVERITY_WARNING,
    Frame,
    Gauge,
    Line,
    sparkline,
)

logger = logging.getLogger("pimon.dashboard")

# ── Constants ──────────────────────────────────────────────────────────────

BAR_FILL = "█"
BAR_EMPTY = "░"

# Curses colour-pair IDs
C_NORMAL = 1
C_WARNING = 2
C_CRITICAL = 3
C_TITLE = 4
C_DIM = 5
C_BLUE = 6
C_SELECTED = 7

_SEVERITY_PAIRS = {
    SEVERITY_WARNING: C_WARNING,
    SEVERITY_CRITICAL: C_CRITICAL,
}


# ── Colour helpers ─────────────────────────────────────────────────────────


def _init_colors() -> None:
    if not curses.has_colors():
        return
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_GREEN, -1)
    curses.init_pair(C_WARNING, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_CRITICAL, curses.COLOR_RED, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    curses.init_pair(C_BLUE, curses.COLOR_BLUE, -1)
    curses.init_pair(C_SELECTED, curses.COLOR_BLACK, curses.COLOR_WHITE)


def _style_attr(style: str) -> int:
    if style == "header":
        return curses.color_pair(C_TITLE) | curses.A_BOLD
    if style == "dim":
        return curses.color_pair(C_DIM)
    if style == "selected":
        return curses.color_pair(C_SELECTED) | curses.A_BOLD
    if style == "accent":
        return curses.color_pair(C_WARNING) | curses.A_BOLD
    return curses.color_pair(C_NORMAL)


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: Any, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_box(win: Any, y: int, x: int, h: int, w: int, title: str = "") -> Any:
    """Draw a bordered box and return the sub-window, or None if it can't fit."""
    max_y, max_x = win.getmaxyx()
    h = min(h, max_y - y)
    w = min(w, max_x - x)
    if h < 3 or w < 4:
        return None
    try:
        sub = win.subwin(h, w, y, x)
        sub.box()
        if title:
            attr = curses.color_pair(C_TITLE) | curses.A_BOLD
            _safe(sub, 0, 2, f" {title[: w - 6]} ", attr)
        return sub
    except curses.error:
        return None


def _draw_bar(win: Any, y: int, x: int, width: int, gauge: Gauge) -> None:
    """Render ``label ████░░░░ detail`` on one line."""
    max_y, max_x = win.getmaxyx()
    if y >= max_y - 1 or x >= max_x - 1:
        return
    color = _SEVERITY_PAIRS.get(gauge.severity, C_NORMAL)

    _safe(win, y, x, f"{gauge.label:>4s} ", curses.color_pair(C_TITLE))
    cx = x + 5
    suffix = f" {gauge.percent:5.1f}%"
    bar_w = min(width - 5 - len(suffix), max_x - cx - len(suffix) - 1, 20)
    if bar_w < 3:
        return

    filled = int(bar_w * min(max(gauge.percent, 0.0), 100.0) / 100.0)
    _safe(win, y, cx, BAR_FILL * filled, curses.color_pair(color) | curses.A_BOLD)
    _safe(win, BAR_EMPTY * (bar_w - filled), curses.color_pair(C_DIM))
    _safe(win, suffix, curses.color_pair(color) | curses.A_BOLD)


def _draw_header(win: Any, w: int) -> None:
    ts = time.strftime("%H:%M:%S")
    attr = curses.color_pair(C_TITLE) | curses.A_REVERSE
    _safe(win, 0, 0, " " * (w - 1), attr)
    _safe(win, 0, 1, "pimon", attr | curses.A_BOLD)
    hint = "Tab: view  q: quit"
    if w > len(hint) + len(ts) + 10:
        _safe(win, 0, max(0, w - len(hint) - 2), hint, attr)
    _safe(win, 0, max(7, (w - len(ts)) // 2), ts, attr)


# ── Renderer ───────────────────────────────────────────────────────────────


class CursesRenderer:
    """Draws a :class:`Frame` into the curses screen; no decisions of its own."""

    def __init__(self, stdscr: Any) -> None:
        self.stdscr = stdscr

    def draw(self, frame: Frame, geometry: tuple[int, int], full: bool = False) -> None:
        width, height = geometry
        scr = self.stdscr
        if full:
            scr.clear()
        else:
            scr.erase()
        _draw_header(scr, width)

        box = _draw_box(scr, 1, 0, height - 1, width, frame.title)
        if box is None:
            _safe(scr, 0, 0, "Terminal too small")
            scr.refresh()
            return

        inner_w = width - 2
        last_row = height - 3
        row = 1
        for item in frame.items:
            if row > last_row:
                break
            if isinstance(item, Gauge):
                _draw_bar(box, row, 1, inner_w, item)
                if item.detail and row + 1 <= last_row:
                    row += 1
                    detail = item.detail[: inner_w - 6]
                    _safe(box, row, 6, detail, curses.color_pair(C_DIM))
            elif isinstance(item, Line):
                text = item.text[:inner_w]
                if item.style == "selected":
                    text = text.ljust(inner_w)
                _safe(box, row, 1, text, _style_attr(item.style))
            row += 1

        if frame.sparkline and row + 1 <= last_row:
            row += 1
            _safe(box, row, 1, "CPU ", curses.color_pair(C_DIM))
            spark = sparkline(frame.sparkline, inner_w - 5)
            _safe(box, row, 5, spark, curses.color_pair(C_BLUE))

        scr.refresh()


# ── Main loop ──────────────────────────────────────────────────────────────


def _dashboard_loop(
    stdscr: Any, config: dict[str, Any], interval: float, state: dict[str, bool]
) -> None:
    _init_colors()
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.keypad(True)

    height, width = stdscr.getmaxyx()
    context = DashboardContext.from_config(config, geometry=(width, height))
    scheduler = RefreshScheduler(
        context,
        CursesEventSource(stdscr, interval),
        CursesRenderer(stdscr),
    )
    state["running"] = True
    scheduler.run()


def _setup_logging(log_file: str, level: str) -> None:
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root = logging.getLogger("pimon")
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


# ── CLI entry point ────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Live system dashboard for single-board computers.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between refreshes (default: 1.0, or the config value)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        metavar="PATH",
        help="Where to append the log (default: pimon.log)",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args(argv)

    if args.print_config:
        print(dump_default_config(), end="")
        return

    config = load_config(args.config)
    interval = args.interval if args.interval is not None else float(config["interval"])
    if interval <= 0:
        parser.error("--interval must be > 0")

    log_file = args.log_file or config["log_file"]
    try:
        _setup_logging(log_file, str(config.get("log_level", "INFO")))
    except OSError as e:
        print(f"pimon: warning: cannot open log file {log_file}: {e}", file=sys.stderr)

    logger.info("=== pimon started (interval %.2fs) ===", interval)
    state = {"running": False}
    try:
        curses.wrapper(_dashboard_loop, config, interval, state)
    except KeyboardInterrupt:
        pass
    except curses.error as e:
        if state["running"]:
            logger.critical("terminal error: %s", e)
            print(f"pimon: terminal error: {e}", file=sys.stderr)
        else:
            logger.critical("failed to initialise terminal: %s", e)
            print(f"pimon: failed to initialise terminal: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    logger.info("=== pimon stopped ===")


if __name__ == "__main__":
    main()
