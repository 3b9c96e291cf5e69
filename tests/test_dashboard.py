"""Tests for the curses renderer and CLI entry point."""

from __future__ import annotations

import curses
import logging
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from pimon.dashboard import CursesRenderer, _setup_logging, main
from pimon.views import Frame, Gauge, Line


class FakeWindow:
    """Records text written through addstr; raises like curses off-screen."""

    def __init__(self, height: int = 24, width: int = 80) -> None:
        self.height = height
        self.width = width
        self.writes: list[str] = []
        self.cleared = 0
        self.erased = 0
        self.children: list[FakeWindow] = []

    def getmaxyx(self) -> tuple[int, int]:
        return self.height, self.width

    def addstr(self, *args: Any) -> None:
        text = args[2] if len(args) >= 3 and isinstance(args[0], int) else args[0]
        if len(args) >= 3 and isinstance(args[0], int) and args[0] >= self.height:
            raise curses.error("off screen")
        self.writes.append(text)

    def subwin(self, h: int, w: int, y: int, x: int) -> FakeWindow:
        child = FakeWindow(h, w)
        self.children.append(child)
        return child

    def box(self) -> None:
        pass

    def clear(self) -> None:
        self.cleared += 1

    def erase(self) -> None:
        self.erased += 1

    def refresh(self) -> None:
        pass

    def all_text(self) -> str:
        return "\n".join(self.writes + [t for c in self.children for t in c.writes])


@pytest.fixture
def no_colors():
    with patch("pimon.dashboard.curses.color_pair", return_value=0):
        yield


# ── Renderer ───────────────────────────────────────────────────────────────


def test_renderer_draws_frame(no_colors: None) -> None:
    win = FakeWindow()
    frame = Frame(
        "System (1/3)",
        [Gauge("CPU", 50.0, "50.0%"), Line("Temp: N/A"), Line("row", "selected")],
        sparkline=(0.0, 100.0),
    )
    CursesRenderer(win).draw(frame, (80, 24))
    text = win.all_text()
    assert "System (1/3)" in text
    assert "Temp: N/A" in text
    assert "█" in text
    assert win.erased == 1
    assert win.cleared == 0


def test_renderer_full_redraw_clears(no_colors: None) -> None:
    win = FakeWindow()
    CursesRenderer(win).draw(Frame("x"), (80, 24), full=True)
    assert win.cleared == 1


def test_renderer_tolerates_tiny_terminal(no_colors: None) -> None:
    win = FakeWindow(height=2, width=10)
    CursesRenderer(win).draw(Frame("x", [Line("hello")]), (10, 2))
    assert "Terminal too small" in win.all_text()


def test_renderer_stops_at_bottom_edge(no_colors: None) -> None:
    win = FakeWindow(height=8, width=40)
    lines = [Line(f"line{i}") for i in range(50)]
    CursesRenderer(win).draw(Frame("p", lines), (40, 8))
    text = win.all_text()
    assert "line0" in text
    assert "line10" not in text


# ── CLI ────────────────────────────────────────────────────────────────────


def test_print_config(capsys: pytest.CaptureFixture[str]) -> None:
    main(["--print-config"])
    assert "history_size = 20" in capsys.readouterr().out


@patch("pimon.dashboard.load_config")
@patch("pimon.dashboard.curses.wrapper")
def test_display_init_failure_exits(
    wrapper: MagicMock,
    load: MagicMock,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    load.return_value = {"interval": 1.0, "log_file": str(tmp_path / "p.log")}
    wrapper.side_effect = curses.error("setupterm: could not find terminal")
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 1
    assert "failed to initialise terminal" in capsys.readouterr().err


@patch("pimon.dashboard.load_config")
@patch("pimon.dashboard.curses.wrapper", side_effect=KeyboardInterrupt)
def test_ctrl_c_exits_quietly(wrapper: MagicMock, load: MagicMock, tmp_path: Path) -> None:
    load.return_value = {"interval": 1.0, "log_file": str(tmp_path / "p.log")}
    main([])
    wrapper.assert_called_once()


@patch("pimon.dashboard.load_config")
@patch("pimon.dashboard.curses.wrapper")
def test_interval_flag_overrides_config(
    wrapper: MagicMock, load: MagicMock, tmp_path: Path
) -> None:
    load.return_value = {"interval": 1.0, "log_file": str(tmp_path / "p.log")}
    main(["--interval", "2.5"])
    assert wrapper.call_args.args[2] == 2.5


def test_setup_logging_writes_file(tmp_path: Path) -> None:
    log_file = tmp_path / "pimon.log"
    _setup_logging(str(log_file), "DEBUG")
    logging.getLogger("pimon.test").debug("hello from test")
    for handler in logging.getLogger("pimon").handlers:
        handler.flush()
    assert "hello from test" in log_file.read_text()
    logging.getLogger("pimon").handlers.clear()


@patch("pimon.dashboard.load_config")
@patch("pimon.dashboard.curses.wrapper")
def test_terminal_error_while_running_is_not_init_failure(
    wrapper: MagicMock,
    load: MagicMock,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    def fail_mid_run(loop: Any, config: Any, interval: float, state: dict[str, bool]) -> None:
        state["running"] = True
        raise curses.error("addwstr() returned ERR")

    load.return_value = {"interval": 1.0, "log_file": str(tmp_path / "p.log")}
    wrapper.side_effect = fail_mid_run
    with pytest.raises(SystemExit) as exc:
        main([])
    err = capsys.readouterr().err
    assert exc.value.code == 1
    assert "terminal error: addwstr() returned ERR" in err
    assert "initialise" not in err
    logging.getLogger("pimon").handlers.clear()


@patch("pimon.dashboard.load_config")
@patch("pimon.dashboard.curses.wrapper", side_effect=curses.error("no terminal"))
def test_dashboard_messages_reach_log_file(
    wrapper: MagicMock, load: MagicMock, tmp_path: Path
) -> None:
    log_file = tmp_path / "p.log"
    load.return_value = {"interval": 1.0, "log_file": str(log_file)}
    with pytest.raises(SystemExit):
        main([])
    for handler in logging.getLogger("pimon").handlers:
        handler.flush()
    text = log_file.read_text()
    assert "pimon.dashboard: === pimon started" in text
    assert "failed to initialise terminal: no terminal" in text
    logging.getLogger("pimon").handlers.clear()
