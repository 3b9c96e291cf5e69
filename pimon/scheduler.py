"""Single-threaded refresh loop.

The loop merges a periodic timer with keyboard and resize input and services
exactly one event at a time, so a refresh never interleaves with a
half-applied navigation command. Metric collection is a blocking call made
from inside the loop; a slow collector delays everything behind it and
missed ticks are then delivered back to back.
"""

from __future__ import annotations

import curses
import logging
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from pimon.history import HistoryBuffer
from pimon.metrics import MetricsSource, NetworkRate, Snapshot
from pimon.process_table import ProcessTable
from pimon.viewport import ViewportController
from pimon.views import (
    VIEW_ORDER,
    Frame,
    ProcessView,
    View,
    build_frame,
    next_view,
    process_rows_for,
)

logger = logging.getLogger(__name__)


# ── Events ─────────────────────────────────────────────────────────────────


class EventKind(Enum):
    TICK = "tick"
    QUIT = "quit"
    SWITCH_VIEW = "switch_view"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    RESIZE = "resize"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    width: int = 0
    height: int = 0


TICK = Event(EventKind.TICK)
QUIT = Event(EventKind.QUIT)


def resize_event(width: int, height: int) -> Event:
    return Event(EventKind.RESIZE, width, height)


_NAVIGATION = {
    EventKind.MOVE_UP: ViewportController.move_up,
    EventKind.MOVE_DOWN: ViewportController.move_down,
    EventKind.PAGE_UP: ViewportController.page_up,
    EventKind.PAGE_DOWN: ViewportController.page_down,
    EventKind.HOME: ViewportController.home,
    EventKind.END: ViewportController.end,
}


# ── Collaborators ──────────────────────────────────────────────────────────


class SnapshotSource(Protocol):
    def sample(self) -> Snapshot: ...


class Renderer(Protocol):
    def draw(self, frame: Frame, geometry: tuple[int, int], full: bool = False) -> None: ...


# ── Context ────────────────────────────────────────────────────────────────


@dataclass
class DashboardContext:
    """All mutable dashboard state, passed explicitly to every handler."""

    config: dict[str, Any]
    source: SnapshotSource
    history: HistoryBuffer
    table: ProcessTable = field(default_factory=ProcessTable)
    viewport: ViewportController = field(default_factory=ViewportController)
    net_rate: NetworkRate = field(default_factory=NetworkRate)
    view: View = VIEW_ORDER[0]
    snapshot: Snapshot | None = None
    net_rates: tuple[float, float] = (0.0, 0.0)
    geometry: tuple[int, int] = (80, 24)  # (width, height)

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        source: SnapshotSource | None = None,
        geometry: tuple[int, int] = (80, 24),
    ) -> DashboardContext:
        if source is None:
            source = MetricsSource(
                disk_path=config.get("disk_path", "/"),
                thermal_zone=config.get(
                    "thermal_zone", "/sys/class/thermal/thermal_zone0/temp"
                ),
            )
        return cls(
            config=config,
            source=source,
            history=HistoryBuffer(int(config.get("history_size", 20))),
            viewport=ViewportController(
                visible_height=process_rows_for(geometry[1]),
                page_size=int(config.get("page_size", 10)),
            ),
            geometry=geometry,
        )

    def refresh(self) -> None:
        """Run one refresh cycle: sample, record history, rebuild, reconcile."""
        snapshot = self.source.sample()
        self.snapshot = snapshot
        self.history.push(snapshot.cpu_average)
        self.table.rebuild(snapshot.processes)
        self.viewport.table_rebuilt(len(self.table))
        self.net_rates = self.net_rate.update(snapshot)

    def frame(self) -> Frame:
        return build_frame(self.view, self)


# ── Scheduler ──────────────────────────────────────────────────────────────


class RefreshScheduler:
    """Services events from *events* until Quit or the stream ends."""

    def __init__(
        self,
        context: DashboardContext,
        events: Iterable[Event],
        renderer: Renderer,
    ) -> None:
        self.context = context
        self.events = events
        self.renderer = renderer
        self.ticks = 0

    def run(self) -> None:
        ctx = self.context
        ctx.refresh()
        self._draw(full=True)
        for event in self.events:
            if not self.dispatch(event):
                logger.info("quit requested after %d ticks", self.ticks)
                return

    def dispatch(self, event: Event) -> bool:
        """Apply one event to completion. Returns False when the loop should stop."""
        ctx = self.context
        kind = event.kind

        if kind is EventKind.QUIT:
            return False

        if kind is EventKind.TICK:
            self.ticks += 1
            ctx.refresh()
            self._draw()
        elif kind is EventKind.SWITCH_VIEW:
            ctx.view = next_view(ctx.view)
            logger.debug("switched to %s view", ctx.view.title)
            self._draw(full=True)
        elif kind is EventKind.RESIZE:
            ctx.geometry = (max(1, event.width), max(1, event.height))
            ctx.viewport.resize(process_rows_for(ctx.geometry[1]))
            logger.info("terminal resized to %dx%d", *ctx.geometry)
            self._draw(full=True)
        elif kind in _NAVIGATION:
            # Navigation works on the table from the last tick; nothing is
            # re-sampled here, whichever direction the cursor moves.
            if isinstance(ctx.view, ProcessView):
                _NAVIGATION[kind](ctx.viewport)
                self._draw()
        return True

    def _draw(self, full: bool = False) -> None:
        ctx = self.context
        self.renderer.draw(ctx.frame(), ctx.geometry, full)


# ── Curses input ───────────────────────────────────────────────────────────

_CTRL_C = 3
_TAB = 9

_KEYMAP: dict[int, EventKind] = {
    ord("q"): EventKind.QUIT,
    ord("Q"): EventKind.QUIT,
    _CTRL_C: EventKind.QUIT,
    _TAB: EventKind.SWITCH_VIEW,
    curses.KEY_UP: EventKind.MOVE_UP,
    ord("k"): EventKind.MOVE_UP,
    curses.KEY_DOWN: EventKind.MOVE_DOWN,
    ord("j"): EventKind.MOVE_DOWN,
    curses.KEY_PPAGE: EventKind.PAGE_UP,
    curses.KEY_NPAGE: EventKind.PAGE_DOWN,
    curses.KEY_HOME: EventKind.HOME,
    ord("g"): EventKind.HOME,
    curses.KEY_END: EventKind.END,
    ord("G"): EventKind.END,
}


def key_event(key: int, stdscr: Any = None) -> Event | None:
    """Translate a curses key code into an event; None for unbound keys."""
    if key == curses.KEY_RESIZE:
        if stdscr is None:
            return None
        height, width = stdscr.getmaxyx()
        return resize_event(width, height)
    kind = _KEYMAP.get(key)
    return Event(kind) if kind is not None else None


class CursesEventSource:
    """Merges a monotonic tick deadline with ``getch`` input.

    ``getch`` blocks for at most the time left until the next tick. Once the
    deadline has passed, pending input is polled without blocking and a tick
    is produced; the deadline advances by one interval, so ticks that fall
    due during slow work are delivered late but never lost, and at least one
    key is read between any two ticks.
    """

    def __init__(self, stdscr: Any, interval: float, clock=time.monotonic) -> None:
        self.stdscr = stdscr
        self.interval = interval
        self.clock = clock
        self.next_tick = clock() + interval

    def _read_key(self) -> Event | None:
        key = self.stdscr.getch()
        if key == -1:
            return None
        return key_event(key, self.stdscr)

    def __iter__(self) -> Iterator[Event]:
        while True:
            now = self.clock()
            if now >= self.next_tick:
                self.stdscr.timeout(0)
                event = self._read_key()
                if event is not None:
                    yield event
                self.next_tick += self.interval
                yield TICK
                continue
            self.stdscr.timeout(max(1, int((self.next_tick - now) * 1000)))
            event = self._read_key()
            if event is not None:
                yield event
