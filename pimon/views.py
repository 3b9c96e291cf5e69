"""Dashboard views and the display primitives handed to the renderer.

Each view is a small tagged variant; :func:`build_frame` is the one place
that maps the active variant to the function producing its :class:`Frame`.
Frames contain only finished strings and numbers, so the renderer needs no
knowledge of metrics.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pimon.metrics import ProcessRecord

if TYPE_CHECKING:
    from pimon.scheduler import DashboardContext

SPARK = " ▁▂▃▄▅▆▇█"
EMPTY_TABLE_MESSAGE = "No processes found"

# Screen rows the process list cannot use: header bar, box border top and
# bottom, column header and its rule.
_PROCESS_CHROME_ROWS = 5

_NPROC: int = os.cpu_count() or 1


# ── View variants ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SystemView:
    title: str = "System"


@dataclass(frozen=True)
class ProcessView:
    title: str = "Process"


@dataclass(frozen=True)
class NetworkView:
    title: str = "Network"


View = SystemView | ProcessView | NetworkView

VIEW_ORDER: tuple[View, ...] = (SystemView(), ProcessView(), NetworkView())


# ── Display primitives ─────────────────────────────────────────────────────

SEVERITY_NORMAL = "normal"
SEVERITY_WARNING = "warning"
SEVERITY_CRITICAL = "critical"


@dataclass(frozen=True)
class Gauge:
    """A labelled percentage bar."""

    label: str
    percent: float
    detail: str = ""
    severity: str = SEVERITY_NORMAL


@dataclass(frozen=True)
class Line:
    """One line of text; *style* is normal, header, dim, selected or accent."""

    text: str
    style: str = "normal"


@dataclass
class Frame:
    title: str
    items: list[Gauge | Line] = field(default_factory=list)
    sparkline: tuple[float, ...] = ()

    def texts(self) -> list[str]:
        """Plain text of every Line item, for logging and tests."""
        return [item.text for item in self.items if isinstance(item, Line)]


# ── Formatting helpers ─────────────────────────────────────────────────────


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def fmt_rate(kbps: float) -> str:
    """Transfer rate given in KB/s."""
    if kbps < 1024:
        return f"{kbps:.1f} KB/s"
    return f"{kbps / 1024:.1f} MB/s"


def fmt_uptime(seconds: float) -> str:
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    return f"{days}d {hours}h"


def fmt_temperature(celsius: float) -> str:
    if celsius > 0:
        return f"{celsius:.1f}°C"
    return "N/A"


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 2:
        return text[:width]
    return text[: width - 2] + ".."


def sparkline(values: Sequence[float], width: int, max_val: float = 100.0) -> str:
    """Render the most recent *width* values as block characters."""
    if width < 1 or not values:
        return ""
    chars: list[str] = []
    for v in list(values)[-width:]:
        idx = int(min(max(v, 0.0) / max_val, 1.0) * (len(SPARK) - 1))
        chars.append(SPARK[idx])
    return "".join(chars)


def severity(value: float, thresholds: dict[str, Any], metric: str) -> str:
    levels = thresholds.get(metric, {})
    if value >= float(levels.get("critical", float("inf"))):
        return SEVERITY_CRITICAL
    if value >= float(levels.get("warning", float("inf"))):
        return SEVERITY_WARNING
    return SEVERITY_NORMAL


def process_rows_for(height: int) -> int:
    """Rows the process list gets on a terminal *height* lines tall."""
    return max(1, height - _PROCESS_CHROME_ROWS)


# ── Frame builders ─────────────────────────────────────────────────────────


def _numbered(view: View) -> str:
    return f"{view.title} ({VIEW_ORDER.index(view) + 1}/{len(VIEW_ORDER)})"


def build_system_frame(view: SystemView, ctx: DashboardContext) -> Frame:
    snap = ctx.snapshot
    thresholds = ctx.config.get("thresholds", {})
    frame = Frame(f"{_numbered(view)} [Tab:Switch]")
    if snap is None:
        frame.items.append(Line("Collecting...", "dim"))
        return frame

    cpu = snap.cpu_average
    frame.items += [
        Gauge("CPU", cpu, "", severity(cpu, thresholds, "cpu_percent")),
        Gauge(
            "MEM",
            snap.mem_percent,
            f"{fmt_bytes(snap.mem_used)} / {fmt_bytes(snap.mem_total)}",
            severity(snap.mem_percent, thresholds, "mem_percent"),
        ),
        Gauge(
            "DSK",
            snap.disk_percent,
            f"{fmt_bytes(snap.disk_used)} / {fmt_bytes(snap.disk_total)}",
            severity(snap.disk_percent, thresholds, "disk_percent"),
        ),
        Line(""),
        Line("--System Info--", "header"),
        Line(
            f"Temp: {fmt_temperature(snap.temperature)}",
            "accent"
            if severity(snap.temperature, thresholds, "temperature") != SEVERITY_NORMAL
            else "normal",
        ),
        Line(f"Uptime: {fmt_uptime(snap.uptime)}"),
        Line(f"Cores: {len(snap.cpu_per_core) or _NPROC}"),
        Line(f"Procs: {snap.process_count}"),
        Line(
            f"Load: {snap.load_avg[0]:.2f} {snap.load_avg[1]:.2f} {snap.load_avg[2]:.2f}"
        ),
        Line(""),
        Line("--Network Info--", "header"),
        Line(f"IP: {snap.ip_address}"),
        Line(f"Mode: {snap.network_mode}"),
    ]
    frame.sparkline = ctx.history.as_sequence()
    return frame


def _fmt_ports(ports: tuple[int, ...], width: int = 16) -> str:
    return truncate(",".join(str(p) for p in ports), width) if ports else "-"


def process_header() -> str:
    return (
        f"{'PID':>7s} {'NAME':<14s} {'USER':<8s} S {'CPU%':>5s} {'MEM%':>5s}"
        f" {'CONN':>4s} PORTS"
    )


def process_line(proc: ProcessRecord) -> str:
    return (
        f"{proc.pid:>7d} {truncate(proc.name, 14):<14s} "
        f"{truncate(proc.username, 8):<8s} {proc.status[:1] or '?'} "
        f"{proc.cpu_percent:>5.1f} {proc.memory_percent:>5.1f}"
        f" {proc.connections:>4d} {_fmt_ports(proc.listen_ports)}"
    )


def build_process_frame(view: ProcessView, ctx: DashboardContext) -> Frame:
    vp = ctx.viewport
    total = len(ctx.table)
    if vp.selected is None or total == 0:
        return Frame(_numbered(view), [Line(EMPTY_TABLE_MESSAGE, "dim")])

    frame = Frame(f"{_numbered(view)} {vp.selected + 1}/{total} [↑↓:Move]")
    frame.items.append(Line(process_header(), "header"))
    frame.items.append(Line("─" * len(process_header()), "dim"))
    for index in vp.window:
        style = "selected" if index == vp.selected else "normal"
        frame.items.append(Line(process_line(ctx.table[index]), style))
    return frame


def build_network_frame(view: NetworkView, ctx: DashboardContext) -> Frame:
    snap = ctx.snapshot
    frame = Frame(f"{_numbered(view)} [Tab:Switch]")
    if snap is None:
        frame.items.append(Line("Collecting...", "dim"))
        return frame

    sent_rate, recv_rate = ctx.net_rates
    frame.items += [
        Line(""),
        Line("--Total Transfer--", "header"),
        Line("Total Upload:"),
        Line(f"  {snap.net_sent / 1024 / 1024:.1f} MB", "accent"),
        Line("Total Download:"),
        Line(f"  {snap.net_recv / 1024 / 1024:.1f} MB", "accent"),
        Line(""),
        Line("--Current Speed--", "header"),
        Line("Upload:"),
        Line(f"  {fmt_rate(sent_rate)}", "accent"),
        Line("Download:"),
        Line(f"  {fmt_rate(recv_rate)}", "accent"),
        Line(""),
        Line(f"IP: {snap.ip_address}"),
        Line(f"Mode: {snap.network_mode}"),
    ]
    return frame


_BUILDERS: dict[type, Callable[[Any, DashboardContext], Frame]] = {
    SystemView: build_system_frame,
    ProcessView: build_process_frame,
    NetworkView: build_network_frame,
}


def build_frame(view: View, ctx: DashboardContext) -> Frame:
    """Build the frame for whichever view is active."""
    return _BUILDERS[type(view)](view, ctx)


def next_view(view: View) -> View:
    return VIEW_ORDER[(VIEW_ORDER.index(view) + 1) % len(VIEW_ORDER)]
