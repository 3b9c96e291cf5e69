"""System metric collection for the dashboard.

Every field of a :class:`Snapshot` is read independently. A reading that
fails is logged at debug level and replaced by a sentinel (``0``, ``0.0``,
an empty tuple or ``"N/A"``) so one broken sensor never costs a refresh.
"""

from __future__ import annotations

import logging
import os
import socket
import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import psutil

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors a single best-effort reading may raise
_READ_ERRORS = (OSError, psutil.Error, ValueError, AttributeError)

# ps(1)-style one-letter codes for psutil status strings
_STATUS_CODES: dict[str, str] = {
    psutil.STATUS_RUNNING: "R",
    psutil.STATUS_SLEEPING: "S",
    psutil.STATUS_DISK_SLEEP: "D",
    psutil.STATUS_STOPPED: "T",
    psutil.STATUS_TRACING_STOP: "t",
    psutil.STATUS_ZOMBIE: "Z",
    psutil.STATUS_DEAD: "X",
    psutil.STATUS_IDLE: "I",
    psutil.STATUS_WAKING: "W",
    psutil.STATUS_PARKED: "P",
}

_AP_DAEMON = "hostapd"


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProcessRecord:
    """One process as seen at sample time."""

    pid: int
    ppid: int = 0
    name: str = ""
    username: str = ""
    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    status: str = "?"
    connections: int = 0
    listen_ports: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Immutable bundle of every metric collected in one refresh cycle."""

    cpu_per_core: tuple[float, ...] = ()
    mem_percent: float = 0.0
    mem_used: int = 0
    mem_total: int = 0
    disk_percent: float = 0.0
    disk_used: int = 0
    disk_total: int = 0
    temperature: float = 0.0  # 0.0 = unavailable
    uptime: float = 0.0
    net_sent: int = 0
    net_recv: int = 0
    load_avg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    process_count: int = 0
    processes: tuple[ProcessRecord, ...] = ()
    ip_address: str = "N/A"
    network_mode: str = "Client Mode"
    taken_at: float = 0.0

    @property
    def cpu_average(self) -> float:
        if not self.cpu_per_core:
            return 0.0
        return sum(self.cpu_per_core) / len(self.cpu_per_core)


# ── Best-effort readers ────────────────────────────────────────────────────


def _best_effort(what: str, read: Callable[[], T], default: T) -> T:
    try:
        return read()
    except _READ_ERRORS as e:
        logger.debug("%s unavailable: %s", what, e)
        return default


def status_code(status: str | None) -> str:
    """Map a psutil status string to a single-character code."""
    if not status:
        return "?"
    return _STATUS_CODES.get(status, status[0].upper())


def read_temperature(thermal_zone: str) -> float:
    """CPU temperature in °C, or 0.0 when no sensor can be read.

    The sysfs thermal zone is tried first (what a Raspberry Pi exposes),
    then psutil's sensor table.
    """
    try:
        with open(thermal_zone) as f:
            return int(f.read().strip()) / 1000.0
    except (OSError, ValueError):
        pass
    try:
        temps = psutil.sensors_temperatures()
    except _READ_ERRORS as e:
        logger.debug("temperature sensors unavailable: %s", e)
        return 0.0
    if not temps:
        return 0.0
    for chip in ("cpu_thermal", "coretemp", "k10temp", "acpitz"):
        if chip in temps and temps[chip]:
            return float(temps[chip][0].current)
    for entries in temps.values():
        if entries:
            return float(entries[0].current)
    return 0.0


def read_ip_address() -> str:
    """First IPv4 address of an interface that is up and not loopback."""
    try:
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except _READ_ERRORS as e:
        logger.debug("interface list unavailable: %s", e)
        return "N/A"
    for name, entries in addrs.items():
        st = stats.get(name)
        if st is None or not st.isup or name.startswith("lo"):
            continue
        for entry in entries:
            if entry.family == socket.AF_INET and not entry.address.startswith("127."):
                return str(entry.address)
    return "No IP"


def network_mode(processes: tuple[ProcessRecord, ...]) -> str:
    """Report "AP Mode" while an access-point daemon is running."""
    for proc in processes:
        if _AP_DAEMON in proc.name.lower():
            return "AP Mode"
    return "Client Mode"


def _scan_connections() -> tuple[dict[int, int], dict[int, set[int]]]:
    """Group inet connections by owning pid: (count, listening ports)."""
    counts: dict[int, int] = defaultdict(int)
    ports: dict[int, set[int]] = defaultdict(set)
    try:
        conns = psutil.net_connections(kind="inet")
    except _READ_ERRORS as e:
        logger.debug("connection table unavailable: %s", e)
        return {}, {}
    for conn in conns:
        if conn.pid is None:
            continue
        counts[conn.pid] += 1
        if conn.status == psutil.CONN_LISTEN and conn.laddr:
            ports[conn.pid].add(conn.laddr.port)
    return dict(counts), dict(ports)


def collect_processes() -> tuple[ProcessRecord, ...]:
    """Snapshot every running process, in collection order.

    Processes that vanish or deny access mid-scan are skipped.
    """
    counts, ports = _scan_connections()
    records: list[ProcessRecord] = []
    for proc in psutil.process_iter(
        ["pid", "ppid", "name", "username", "cpu_percent", "memory_percent", "status"],
    ):
        try:
            info: dict[str, Any] = proc.info
            pid: int = info.get("pid", 0)
            records.append(
                ProcessRecord(
                    pid=pid,
                    ppid=info.get("ppid") or 0,
                    name=info.get("name") or "?",
                    username=info.get("username") or "",
                    cpu_percent=info.get("cpu_percent") or 0.0,
                    memory_percent=info.get("memory_percent") or 0.0,
                    status=status_code(info.get("status")),
                    connections=counts.get(pid, 0),
                    listen_ports=tuple(sorted(ports.get(pid, ()))),
                )
            )
        except (psutil.NoSuchProcess, psutil.AccessDenied, AttributeError):
            continue
    return tuple(records)


# ── Source ─────────────────────────────────────────────────────────────────


class MetricsSource:
    """Blocking, synchronous producer of :class:`Snapshot` values."""

    def __init__(
        self,
        disk_path: str = "/",
        thermal_zone: str = "/sys/class/thermal/thermal_zone0/temp",
    ) -> None:
        self.disk_path = disk_path
        self.thermal_zone = thermal_zone
        # First cpu_percent call always reports 0.0; prime the counters.
        _best_effort("cpu", lambda: psutil.cpu_percent(interval=None, percpu=True), [])

    def sample(self) -> Snapshot:
        cpu = _best_effort(
            "cpu", lambda: psutil.cpu_percent(interval=None, percpu=True), []
        )
        ram = _best_effort("memory", psutil.virtual_memory, None)
        disk = _best_effort("disk", lambda: psutil.disk_usage(self.disk_path), None)
        net = _best_effort("network counters", psutil.net_io_counters, None)
        boot = _best_effort("boot time", psutil.boot_time, 0.0)
        load = _best_effort("load average", os.getloadavg, (0.0, 0.0, 0.0))
        processes = _best_effort("process list", collect_processes, ())

        return Snapshot(
            cpu_per_core=tuple(float(c) for c in cpu),
            mem_percent=ram.percent if ram is not None else 0.0,
            mem_used=ram.used if ram is not None else 0,
            mem_total=ram.total if ram is not None else 0,
            disk_percent=disk.percent if disk is not None else 0.0,
            disk_used=disk.used if disk is not None else 0,
            disk_total=disk.total if disk is not None else 0,
            temperature=read_temperature(self.thermal_zone),
            uptime=max(0.0, time.time() - boot) if boot else 0.0,
            net_sent=net.bytes_sent if net is not None else 0,
            net_recv=net.bytes_recv if net is not None else 0,
            load_avg=(float(load[0]), float(load[1]), float(load[2])),
            process_count=len(processes),
            processes=processes,
            ip_address=read_ip_address(),
            network_mode=network_mode(processes),
            taken_at=time.monotonic(),
        )


class NetworkRate:
    """Turns cumulative network counters into KB/s between two snapshots.

    Only the previous snapshot's counters are kept; each update moves the
    baseline forward.
    """

    def __init__(self) -> None:
        self._prev_sent: int | None = None
        self._prev_recv: int = 0
        self._prev_time: float = 0.0

    def update(self, snapshot: Snapshot) -> tuple[float, float]:
        """Return ``(sent_kbps, recv_kbps)`` and rebase on *snapshot*."""
        sent_rate = recv_rate = 0.0
        if self._prev_sent is not None:
            dt = snapshot.taken_at - self._prev_time
            if dt > 0:
                sent_rate = max(0, snapshot.net_sent - self._prev_sent) / 1024 / dt
                recv_rate = max(0, snapshot.net_recv - self._prev_recv) / 1024 / dt
        self._prev_sent = snapshot.net_sent
        self._prev_recv = snapshot.net_recv
        self._prev_time = snapshot.taken_at
        return sent_rate, recv_rate
