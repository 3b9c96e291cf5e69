"""Tests for pimon.process_table."""

from __future__ import annotations

from pimon.metrics import ProcessRecord
from pimon.process_table import ProcessTable


def _rec(pid: int, cpu: float) -> ProcessRecord:
    return ProcessRecord(pid=pid, name=f"p{pid}", cpu_percent=cpu)


def test_sorted_by_cpu_descending() -> None:
    table = ProcessTable()
    rows = table.rebuild([_rec(1, 5.0), _rec(2, 50.0), _rec(3, 20.0)])
    assert [p.pid for p in rows] == [2, 3, 1]


def test_ties_keep_input_order() -> None:
    table = ProcessTable()
    records = [_rec(7, 1.0), _rec(3, 9.0), _rec(5, 1.0), _rec(1, 1.0)]
    assert [p.pid for p in table.rebuild(records)] == [3, 7, 5, 1]


def test_rebuild_is_deterministic() -> None:
    records = [_rec(i, float(i % 3)) for i in range(30)]
    first = ProcessTable(records).rows
    second = ProcessTable(records).rows
    assert first == second


def test_rebuild_replaces_previous_rows() -> None:
    table = ProcessTable([_rec(1, 1.0), _rec(2, 2.0)])
    table.rebuild([_rec(9, 0.0)])
    assert len(table) == 1
    assert table[0].pid == 9


def test_no_filtering_or_dedup() -> None:
    table = ProcessTable([_rec(1, 0.0), _rec(1, 0.0)])
    assert len(table) == 2


def test_window_slices_rows() -> None:
    table = ProcessTable([_rec(i, float(10 - i)) for i in range(5)])
    assert [p.pid for p in table.window(1, 3)] == [1, 2]
    assert table.window(4, 10) == (table[4],)


def test_empty() -> None:
    table = ProcessTable()
    assert len(table) == 0
    assert list(table) == []
