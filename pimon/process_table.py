"""CPU-ordered process list rebuilt on every refresh."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from pimon.metrics import ProcessRecord


class ProcessTable:
    """Processes sorted by CPU usage, busiest first.

    Python's sort is stable, so processes with equal CPU keep the order the
    metrics source reported them in. The table is replaced wholesale on each
    rebuild; nothing is carried over from the previous snapshot.
    """

    def __init__(self, records: Iterable[ProcessRecord] = ()) -> None:
        self._rows: tuple[ProcessRecord, ...] = ()
        self.rebuild(records)

    def rebuild(self, records: Iterable[ProcessRecord]) -> tuple[ProcessRecord, ...]:
        self._rows = tuple(sorted(records, key=lambda p: p.cpu_percent, reverse=True))
        return self._rows

    @property
    def rows(self) -> tuple[ProcessRecord, ...]:
        return self._rows

    def window(self, start: int, end: int) -> tuple[ProcessRecord, ...]:
        return self._rows[start:end]

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, index: int) -> ProcessRecord:
        return self._rows[index]

    def __iter__(self) -> Iterator[ProcessRecord]:
        return iter(self._rows)
