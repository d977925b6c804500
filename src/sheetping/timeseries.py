"""Time-series layout kept in one worksheet per host.

Row 1 holds the headers, row 2 the latest non-empty value of every column,
and the remaining rows the measurements, oldest first.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from . import config
from .errors import SheetNotFoundError
from .hosts import Target
from .stats import ProbeResult
from .store import TabularStore

log = logging.getLogger(__name__)


def metric_columns(target_name: str) -> List[str]:
    return [f"{target_name}_{metric}" for metric in config.METRICS]


def merge_headers(existing: Sequence[str], targets: Iterable[Target]) -> List[str]:
    """Return ``existing`` plus any missing metric columns for ``targets``.

    Existing columns keep their positions and TIMESTAMP is always first.
    """
    headers = list(existing)
    if not headers or headers[0] != config.TIMESTAMP_COLUMN:
        headers.insert(0, config.TIMESTAMP_COLUMN)
    seen = set(headers)
    for target in targets:
        for column in metric_columns(target.name):
            if column not in seen:
                headers.append(column)
                seen.add(column)
    return headers


def build_row(
    headers: Sequence[str], results: Iterable[ProbeResult], timestamp: str
) -> List[object]:
    """Lay out one measurement row to match ``headers``.

    Columns without a value stay empty.
    """
    index: Dict[str, int] = {}
    for idx, name in enumerate(headers):
        index.setdefault(name, idx)
    row: List[object] = [""] * len(headers)
    row[index[config.TIMESTAMP_COLUMN]] = timestamp
    for r in results:
        values = (r.rtt, r.jtt, r.sent, r.drops)
        for column, value in zip(metric_columns(r.target.name), values):
            idx = index.get(column)
            if idx is not None:
                row[idx] = value
    return row


def latest_formula(index: int) -> str:
    """Formula giving the last non-empty data cell of column ``index``."""
    data = f"OFFSET(A{config.RESERVED_ROWS + 1}:A,0,{index})"
    return (
        f"=IFERROR(INDEX(OFFSET(A:A,0,{index}),"
        f'MAX(ROW({data})*({data}<>""))),"")'
    )


def _blank(value: object) -> bool:
    return value is None or value == ""


def latest_values(values: Sequence[Sequence[object]]) -> List[object]:
    """Last non-empty data value of every header column, or "" when none."""
    if not values:
        return []
    width = len(values[0])
    data = values[config.RESERVED_ROWS :]
    latest: List[object] = []
    for idx in range(width):
        found: object = ""
        for row in reversed(data):
            if idx < len(row) and not _blank(row[idx]):
                found = row[idx]
                break
        latest.append(found)
    return latest


class TimeSeriesSheet:
    """One host's worksheet in a TabularStore."""

    def __init__(self, store: TabularStore, name: str):
        self.store = store
        self.name = name

    def sheet_id(self) -> Optional[int]:
        try:
            return self.store.get_sheet_id(self.name)
        except SheetNotFoundError:
            return None

    def exists(self) -> bool:
        return self.sheet_id() is not None

    def create(self) -> None:
        log.info("Create worksheet %s", self.name)
        self.store.create_sheet(self.name)

    def reconcile_headers(self, targets: Iterable[Target]) -> List[str]:
        """Make sure every target has its metric columns and return the headers."""
        existing = self.store.read_header_row(self.name)
        headers = merge_headers(existing, targets)
        self.store.write_header_row(self.name, headers)
        added = len(headers) - len(existing)
        if added > 0:
            log.info("Added %d new headers", added)
        return headers

    def append(
        self, headers: Sequence[str], results: Iterable[ProbeResult], timestamp: str
    ) -> List[object]:
        row = build_row(headers, results, timestamp)
        self.store.append_row(self.name, row)
        return row

    def snapshot(self) -> Dict[str, object]:
        values = self.store.read_values(self.name)
        if not values:
            return {}
        return dict(zip((str(h) for h in values[0]), latest_values(values)))

    def refresh_snapshot(self, headers: Sequence[str]) -> None:
        if self.store.supports_formulas:
            row: List[object] = [latest_formula(idx) for idx in range(len(headers))]
        else:
            row = latest_values(self.store.read_values(self.name))
        self.store.write_snapshot_row(self.name, row)

    def evict(self, max_rows: int) -> int:
        """Delete the oldest data rows above ``max_rows``. Returns rows deleted."""
        data_rows = self.store.get_row_count(self.name) - config.RESERVED_ROWS
        if data_rows <= max_rows:
            log.debug("No rows to delete, %d rows within max of %d", data_rows, max_rows)
            return 0
        excess = data_rows - max_rows
        self.store.delete_rows(self.name, config.RESERVED_ROWS, excess)
        log.debug("Cleared %d rows", excess)
        return excess
