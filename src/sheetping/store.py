from __future__ import annotations

import abc
import itertools
from typing import Dict, List, Sequence

from . import config
from .errors import SheetNotFoundError, StoreError

Row = Dict[str, object]


def rows_from_values(values: Sequence[Sequence[object]]) -> List[Row]:
    """Key every row after the first by the lower-cased first-row headers.

    Ragged rows only carry the cells they have.
    """
    if not values:
        return []
    headers = [str(h).lower() for h in values[0]]
    rows: List[Row] = []
    for raw in values[1:]:
        rows.append({h: raw[idx] for idx, h in enumerate(headers) if idx < len(raw)})
    return rows


class TabularStore(abc.ABC):
    """Sheet-like store used both as config source and time-series sink.

    Row indexes are zero-based; index 0 is the header row.
    """

    # True when the store evaluates spreadsheet formulas written to cells
    supports_formulas = False

    @abc.abstractmethod
    def read_values(self, name: str) -> List[List[object]]:
        """Raw rows, header first."""

    def read_rows(self, name: str) -> List[Row]:
        return rows_from_values(self.read_values(name))

    @abc.abstractmethod
    def read_header_row(self, name: str) -> List[str]: ...

    @abc.abstractmethod
    def write_header_row(self, name: str, headers: Sequence[str]) -> None: ...

    @abc.abstractmethod
    def write_snapshot_row(self, name: str, values: Sequence[object]) -> None: ...

    @abc.abstractmethod
    def append_row(self, name: str, values: Sequence[object]) -> None: ...

    @abc.abstractmethod
    def delete_rows(self, name: str, start: int, count: int) -> None: ...

    @abc.abstractmethod
    def create_sheet(self, name: str) -> None: ...

    @abc.abstractmethod
    def get_row_count(self, name: str) -> int: ...

    @abc.abstractmethod
    def get_sheet_id(self, name: str) -> int: ...


class InMemoryStore(TabularStore):
    """A TabularStore held in process memory.

    Used by the tests, and the reference for the row layout a backing store
    has to provide.
    """

    def __init__(self) -> None:
        self._sheets: Dict[str, List[List[object]]] = {}
        self._ids: Dict[str, int] = {}
        self._next_id = itertools.count(1)

    def _sheet(self, name: str) -> List[List[object]]:
        try:
            return self._sheets[name]
        except KeyError:
            raise SheetNotFoundError(name) from None

    def load(self, name: str, values: Sequence[Sequence[object]]) -> None:
        """Create or replace a worksheet with the given raw rows."""
        if name not in self._sheets:
            self._ids[name] = next(self._next_id)
        self._sheets[name] = [list(r) for r in values]

    def read_values(self, name: str) -> List[List[object]]:
        return [list(r) for r in self._sheet(name)]

    def read_header_row(self, name: str) -> List[str]:
        sheet = self._sheet(name)
        return [str(h) for h in sheet[0]] if sheet else []

    def _write_row(self, name: str, index: int, values: Sequence[object]) -> None:
        sheet = self._sheet(name)
        while len(sheet) <= index:
            sheet.append([])
        sheet[index] = list(values)

    def write_header_row(self, name: str, headers: Sequence[str]) -> None:
        self._write_row(name, 0, headers)

    def write_snapshot_row(self, name: str, values: Sequence[object]) -> None:
        self._write_row(name, 1, values)

    def append_row(self, name: str, values: Sequence[object]) -> None:
        self._sheet(name).append(list(values))

    def delete_rows(self, name: str, start: int, count: int) -> None:
        del self._sheet(name)[start : start + count]

    def create_sheet(self, name: str) -> None:
        if name in self._sheets:
            raise StoreError(f"worksheet {name!r} already exists")
        self._ids[name] = next(self._next_id)
        self._sheets[name] = [[] for _ in range(config.RESERVED_ROWS)]

    def get_row_count(self, name: str) -> int:
        return len(self._sheet(name))

    def get_sheet_id(self, name: str) -> int:
        self._sheet(name)
        return self._ids[name]
