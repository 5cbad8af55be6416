# product_research/storage/record_store.py

"""Named-column, ordered-row tabular store used for a research batch.

Row 1 is always the header; data rows start at row 2.  Columns are
addressed by exact header name and are 1-based; a missing name maps
to 0.  Unknown columns are only ever appended, never inserted, so a
column created at position ``k`` keeps that position for the lifetime
of the batch.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from typing import Any

from product_research.errors import SchemaError

logger = logging.getLogger("product_research.store")

HEADER_ROW = 1
FIRST_DATA_ROW = 2
NOT_FOUND = 0


class RecordStore(ABC):
    """Contract shared by every tabular backend."""

    @abstractmethod
    def header(self) -> list[str]:
        """Return the ordered column names."""
        ...

    @abstractmethod
    def ensure_column(self, name: str) -> int:
        """Return the 1-based index of *name*, appending it if absent."""
        ...

    @abstractmethod
    def read_row(self, row: int) -> dict[str, Any]:
        """Return ``{column: value}`` for a data row (blank cells are '')."""
        ...

    @abstractmethod
    def write_cell(self, row: int, column: str, value: Any) -> None:
        """Write one cell by column name, creating the column if needed."""
        ...

    @abstractmethod
    def append_rows(self, rows: Sequence[Sequence[Any]]) -> None:
        """Append data rows after the last existing row."""
        ...

    @abstractmethod
    def row_count(self) -> int:
        """Number of data rows (header excluded)."""
        ...

    def column_index(self, name: str) -> int:
        """1-based index of *name*, or NOT_FOUND."""
        try:
            return self.header().index(name) + 1
        except ValueError:
            return NOT_FOUND

    def data_rows(self) -> Iterator[tuple[int, dict[str, Any]]]:
        """Yield ``(row_number, row)`` for every data row in order."""
        for row in range(FIRST_DATA_ROW, FIRST_DATA_ROW + self.row_count()):
            yield row, self.read_row(row)

    def _check_row(self, row: int) -> None:
        last = FIRST_DATA_ROW + self.row_count() - 1
        if not FIRST_DATA_ROW <= row <= last:
            msg = f"Row {row} outside data range {FIRST_DATA_ROW}..{last}"
            raise IndexError(msg)


class MemoryRecordStore(RecordStore):
    """List-backed store for ephemeral runs and tests."""

    def __init__(self, header: Sequence[str] = ()) -> None:
        self._header: list[str] = []
        self._rows: list[list[Any]] = []
        for name in header:
            self.ensure_column(name)

    def header(self) -> list[str]:
        return list(self._header)

    def ensure_column(self, name: str) -> int:
        index = self.column_index(name)
        if index != NOT_FOUND:
            return index
        self._header.append(name)
        logger.debug("Appended column '%s' at %d", name, len(self._header))
        return len(self._header)

    def read_row(self, row: int) -> dict[str, Any]:
        self._check_row(row)
        values = self._rows[row - FIRST_DATA_ROW]
        return {
            name: values[i] if i < len(values) else ""
            for i, name in enumerate(self._header)
        }

    def write_cell(self, row: int, column: str, value: Any) -> None:
        self._check_row(row)
        index = self.ensure_column(column)
        values = self._rows[row - FIRST_DATA_ROW]
        if len(values) < index:
            values.extend([""] * (index - len(values)))
        values[index - 1] = value

    def append_rows(self, rows: Sequence[Sequence[Any]]) -> None:
        for values in rows:
            self._rows.append(list(values))

    def row_count(self) -> int:
        return len(self._rows)


class SchemaRegistry:
    """Logical field name to column position mapping for one batch.

    Built once from the store header; ``ensure`` creates missing columns
    through the store, ``lookup`` never does.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._positions: dict[str, int] = {
            name: i + 1 for i, name in enumerate(store.header())
        }

    def lookup(self, name: str) -> int:
        """Column position of *name*, or NOT_FOUND."""
        return self._positions.get(name, NOT_FOUND)

    def ensure(self, name: str) -> int:
        """Column position of *name*, appending the column if absent."""
        position = self._positions.get(name)
        if position is None:
            position = self._store.ensure_column(name)
            self._positions[name] = position
        return position

    def require(self, *names: str) -> None:
        """Raise SchemaError unless every name is present."""
        missing = [n for n in names if self.lookup(n) == NOT_FOUND]
        if missing:
            msg = f"Batch is missing required column(s): {', '.join(missing)}"
            raise SchemaError(msg)
