# product_research/storage/sheet_db.py

"""SQLite-backed workbook: one named sheet per research batch."""

import json
import logging
import sqlite3
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from product_research.config.settings import Settings
from product_research.storage.record_store import (
    FIRST_DATA_ROW,
    NOT_FOUND,
    RecordStore,
)

logger = logging.getLogger("product_research.workbook")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS sheets (
    name       TEXT    PRIMARY KEY,
    created_at TEXT    NOT NULL,
    row_count  INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS columns (
    sheet    TEXT    NOT NULL REFERENCES sheets(name) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name     TEXT    NOT NULL,
    PRIMARY KEY (sheet, position),
    UNIQUE (sheet, name)
);

CREATE TABLE IF NOT EXISTS cells (
    sheet    TEXT    NOT NULL REFERENCES sheets(name) ON DELETE CASCADE,
    row      INTEGER NOT NULL,
    position INTEGER NOT NULL,
    value    TEXT    NOT NULL,
    PRIMARY KEY (sheet, row, position)
);
"""


def _encode(value: Any) -> str:
    if isinstance(value, datetime):
        value = value.isoformat(timespec="seconds")
    return json.dumps(value, ensure_ascii=False)


class SqliteSheet(RecordStore):
    """One sheet of a :class:`SheetDB`; cells are stored JSON-encoded."""

    def __init__(self, conn: sqlite3.Connection, name: str) -> None:
        self._conn = conn
        self.name = name

    def header(self) -> list[str]:
        rows = self._conn.execute(
            "SELECT name FROM columns WHERE sheet = ? ORDER BY position",
            (self.name,),
        ).fetchall()
        return [r[0] for r in rows]

    def column_index(self, name: str) -> int:
        row = self._conn.execute(
            "SELECT position FROM columns WHERE sheet = ? AND name = ?",
            (self.name, name),
        ).fetchone()
        return int(row[0]) if row else NOT_FOUND

    def ensure_column(self, name: str) -> int:
        index = self.column_index(name)
        if index != NOT_FOUND:
            return index
        (last,) = self._conn.execute(
            "SELECT COALESCE(MAX(position), 0) FROM columns WHERE sheet = ?",
            (self.name,),
        ).fetchone()
        position = int(last) + 1
        self._conn.execute(
            "INSERT INTO columns (sheet, position, name) VALUES (?, ?, ?)",
            (self.name, position, name),
        )
        self._conn.commit()
        logger.debug(
            "[%s] Appended column '%s' at %d", self.name, name, position,
        )
        return position

    def read_row(self, row: int) -> dict[str, Any]:
        self._check_row(row)
        cells = dict(
            self._conn.execute(
                "SELECT position, value FROM cells "
                "WHERE sheet = ? AND row = ?",
                (self.name, row),
            ).fetchall()
        )
        return {
            name: json.loads(cells[i]) if i in cells else ""
            for i, name in enumerate(self.header(), start=1)
        }

    def write_cell(self, row: int, column: str, value: Any) -> None:
        self._check_row(row)
        position = self.ensure_column(column)
        self._conn.execute(
            "INSERT INTO cells (sheet, row, position, value) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT(sheet, row, position) "
            "DO UPDATE SET value = excluded.value",
            (self.name, row, position, _encode(value)),
        )
        self._conn.commit()

    def append_rows(self, rows: Sequence[Sequence[Any]]) -> None:
        next_row = FIRST_DATA_ROW + self.row_count()
        cur = self._conn.cursor()
        for offset, values in enumerate(rows):
            for position, value in enumerate(values, start=1):
                if value is None or value == "":
                    continue
                cur.execute(
                    "INSERT INTO cells (sheet, row, position, value) "
                    "VALUES (?, ?, ?, ?)",
                    (self.name, next_row + offset, position, _encode(value)),
                )
        cur.execute(
            "UPDATE sheets SET row_count = row_count + ? WHERE name = ?",
            (len(rows), self.name),
        )
        self._conn.commit()
        logger.info("[%s] Appended %d rows", self.name, len(rows))

    def row_count(self) -> int:
        row = self._conn.execute(
            "SELECT row_count FROM sheets WHERE name = ?", (self.name,),
        ).fetchone()
        return int(row[0]) if row else 0


class SheetDB:
    """SQLite workbook holding one sheet per batch."""

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.WORKBOOK_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("SheetDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def create_sheet(
        self, name: str, header: Sequence[str],
    ) -> SqliteSheet:
        """Create an empty sheet with the given header."""
        if self.has_sheet(name):
            msg = f"Sheet '{name}' already exists"
            raise ValueError(msg)
        self._conn.execute(
            "INSERT INTO sheets (name, created_at) VALUES (?, ?)",
            (name, datetime.now().isoformat(timespec="seconds")),
        )
        self._conn.commit()
        sheet = SqliteSheet(self._conn, name)
        for column in header:
            sheet.ensure_column(column)
        logger.info("Created sheet '%s'", name)
        return sheet

    def open_sheet(self, name: str) -> SqliteSheet:
        """Open an existing sheet; KeyError if unknown."""
        if not self.has_sheet(name):
            raise KeyError(name)
        return SqliteSheet(self._conn, name)

    def has_sheet(self, name: str) -> bool:
        """True when a sheet with this name exists."""
        row = self._conn.execute(
            "SELECT 1 FROM sheets WHERE name = ?", (name,),
        ).fetchone()
        return row is not None

    def list_sheets(self) -> list[dict[str, object]]:
        """Return name, creation time and row count, newest first."""
        rows = self._conn.execute(
            "SELECT name, created_at, row_count FROM sheets "
            "ORDER BY created_at DESC, name DESC"
        ).fetchall()
        return [
            {"name": r[0], "created_at": r[1], "rows": r[2]}
            for r in rows
        ]
