"""
Lookup Table — CSV Index of Ideas

The table maps idea ids to their content reference and metadata:

    id,reference,title,progress,tags
    1,2c/f24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824,A,pending,
    2,2c/f24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824,B,nigh,x y

The whole file is read into memory, mutated, and written back in one go.
Writes go to a sibling temp file that is then renamed over the table, so
an interrupted write leaves the previous table intact.  There is no file
locking: two concurrent writers race and the last one wins.
"""

from __future__ import annotations

import csv
import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Union

from projavu.errors import (
    InsertTable,
    ParsingTable,
    ReadTable,
    RowNotFound,
    UnexpectedTable,
    WriteTable,
)

logger = logging.getLogger(__name__)

COLUMNS = ("id", "reference", "title", "progress", "tags")


@dataclass
class Table:
    """In-memory table: a header and rows of string cells."""

    header: List[str] = field(default_factory=lambda: list(COLUMNS))
    rows: List[List[str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def parse_table(text: str) -> Table:
    """Parse CSV text.  Raises ParsingTable on malformed content."""
    try:
        records = list(csv.reader(io.StringIO(text, newline=""), strict=True))
    except csv.Error as exc:
        raise ParsingTable(f"Malformed table: {exc}") from exc

    if not records:
        raise ParsingTable("Table has no header row")

    header = records[0]
    if len(set(header)) != len(header):
        raise ParsingTable(f"Duplicate column in header: {header}")
    rows = []
    for lineno, record in enumerate(records[1:], start=2):
        if not record:
            continue  # blank line
        if len(record) != len(header):
            raise ParsingTable(
                f"Row {lineno} has {len(record)} fields, header has {len(header)}"
            )
        rows.append(record)
    return Table(header=header, rows=rows)


def export_table(table: Table) -> str:
    """Serialize a table to CSV text (header first)."""
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(table.header)
    writer.writerows(table.rows)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Lookups and in-memory mutation
# ---------------------------------------------------------------------------


def find_column(table: Table, name: str) -> int:
    """Index of the named column.  Raises UnexpectedTable if absent."""
    try:
        return table.header.index(name)
    except ValueError:
        raise UnexpectedTable(f"Column {name!r} missing from table") from None


def column_values(table: Table, name: str) -> List[str]:
    """All values of the named column, in row order."""
    col = find_column(table, name)
    return [row[col] for row in table.rows]


def find_row_by_value(table: Table, column: int, value: str) -> int:
    """Index of the first row whose cell in column equals value."""
    if not 0 <= column < len(table.header):
        raise UnexpectedTable(f"Column index {column} out of range")
    for index, row in enumerate(table.rows):
        if row[column] == value:
            return index
    raise RowNotFound(f"No row with {table.header[column]}={value!r}")


def insert_row(table: Table, values: Dict[str, str]) -> int:
    """Append a row built from a column-name mapping; returns its index.

    Columns not given are left empty.  Unknown columns raise InsertTable.
    """
    unknown = set(values) - set(table.header)
    if unknown:
        raise InsertTable(f"Unknown columns: {sorted(unknown)}")
    table.rows.append([values.get(name, "") for name in table.header])
    return len(table.rows) - 1


def delete_row(table: Table, index: int) -> List[str]:
    """Remove and return the row at index."""
    if not 0 <= index < len(table.rows):
        raise InsertTable(f"Row index {index} out of range")
    return table.rows.pop(index)


# ---------------------------------------------------------------------------
# On-disk table
# ---------------------------------------------------------------------------


class IdeaTable:
    """The CSV lookup table file of an idea book."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def initialize(self) -> bool:
        """Write an empty table if none exists.  Returns True if created."""
        if self.path.exists():
            return False
        self.write(Table())
        logger.info("Initialized lookup table %s", self.path)
        return True

    def read(self) -> Table:
        """Load and parse the whole table."""
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise ReadTable(f"Cannot read table {self.path}: {exc}") from exc
        return parse_table(text)

    def write(self, table: Table) -> None:
        """Replace the table file with the serialized table."""
        data = export_table(table)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp, "w", encoding="utf-8", newline="") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            raise WriteTable(f"Cannot write table {self.path}: {exc}") from exc
        logger.debug("Wrote table %s (%d rows)", self.path, len(table.rows))
