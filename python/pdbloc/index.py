"""Heap and table index decoding for metadata table rows.

Index columns are 2 or 4 bytes wide depending on the size of what they point
at: a heap is wide when its bit is set in the HeapSizes byte, a table is wide
when it holds 65536 rows or more (ECMA-335 II.24.2.6).

A table that is absent from the loaded header has no known row count.  This
happens when only a PDB's own tables are loaded and a column points into the
assembly's type-system tables.  The reader then assumes 2 bytes, which is
wrong for tables with 2^16 rows or more and corrupts every later read.  The
assumption is reported through :class:`IndexWidth.assumed`, a warning log
and :attr:`IndexResolver.assumed_tables`; strict resolvers refuse instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import NamedTuple, Set

from .cursor import BinaryCursor
from .errors import AbsentTableError
from .tables import Heap, MetadataTable, TableHeader

LOGGER = logging.getLogger("pdbloc.index")

WIDE_TABLE_ROWS = 0x10000


class IndexWidth(NamedTuple):
    size: int
    assumed: bool = False


HEAP_KINDS = (Heap.STRINGS, Heap.GUIDS, Heap.BLOBS)


def heap_index_width(heap: Heap, heap_sizes: int) -> int:
    # IntFlag accepts combined and unknown bits, so check for a single heap kind.
    if heap not in HEAP_KINDS:
        raise ValueError(f"unknown heap {heap!r}")
    return 4 if Heap(heap) & heap_sizes else 2


def table_index_width(table: MetadataTable, header: TableHeader) -> IndexWidth:
    table = MetadataTable(table)
    rows = header.row_count(table)
    if rows is None:
        return IndexWidth(2, assumed=True)
    return IndexWidth(2 if rows < WIDE_TABLE_ROWS else 4)


def _read_sized(cursor: BinaryCursor, size: int) -> int:
    if size == 4:
        return cursor.read_uint32()
    return cursor.read_uint16()


def read_heap_index(cursor: BinaryCursor, heap: Heap, heap_sizes: int) -> int:
    """Read an index into the strings, GUID or blob heap."""
    return _read_sized(cursor, heap_index_width(heap, heap_sizes))


def read_table_index(cursor: BinaryCursor, table: MetadataTable, header: TableHeader) -> int:
    """Read a row index into ``table``; absent tables fall back to 2 bytes."""
    width = table_index_width(table, header)
    if width.assumed:
        LOGGER.warning(
            "table %s is not loaded; assuming 2-byte index", MetadataTable(table).name
        )
    return _read_sized(cursor, width.size)


@dataclass
class IndexResolver:
    """Reads index columns for one metadata set and tracks width guesses."""

    header: TableHeader
    heap_sizes: int = 0
    strict: bool = False
    assumed_tables: Set[MetadataTable] = field(default_factory=set)

    @classmethod
    def for_header(cls, header: TableHeader, *, strict: bool = False) -> "IndexResolver":
        return cls(header=header, heap_sizes=header.heap_sizes, strict=strict)

    def read_heap_index(self, cursor: BinaryCursor, heap: Heap) -> int:
        return read_heap_index(cursor, heap, self.heap_sizes)

    def read_table_index(self, cursor: BinaryCursor, table: MetadataTable) -> int:
        table = MetadataTable(table)
        width = table_index_width(table, self.header)
        if width.assumed:
            if self.strict:
                raise AbsentTableError(f"table {table.name} is not present in the loaded metadata")
            if table not in self.assumed_tables:
                LOGGER.warning("table %s is not loaded; assuming 2-byte index", table.name)
            self.assumed_tables.add(table)
        return _read_sized(cursor, width.size)

    @property
    def has_assumptions(self) -> bool:
        return bool(self.assumed_tables)
