"""Metadata table kinds and the stream headers that describe them.

Table numbering follows ECMA-335 II.22 for the type-system tables and the
Portable PDB format for the debug tables (0x30 onwards).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import IntEnum, IntFlag
from typing import Dict, List, Mapping, Optional

from .cursor import BinaryCursor

LOGGER = logging.getLogger("pdbloc.tables")

MAX_TABLES = 64
PDB_ID_SIZE = 20


class Heap(IntFlag):
    """Heap kinds; each value doubles as its bit in the HeapSizes byte."""

    STRINGS = 0x01
    GUIDS = 0x02
    BLOBS = 0x04


class MetadataTable(IntEnum):
    MODULE = 0x00
    TYPE_REF = 0x01
    TYPE_DEF = 0x02
    FIELD_PTR = 0x03
    FIELD = 0x04
    METHOD_PTR = 0x05
    METHOD_DEF = 0x06
    PARAM_PTR = 0x07
    PARAM = 0x08
    INTERFACE_IMPL = 0x09
    MEMBER_REF = 0x0A
    CONSTANT = 0x0B
    CUSTOM_ATTRIBUTE = 0x0C
    FIELD_MARSHAL = 0x0D
    DECL_SECURITY = 0x0E
    CLASS_LAYOUT = 0x0F
    FIELD_LAYOUT = 0x10
    STAND_ALONE_SIG = 0x11
    EVENT_MAP = 0x12
    EVENT_PTR = 0x13
    EVENT = 0x14
    PROPERTY_MAP = 0x15
    PROPERTY_PTR = 0x16
    PROPERTY = 0x17
    METHOD_SEMANTICS = 0x18
    METHOD_IMPL = 0x19
    MODULE_REF = 0x1A
    TYPE_SPEC = 0x1B
    IMPL_MAP = 0x1C
    FIELD_RVA = 0x1D
    ENC_LOG = 0x1E
    ENC_MAP = 0x1F
    ASSEMBLY = 0x20
    ASSEMBLY_PROCESSOR = 0x21
    ASSEMBLY_OS = 0x22
    ASSEMBLY_REF = 0x23
    ASSEMBLY_REF_PROCESSOR = 0x24
    ASSEMBLY_REF_OS = 0x25
    FILE = 0x26
    EXPORTED_TYPE = 0x27
    MANIFEST_RESOURCE = 0x28
    NESTED_CLASS = 0x29
    GENERIC_PARAM = 0x2A
    METHOD_SPEC = 0x2B
    GENERIC_PARAM_CONSTRAINT = 0x2C
    # Portable PDB tables
    DOCUMENT = 0x30
    METHOD_DEBUG_INFORMATION = 0x31
    LOCAL_SCOPE = 0x32
    LOCAL_VARIABLE = 0x33
    LOCAL_CONSTANT = 0x34
    IMPORT_SCOPE = 0x35
    STATE_MACHINE_METHOD = 0x36
    CUSTOM_DEBUG_INFORMATION = 0x37


def _popcount(value: int) -> int:
    return bin(value).count("1")


def _bit(table: int) -> int:
    return 1 << int(table)


def _check_mask(name: str, value: int) -> None:
    if not 0 <= value < (1 << MAX_TABLES):
        raise ValueError(f"{name} must fit in {MAX_TABLES} bits")


@dataclass
class TableHeader:
    """Which tables are present and how many rows each holds.

    ``row_counts`` is compacted: one entry per set bit of ``valid_mask``, in
    increasing table order.  ``external_row_counts`` holds row counts for
    tables that live in another metadata set (the assembly's type-system
    tables as referenced from a PDB) and are consulted only for tables that
    are absent here.
    """

    valid_mask: int
    row_counts: List[int]
    sorted_mask: int = 0
    heap_sizes: int = 0
    major_version: int = 2
    minor_version: int = 0
    external_row_counts: Dict[MetadataTable, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_mask("valid_mask", self.valid_mask)
        _check_mask("sorted_mask", self.sorted_mask)
        self.row_counts = [int(rows) for rows in self.row_counts]
        expected = _popcount(self.valid_mask)
        if len(self.row_counts) != expected:
            raise ValueError(
                f"valid mask marks {expected} tables but {len(self.row_counts)} row counts given"
            )

    @classmethod
    def from_row_counts(cls, rows: Mapping[MetadataTable, int], **kwargs) -> "TableHeader":
        """Build a header from a ``{table: rows}`` mapping."""
        mask = 0
        for table in rows:
            mask |= _bit(MetadataTable(table))
        ordered = [rows[table] for table in sorted(rows, key=int)]
        return cls(valid_mask=mask, row_counts=ordered, **kwargs)

    @classmethod
    def parse(cls, cursor: BinaryCursor) -> "TableHeader":
        """Decode a ``#~`` stream header (ECMA-335 II.24.2.6)."""
        cursor.read_uint32()  # reserved
        major = cursor.read_byte()
        minor = cursor.read_byte()
        heap_sizes = cursor.read_byte()
        cursor.read_byte()  # reserved
        valid = cursor.read_uint64()
        sorted_mask = cursor.read_uint64()
        rows = [cursor.read_uint32() for _ in range(_popcount(valid))]
        LOGGER.debug(
            "table header v%d.%d: %d tables present, heap sizes 0x%02X",
            major,
            minor,
            len(rows),
            heap_sizes,
        )
        return cls(
            valid_mask=valid,
            row_counts=rows,
            sorted_mask=sorted_mask,
            heap_sizes=heap_sizes,
            major_version=major,
            minor_version=minor,
        )

    def is_present(self, table: MetadataTable) -> bool:
        return bool(self.valid_mask & _bit(MetadataTable(table)))

    def compacted_position(self, table: MetadataTable) -> int:
        """Number of present tables ordered before ``table``."""
        return _popcount(self.valid_mask & (_bit(MetadataTable(table)) - 1))

    def row_count(self, table: MetadataTable) -> Optional[int]:
        """Rows in ``table``, or ``None`` when no count is known."""
        table = MetadataTable(table)
        if self.is_present(table):
            return self.row_counts[self.compacted_position(table)]
        return self.external_row_counts.get(table)

    def present_tables(self) -> List[MetadataTable]:
        return [table for table in MetadataTable if self.is_present(table)]

    def with_pdb_stream(self, pdb: "PdbStreamHeader") -> "TableHeader":
        """Return a copy that knows the row counts the PDB stream references."""
        merged = dict(self.external_row_counts)
        merged.update(pdb.referenced_row_counts())
        return replace(self, row_counts=list(self.row_counts), external_row_counts=merged)


@dataclass
class PdbStreamHeader:
    """Decoded ``#Pdb`` stream: PDB id, entry point and referenced tables."""

    pdb_id: bytes
    entry_point: int
    referenced_mask: int
    row_counts: List[int]

    def __post_init__(self) -> None:
        _check_mask("referenced_mask", self.referenced_mask)
        if len(self.row_counts) != _popcount(self.referenced_mask):
            raise ValueError("referenced table mask and row counts disagree")

    @classmethod
    def parse(cls, cursor: BinaryCursor) -> "PdbStreamHeader":
        pdb_id = cursor.read_bytes(PDB_ID_SIZE)
        entry_point = cursor.read_uint32()
        referenced = cursor.read_uint64()
        rows = [cursor.read_uint32() for _ in range(_popcount(referenced))]
        return cls(pdb_id=pdb_id, entry_point=entry_point, referenced_mask=referenced, row_counts=rows)

    def referenced_row_counts(self) -> Dict[MetadataTable, int]:
        counts: Dict[MetadataTable, int] = {}
        position = 0
        for bit in range(MAX_TABLES):
            if not self.referenced_mask & (1 << bit):
                continue
            try:
                counts[MetadataTable(bit)] = self.row_counts[position]
            except ValueError:
                LOGGER.debug("ignoring unknown referenced table 0x%02X", bit)
            position += 1
        return counts
