"""
pdbloc - Portable PDB metadata decoding and breakpoint location.

Modules:

    cursor.py      → bounds-checked byte cursor, fixed and compressed integers
    tables.py      → table/heap kinds, ``#~`` and ``#Pdb`` stream headers
    index.py       → 2/4-byte heap and table index columns
    model.py       → document/method/scope model and its JSON loader
    breakpoint.py  → (file, line) → method token, IL offset and locals
"""

from .errors import (  # noqa: F401
    AbsentTableError,
    EndOfStreamError,
    InvalidEncodingError,
    MetadataReadError,
    OutOfRangeError,
)
from .cursor import BinaryCursor, compressed_width  # noqa: F401
from .tables import Heap, MetadataTable, PdbStreamHeader, TableHeader  # noqa: F401
from .index import IndexResolver, IndexWidth, read_heap_index, read_table_index, table_index_width  # noqa: F401
from .model import (  # noqa: F401
    Document,
    DocumentIndex,
    LocalConstant,
    LocalScope,
    LocalVariable,
    MethodInfo,
    SequencePoint,
)
from .breakpoint import Breakpoint, BreakpointLocation, find_location, normalize_source_path  # noqa: F401

__all__ = [
    "MetadataReadError",
    "EndOfStreamError",
    "OutOfRangeError",
    "InvalidEncodingError",
    "AbsentTableError",
    "BinaryCursor",
    "compressed_width",
    "Heap",
    "MetadataTable",
    "TableHeader",
    "PdbStreamHeader",
    "IndexResolver",
    "IndexWidth",
    "read_heap_index",
    "read_table_index",
    "table_index_width",
    "Document",
    "DocumentIndex",
    "MethodInfo",
    "SequencePoint",
    "LocalScope",
    "LocalVariable",
    "LocalConstant",
    "Breakpoint",
    "BreakpointLocation",
    "find_location",
    "normalize_source_path",
]

__version__ = "0.1.0"
