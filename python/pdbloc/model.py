"""In-memory document/method/scope model consumed by the breakpoint resolver.

The model is normally assembled by the PDB table reader and handed over as
JSON.  The layout mirrors the Portable PDB debug tables::

    {"documents": [{"path": "...", "methods": [{
        "token": "0x06000001", "name": "Main",
        "sequence_points": [{"il_offset": 0, "start_line": 5, ...}],
        "scopes": [{"start_offset": 0, "length": 12,
                    "variables": [{"index": 0, "name": "x"}],
                    "constants": [{"name": "K", "signature": 12}]}]}]}]}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence

LOGGER = logging.getLogger("pdbloc.model")

HIDDEN_LINE = 0xFEEFEE


def _coerce_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer, got boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        base = 16 if value.lower().startswith("0x") else 10
        try:
            return int(value, base)
        except ValueError as exc:
            raise ValueError(f"{field_name} must be integer-compatible (got {value!r})") from exc
    raise ValueError(f"{field_name} must be integer-compatible (got {value!r})")


def _as_object(entry: Any, context: str) -> Mapping[str, Any]:
    if not isinstance(entry, Mapping):
        raise ValueError(f"{context} must be an object (got {type(entry).__name__})")
    return entry


def _require(entry: Mapping[str, Any], key: str, context: str) -> Any:
    if key not in entry or entry[key] is None:
        raise ValueError(f"{context} missing required field '{key}'")
    return entry[key]


@dataclass(frozen=True)
class SequencePoint:
    il_offset: int
    start_line: int
    start_column: int = 0
    end_line: Optional[int] = None
    end_column: int = 0

    def __post_init__(self) -> None:
        if self.end_line is None:
            object.__setattr__(self, "end_line", self.start_line)

    @property
    def is_hidden(self) -> bool:
        return self.start_line == HIDDEN_LINE

    def covers_line(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


@dataclass(frozen=True)
class LocalVariable:
    index: int
    name: str
    attributes: int = 0


@dataclass(frozen=True)
class LocalConstant:
    name: str
    signature: int = 0


@dataclass
class LocalScope:
    """IL range ``[start_offset, start_offset + length)`` with its locals."""

    start_offset: int
    length: int
    local_variables: List[LocalVariable] = field(default_factory=list)
    local_constants: List[LocalConstant] = field(default_factory=list)

    @property
    def end_offset(self) -> int:
        return self.start_offset + self.length

    def contains(self, il_offset: int) -> bool:
        return self.start_offset <= il_offset < self.end_offset


@dataclass
class MethodInfo:
    method_def: int
    sequence_points: List[SequencePoint] = field(default_factory=list)
    local_scopes: List[LocalScope] = field(default_factory=list)
    name: Optional[str] = None
    first_line: Optional[int] = field(default=None, init=False, compare=False)
    last_line: Optional[int] = field(default=None, init=False, compare=False)

    def __post_init__(self) -> None:
        # Line span over visible points only; sequence points are not edited after construction.
        visible = [point for point in self.sequence_points if not point.is_hidden]
        if visible:
            self.first_line = min(point.start_line for point in visible)
            self.last_line = max(point.end_line for point in visible)

    def spans_line(self, line: int) -> bool:
        first, last = self.first_line, self.last_line
        if first is None or last is None:
            return False
        return first <= line <= last


@dataclass
class Document:
    file_path: str
    methods: List[MethodInfo] = field(default_factory=list)


# ----------------------------------------------------------------------
# Loading
# ----------------------------------------------------------------------
def _parse_sequence_point(entry: Mapping[str, Any]) -> SequencePoint:
    context = "sequence point"
    entry = _as_object(entry, context)
    start_line = _coerce_int(_require(entry, "start_line", context), "start_line")
    end_line = entry.get("end_line")
    return SequencePoint(
        il_offset=_coerce_int(_require(entry, "il_offset", context), "il_offset"),
        start_line=start_line,
        start_column=_coerce_int(entry.get("start_column", 0), "start_column"),
        end_line=_coerce_int(end_line, "end_line") if end_line is not None else start_line,
        end_column=_coerce_int(entry.get("end_column", 0), "end_column"),
    )


def _parse_variable(entry: Mapping[str, Any]) -> LocalVariable:
    entry = _as_object(entry, "local variable")
    return LocalVariable(
        index=_coerce_int(_require(entry, "index", "local variable"), "index"),
        name=str(_require(entry, "name", "local variable")),
        attributes=_coerce_int(entry.get("attributes", 0), "attributes"),
    )


def _parse_constant(entry: Mapping[str, Any]) -> LocalConstant:
    entry = _as_object(entry, "local constant")
    return LocalConstant(
        name=str(_require(entry, "name", "local constant")),
        signature=_coerce_int(entry.get("signature", 0), "signature"),
    )


def _parse_scope(entry: Mapping[str, Any]) -> LocalScope:
    entry = _as_object(entry, "local scope")
    return LocalScope(
        start_offset=_coerce_int(_require(entry, "start_offset", "local scope"), "start_offset"),
        length=_coerce_int(_require(entry, "length", "local scope"), "length"),
        local_variables=[_parse_variable(v) for v in entry.get("variables") or []],
        local_constants=[_parse_constant(c) for c in entry.get("constants") or []],
    )


def _parse_method(entry: Mapping[str, Any]) -> MethodInfo:
    entry = _as_object(entry, "method")
    token = _coerce_int(_require(entry, "token", "method"), "token")
    name = entry.get("name")
    return MethodInfo(
        method_def=token,
        sequence_points=[_parse_sequence_point(p) for p in entry.get("sequence_points") or []],
        local_scopes=[_parse_scope(s) for s in entry.get("scopes") or []],
        name=str(name) if name is not None else None,
    )


def document_from_dict(entry: Mapping[str, Any]) -> Document:
    entry = _as_object(entry, "document")
    path = _require(entry, "path", "document")
    return Document(
        file_path=str(path),
        methods=[_parse_method(m) for m in entry.get("methods") or []],
    )


class DocumentIndex:
    """Read-only collection of documents that breakpoints resolve against."""

    def __init__(self, documents: Iterable[Document]) -> None:
        self._documents: List[Document] = list(documents)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DocumentIndex":
        if not isinstance(data, Mapping):
            raise ValueError("model must be an object with a 'documents' list")
        entries = data.get("documents") or []
        if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)):
            raise ValueError("documents must be a list")
        return cls(document_from_dict(entry) for entry in entries)

    @classmethod
    def from_file(cls, path: Path) -> "DocumentIndex":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        index = cls.from_dict(data)
        LOGGER.debug("loaded %d documents from %s", len(index), path)
        return index

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    @property
    def documents(self) -> List[Document]:
        return list(self._documents)

    def resolve(self, breakpoint) -> bool:
        """Resolve ``breakpoint`` in place; returns the resolved flag."""
        return breakpoint.resolve(self._documents)
