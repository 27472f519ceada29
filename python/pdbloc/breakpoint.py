"""Map a source breakpoint (file, line, column) onto a method and IL offset.

Selection rules, applied as a single pass over the documents:

* a document is a candidate when its normalised path ends with the requested
  file name; the candidate with the smallest suffix offset wins, but only if
  it yields a method for the line;
* inside a document, of the methods whose line span covers the line, the one
  with the largest first line wins (lambdas and local functions nest inside
  their enclosing method);
* inside the method, the first sequence point covering the line supplies the
  IL offset;
* the last declared scope containing that offset supplies the locals.

Columns are recorded but do not take part in matching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .model import Document, LocalConstant, LocalScope, LocalVariable, MethodInfo, SequencePoint

LOGGER = logging.getLogger("pdbloc.breakpoint")


def normalize_source_path(path: str) -> str:
    """Lowercase ``path`` and use ``/`` as the only separator."""
    return str(path).replace("\\", "/").lower()


def suffix_offset(document_path: str, requested: str) -> Optional[int]:
    """Offset at which normalised ``requested`` ends ``document_path``, if it does."""
    normalized = normalize_source_path(document_path)
    if len(normalized) < len(requested):
        return None
    if not normalized.endswith(requested):
        return None
    return len(normalized) - len(requested)


def match_sequence_point(method: MethodInfo, line: int) -> Optional[SequencePoint]:
    for point in method.sequence_points:
        if point.covers_line(line):
            return point
    return None


def visible_scope(method: MethodInfo, il_offset: int) -> Optional[LocalScope]:
    """Last declared scope containing ``il_offset``; inner scopes follow outer ones."""
    chosen: Optional[LocalScope] = None
    for scope in method.local_scopes:
        if scope.contains(il_offset):
            chosen = scope
    return chosen


def match_method(document: Document, line: int) -> Optional[Tuple[MethodInfo, SequencePoint]]:
    """Innermost method of ``document`` with a sequence point on ``line``."""
    best: Optional[Tuple[MethodInfo, SequencePoint]] = None
    for method in document.methods:
        if not method.spans_line(line):
            continue
        if best is not None and method.first_line <= best[0].first_line:
            continue
        point = match_sequence_point(method, line)
        if point is None:
            LOGGER.debug(
                "method 0x%08X spans line %d but has no sequence point there",
                method.method_def,
                line,
            )
            continue
        best = (method, point)
    return best


@dataclass(frozen=True)
class BreakpointLocation:
    document: Document
    method: MethodInfo
    sequence_point: SequencePoint
    scope: Optional[LocalScope]
    suffix_offset: int

    @property
    def method_token(self) -> int:
        return self.method.method_def

    @property
    def il_offset(self) -> int:
        return self.sequence_point.il_offset

    @property
    def local_variables(self) -> List[LocalVariable]:
        return list(self.scope.local_variables) if self.scope else []

    @property
    def local_constants(self) -> List[LocalConstant]:
        return list(self.scope.local_constants) if self.scope else []


def find_location(file_name: str, line: int, documents: Iterable[Document]) -> Optional[BreakpointLocation]:
    requested = normalize_source_path(file_name)
    best: Optional[BreakpointLocation] = None
    for document in documents:
        offset = suffix_offset(document.file_path, requested)
        if offset is None:
            continue
        if best is not None and offset >= best.suffix_offset:
            continue
        match = match_method(document, line)
        if match is None:
            LOGGER.debug("document %s matches %s but no method covers line %d", document.file_path, file_name, line)
            continue
        method, point = match
        best = BreakpointLocation(
            document=document,
            method=method,
            sequence_point=point,
            scope=visible_scope(method, point.il_offset),
            suffix_offset=offset,
        )
    return best


@dataclass
class Breakpoint:
    """A user breakpoint and, once resolved, where it lands."""

    file_name: str
    line: int
    column: int = 0
    breakpoint_id: Optional[str] = None
    resolved: bool = field(default=False, init=False)
    method_token: Optional[int] = field(default=None, init=False)
    method_name: Optional[str] = field(default=None, init=False)
    il_offset: Optional[int] = field(default=None, init=False)
    local_variables: List[LocalVariable] = field(default_factory=list, init=False)
    local_constants: List[LocalConstant] = field(default_factory=list, init=False)

    def reset(self) -> None:
        self.resolved = False
        self.method_token = None
        self.method_name = None
        self.il_offset = None
        self.local_variables = []
        self.local_constants = []

    def apply(self, location: BreakpointLocation) -> None:
        self.resolved = True
        self.method_token = location.method_token
        self.method_name = location.method.name
        self.il_offset = location.il_offset
        self.local_variables = location.local_variables
        self.local_constants = location.local_constants

    def resolve(self, documents: Iterable[Document]) -> bool:
        """Resolve against ``documents``; never raises for a missing match."""
        self.reset()
        location = find_location(self.file_name, self.line, documents)
        if location is None:
            LOGGER.info("breakpoint %s:%d could not be set", self.file_name, self.line)
            return False
        self.apply(location)
        LOGGER.info(
            "breakpoint %s:%d set in %s at method 0x%08X IL_%04X",
            self.file_name,
            self.line,
            location.document.file_path,
            self.method_token,
            self.il_offset,
        )
        return True

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.breakpoint_id,
            "file": self.file_name,
            "line": self.line,
            "column": self.column,
            "resolved": self.resolved,
        }
        if self.resolved:
            payload.update(
                {
                    "method_token": self.method_token,
                    "method_name": self.method_name,
                    "il_offset": self.il_offset,
                    "locals": [{"index": var.index, "name": var.name} for var in self.local_variables],
                    "constants": [{"name": const.name, "signature": const.signature} for const in self.local_constants],
                }
            )
        return payload
