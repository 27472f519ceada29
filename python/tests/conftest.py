"""
Pytest configuration and fixtures for pdbloc tests.
"""
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]
PYTHON_SRC = REPO_ROOT / "python"
if str(PYTHON_SRC) not in sys.path:
    sys.path.insert(0, str(PYTHON_SRC))

from pdbloc.model import Document, LocalConstant, LocalScope, LocalVariable, MethodInfo, SequencePoint  # noqa: E402


def make_method(token, lines, *, scopes=None, name=None):
    """Build a method from ``[(il_offset, start_line, end_line), ...]``."""
    points = [SequencePoint(il_offset=il, start_line=start, end_line=end) for il, start, end in lines]
    return MethodInfo(method_def=token, sequence_points=points, local_scopes=list(scopes or []), name=name)


def make_scope(start, length, variables=(), constants=()):
    return LocalScope(
        start_offset=start,
        length=length,
        local_variables=[LocalVariable(index=i, name=n) for i, n in variables],
        local_constants=[LocalConstant(name=n, signature=s) for n, s in constants],
    )


@pytest.fixture
def nested_document():
    """Outer method on lines 1-100 with a lambda body on lines 40-60."""
    outer = make_method(
        0x06000001,
        [(0x00, 1, 1), (0x10, 30, 30), (0x20, 50, 50), (0x40, 100, 100)],
        scopes=[make_scope(0, 0x50, variables=[(0, "outer_local")])],
        name="Outer",
    )
    inner = make_method(
        0x06000002,
        [(0x00, 40, 40), (0x08, 50, 50), (0x18, 60, 60)],
        scopes=[make_scope(0, 0x20, variables=[(0, "captured")])],
        name="<Outer>b__0",
    )
    return Document(file_path="C:\\build\\src\\App\\Program.cs", methods=[outer, inner])
