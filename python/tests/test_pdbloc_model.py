"""Tests for the document model and its JSON loader."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from pdbloc.model import HIDDEN_LINE, DocumentIndex, LocalScope, MethodInfo, SequencePoint


def _write_model(tmp_path: Path, data: Any) -> Path:
    path = tmp_path / "app.pdb.json"
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def test_load_documents_from_json(tmp_path):
    data = {
        "documents": [
            {
                "path": "/src/App/Program.cs",
                "methods": [
                    {
                        "token": "0x06000001",
                        "name": "Main",
                        "sequence_points": [
                            {"il_offset": 0, "start_line": 5, "start_column": 9, "end_line": 5, "end_column": 30},
                            {"il_offset": "0x0C", "start_line": 6},
                        ],
                        "scopes": [
                            {
                                "start_offset": 0,
                                "length": 20,
                                "variables": [{"index": 0, "name": "args"}],
                                "constants": [{"name": "Limit", "signature": 42}],
                            }
                        ],
                    }
                ],
            },
            {"path": "/src/App/Empty.cs"},
        ]
    }
    index = DocumentIndex.from_file(_write_model(tmp_path, data))
    assert len(index) == 2
    doc = index.documents[0]
    method = doc.methods[0]
    assert method.method_def == 0x06000001
    assert method.name == "Main"
    assert method.sequence_points[1] == SequencePoint(il_offset=0x0C, start_line=6, end_line=6)
    assert method.first_line == 5
    assert method.last_line == 6
    scope = method.local_scopes[0]
    assert [v.name for v in scope.local_variables] == ["args"]
    assert scope.local_constants[0].signature == 42
    assert index.documents[1].methods == []


def test_missing_token_is_rejected():
    with pytest.raises(ValueError, match="token"):
        DocumentIndex.from_dict({"documents": [{"path": "a.cs", "methods": [{"name": "Main"}]}]})


def test_non_integer_field_is_rejected():
    bad = {"documents": [{"path": "a.cs", "methods": [{"token": "main"}]}]}
    with pytest.raises(ValueError):
        DocumentIndex.from_dict(bad)
    with pytest.raises(ValueError):
        DocumentIndex.from_dict({"documents": "a.cs"})


def test_scope_range_is_half_open():
    scope = LocalScope(start_offset=10, length=10)
    assert scope.end_offset == 20
    assert scope.contains(10)
    assert scope.contains(19)
    assert not scope.contains(20)
    assert not scope.contains(9)


def test_hidden_sequence_points_do_not_widen_line_span():
    method = MethodInfo(
        method_def=1,
        sequence_points=[
            SequencePoint(il_offset=0, start_line=10, end_line=12),
            SequencePoint(il_offset=4, start_line=HIDDEN_LINE, end_line=HIDDEN_LINE),
            SequencePoint(il_offset=8, start_line=14, end_line=15),
        ],
    )
    assert method.sequence_points[1].is_hidden
    assert method.first_line == 10
    assert method.last_line == 15
    assert method.spans_line(13)
    assert not method.spans_line(16)


def test_method_without_sequence_points_spans_nothing():
    method = MethodInfo(method_def=1)
    assert method.first_line is None
    assert not method.spans_line(0)


def test_list_rooted_model_file_is_rejected(tmp_path):
    path = _write_model(tmp_path, [{"path": "a.cs", "methods": []}])
    with pytest.raises(ValueError, match="model must be an object"):
        DocumentIndex.from_file(path)


@pytest.mark.parametrize(
    "data,context",
    [
        ({"documents": [5]}, "document"),
        ({"documents": ["a.cs"]}, "document"),
        ({"documents": [{"path": "a.cs", "methods": [None]}]}, "method"),
        ({"documents": [{"path": "a.cs", "methods": [{"token": 1, "sequence_points": [[0, 5]]}]}]}, "sequence point"),
        ({"documents": [{"path": "a.cs", "methods": [{"token": 1, "scopes": ["0-12"]}]}]}, "local scope"),
        (
            {"documents": [{"path": "a.cs", "methods": [{"token": 1, "scopes": [{"start_offset": 0, "length": 4, "variables": ["x"]}]}]}]},
            "local variable",
        ),
        (
            {"documents": [{"path": "a.cs", "methods": [{"token": 1, "scopes": [{"start_offset": 0, "length": 4, "constants": [7]}]}]}]},
            "local constant",
        ),
    ],
)
def test_non_object_entries_are_rejected(data, context):
    with pytest.raises(ValueError, match=f"{context} must be an object"):
        DocumentIndex.from_dict(data)


def test_method_line_span_is_computed_once():
    points = [
        SequencePoint(il_offset=0, start_line=3, end_line=3),
        SequencePoint(il_offset=6, start_line=4, end_line=8),
    ]
    method = MethodInfo(method_def=1, sequence_points=points)
    assert vars(method)["first_line"] == 3
    assert vars(method)["last_line"] == 8
    assert method == MethodInfo(method_def=1, sequence_points=list(points))
