from __future__ import annotations

import pytest

from strata_mcp.errors import StoreError
from strata_mcp.store.jsonpath import delete_at, get_at, parse_path, set_at
from strata_mcp.store.values import Array, Int, Object, String


def test_parse_root() -> None:
    assert parse_path("$") == []


def test_parse_members_and_indices() -> None:
    assert parse_path("$.a.b[2]['odd key']") == ["a", "b", 2, "odd key"]


@pytest.mark.parametrize("path", ["", "a.b", "$.", "$[x]", "$..a"])
def test_parse_rejects_malformed(path: str) -> None:
    with pytest.raises(StoreError) as exc:
        parse_path(path)
    assert exc.value.code == "INVALID_PATH"


def test_get_missing_steps() -> None:
    doc = Object({"a": Array([Int(1)])})
    assert get_at(doc, ["a", 0]) == Int(1)
    assert get_at(doc, ["a", 5]) is None
    assert get_at(doc, ["b"]) is None
    assert get_at(doc, ["a", "x"]) is None


def test_set_creates_intermediate_objects() -> None:
    assert set_at(None, ["a", "b"], String("v")) == Object({"a": Object({"b": String("v")})})


def test_set_does_not_mutate_original() -> None:
    doc = Object({"a": Int(1)})
    updated = set_at(doc, ["a"], Int(2))
    assert doc == Object({"a": Int(1)})
    assert updated == Object({"a": Int(2)})


def test_set_index_out_of_bounds() -> None:
    with pytest.raises(StoreError):
        set_at(Array([Int(1)]), [3], Int(9))


def test_set_member_on_scalar() -> None:
    with pytest.raises(StoreError):
        set_at(Int(1), ["a"], Int(2))


def test_delete() -> None:
    doc = Object({"a": Array([Int(1), Int(2)]), "b": Int(3)})
    updated, removed = delete_at(doc, ["a", 0])
    assert removed is True
    assert updated == Object({"a": Array([Int(2)]), "b": Int(3)})
    assert delete_at(doc, ["zzz"]) == (doc, False)
