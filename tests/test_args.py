from __future__ import annotations

import pytest

from strata_mcp.errors import InvalidArgError, MissingArgError
from strata_mcp.store.values import Int, Null, Object
from strata_mcp.tools import args as a


class TestScalars:
    def test_required_string(self) -> None:
        assert a.get_string({"key": "k"}, "key") == "k"

    def test_missing_and_null_are_the_same(self) -> None:
        for args in ({}, {"key": None}):
            with pytest.raises(MissingArgError) as exc:
                a.get_string(args, "key")
            assert exc.value.name == "key"

    def test_wrong_type_names_the_field(self) -> None:
        with pytest.raises(InvalidArgError) as exc:
            a.get_string({"key": 5}, "key")
        assert exc.value.name == "key"
        assert exc.value.reason == "Expected a string"

    def test_optional_absent_is_none(self) -> None:
        assert a.get_optional_string({}, "path") is None
        assert a.get_optional_uint({"k": None}, "k") is None

    def test_optional_wrong_type_still_fails(self) -> None:
        with pytest.raises(InvalidArgError):
            a.get_optional_string({"path": ["$"]}, "path")

    def test_uint_rejects_bool_and_negative(self) -> None:
        assert a.get_uint({"n": 3}, "n") == 3
        for bad in (True, -1, 1.5, "3"):
            with pytest.raises(InvalidArgError):
                a.get_uint({"n": bad}, "n")

    def test_number(self) -> None:
        assert a.get_optional_number({"t": 1}, "t") == 1.0
        with pytest.raises(InvalidArgError):
            a.get_optional_number({"t": False}, "t")

    def test_bool(self) -> None:
        assert a.get_bool({"enabled": False}, "enabled") is False
        with pytest.raises(InvalidArgError):
            a.get_bool({"enabled": 1}, "enabled")


class TestValues:
    def test_value_decodes(self) -> None:
        assert a.get_value({"value": {"x": 1}}, "value") == Object({"x": Int(1)})

    def test_null_value_is_null(self) -> None:
        assert a.get_value({"value": None}, "value") == Null()

    def test_absent_value_is_missing(self) -> None:
        with pytest.raises(MissingArgError) as exc:
            a.get_value({}, "value")
        assert exc.value.name == "value"

    def test_optional_null_value_is_absent(self) -> None:
        assert a.get_optional_value({"metadata": None}, "metadata") is None


class TestArrays:
    def test_string_list(self) -> None:
        assert a.get_string_list({"texts": ["a", "b"]}, "texts") == ["a", "b"]

    def test_mixed_string_list_rejected(self) -> None:
        with pytest.raises(InvalidArgError) as exc:
            a.get_string_list({"texts": ["a", 1]}, "texts")
        assert exc.value.reason == "Expected array of strings"

    def test_not_an_array(self) -> None:
        with pytest.raises(InvalidArgError):
            a.get_vector({"vector": "1,2"}, "vector")

    def test_vector_coerces_ints(self) -> None:
        assert a.get_vector({"vector": [1, 2.5]}, "vector") == [1.0, 2.5]

    def test_uint_list(self) -> None:
        assert a.get_uint_list({"ids": [104, 105]}, "ids") == [104, 105]
        with pytest.raises(InvalidArgError):
            a.get_uint_list({"ids": [1, -2]}, "ids")

    def test_object_list(self) -> None:
        with pytest.raises(InvalidArgError):
            a.get_object_list({"entries": [{"key": "a"}, "b"]}, "entries")
