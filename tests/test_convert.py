"""Tests for the JSON <-> Value codec and the output codec."""

from __future__ import annotations

import math

import pytest

from strata_mcp.convert import json_to_value, output_to_json, value_to_json, versioned_to_json
from strata_mcp.errors import InvalidArgError
from strata_mcp.store import outputs as out
from strata_mcp.store.records import (
    BatchItemResult,
    BranchInfo,
    BranchStatus,
    CollectionInfo,
    EmbedStatusInfo,
    MergeConflict,
    MergeInfo,
    TxnInfoData,
    TxnStatus,
    VectorMetric,
)
from strata_mcp.store.values import (
    I64_MAX,
    I64_MIN,
    Array,
    Bool,
    Float,
    Int,
    Null,
    Object,
    String,
    VersionedValue,
)


class TestJsonToValue:
    def test_scalars(self) -> None:
        assert json_to_value(None) == Null()
        assert json_to_value(True) == Bool(True)
        assert json_to_value(7) == Int(7)
        assert json_to_value(1.5) == Float(1.5)
        assert json_to_value("hi") == String("hi")

    def test_bool_is_not_int(self) -> None:
        """JSON booleans must never decode as integers."""
        assert json_to_value(False) == Bool(False)
        assert not isinstance(json_to_value(False), Int)

    def test_nested(self) -> None:
        value = json_to_value({"a": [1, {"b": None}], "c": "x"})
        assert value == Object(
            {"a": Array([Int(1), Object({"b": Null()})]), "c": String("x")}
        )

    def test_i64_bounds_stay_int(self) -> None:
        assert json_to_value(I64_MAX) == Int(I64_MAX)
        assert json_to_value(I64_MIN) == Int(I64_MIN)

    def test_beyond_i64_becomes_float(self) -> None:
        value = json_to_value(2**64)
        assert isinstance(value, Float)
        assert value.value == float(2**64)

    def test_huge_int_is_out_of_range(self) -> None:
        with pytest.raises(InvalidArgError) as exc:
            json_to_value(10**400)
        assert exc.value.name == "value"
        assert exc.value.reason == "Number out of range"

    @pytest.mark.parametrize("raw", [math.inf, -math.inf, math.nan])
    def test_non_finite_float_rejected(self, raw: float) -> None:
        with pytest.raises(InvalidArgError):
            json_to_value(raw)

    def test_custom_name_in_error(self) -> None:
        with pytest.raises(InvalidArgError) as exc:
            json_to_value([math.inf], name="payload")
        assert exc.value.name == "payload"


_ROUND_TRIP_VALUES = [
    Null(),
    Bool(True),
    Bool(False),
    Int(0),
    Int(I64_MIN),
    Int(I64_MAX),
    Float(0.0),
    Float(-2.5),
    Float(1.0),
    Float(1.7976931348623157e308),
    String(""),
    String("h\u00e9llo \u2603"),
    Array(),
    Object(),
    Array([Int(1), Float(1.0), Null(), Array([Bool(False)])]),
    Object({"n": Int(I64_MIN), "f": Float(5e-324), "inner": Object({"xs": Array([Float(0.5), Int(I64_MAX)])})}),
]


@pytest.mark.parametrize("value", _ROUND_TRIP_VALUES, ids=repr)
def test_value_survives_json_round_trip(value) -> None:
    assert json_to_value(value_to_json(value)) == value


class TestValueToJson:
    def test_round_trip_document(self) -> None:
        doc = {"name": "Ada", "tags": ["x", "y"], "age": 36, "score": 0.5, "ok": True, "none": None}
        assert value_to_json(json_to_value(doc)) == doc

    def test_versioned(self) -> None:
        vv = VersionedValue(value=Int(3), version=2, timestamp=100)
        assert versioned_to_json(vv) == {"value": 3, "version": 2, "timestamp": 100}


class TestOutputToJson:
    """Each output variant has one canonical JSON shape."""

    def test_unit_is_null(self) -> None:
        assert output_to_json(out.Unit()) is None

    def test_version_is_bare_number(self) -> None:
        assert output_to_json(out.Version(4)) == 4
        assert output_to_json(out.MaybeVersion(None)) is None

    def test_maybe_versioned(self) -> None:
        assert output_to_json(out.MaybeVersioned(None)) is None
        vv = VersionedValue(value=String("v"), version=1, timestamp=9)
        assert output_to_json(out.MaybeVersioned(vv)) == {"value": "v", "version": 1, "timestamp": 9}

    def test_version_history_none_vs_empty(self) -> None:
        assert output_to_json(out.VersionHistory(None)) is None
        assert output_to_json(out.VersionHistory([])) == []

    def test_text_is_wrapped(self) -> None:
        assert output_to_json(out.Text("hello")) == {"text": "hello"}

    def test_json_list_cursor_omitted_when_absent(self) -> None:
        assert output_to_json(out.JsonListResult(keys=["a"], cursor=None)) == {"keys": ["a"]}
        assert output_to_json(out.JsonListResult(keys=["a"], cursor="a")) == {"keys": ["a"], "cursor": "a"}

    def test_batch_results(self) -> None:
        results = [BatchItemResult(version=1), BatchItemResult(error="bad key")]
        assert output_to_json(out.BatchResults(results)) == [
            {"version": 1, "error": None},
            {"version": None, "error": "bad key"},
        ]

    def test_branch_with_version(self) -> None:
        info = BranchInfo(id="b", status=BranchStatus.ACTIVE, created_at=1, updated_at=2, parent_id=None)
        assert output_to_json(out.BranchWithVersion(info=info, version=1)) == {
            "id": "b",
            "status": "active",
            "created_at": 1,
            "updated_at": 2,
            "parent_id": None,
            "version": 1,
        }

    def test_merge(self) -> None:
        info = MergeInfo(keys_applied=2, spaces_merged=1, conflicts=[MergeConflict(key="k", space="default")])
        assert output_to_json(out.BranchMerged(info)) == {
            "keys_applied": 2,
            "spaces_merged": 1,
            "conflicts": [{"key": "k", "space": "default"}],
        }

    def test_txn(self) -> None:
        assert output_to_json(out.TxnBegun()) == {"status": "begun"}
        assert output_to_json(out.TxnCommitted(version=3)) == {"status": "committed", "version": 3}
        assert output_to_json(out.TxnAborted()) == {"status": "aborted"}
        info = TxnInfoData(id="t1", status=TxnStatus.ACTIVE, started_at=5)
        assert output_to_json(out.TxnInfo(info)) == {"id": "t1", "status": "active", "started_at": 5}

    def test_collection_metric_lowercase(self) -> None:
        info = CollectionInfo(
            name="c",
            dimension=3,
            metric=VectorMetric.DOTPRODUCT,
            count=0,
            index_type="brute_force",
            memory_bytes=0,
        )
        assert output_to_json(out.VectorCollectionList([info]))[0]["metric"] == "dotproduct"

    def test_embed_status_is_idle(self) -> None:
        def status(pending: int, active: int, depth: int) -> dict:
            info = EmbedStatusInfo(
                auto_embed=True,
                batch_size=32,
                pending=pending,
                total_queued=0,
                total_embedded=0,
                total_failed=0,
                scheduler_queue_depth=depth,
                scheduler_active_tasks=active,
            )
            return output_to_json(out.EmbedStatus(info))

        assert status(0, 0, 0)["is_idle"] is True
        assert status(1, 0, 0)["is_idle"] is False
        assert status(0, 1, 0)["is_idle"] is False
        assert status(0, 0, 1)["is_idle"] is False
