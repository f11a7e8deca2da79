"""Conversion between JSON and the store's typed model.

Two codecs live here:
- the value codec (``json_to_value`` / ``value_to_json``), lossless for every
  JSON value whose numbers fit a signed 64-bit integer or a finite float
- the output codec (``output_to_json``), which renders every store output
  variant as canonical JSON

The output codec matches exhaustively; ``assert_never`` closes the match so a
new variant that is not handled here fails type checking.

Usage:
    from strata_mcp.convert import json_to_value, output_to_json

    value = json_to_value({"x": 1})
    payload = output_to_json(executor.execute(command))
"""

from __future__ import annotations

import math
from typing import Any, assert_never

from .errors import InvalidArgError
from .store import outputs as out
from .store.records import BranchInfo, ModelConfig, VersionedBranchInfo
from .store.values import (
    I64_MAX,
    I64_MIN,
    Array,
    Bool,
    Float,
    Int,
    Null,
    Object,
    String,
    Value,
    VersionedValue,
)

# =============================================================================
# Value codec
# =============================================================================


def _out_of_range(name: str) -> InvalidArgError:
    return InvalidArgError(name, "Number out of range")


def json_to_value(raw: Any, *, name: str = "value") -> Value:
    """Convert a decoded JSON value into a typed ``Value``.

    Integers within the signed 64-bit range become ``Int``; other numbers
    become ``Float`` if they are finite 64-bit floats.

    Raises:
        InvalidArgError: If a number is out of range or the input is not JSON.
    """
    if raw is None:
        return Null()
    # bool before int: JSON booleans are never integers
    if isinstance(raw, bool):
        return Bool(raw)
    if isinstance(raw, int):
        if I64_MIN <= raw <= I64_MAX:
            return Int(raw)
        try:
            as_float = float(raw)
        except OverflowError:
            raise _out_of_range(name) from None
        if not math.isfinite(as_float):
            raise _out_of_range(name)
        return Float(as_float)
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise _out_of_range(name)
        return Float(raw)
    if isinstance(raw, str):
        return String(raw)
    if isinstance(raw, list):
        return Array([json_to_value(item, name=name) for item in raw])
    if isinstance(raw, dict):
        return Object({str(k): json_to_value(v, name=name) for k, v in raw.items()})
    raise InvalidArgError(name, f"Unsupported JSON type: {type(raw).__name__}")


def value_to_json(value: Value) -> Any:
    match value:
        case Null():
            return None
        case Bool(b):
            return b
        case Int(n):
            return n
        case Float(f):
            return f
        case String(s):
            return s
        case Array(items):
            return [value_to_json(item) for item in items]
        case Object(entries):
            return {k: value_to_json(v) for k, v in entries.items()}
        case _:
            assert_never(value)


def versioned_to_json(vv: VersionedValue) -> dict[str, Any]:
    return {
        "value": value_to_json(vv.value),
        "version": vv.version,
        "timestamp": vv.timestamp,
    }


def _optional_value(value: Value | None) -> Any:
    return None if value is None else value_to_json(value)


def _branch_info(info: BranchInfo) -> dict[str, Any]:
    return {
        "id": info.id,
        "status": info.status.name.lower(),
        "created_at": info.created_at,
        "updated_at": info.updated_at,
        "parent_id": info.parent_id,
    }


def _versioned_branch(vbi: VersionedBranchInfo) -> dict[str, Any]:
    return {**_branch_info(vbi.info), "version": vbi.version, "timestamp": vbi.timestamp}


def _model_config(config: ModelConfig | None) -> dict[str, Any] | None:
    if config is None:
        return None
    return {
        "endpoint": config.endpoint,
        "model": config.model,
        "api_key": config.api_key,
        "timeout_ms": config.timeout_ms,
    }


# =============================================================================
# Output codec
# =============================================================================


def output_to_json(output: out.Output) -> Any:
    """Render any store output as JSON. Total, deterministic and pure."""
    match output:
        # Scalars
        case out.Unit():
            return None
        case out.Maybe(value):
            return _optional_value(value)
        case out.MaybeVersioned(vv):
            return None if vv is None else versioned_to_json(vv)
        case out.MaybeVersion(version):
            return version
        case out.Version(version):
            return version
        case out.Bool(b):
            return b
        case out.Uint(n):
            return n
        case out.Text(text):
            return {"text": text}

        # Collections of values
        case out.VersionedValues(values):
            return [versioned_to_json(vv) for vv in values]
        case out.VersionHistory(values):
            return None if values is None else [versioned_to_json(vv) for vv in values]
        case out.Keys(keys):
            return list(keys)
        case out.JsonListResult(keys, cursor):
            result: dict[str, Any] = {"keys": list(keys)}
            if cursor is not None:
                result["cursor"] = cursor
            return result
        case out.Versions(versions):
            return list(versions)
        case out.SpaceList(spaces):
            return list(spaces)
        case out.BatchResults(results):
            return [{"version": r.version, "error": r.error} for r in results]

        # Vectors
        case out.VectorMatches(matches):
            return [
                {"key": m.key, "score": m.score, "metadata": _optional_value(m.metadata)}
                for m in matches
            ]
        case out.VectorData(entry):
            if entry is None:
                return None
            return {
                "key": entry.key,
                "embedding": list(entry.embedding),
                "metadata": _optional_value(entry.metadata),
                "version": entry.version,
                "timestamp": entry.timestamp,
            }
        case out.VectorCollectionList(collections):
            return [
                {
                    "name": c.name,
                    "dimension": c.dimension,
                    "metric": c.metric.name.lower(),
                    "count": c.count,
                    "index_type": c.index_type,
                    "memory_bytes": c.memory_bytes,
                }
                for c in collections
            ]

        # Branches
        case out.MaybeBranchInfo(info):
            return None if info is None else _versioned_branch(info)
        case out.BranchInfoList(branches):
            return [_versioned_branch(b) for b in branches]
        case out.BranchWithVersion(info, version):
            return {**_branch_info(info), "version": version}
        case out.BranchForked(info):
            return {
                "source": info.source,
                "destination": info.destination,
                "keys_copied": info.keys_copied,
            }
        case out.BranchDiff(diff):
            return {
                "branch_a": diff.branch_a,
                "branch_b": diff.branch_b,
                "summary": {
                    "total_added": diff.summary.total_added,
                    "total_removed": diff.summary.total_removed,
                    "total_modified": diff.summary.total_modified,
                },
            }
        case out.BranchMerged(info):
            return {
                "keys_applied": info.keys_applied,
                "spaces_merged": info.spaces_merged,
                "conflicts": [{"key": c.key, "space": c.space} for c in info.conflicts],
            }
        case out.BranchExported(result):
            return {
                "branch_id": result.branch_id,
                "path": result.path,
                "entry_count": result.entry_count,
                "bundle_size": result.bundle_size,
            }
        case out.BranchImported(result):
            return {
                "branch_id": result.branch_id,
                "transactions_applied": result.transactions_applied,
                "keys_written": result.keys_written,
            }
        case out.BundleValidated(result):
            return {
                "branch_id": result.branch_id,
                "format_version": result.format_version,
                "entry_count": result.entry_count,
                "checksums_valid": result.checksums_valid,
            }

        # Transactions
        case out.TxnInfo(info):
            if info is None:
                return None
            return {"id": info.id, "status": info.status.name.lower(), "started_at": info.started_at}
        case out.TxnBegun():
            return {"status": "begun"}
        case out.TxnCommitted(version):
            return {"status": "committed", "version": version}
        case out.TxnAborted():
            return {"status": "aborted"}

        # Database
        case out.DatabaseInfo(info):
            return {
                "version": info.version,
                "uptime_secs": info.uptime_secs,
                "branch_count": info.branch_count,
                "total_keys": info.total_keys,
            }
        case out.Pong(version):
            return {"pong": True, "version": version}
        case out.TimeRange(oldest_ts, latest_ts):
            return {"oldest_ts": oldest_ts, "latest_ts": latest_ts}
        case out.DurabilityCounters(counters):
            return {
                "wal_appends": counters.wal_appends,
                "sync_calls": counters.sync_calls,
                "bytes_written": counters.bytes_written,
                "sync_nanos": counters.sync_nanos,
            }
        case out.Config(config):
            return {
                "durability": config.durability,
                "auto_embed": config.auto_embed,
                "model": _model_config(config.model),
            }

        # Search / embedding / inference / models
        case out.SearchResults(results):
            return [
                {
                    "entity": r.entity,
                    "primitive": r.primitive,
                    "score": r.score,
                    "rank": r.rank,
                    "snippet": r.snippet,
                }
                for r in results
            ]
        case out.EmbedStatus(info):
            is_idle = (
                info.pending == 0
                and info.scheduler_active_tasks == 0
                and info.scheduler_queue_depth == 0
            )
            return {
                "auto_embed": info.auto_embed,
                "batch_size": info.batch_size,
                "pending": info.pending,
                "total_queued": info.total_queued,
                "total_embedded": info.total_embedded,
                "total_failed": info.total_failed,
                "scheduler_queue_depth": info.scheduler_queue_depth,
                "scheduler_active_tasks": info.scheduler_active_tasks,
                "is_idle": is_idle,
            }
        case out.Embedding(vector):
            return [float(x) for x in vector]
        case out.Embeddings(vectors):
            return [[float(x) for x in vector] for vector in vectors]
        case out.Generated(result):
            return {
                "text": result.text,
                "stop_reason": result.stop_reason,
                "prompt_tokens": result.prompt_tokens,
                "completion_tokens": result.completion_tokens,
                "model": result.model,
            }
        case out.TokenIds(result):
            return {"ids": list(result.ids), "count": result.count, "model": result.model}
        case out.ModelsList(models):
            return [
                {
                    "name": m.name,
                    "task": m.task,
                    "architecture": m.architecture,
                    "default_quant": m.default_quant,
                    "embedding_dim": m.embedding_dim,
                    "is_local": m.is_local,
                    "size_bytes": m.size_bytes,
                }
                for m in models
            ]
        case out.ModelsPulled(name, path):
            return {"name": name, "path": path}

        case _:
            assert_never(output)
