"""Branch bundles: portable, checksummed archives of one branch.

A bundle is a gzip-compressed JSON document:

    {
      "format_version": 1,
      "branch_id": "feature",
      "checksum": "sha256:<hex of the canonical entries JSON>",
      "entries": [
        {"primitive": "kv", "space": "default", "key": "a",
         "revisions": [{"value": ..., "version": 1, "timestamp": ..., "deleted": false}]}
      ]
    }

Events are stored with ``primitive: "event"``, the sequence number as the key
and the event type under ``event_type``.
"""

from __future__ import annotations

import gzip
import hashlib
import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..errors import StoreError
from .values import Array, Bool, Float, Int, Null, Object, String, Value

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


@dataclass(frozen=True)
class BundleRevision:
    value: Value | None
    version: int
    timestamp: int

    @property
    def deleted(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class BundleEntry:
    primitive: str
    space: str
    key: str
    revisions: list[BundleRevision] = field(default_factory=list)
    event_type: str | None = None


@dataclass(frozen=True)
class Bundle:
    branch_id: str
    format_version: int
    entries: list[BundleEntry]
    checksums_valid: bool


# =============================================================================
# Value wire format
# =============================================================================


def _dump_value(value: Value) -> Any:
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
            return [_dump_value(v) for v in items]
        case Object(entries):
            return {k: _dump_value(v) for k, v in entries.items()}
    raise TypeError(f"not a Value: {value!r}")


def _load_value(raw: Any) -> Value:
    if raw is None:
        return Null()
    if isinstance(raw, bool):
        return Bool(raw)
    if isinstance(raw, int):
        return Int(raw)
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise ValueError("non-finite number in bundle")
        return Float(raw)
    if isinstance(raw, str):
        return String(raw)
    if isinstance(raw, list):
        return Array([_load_value(v) for v in raw])
    if isinstance(raw, dict):
        return Object({str(k): _load_value(v) for k, v in raw.items()})
    raise ValueError(f"unsupported JSON type in bundle: {type(raw).__name__}")


def _entry_to_dict(entry: BundleEntry) -> dict[str, Any]:
    data: dict[str, Any] = {
        "primitive": entry.primitive,
        "space": entry.space,
        "key": entry.key,
        "revisions": [
            {
                "value": None if rev.value is None else _dump_value(rev.value),
                "version": rev.version,
                "timestamp": rev.timestamp,
                "deleted": rev.deleted,
            }
            for rev in entry.revisions
        ],
    }
    if entry.event_type is not None:
        data["event_type"] = entry.event_type
    return data


def _entry_from_dict(raw: dict[str, Any]) -> BundleEntry:
    revisions = []
    for rev in raw["revisions"]:
        value = None if rev.get("deleted") else _load_value(rev["value"])
        revisions.append(
            BundleRevision(value=value, version=int(rev["version"]), timestamp=int(rev["timestamp"]))
        )
    return BundleEntry(
        primitive=str(raw["primitive"]),
        space=str(raw["space"]),
        key=str(raw["key"]),
        revisions=revisions,
        event_type=raw.get("event_type"),
    )


def _checksum(entries: list[dict[str, Any]]) -> str:
    canonical = json.dumps(entries, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return f"sha256:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"


# =============================================================================
# Read / write
# =============================================================================


def write_bundle(path: str | Path, branch_id: str, entries: list[BundleEntry]) -> int:
    """Write a bundle and return its compressed size in bytes.

    Raises:
        StoreError: IO_ERROR if the file cannot be written.
    """
    raw_entries = [_entry_to_dict(e) for e in entries]
    document = {
        "format_version": FORMAT_VERSION,
        "branch_id": branch_id,
        "checksum": _checksum(raw_entries),
        "entries": raw_entries,
    }
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with gzip.open(target, "wt", encoding="utf-8") as f:
            json.dump(document, f, ensure_ascii=False)
        size = target.stat().st_size
    except OSError as e:
        raise StoreError("IO_ERROR", f"Failed to write bundle {target}: {e}") from e

    logger.info("Exported branch %s to %s (%d entries, %d bytes)", branch_id, target, len(entries), size)
    return size


def read_bundle(path: str | Path) -> Bundle:
    """Read and verify a bundle.

    A checksum mismatch is reported through ``Bundle.checksums_valid`` rather
    than raised, so validation can describe a damaged bundle.

    Raises:
        StoreError: IO_ERROR if the file cannot be read, BUNDLE_INVALID if it is
            not a bundle.
    """
    source = Path(path)
    try:
        with gzip.open(source, "rt", encoding="utf-8") as f:
            document = json.load(f)
    except FileNotFoundError as e:
        raise StoreError("IO_ERROR", f"Bundle not found: {source}") from e
    except (OSError, EOFError) as e:
        raise StoreError("BUNDLE_INVALID", f"Bundle {source} is not a gzip archive: {e}") from e
    except ValueError as e:
        raise StoreError("BUNDLE_INVALID", f"Bundle {source} is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise StoreError("BUNDLE_INVALID", f"Bundle {source} has no header")

    try:
        format_version = int(document["format_version"])
        branch_id = str(document["branch_id"])
        raw_entries = document["entries"]
        entries = [_entry_from_dict(e) for e in raw_entries]
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError("BUNDLE_INVALID", f"Bundle {source} is malformed: {e}") from e

    if format_version > FORMAT_VERSION:
        raise StoreError(
            "BUNDLE_INVALID",
            f"Bundle format version {format_version} is newer than supported ({FORMAT_VERSION})",
        )

    valid = document.get("checksum") == _checksum(raw_entries)
    if not valid:
        logger.warning("Checksum mismatch in bundle %s", source)

    return Bundle(
        branch_id=branch_id,
        format_version=format_version,
        entries=entries,
        checksums_valid=valid,
    )
