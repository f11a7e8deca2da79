"""In-memory Strata engine.

A complete, process-local implementation of the store contract:

- Branches hold named spaces; each space holds KV entries, state cells, JSON
  documents, an event log and vector collections.
- Every keyed write appends a revision (value, per-key version, timestamp).
  Deletes append a tombstone, so history and ``as_of`` reads still see the
  values that existed before deletion.
- Transactions snapshot their own branch's spaces at begin and restore them on rollback.
- Fork copies a branch; diff and merge compare live keyed values (events and
  vectors are branch-local and are neither diffed nor merged).

Timestamps are microseconds from a strictly increasing clock, so two writes
never share a timestamp and ``as_of`` reads are unambiguous.
"""

from __future__ import annotations

import copy
import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Iterator

import numpy as np

from .. import __version__
from ..errors import AccessDeniedError, StoreError
from . import commands as cmd
from . import outputs as out
from .bundle import BundleEntry, BundleRevision, read_bundle, write_bundle
from .catalog import MODEL_CATALOG, ModelDirectory, find_model
from .embedding import HashingEmbedder, similarity
from .inference import HttpGenerator, decode_tokens, encode_tokens
from .jsonpath import delete_at, get_at, parse_path, set_at
from .records import (
    AccessMode,
    BatchItemResult,
    BranchDiffResult,
    BranchInfo,
    BranchStatus,
    BundleExportInfo,
    BundleImportInfo,
    BundleValidateInfo,
    CollectionInfo,
    ConfigData,
    DatabaseInfoData,
    DiffSummary,
    DurabilityCountersData,
    EmbedStatusInfo,
    ForkInfo,
    MergeConflict,
    MergeInfo,
    MergeStrategy,
    ModelConfig,
    TokenizeResult,
    TxnInfoData,
    TxnStatus,
    VectorEntry,
    VectorMatch,
    VectorMetric,
    VersionedBranchInfo,
)
from .search import SEARCH_MODES, Document, rank
from .values import Value, VersionedValue, value_text

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "default"
DEFAULT_SPACE = "default"
MAX_KEY_LENGTH = 1024
MAX_NAME_LENGTH = 255
DEFAULT_SEARCH_K = 10
EMBED_BATCH_SIZE = 32

KEYED_PRIMITIVES = ("kv", "state", "json")
SEARCH_PRIMITIVES = (*KEYED_PRIMITIVES, "event")


# =============================================================================
# Internal data model
# =============================================================================


class _Clock:
    """Strictly increasing wall clock in microseconds."""

    def __init__(self) -> None:
        self._last = 0

    def now(self) -> int:
        ts = time.time_ns() // 1000
        if ts <= self._last:
            ts = self._last + 1
        self._last = ts
        return ts

    def observe(self, ts: int) -> None:
        """Never hand out a timestamp at or below ``ts`` again."""
        self._last = max(self._last, ts)


@dataclass
class _Revision:
    value: Value | None  # None marks a deletion
    version: int
    timestamp: int


@dataclass
class _Event:
    sequence: int
    event_type: str
    payload: Value
    timestamp: int


@dataclass
class _Collection:
    dimension: int
    metric: VectorMetric
    entries: dict[str, VectorEntry] = field(default_factory=dict)


@dataclass
class _Space:
    kv: dict[str, list[_Revision]] = field(default_factory=dict)
    state: dict[str, list[_Revision]] = field(default_factory=dict)
    json: dict[str, list[_Revision]] = field(default_factory=dict)
    events: list[_Event] = field(default_factory=list)
    collections: dict[str, _Collection] = field(default_factory=dict)
    embeddings: dict[tuple[str, str], np.ndarray] = field(default_factory=dict)

    def keyed(self, primitive: str) -> dict[str, list[_Revision]]:
        return {"kv": self.kv, "state": self.state, "json": self.json}[primitive]

    def live_items(self) -> Iterator[tuple[str, str, _Revision]]:
        """Yield ``(primitive, key, revision)`` for every live key."""
        for primitive in KEYED_PRIMITIVES:
            histories = self.keyed(primitive)
            for key in sorted(histories):
                rev = _live(histories, key)
                if rev is not None:
                    yield primitive, key, rev

    def live_count(self) -> int:
        return sum(1 for _ in self.live_items())

    def is_empty(self) -> bool:
        return self.live_count() == 0 and not self.events and not self.collections

    def timestamps(self) -> Iterator[int]:
        for primitive in KEYED_PRIMITIVES:
            for history in self.keyed(primitive).values():
                for rev in history:
                    yield rev.timestamp
        for event in self.events:
            yield event.timestamp


@dataclass
class _Branch:
    info: BranchInfo
    version: int
    timestamp: int
    metadata: Value | None = None
    spaces: dict[str, _Space] = field(default_factory=lambda: {DEFAULT_SPACE: _Space()})

    def versioned_info(self) -> VersionedBranchInfo:
        return VersionedBranchInfo(info=self.info, version=self.version, timestamp=self.timestamp)


@dataclass
class _Counters:
    wal_appends: int = 0
    sync_calls: int = 0
    bytes_written: int = 0
    sync_nanos: int = 0
    embed_queued: int = 0
    embed_done: int = 0
    embed_failed: int = 0


@dataclass
class _Transaction:
    id: str
    branch: str
    started_at: int
    snapshot: dict[str, _Space]


def _at(history: list[_Revision], as_of: int | None) -> _Revision | None:
    """Latest revision written at or before ``as_of``."""
    for rev in reversed(history):
        if as_of is None or rev.timestamp <= as_of:
            return rev
    return None


def _live(histories: dict[str, list[_Revision]], key: str, as_of: int | None = None) -> _Revision | None:
    history = histories.get(key)
    if not history:
        return None
    rev = _at(history, as_of)
    if rev is None or rev.value is None:
        return None
    return rev


def _versioned(rev: _Revision | None) -> VersionedValue | None:
    if rev is None or rev.value is None:
        return None
    return VersionedValue(value=rev.value, version=rev.version, timestamp=rev.timestamp)


def _history(
    histories: dict[str, list[_Revision]], key: str, as_of: int | None
) -> list[VersionedValue] | None:
    """Surviving revisions of ``key``, newest first; None if it was never written."""
    history = histories.get(key)
    if history is None:
        return None
    result = []
    for rev in reversed(history):
        if as_of is not None and rev.timestamp > as_of:
            continue
        vv = _versioned(rev)
        if vv is not None:
            result.append(vv)
    return result


def _live_keys(histories: dict[str, list[_Revision]], prefix: str | None) -> list[str]:
    return sorted(
        key
        for key in histories
        if (prefix is None or key.startswith(prefix)) and _live(histories, key) is not None
    )


def _check_key(key: str) -> None:
    if not key:
        raise StoreError("INVALID_KEY", "Key must not be empty")
    if len(key) > MAX_KEY_LENGTH:
        raise StoreError("INVALID_KEY", f"Key exceeds {MAX_KEY_LENGTH} characters")
    if "\x00" in key:
        raise StoreError("INVALID_KEY", "Key must not contain NUL characters")


def _check_name(kind: str, name: str) -> None:
    if not name or not name.strip():
        raise StoreError("INVALID_INPUT", f"{kind.capitalize()} name must not be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise StoreError("INVALID_INPUT", f"{kind.capitalize()} name exceeds {MAX_NAME_LENGTH} characters")


# =============================================================================
# Store
# =============================================================================


class MemoryStore:
    """Versioned in-memory database implementing the ``Store`` contract.

    Example:
        store = MemoryStore(auto_embed=True)
        executor = store.session()
        executor.execute(commands.KvPut(key="a", value=Int(1)))
    """

    def __init__(
        self,
        *,
        access_mode: AccessMode = AccessMode.READ_WRITE,
        auto_embed: bool = False,
        models_dir: str | Path | None = None,
        model: ModelConfig | None = None,
        durability: str = "standard",
    ) -> None:
        self._access_mode = access_mode
        self._auto_embed = auto_embed
        self._durability = durability
        self._model_config = model
        self._generator: HttpGenerator | None = None
        self._loaded_models: set[str] = set()
        self._models = ModelDirectory(models_dir) if models_dir else None
        self._embedder = HashingEmbedder()
        self._clock = _Clock()
        self._started = time.monotonic()
        self._counters = _Counters()
        self._commit_version = 0
        self._branches: dict[str, _Branch] = {}
        self._new_branch(DEFAULT_BRANCH)

    # -------------------------------------------------------------------------
    # Store contract
    # -------------------------------------------------------------------------

    def access_mode(self) -> AccessMode:
        return self._access_mode

    def branches(self) -> MemoryBranchOps:
        return MemoryBranchOps(self)

    def session(self) -> MemorySession:
        return MemorySession(self)

    # -------------------------------------------------------------------------
    # Engine internals shared by sessions and branch operations
    # -------------------------------------------------------------------------

    def _require_writable(self, operation: str) -> None:
        if self._access_mode is AccessMode.READ_ONLY:
            raise AccessDeniedError(operation)

    def _branch(self, name: str | None) -> _Branch:
        name = name or DEFAULT_BRANCH
        branch = self._branches.get(name)
        if branch is None:
            raise StoreError("BRANCH_NOT_FOUND", f"Branch not found: {name}")
        return branch

    def _new_branch(self, name: str, *, parent: str | None = None) -> _Branch:
        now = self._clock.now()
        branch = _Branch(
            info=BranchInfo(
                id=name,
                status=BranchStatus.ACTIVE,
                created_at=now,
                updated_at=now,
                parent_id=parent,
            ),
            version=1,
            timestamp=now,
        )
        self._branches[name] = branch
        return branch

    def _touch(self, branch: _Branch) -> None:
        now = self._clock.now()
        branch.info = replace(branch.info, updated_at=now)
        branch.version += 1
        branch.timestamp = now

    def _write(self, branch: _Branch, space: _Space, primitive: str, key: str, value: Value | None) -> int:
        """Append a revision (``None`` deletes) and return the key's new version."""
        history = space.keyed(primitive).setdefault(key, [])
        version = history[-1].version + 1 if history else 1
        history.append(_Revision(value=value, version=version, timestamp=self._clock.now()))
        self._index(space, primitive, key, value)
        self._touch(branch)
        return version

    def _index(self, space: _Space, primitive: str, key: str, value: Value | None) -> None:
        if value is None:
            space.embeddings.pop((primitive, key), None)
            return
        if not self._auto_embed:
            return
        self._counters.embed_queued += 1
        space.embeddings[(primitive, key)] = self._embedder.embed(f"{key} {value_text(value)}")
        self._counters.embed_done += 1

    def _record_write(self, command: cmd.Command) -> None:
        self._counters.wal_appends += 1
        self._counters.bytes_written += len(repr(command).encode("utf-8"))

    def _sync(self) -> None:
        start = time.perf_counter_ns()
        self._counters.sync_calls += 1
        self._counters.sync_nanos += time.perf_counter_ns() - start

    def _total_keys(self) -> int:
        return sum(
            space.live_count() for branch in self._branches.values() for space in branch.spaces.values()
        )

    def _http(self) -> HttpGenerator:
        if self._model_config is None:
            raise StoreError(
                "MODEL_NOT_CONFIGURED",
                "No model endpoint configured; set one with strata_configure_model",
            )
        if self._generator is None:
            self._generator = HttpGenerator(self._model_config)
        return self._generator

    def _require_embedding(self) -> None:
        if not self._auto_embed:
            raise StoreError("EMBED_DISABLED", "Embedding requires auto-embed to be enabled")

    def _bundle_entries(self, branch: _Branch) -> list[BundleEntry]:
        entries = []
        for space_name, space in branch.spaces.items():
            for primitive in KEYED_PRIMITIVES:
                for key, history in sorted(space.keyed(primitive).items()):
                    entries.append(
                        BundleEntry(
                            primitive=primitive,
                            space=space_name,
                            key=key,
                            revisions=[
                                BundleRevision(value=r.value, version=r.version, timestamp=r.timestamp)
                                for r in history
                            ],
                        )
                    )
            for event in space.events:
                entries.append(
                    BundleEntry(
                        primitive="event",
                        space=space_name,
                        key=str(event.sequence),
                        revisions=[
                            BundleRevision(value=event.payload, version=event.sequence, timestamp=event.timestamp)
                        ],
                        event_type=event.event_type,
                    )
                )
        return entries

    def _documents(self, space: _Space, primitives: list[str], time_range: tuple[int, int] | None) -> list[Document]:
        def in_range(ts: int) -> bool:
            return time_range is None or time_range[0] <= ts <= time_range[1]

        docs = []
        for primitive, key, rev in space.live_items():
            if primitive in primitives and in_range(rev.timestamp):
                docs.append(
                    Document(
                        entity=key,
                        primitive=primitive,
                        text=f"{key} {value_text(rev.value)}",
                        timestamp=rev.timestamp,
                        embedding=space.embeddings.get((primitive, key)),
                    )
                )
        if "event" in primitives:
            for event in space.events:
                if in_range(event.timestamp):
                    docs.append(
                        Document(
                            entity=f"{event.event_type}#{event.sequence}",
                            primitive="event",
                            text=f"{event.event_type} {value_text(event.payload)}",
                            timestamp=event.timestamp,
                            embedding=space.embeddings.get(("event", str(event.sequence))),
                        )
                    )
        return docs


# =============================================================================
# Branch operations
# =============================================================================


class MemoryBranchOps:
    """Fork, diff and merge over a ``MemoryStore``."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    def fork(self, source: str, destination: str) -> ForkInfo:
        store = self._store
        store._require_writable("BranchFork")
        src = store._branch(source)
        _check_name("branch", destination)
        if destination in store._branches:
            raise StoreError("BRANCH_EXISTS", f"Branch already exists: {destination}")

        forked = store._new_branch(destination, parent=source)
        forked.spaces = copy.deepcopy(src.spaces)
        keys_copied = sum(space.live_count() for space in forked.spaces.values())
        logger.info("Forked branch %s -> %s (%d keys)", source, destination, keys_copied)
        return ForkInfo(source=source, destination=destination, keys_copied=keys_copied)

    def diff(self, branch_a: str, branch_b: str) -> BranchDiffResult:
        left = self._snapshot(self._store._branch(branch_a))
        right = self._snapshot(self._store._branch(branch_b))
        shared = left.keys() & right.keys()
        summary = DiffSummary(
            total_added=len(right.keys() - left.keys()),
            total_removed=len(left.keys() - right.keys()),
            total_modified=sum(1 for k in shared if left[k] != right[k]),
        )
        return BranchDiffResult(branch_a=branch_a, branch_b=branch_b, summary=summary)

    def merge(self, source: str, target: str, strategy: MergeStrategy) -> MergeInfo:
        """Apply ``source``'s live keys to ``target``.

        A conflict is a key live on both sides with different values. Under
        LAST_WRITER_WINS the more recent write is kept and every conflict is
        reported; under STRICT any conflict aborts the merge untouched.
        """
        store = self._store
        store._require_writable("BranchMerge")
        src = store._branch(source)
        dst = store._branch(target)

        conflicts: list[MergeConflict] = []
        plan: list[tuple[str, str, str, Value]] = []
        for space_name, src_space in src.spaces.items():
            dst_space = dst.spaces.get(space_name)
            for primitive, key, src_rev in src_space.live_items():
                dst_rev = _live(dst_space.keyed(primitive), key) if dst_space is not None else None
                if dst_rev is None:
                    plan.append((space_name, primitive, key, src_rev.value))
                    continue
                if dst_rev.value == src_rev.value:
                    continue
                conflicts.append(MergeConflict(key=key, space=space_name))
                if src_rev.timestamp > dst_rev.timestamp:
                    plan.append((space_name, primitive, key, src_rev.value))

        if conflicts and strategy is MergeStrategy.STRICT:
            raise StoreError(
                "MERGE_CONFLICT",
                f"Merge of {source} into {target} has {len(conflicts)} conflicting key(s)",
            )

        spaces_merged = set()
        for space_name, primitive, key, value in plan:
            space = dst.spaces.setdefault(space_name, _Space())
            store._write(dst, space, primitive, key, value)
            spaces_merged.add(space_name)

        logger.info(
            "Merged %s into %s: %d keys applied, %d conflicts",
            source,
            target,
            len(plan),
            len(conflicts),
        )
        return MergeInfo(keys_applied=len(plan), spaces_merged=len(spaces_merged), conflicts=conflicts)

    @staticmethod
    def _snapshot(branch: _Branch) -> dict[tuple[str, str, str], Value]:
        return {
            (space_name, primitive, key): rev.value
            for space_name, space in branch.spaces.items()
            for primitive, key, rev in space.live_items()
        }


# =============================================================================
# Session (command executor)
# =============================================================================


class MemorySession:
    """Command executor bound to one ``MemoryStore``; owns transaction state."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store
        self._txn: _Transaction | None = None
        self._handlers: dict[type[cmd.Command], Callable[[Any], out.Output]] = {
            # Database
            cmd.Ping: self._ping,
            cmd.Info: self._info,
            cmd.Flush: self._flush,
            cmd.Compact: self._compact,
            cmd.TimeRange: self._time_range,
            cmd.DurabilityCounters: self._durability_counters,
            # KV
            cmd.KvPut: self._kv_put,
            cmd.KvGet: self._kv_get,
            cmd.KvDelete: self._kv_delete,
            cmd.KvList: self._kv_list,
            cmd.KvGetv: self._kv_getv,
            cmd.KvBatchPut: self._kv_batch_put,
            # State
            cmd.StateSet: self._state_set,
            cmd.StateGet: self._state_get,
            cmd.StateInit: self._state_init,
            cmd.StateCas: self._state_cas,
            cmd.StateDelete: self._state_delete,
            cmd.StateList: self._state_list,
            cmd.StateGetv: self._state_getv,
            # Events
            cmd.EventAppend: self._event_append,
            cmd.EventGet: self._event_get,
            cmd.EventGetByType: self._event_get_by_type,
            cmd.EventLen: self._event_len,
            # JSON
            cmd.JsonSet: self._json_set,
            cmd.JsonGet: self._json_get,
            cmd.JsonDelete: self._json_delete,
            cmd.JsonGetv: self._json_getv,
            cmd.JsonList: self._json_list,
            # Spaces
            cmd.SpaceList: self._space_list,
            cmd.SpaceCreate: self._space_create,
            cmd.SpaceDelete: self._space_delete,
            cmd.SpaceExists: self._space_exists,
            # Branches
            cmd.BranchCreate: self._branch_create,
            cmd.BranchGet: self._branch_get,
            cmd.BranchList: self._branch_list,
            cmd.BranchExists: self._branch_exists,
            cmd.BranchDelete: self._branch_delete,
            # Vectors
            cmd.VectorCreateCollection: self._vector_create_collection,
            cmd.VectorDeleteCollection: self._vector_delete_collection,
            cmd.VectorListCollections: self._vector_list_collections,
            cmd.VectorUpsert: self._vector_upsert,
            cmd.VectorGet: self._vector_get,
            cmd.VectorDelete: self._vector_delete,
            cmd.VectorSearch: self._vector_search,
            # Transactions
            cmd.TxnBegin: self._txn_begin,
            cmd.TxnCommit: self._txn_commit,
            cmd.TxnRollback: self._txn_rollback,
            cmd.TxnInfo: self._txn_info,
            cmd.TxnIsActive: self._txn_is_active,
            # Search
            cmd.Search: self._search,
            # Bundles / retention
            cmd.BranchExport: self._branch_export,
            cmd.BranchImport: self._branch_import,
            cmd.BranchBundleValidate: self._bundle_validate,
            cmd.RetentionApply: self._retention_apply,
            # Configuration
            cmd.ConfigGet: self._config_get,
            cmd.ConfigureModel: self._configure_model,
            cmd.ConfigSetAutoEmbed: self._config_set_auto_embed,
            # Embedding
            cmd.Embed: self._embed,
            cmd.EmbedBatch: self._embed_batch,
            cmd.EmbedStatus: self._embed_status,
            # Inference
            cmd.Generate: self._generate,
            cmd.Tokenize: self._tokenize,
            cmd.Detokenize: self._detokenize,
            cmd.GenerateUnload: self._generate_unload,
            # Models
            cmd.ModelsList: self._models_list,
            cmd.ModelsPull: self._models_pull,
            cmd.ModelsLocal: self._models_local,
        }

    def execute(self, command: cmd.Command) -> out.Output:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise StoreError("INVALID_INPUT", f"Unsupported command: {command.command_name()}")
        if command.is_write():
            self._store._require_writable(command.command_name())

        output = handler(command)

        if command.is_write():
            self._store._record_write(command)
        return output

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _target(self, branch: str | None, space: str | None) -> tuple[_Branch, _Space]:
        """Resolve a space for writing, creating it on first use."""
        b = self._store._branch(branch)
        name = space or DEFAULT_SPACE
        found = b.spaces.get(name)
        if found is None:
            _check_name("space", name)
            found = b.spaces[name] = _Space()
        return b, found

    def _source(self, branch: str | None, space: str | None) -> _Space:
        """Resolve a space for reading; a missing space reads as empty."""
        found = self._store._branch(branch).spaces.get(space or DEFAULT_SPACE)
        return found if found is not None else _Space()

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------

    def _ping(self, c: cmd.Ping) -> out.Pong:
        return out.Pong(version=__version__)

    def _info(self, c: cmd.Info) -> out.DatabaseInfo:
        store = self._store
        return out.DatabaseInfo(
            DatabaseInfoData(
                version=__version__,
                uptime_secs=int(time.monotonic() - store._started),
                branch_count=len(store._branches),
                total_keys=store._total_keys(),
            )
        )

    def _flush(self, c: cmd.Flush) -> out.Unit:
        self._store._sync()
        return out.Unit()

    def _compact(self, c: cmd.Compact) -> out.Unit:
        # Nothing is stored out of line, so compaction only has to sync.
        self._store._sync()
        return out.Unit()

    def _time_range(self, c: cmd.TimeRange) -> out.TimeRange:
        branch = self._store._branch(c.branch)
        stamps = [ts for space in branch.spaces.values() for ts in space.timestamps()]
        if not stamps:
            return out.TimeRange(oldest_ts=None, latest_ts=None)
        return out.TimeRange(oldest_ts=min(stamps), latest_ts=max(stamps))

    def _durability_counters(self, c: cmd.DurabilityCounters) -> out.DurabilityCounters:
        counters = self._store._counters
        return out.DurabilityCounters(
            DurabilityCountersData(
                wal_appends=counters.wal_appends,
                sync_calls=counters.sync_calls,
                bytes_written=counters.bytes_written,
                sync_nanos=counters.sync_nanos,
            )
        )

    # -------------------------------------------------------------------------
    # Keyed primitives (KV and state cells share the same shape)
    # -------------------------------------------------------------------------

    def _put(self, primitive: str, branch: str | None, space: str | None, key: str, value: Value) -> int:
        _check_key(key)
        b, s = self._target(branch, space)
        return self._store._write(b, s, primitive, key, value)

    def _delete(self, primitive: str, branch: str | None, space: str | None, key: str) -> bool:
        b = self._store._branch(branch)
        s = b.spaces.get(space or DEFAULT_SPACE)
        if s is None or _live(s.keyed(primitive), key) is None:
            return False
        self._store._write(b, s, primitive, key, None)
        return True

    def _kv_put(self, c: cmd.KvPut) -> out.Version:
        return out.Version(self._put("kv", c.branch, c.space, c.key, c.value))

    def _kv_get(self, c: cmd.KvGet) -> out.MaybeVersioned:
        space = self._source(c.branch, c.space)
        return out.MaybeVersioned(_versioned(_live(space.kv, c.key, c.as_of)))

    def _kv_delete(self, c: cmd.KvDelete) -> out.Bool:
        return out.Bool(self._delete("kv", c.branch, c.space, c.key))

    def _kv_list(self, c: cmd.KvList) -> out.Keys:
        return out.Keys(_live_keys(self._source(c.branch, c.space).kv, c.prefix))

    def _kv_getv(self, c: cmd.KvGetv) -> out.VersionHistory:
        return out.VersionHistory(_history(self._source(c.branch, c.space).kv, c.key, c.as_of))

    def _kv_batch_put(self, c: cmd.KvBatchPut) -> out.BatchResults:
        results = []
        for key, value in c.entries:
            try:
                results.append(BatchItemResult(version=self._put("kv", c.branch, c.space, key, value)))
            except StoreError as e:
                results.append(BatchItemResult(error=e.message))
        return out.BatchResults(results)

    def _state_set(self, c: cmd.StateSet) -> out.Version:
        return out.Version(self._put("state", c.branch, c.space, c.cell, c.value))

    def _state_get(self, c: cmd.StateGet) -> out.MaybeVersioned:
        space = self._source(c.branch, c.space)
        return out.MaybeVersioned(_versioned(_live(space.state, c.cell, c.as_of)))

    def _state_init(self, c: cmd.StateInit) -> out.Version:
        current = _live(self._source(c.branch, c.space).state, c.cell)
        if current is not None:
            return out.Version(current.version)
        return out.Version(self._put("state", c.branch, c.space, c.cell, c.value))

    def _state_cas(self, c: cmd.StateCas) -> out.MaybeVersion:
        current = _live(self._source(c.branch, c.space).state, c.cell)
        if c.expected_counter is None:
            matches = current is None
        else:
            matches = current is not None and current.version == c.expected_counter
        if not matches:
            return out.MaybeVersion(None)
        return out.MaybeVersion(self._put("state", c.branch, c.space, c.cell, c.value))

    def _state_delete(self, c: cmd.StateDelete) -> out.Bool:
        return out.Bool(self._delete("state", c.branch, c.space, c.cell))

    def _state_list(self, c: cmd.StateList) -> out.Keys:
        return out.Keys(_live_keys(self._source(c.branch, c.space).state, c.prefix))

    def _state_getv(self, c: cmd.StateGetv) -> out.VersionHistory:
        return out.VersionHistory(_history(self._source(c.branch, c.space).state, c.cell, c.as_of))

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def _event_append(self, c: cmd.EventAppend) -> out.Version:
        if not c.event_type:
            raise StoreError("INVALID_INPUT", "Event type must not be empty")
        store = self._store
        branch, space = self._target(c.branch, c.space)
        sequence = len(space.events)
        space.events.append(
            _Event(sequence=sequence, event_type=c.event_type, payload=c.payload, timestamp=store._clock.now())
        )
        store._index(space, "event", str(sequence), c.payload)
        store._touch(branch)
        return out.Version(sequence)

    def _event_get(self, c: cmd.EventGet) -> out.MaybeVersioned:
        events = self._source(c.branch, c.space).events
        if not 0 <= c.sequence < len(events):
            return out.MaybeVersioned(None)
        event = events[c.sequence]
        if c.as_of is not None and event.timestamp > c.as_of:
            return out.MaybeVersioned(None)
        return out.MaybeVersioned(
            VersionedValue(value=event.payload, version=event.sequence, timestamp=event.timestamp)
        )

    def _event_get_by_type(self, c: cmd.EventGetByType) -> out.VersionedValues:
        matches = [
            VersionedValue(value=e.payload, version=e.sequence, timestamp=e.timestamp)
            for e in self._source(c.branch, c.space).events
            if e.event_type == c.event_type and (c.after_sequence is None or e.sequence > c.after_sequence)
        ]
        if c.limit is not None:
            matches = matches[: c.limit]
        return out.VersionedValues(matches)

    def _event_len(self, c: cmd.EventLen) -> out.Uint:
        return out.Uint(len(self._source(c.branch, c.space).events))

    # -------------------------------------------------------------------------
    # JSON documents
    # -------------------------------------------------------------------------

    def _json_set(self, c: cmd.JsonSet) -> out.Version:
        _check_key(c.key)
        segments = parse_path(c.path)
        branch, space = self._target(c.branch, c.space)
        current = _live(space.json, c.key)
        doc = set_at(current.value if current else None, segments, c.value, path=c.path)
        return out.Version(self._store._write(branch, space, "json", c.key, doc))

    def _json_get(self, c: cmd.JsonGet) -> out.MaybeVersioned:
        segments = parse_path(c.path)
        rev = _live(self._source(c.branch, c.space).json, c.key, c.as_of)
        if rev is None:
            return out.MaybeVersioned(None)
        found = get_at(rev.value, segments)
        if found is None:
            return out.MaybeVersioned(None)
        return out.MaybeVersioned(VersionedValue(value=found, version=rev.version, timestamp=rev.timestamp))

    def _json_delete(self, c: cmd.JsonDelete) -> out.Uint:
        segments = parse_path(c.path)
        branch = self._store._branch(c.branch)
        space = branch.spaces.get(c.space or DEFAULT_SPACE)
        rev = _live(space.json, c.key) if space is not None else None
        if rev is None:
            return out.Uint(0)
        if not segments:
            self._store._write(branch, space, "json", c.key, None)
            return out.Uint(1)
        doc, removed = delete_at(rev.value, segments)
        if not removed:
            return out.Uint(0)
        self._store._write(branch, space, "json", c.key, doc)
        return out.Uint(1)

    def _json_getv(self, c: cmd.JsonGetv) -> out.VersionHistory:
        return out.VersionHistory(_history(self._source(c.branch, c.space).json, c.key, c.as_of))

    def _json_list(self, c: cmd.JsonList) -> out.JsonListResult:
        keys = _live_keys(self._source(c.branch, c.space).json, c.prefix)
        if c.cursor is not None:
            keys = [k for k in keys if k > c.cursor]
        cursor = None
        if c.limit is not None and len(keys) > c.limit:
            keys = keys[: c.limit]
            cursor = keys[-1] if keys else None
        return out.JsonListResult(keys=keys, cursor=cursor)

    # -------------------------------------------------------------------------
    # Spaces
    # -------------------------------------------------------------------------

    def _space_list(self, c: cmd.SpaceList) -> out.SpaceList:
        return out.SpaceList(sorted(self._store._branch(c.branch).spaces))

    def _space_create(self, c: cmd.SpaceCreate) -> out.Unit:
        self._target(c.branch, c.space)
        return out.Unit()

    def _space_delete(self, c: cmd.SpaceDelete) -> out.Unit:
        branch = self._store._branch(c.branch)
        if c.space == DEFAULT_SPACE:
            raise StoreError("CONSTRAINT_VIOLATION", "Cannot delete the default space")
        space = branch.spaces.get(c.space)
        if space is None:
            raise StoreError("NOT_FOUND", f"Space not found: {c.space}")
        if not c.force and not space.is_empty():
            raise StoreError("CONSTRAINT_VIOLATION", f"Space '{c.space}' is not empty; use force to delete it")
        del branch.spaces[c.space]
        self._store._touch(branch)
        return out.Unit()

    def _space_exists(self, c: cmd.SpaceExists) -> out.Bool:
        return out.Bool(c.space in self._store._branch(c.branch).spaces)

    # -------------------------------------------------------------------------
    # Branches
    # -------------------------------------------------------------------------

    def _branch_create(self, c: cmd.BranchCreate) -> out.BranchWithVersion:
        store = self._store
        name = c.branch_id or str(uuid.uuid4())
        _check_name("branch", name)
        if name in store._branches:
            raise StoreError("BRANCH_EXISTS", f"Branch already exists: {name}")
        branch = store._new_branch(name)
        branch.metadata = c.metadata
        logger.info("Created branch %s", name)
        return out.BranchWithVersion(info=branch.info, version=branch.version)

    def _branch_get(self, c: cmd.BranchGet) -> out.MaybeBranchInfo:
        branch = self._store._branches.get(c.branch)
        return out.MaybeBranchInfo(branch.versioned_info() if branch else None)

    def _branch_list(self, c: cmd.BranchList) -> out.BranchInfoList:
        infos = [
            b.versioned_info()
            for b in self._store._branches.values()
            if c.state is None or b.info.status is c.state
        ]
        start = c.offset or 0
        end = None if c.limit is None else start + c.limit
        return out.BranchInfoList(infos[start:end])

    def _branch_exists(self, c: cmd.BranchExists) -> out.Bool:
        return out.Bool(c.branch in self._store._branches)

    def _branch_delete(self, c: cmd.BranchDelete) -> out.Unit:
        if c.branch == DEFAULT_BRANCH:
            raise StoreError("CONSTRAINT_VIOLATION", "Cannot delete the default branch")
        if c.branch not in self._store._branches:
            raise StoreError("BRANCH_NOT_FOUND", f"Branch not found: {c.branch}")
        del self._store._branches[c.branch]
        logger.info("Deleted branch %s", c.branch)
        return out.Unit()

    # -------------------------------------------------------------------------
    # Vectors
    # -------------------------------------------------------------------------

    def _collection(self, branch: str | None, space: str | None, name: str) -> _Collection:
        found = self._source(branch, space).collections.get(name)
        if found is None:
            raise StoreError("NOT_FOUND", f"Collection not found: {name}")
        return found

    @staticmethod
    def _as_array(vector: list[float], dimension: int) -> np.ndarray:
        if len(vector) != dimension:
            raise StoreError(
                "DIMENSION_MISMATCH",
                f"Expected a vector of dimension {dimension}, got {len(vector)}",
            )
        arr = np.asarray(vector, dtype=np.float32)
        if not np.all(np.isfinite(arr)):
            raise StoreError("INVALID_INPUT", "Vector contains non-finite values")
        return arr

    def _vector_create_collection(self, c: cmd.VectorCreateCollection) -> out.Unit:
        _check_name("collection", c.collection)
        if c.dimension <= 0:
            raise StoreError("INVALID_INPUT", "Collection dimension must be positive")
        branch, space = self._target(c.branch, c.space)
        if c.collection in space.collections:
            raise StoreError("COLLECTION_EXISTS", f"Collection already exists: {c.collection}")
        space.collections[c.collection] = _Collection(dimension=c.dimension, metric=c.metric)
        self._store._touch(branch)
        return out.Unit()

    def _vector_delete_collection(self, c: cmd.VectorDeleteCollection) -> out.Bool:
        branch = self._store._branch(c.branch)
        space = branch.spaces.get(c.space or DEFAULT_SPACE)
        if space is None or c.collection not in space.collections:
            return out.Bool(False)
        del space.collections[c.collection]
        self._store._touch(branch)
        return out.Bool(True)

    def _vector_list_collections(self, c: cmd.VectorListCollections) -> out.VectorCollectionList:
        collections = self._source(c.branch, c.space).collections
        return out.VectorCollectionList(
            [
                CollectionInfo(
                    name=name,
                    dimension=coll.dimension,
                    metric=coll.metric,
                    count=len(coll.entries),
                    index_type="brute_force",
                    memory_bytes=len(coll.entries) * coll.dimension * 4,
                )
                for name, coll in sorted(collections.items())
            ]
        )

    def _vector_upsert(self, c: cmd.VectorUpsert) -> out.Version:
        _check_key(c.key)
        branch, space = self._target(c.branch, c.space)
        coll = space.collections.get(c.collection)
        if coll is None:
            raise StoreError("NOT_FOUND", f"Collection not found: {c.collection}")
        arr = self._as_array(c.vector, coll.dimension)
        previous = coll.entries.get(c.key)
        version = previous.version + 1 if previous else 1
        coll.entries[c.key] = VectorEntry(
            key=c.key,
            embedding=arr.tolist(),
            metadata=c.metadata,
            version=version,
            timestamp=self._store._clock.now(),
        )
        self._store._touch(branch)
        return out.Version(version)

    def _vector_get(self, c: cmd.VectorGet) -> out.VectorData:
        coll = self._collection(c.branch, c.space, c.collection)
        return out.VectorData(coll.entries.get(c.key))

    def _vector_delete(self, c: cmd.VectorDelete) -> out.Bool:
        coll = self._collection(c.branch, c.space, c.collection)
        if coll.entries.pop(c.key, None) is None:
            return out.Bool(False)
        self._store._touch(self._store._branch(c.branch))
        return out.Bool(True)

    def _vector_search(self, c: cmd.VectorSearch) -> out.VectorMatches:
        coll = self._collection(c.branch, c.space, c.collection)
        query = self._as_array(c.query, coll.dimension)
        if c.k <= 0:
            return out.VectorMatches([])
        scored = sorted(
            (
                (similarity(np.asarray(entry.embedding, dtype=np.float32), query, coll.metric.value), key)
                for key, entry in coll.entries.items()
            ),
            key=lambda pair: (-pair[0], pair[1]),
        )
        return out.VectorMatches(
            [
                VectorMatch(key=key, score=score, metadata=coll.entries[key].metadata)
                for score, key in scored[: c.k]
            ]
        )

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _txn_begin(self, c: cmd.TxnBegin) -> out.TxnBegun:
        if self._txn is not None:
            raise StoreError("TRANSACTION_ACTIVE", "A transaction is already active")
        branch = self._store._branch(c.branch)
        self._txn = _Transaction(
            id=uuid.uuid4().hex,
            branch=branch.info.id,
            started_at=self._store._clock.now(),
            snapshot=copy.deepcopy(branch.spaces),
        )
        logger.debug("Began transaction %s on %s", self._txn.id, self._txn.branch)
        return out.TxnBegun()

    def _txn_commit(self, c: cmd.TxnCommit) -> out.TxnCommitted:
        if self._txn is None:
            raise StoreError("NO_TRANSACTION", "No active transaction")
        txn, self._txn = self._txn, None
        self._store._sync()
        self._store._commit_version += 1
        logger.debug("Committed transaction %s", txn.id)
        return out.TxnCommitted(version=self._store._commit_version)

    def _txn_rollback(self, c: cmd.TxnRollback) -> out.TxnAborted:
        if self._txn is None:
            raise StoreError("NO_TRANSACTION", "No active transaction")
        txn, self._txn = self._txn, None
        # Only the transaction's own branch is restored; a branch deleted meanwhile stays deleted.
        branch = self._store._branches.get(txn.branch)
        if branch is not None:
            branch.spaces = txn.snapshot
        logger.debug("Rolled back transaction %s", txn.id)
        return out.TxnAborted()

    def _txn_info(self, c: cmd.TxnInfo) -> out.TxnInfo:
        if self._txn is None:
            return out.TxnInfo(None)
        return out.TxnInfo(TxnInfoData(id=self._txn.id, status=TxnStatus.ACTIVE, started_at=self._txn.started_at))

    def _txn_is_active(self, c: cmd.TxnIsActive) -> out.Bool:
        return out.Bool(self._txn is not None)

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def _search(self, c: cmd.Search) -> out.SearchResults:
        store = self._store
        query = c.search
        mode = query.mode or ("hybrid" if store._auto_embed else "keyword")
        if mode not in SEARCH_MODES:
            raise StoreError("INVALID_INPUT", f"Unknown search mode '{mode}'. Use: {', '.join(SEARCH_MODES)}")
        if mode != "keyword":
            store._require_embedding()

        primitives = list(query.primitives) if query.primitives else list(SEARCH_PRIMITIVES)
        unknown = [p for p in primitives if p not in SEARCH_PRIMITIVES]
        if unknown:
            raise StoreError("INVALID_INPUT", f"Unknown search primitive(s): {', '.join(unknown)}")

        documents = store._documents(self._source(c.branch, c.space), primitives, query.time_range)
        k = DEFAULT_SEARCH_K if query.k is None else query.k
        return out.SearchResults(rank(documents, query.query, k=k, mode=mode, embedder=store._embedder))

    # -------------------------------------------------------------------------
    # Bundles / retention
    # -------------------------------------------------------------------------

    def _branch_export(self, c: cmd.BranchExport) -> out.BranchExported:
        branch = self._store._branch(c.branch_id)
        entries = self._store._bundle_entries(branch)
        size = write_bundle(c.path, c.branch_id, entries)
        return out.BranchExported(
            BundleExportInfo(branch_id=c.branch_id, path=c.path, entry_count=len(entries), bundle_size=size)
        )

    def _branch_import(self, c: cmd.BranchImport) -> out.BranchImported:
        store = self._store
        bundle = read_bundle(c.path)
        if not bundle.checksums_valid:
            raise StoreError("BUNDLE_INVALID", f"Bundle {c.path} failed checksum verification")
        if bundle.branch_id in store._branches:
            raise StoreError("BRANCH_EXISTS", f"Branch already exists: {bundle.branch_id}")

        spaces: dict[str, _Space] = {DEFAULT_SPACE: _Space()}
        stamps: set[int] = set()
        for entry in bundle.entries:
            space = spaces.setdefault(entry.space, _Space())
            stamps.update(rev.timestamp for rev in entry.revisions)
            if entry.primitive == "event":
                for rev in entry.revisions:
                    if rev.value is None:
                        raise StoreError("BUNDLE_INVALID", f"Event {entry.key} has no payload")
                    space.events.append(
                        _Event(
                            sequence=rev.version,
                            event_type=entry.event_type or "",
                            payload=rev.value,
                            timestamp=rev.timestamp,
                        )
                    )
            elif entry.primitive in KEYED_PRIMITIVES:
                space.keyed(entry.primitive)[entry.key] = [
                    _Revision(value=rev.value, version=rev.version, timestamp=rev.timestamp)
                    for rev in entry.revisions
                ]
            else:
                raise StoreError("BUNDLE_INVALID", f"Unknown primitive in bundle: {entry.primitive}")
        for space in spaces.values():
            space.events.sort(key=lambda e: e.sequence)

        if stamps:
            store._clock.observe(max(stamps))
        branch = store._new_branch(bundle.branch_id)
        branch.spaces = spaces
        for space in spaces.values():
            for primitive, key, rev in space.live_items():
                store._index(space, primitive, key, rev.value)

        logger.info("Imported branch %s from %s", bundle.branch_id, c.path)
        return out.BranchImported(
            BundleImportInfo(
                branch_id=bundle.branch_id,
                transactions_applied=len(stamps),
                keys_written=len(bundle.entries),
            )
        )

    def _bundle_validate(self, c: cmd.BranchBundleValidate) -> out.BundleValidated:
        bundle = read_bundle(c.path)
        return out.BundleValidated(
            BundleValidateInfo(
                branch_id=bundle.branch_id,
                format_version=bundle.format_version,
                entry_count=len(bundle.entries),
                checksums_valid=bundle.checksums_valid,
            )
        )

    def _retention_apply(self, c: cmd.RetentionApply) -> out.Unit:
        """Keep only the latest revision of every key; forget deleted keys."""
        branch = self._store._branch(c.branch)
        pruned = 0
        for space in branch.spaces.values():
            for primitive in KEYED_PRIMITIVES:
                histories = space.keyed(primitive)
                for key in list(histories):
                    history = histories[key]
                    pruned += len(history) - 1
                    if history[-1].value is None:
                        del histories[key]
                        pruned += 1
                    else:
                        histories[key] = history[-1:]
        logger.info("Retention pruned %d revisions on %s", pruned, branch.info.id)
        return out.Unit()

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def _config_get(self, c: cmd.ConfigGet) -> out.Config:
        store = self._store
        return out.Config(
            ConfigData(durability=store._durability, auto_embed=store._auto_embed, model=store._model_config)
        )

    def _configure_model(self, c: cmd.ConfigureModel) -> out.Unit:
        if not c.model.endpoint.startswith(("http://", "https://")):
            raise StoreError("INVALID_INPUT", f"Model endpoint must be an http(s) URL: {c.model.endpoint}")
        if not c.model.model:
            raise StoreError("INVALID_INPUT", "Model name must not be empty")
        self._store._model_config = c.model
        self._store._generator = None
        logger.info("Configured model %s at %s", c.model.model, c.model.endpoint)
        return out.Unit()

    def _config_set_auto_embed(self, c: cmd.ConfigSetAutoEmbed) -> out.Unit:
        self._store._auto_embed = c.enabled
        logger.info("Auto-embed %s", "enabled" if c.enabled else "disabled")
        return out.Unit()

    # -------------------------------------------------------------------------
    # Embedding
    # -------------------------------------------------------------------------

    def _embed(self, c: cmd.Embed) -> out.Embedding:
        self._store._require_embedding()
        return out.Embedding(self._store._embedder.embed(c.text).tolist())

    def _embed_batch(self, c: cmd.EmbedBatch) -> out.Embeddings:
        self._store._require_embedding()
        return out.Embeddings([v.tolist() for v in self._store._embedder.embed_batch(c.texts)])

    def _embed_status(self, c: cmd.EmbedStatus) -> out.EmbedStatus:
        store = self._store
        counters = store._counters
        return out.EmbedStatus(
            EmbedStatusInfo(
                auto_embed=store._auto_embed,
                batch_size=EMBED_BATCH_SIZE,
                pending=counters.embed_queued - counters.embed_done - counters.embed_failed,
                total_queued=counters.embed_queued,
                total_embedded=counters.embed_done,
                total_failed=counters.embed_failed,
                scheduler_queue_depth=0,
                scheduler_active_tasks=0,
            )
        )

    # -------------------------------------------------------------------------
    # Inference
    # -------------------------------------------------------------------------

    def _generate(self, c: cmd.Generate) -> out.Generated:
        if not c.model:
            raise StoreError("INVALID_INPUT", "Model name must not be empty")
        result = self._store._http().generate(
            model=c.model,
            prompt=c.prompt,
            max_tokens=c.max_tokens,
            temperature=c.temperature,
            top_k=c.top_k,
            top_p=c.top_p,
            seed=c.seed,
            stop_tokens=c.stop_tokens,
        )
        self._store._loaded_models.add(c.model)
        return out.Generated(result)

    def _tokenize(self, c: cmd.Tokenize) -> out.TokenIds:
        ids = encode_tokens(c.text, add_special_tokens=bool(c.add_special_tokens))
        return out.TokenIds(TokenizeResult(ids=ids, count=len(ids), model=c.model))

    def _detokenize(self, c: cmd.Detokenize) -> out.Text:
        return out.Text(decode_tokens(c.ids))

    def _generate_unload(self, c: cmd.GenerateUnload) -> out.Bool:
        store = self._store
        if c.model not in store._loaded_models:
            return out.Bool(False)
        store._http().unload(c.model)
        store._loaded_models.discard(c.model)
        return out.Bool(True)

    # -------------------------------------------------------------------------
    # Models
    # -------------------------------------------------------------------------

    def _model_dir(self) -> ModelDirectory:
        if self._store._models is None:
            raise StoreError("IO_ERROR", "No models directory configured")
        return self._store._models

    def _models_list(self, c: cmd.ModelsList) -> out.ModelsList:
        models = self._store._models
        return out.ModelsList(
            [replace(info, is_local=models is not None and models.is_local(info.name)) for info in MODEL_CATALOG]
        )

    def _models_pull(self, c: cmd.ModelsPull) -> out.ModelsPulled:
        info = find_model(c.name)
        if info is None:
            raise StoreError("MODEL_NOT_FOUND", f"Unknown model: {c.name}")
        path = self._model_dir().pull(info)
        return out.ModelsPulled(name=info.name, path=str(path))

    def _models_local(self, c: cmd.ModelsLocal) -> out.ModelsList:
        models = self._store._models
        return out.ModelsList(models.local() if models is not None else [])
