"""Command algebra: every request the adapter can send to the store.

Commands are frozen, keyword-only dataclasses. ``branch`` and ``space`` are
optional on every scoped command; ``None`` means the store's default. Each
command class declares ``WRITES`` so the session can reject mutations on a
read-only database before anything reaches the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .records import BranchStatus, ModelConfig, SearchQuery, VectorMetric
from .values import Value


@dataclass(frozen=True, kw_only=True)
class Command:
    WRITES = False

    def command_name(self) -> str:
        return type(self).__name__

    def is_write(self) -> bool:
        return self.WRITES


@dataclass(frozen=True, kw_only=True)
class _Scoped(Command):
    branch: str | None = None
    space: str | None = None


# =============================================================================
# Database
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class Ping(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class Info(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class Flush(Command):
    WRITES = True


@dataclass(frozen=True, kw_only=True)
class Compact(Command):
    WRITES = True


@dataclass(frozen=True, kw_only=True)
class TimeRange(Command):
    branch: str | None = None


@dataclass(frozen=True, kw_only=True)
class DurabilityCounters(Command):
    pass


# =============================================================================
# Key-Value
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class KvPut(_Scoped):
    WRITES = True
    key: str
    value: Value


@dataclass(frozen=True, kw_only=True)
class KvGet(_Scoped):
    key: str
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class KvDelete(_Scoped):
    WRITES = True
    key: str


@dataclass(frozen=True, kw_only=True)
class KvList(_Scoped):
    prefix: str | None = None


@dataclass(frozen=True, kw_only=True)
class KvGetv(_Scoped):
    key: str
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class KvBatchPut(_Scoped):
    WRITES = True
    entries: list[tuple[str, Value]] = field(default_factory=list)


# =============================================================================
# State cells
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class StateSet(_Scoped):
    WRITES = True
    cell: str
    value: Value


@dataclass(frozen=True, kw_only=True)
class StateGet(_Scoped):
    cell: str
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class StateInit(_Scoped):
    WRITES = True
    cell: str
    value: Value


@dataclass(frozen=True, kw_only=True)
class StateCas(_Scoped):
    """Compare-and-swap: write only if the cell's version equals ``expected_counter``.

    ``expected_counter=None`` means "only if the cell does not exist".
    """

    WRITES = True
    cell: str
    expected_counter: int | None
    value: Value


@dataclass(frozen=True, kw_only=True)
class StateDelete(_Scoped):
    WRITES = True
    cell: str


@dataclass(frozen=True, kw_only=True)
class StateList(_Scoped):
    prefix: str | None = None


@dataclass(frozen=True, kw_only=True)
class StateGetv(_Scoped):
    cell: str
    as_of: int | None = None


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class EventAppend(_Scoped):
    WRITES = True
    event_type: str
    payload: Value


@dataclass(frozen=True, kw_only=True)
class EventGet(_Scoped):
    sequence: int
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class EventGetByType(_Scoped):
    event_type: str
    limit: int | None = None
    after_sequence: int | None = None


@dataclass(frozen=True, kw_only=True)
class EventLen(_Scoped):
    pass


# =============================================================================
# JSON documents
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class JsonSet(_Scoped):
    WRITES = True
    key: str
    path: str = "$"
    value: Value


@dataclass(frozen=True, kw_only=True)
class JsonGet(_Scoped):
    key: str
    path: str = "$"
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class JsonDelete(_Scoped):
    WRITES = True
    key: str
    path: str = "$"


@dataclass(frozen=True, kw_only=True)
class JsonGetv(_Scoped):
    key: str
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class JsonList(_Scoped):
    prefix: str | None = None
    cursor: str | None = None
    limit: int | None = None


# =============================================================================
# Spaces
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class SpaceList(Command):
    branch: str | None = None


@dataclass(frozen=True, kw_only=True)
class SpaceCreate(Command):
    WRITES = True
    branch: str | None = None
    space: str


@dataclass(frozen=True, kw_only=True)
class SpaceDelete(Command):
    WRITES = True
    branch: str | None = None
    space: str
    force: bool = False


@dataclass(frozen=True, kw_only=True)
class SpaceExists(Command):
    branch: str | None = None
    space: str


# =============================================================================
# Branches
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class BranchCreate(Command):
    WRITES = True
    branch_id: str | None = None
    metadata: Value | None = None


@dataclass(frozen=True, kw_only=True)
class BranchGet(Command):
    branch: str


@dataclass(frozen=True, kw_only=True)
class BranchList(Command):
    state: BranchStatus | None = None
    limit: int | None = None
    offset: int | None = None


@dataclass(frozen=True, kw_only=True)
class BranchExists(Command):
    branch: str


@dataclass(frozen=True, kw_only=True)
class BranchDelete(Command):
    WRITES = True
    branch: str


# =============================================================================
# Vectors
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class VectorCreateCollection(_Scoped):
    WRITES = True
    collection: str
    dimension: int
    metric: VectorMetric = VectorMetric.COSINE


@dataclass(frozen=True, kw_only=True)
class VectorDeleteCollection(_Scoped):
    WRITES = True
    collection: str


@dataclass(frozen=True, kw_only=True)
class VectorListCollections(_Scoped):
    pass


@dataclass(frozen=True, kw_only=True)
class VectorUpsert(_Scoped):
    WRITES = True
    collection: str
    key: str
    vector: list[float]
    metadata: Value | None = None


@dataclass(frozen=True, kw_only=True)
class VectorGet(_Scoped):
    collection: str
    key: str


@dataclass(frozen=True, kw_only=True)
class VectorDelete(_Scoped):
    WRITES = True
    collection: str
    key: str


@dataclass(frozen=True, kw_only=True)
class VectorSearch(_Scoped):
    collection: str
    query: list[float]
    k: int = 10


# =============================================================================
# Transactions
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class TxnBegin(Command):
    branch: str | None = None


@dataclass(frozen=True, kw_only=True)
class TxnCommit(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class TxnRollback(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class TxnInfo(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class TxnIsActive(Command):
    pass


# =============================================================================
# Search
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class Search(_Scoped):
    search: SearchQuery


# =============================================================================
# Bundles / Retention
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class BranchExport(Command):
    branch_id: str
    path: str


@dataclass(frozen=True, kw_only=True)
class BranchImport(Command):
    WRITES = True
    path: str


@dataclass(frozen=True, kw_only=True)
class BranchBundleValidate(Command):
    path: str


@dataclass(frozen=True, kw_only=True)
class RetentionApply(Command):
    WRITES = True
    branch: str | None = None


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class ConfigGet(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class ConfigureModel(Command):
    WRITES = True
    model: ModelConfig


@dataclass(frozen=True, kw_only=True)
class ConfigSetAutoEmbed(Command):
    WRITES = True
    enabled: bool


# =============================================================================
# Embedding / Inference / Models
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class Embed(Command):
    text: str


@dataclass(frozen=True, kw_only=True)
class EmbedBatch(Command):
    texts: list[str]


@dataclass(frozen=True, kw_only=True)
class EmbedStatus(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class Generate(Command):
    model: str
    prompt: str
    max_tokens: int | None = None
    temperature: float | None = None
    top_k: int | None = None
    top_p: float | None = None
    seed: int | None = None
    stop_tokens: list[int] | None = None


@dataclass(frozen=True, kw_only=True)
class Tokenize(Command):
    model: str
    text: str
    add_special_tokens: bool | None = None


@dataclass(frozen=True, kw_only=True)
class Detokenize(Command):
    model: str
    ids: list[int]


@dataclass(frozen=True, kw_only=True)
class GenerateUnload(Command):
    model: str


@dataclass(frozen=True, kw_only=True)
class ModelsList(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class ModelsPull(Command):
    name: str


@dataclass(frozen=True, kw_only=True)
class ModelsLocal(Command):
    pass
