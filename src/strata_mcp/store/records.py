"""Record types carried inside store commands and outputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .values import Value


class AccessMode(str, Enum):
    """How the database was opened."""

    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


class BranchStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class TxnStatus(str, Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ABORTED = "aborted"


class VectorMetric(str, Enum):
    """Similarity metric of a vector collection."""

    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOTPRODUCT = "dotproduct"


class MergeStrategy(str, Enum):
    """How conflicting keys are resolved when merging branches."""

    LAST_WRITER_WINS = "last_writer_wins"  # source value wins, conflicts are reported
    STRICT = "strict"  # any conflict aborts the merge


# =============================================================================
# Branches
# =============================================================================


@dataclass(frozen=True)
class BranchInfo:
    id: str
    status: BranchStatus
    created_at: int
    updated_at: int
    parent_id: str | None = None


@dataclass(frozen=True)
class VersionedBranchInfo:
    info: BranchInfo
    version: int
    timestamp: int


@dataclass(frozen=True)
class ForkInfo:
    source: str
    destination: str
    keys_copied: int


@dataclass(frozen=True)
class DiffSummary:
    total_added: int
    total_removed: int
    total_modified: int


@dataclass(frozen=True)
class BranchDiffResult:
    branch_a: str
    branch_b: str
    summary: DiffSummary


@dataclass(frozen=True)
class MergeConflict:
    key: str
    space: str


@dataclass(frozen=True)
class MergeInfo:
    keys_applied: int
    spaces_merged: int
    conflicts: list[MergeConflict] = field(default_factory=list)


# =============================================================================
# Transactions / Database
# =============================================================================


@dataclass(frozen=True)
class TxnInfoData:
    id: str
    status: TxnStatus
    started_at: int


@dataclass(frozen=True)
class DatabaseInfoData:
    version: str
    uptime_secs: int
    branch_count: int
    total_keys: int


@dataclass(frozen=True)
class DurabilityCountersData:
    wal_appends: int
    sync_calls: int
    bytes_written: int
    sync_nanos: int


@dataclass(frozen=True)
class BatchItemResult:
    version: int | None = None
    error: str | None = None


# =============================================================================
# Search / Vectors
# =============================================================================


@dataclass(frozen=True)
class SearchQuery:
    """A cross-primitive search request.

    ``primitives`` restricts the search to e.g. ``["json", "event"]``;
    ``time_range`` is an inclusive ``(start, end)`` pair in microseconds;
    ``mode`` is ``"keyword"``, ``"semantic"`` or ``"hybrid"`` (``None`` lets
    the engine pick).
    """

    query: str
    k: int | None = None
    primitives: list[str] | None = None
    time_range: tuple[int, int] | None = None
    mode: str | None = None
    expand: bool | None = None
    rerank: bool | None = None


@dataclass(frozen=True)
class SearchHit:
    entity: str
    primitive: str
    score: float
    rank: int
    snippet: str | None = None


@dataclass(frozen=True)
class VectorMatch:
    key: str
    score: float
    metadata: Value | None = None


@dataclass(frozen=True)
class VectorEntry:
    key: str
    embedding: list[float]
    metadata: Value | None
    version: int
    timestamp: int


@dataclass(frozen=True)
class CollectionInfo:
    name: str
    dimension: int
    metric: VectorMetric
    count: int
    index_type: str
    memory_bytes: int


# =============================================================================
# Bundles
# =============================================================================


@dataclass(frozen=True)
class BundleExportInfo:
    branch_id: str
    path: str
    entry_count: int
    bundle_size: int


@dataclass(frozen=True)
class BundleImportInfo:
    branch_id: str
    transactions_applied: int
    keys_written: int


@dataclass(frozen=True)
class BundleValidateInfo:
    branch_id: str
    format_version: int
    entry_count: int
    checksums_valid: bool


# =============================================================================
# Embedding / Inference / Models / Config
# =============================================================================


@dataclass(frozen=True)
class EmbedStatusInfo:
    auto_embed: bool
    batch_size: int
    pending: int
    total_queued: int
    total_embedded: int
    total_failed: int
    scheduler_queue_depth: int
    scheduler_active_tasks: int


@dataclass(frozen=True)
class GenerationResult:
    text: str
    stop_reason: str
    prompt_tokens: int
    completion_tokens: int
    model: str


@dataclass(frozen=True)
class TokenizeResult:
    ids: list[int]
    count: int
    model: str


@dataclass(frozen=True)
class ModelInfo:
    name: str
    task: str
    architecture: str
    default_quant: str | None
    embedding_dim: int | None
    is_local: bool
    size_bytes: int | None


@dataclass(frozen=True)
class ModelConfig:
    endpoint: str
    model: str
    api_key: str | None = None
    timeout_ms: int | None = None


@dataclass(frozen=True)
class ConfigData:
    durability: str
    auto_embed: bool
    model: ModelConfig | None = None
