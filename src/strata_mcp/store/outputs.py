"""Output algebra: every result shape the store can return.

Exactly one variant is produced per executed command. ``Output`` is the closed
union of all variants; ``strata_mcp.convert.output_to_json`` matches over it
exhaustively, so a new variant must be added in both places.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .records import (
    BatchItemResult,
    BranchDiffResult,
    BranchInfo,
    BundleExportInfo,
    BundleImportInfo,
    BundleValidateInfo,
    CollectionInfo,
    ConfigData,
    DatabaseInfoData,
    DurabilityCountersData,
    EmbedStatusInfo,
    ForkInfo,
    GenerationResult,
    MergeInfo,
    ModelInfo,
    SearchHit,
    TokenizeResult,
    TxnInfoData,
    VectorEntry,
    VectorMatch,
    VersionedBranchInfo,
)
from .values import Value, VersionedValue

# =============================================================================
# Scalars
# =============================================================================


@dataclass(frozen=True)
class Unit:
    pass


@dataclass(frozen=True)
class Maybe:
    value: Value | None


@dataclass(frozen=True)
class MaybeVersioned:
    value: VersionedValue | None


@dataclass(frozen=True)
class MaybeVersion:
    version: int | None


@dataclass(frozen=True)
class Version:
    version: int


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Uint:
    value: int


@dataclass(frozen=True)
class Text:
    text: str


# =============================================================================
# Collections of values
# =============================================================================


@dataclass(frozen=True)
class VersionedValues:
    values: list[VersionedValue] = field(default_factory=list)


@dataclass(frozen=True)
class VersionHistory:
    values: list[VersionedValue] | None


@dataclass(frozen=True)
class Keys:
    keys: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class JsonListResult:
    keys: list[str]
    cursor: str | None = None


@dataclass(frozen=True)
class Versions:
    versions: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class SpaceList:
    spaces: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BatchResults:
    results: list[BatchItemResult] = field(default_factory=list)


# =============================================================================
# Vectors
# =============================================================================


@dataclass(frozen=True)
class VectorMatches:
    matches: list[VectorMatch] = field(default_factory=list)


@dataclass(frozen=True)
class VectorData:
    entry: VectorEntry | None


@dataclass(frozen=True)
class VectorCollectionList:
    collections: list[CollectionInfo] = field(default_factory=list)


# =============================================================================
# Branches
# =============================================================================


@dataclass(frozen=True)
class MaybeBranchInfo:
    info: VersionedBranchInfo | None


@dataclass(frozen=True)
class BranchInfoList:
    branches: list[VersionedBranchInfo] = field(default_factory=list)


@dataclass(frozen=True)
class BranchWithVersion:
    info: BranchInfo
    version: int


@dataclass(frozen=True)
class BranchForked:
    info: ForkInfo


@dataclass(frozen=True)
class BranchDiff:
    diff: BranchDiffResult


@dataclass(frozen=True)
class BranchMerged:
    info: MergeInfo


@dataclass(frozen=True)
class BranchExported:
    result: BundleExportInfo


@dataclass(frozen=True)
class BranchImported:
    result: BundleImportInfo


@dataclass(frozen=True)
class BundleValidated:
    result: BundleValidateInfo


# =============================================================================
# Transactions / Database
# =============================================================================


@dataclass(frozen=True)
class TxnInfo:
    info: TxnInfoData | None


@dataclass(frozen=True)
class TxnBegun:
    pass


@dataclass(frozen=True)
class TxnCommitted:
    version: int


@dataclass(frozen=True)
class TxnAborted:
    pass


@dataclass(frozen=True)
class DatabaseInfo:
    info: DatabaseInfoData


@dataclass(frozen=True)
class Pong:
    version: str


@dataclass(frozen=True)
class TimeRange:
    oldest_ts: int | None
    latest_ts: int | None


@dataclass(frozen=True)
class DurabilityCounters:
    counters: DurabilityCountersData


@dataclass(frozen=True)
class Config:
    config: ConfigData


# =============================================================================
# Search / Embedding / Inference / Models
# =============================================================================


@dataclass(frozen=True)
class SearchResults:
    results: list[SearchHit] = field(default_factory=list)


@dataclass(frozen=True)
class EmbedStatus:
    info: EmbedStatusInfo


@dataclass(frozen=True)
class Embedding:
    vector: list[float]


@dataclass(frozen=True)
class Embeddings:
    vectors: list[list[float]]


@dataclass(frozen=True)
class Generated:
    result: GenerationResult


@dataclass(frozen=True)
class TokenIds:
    result: TokenizeResult


@dataclass(frozen=True)
class ModelsList:
    models: list[ModelInfo] = field(default_factory=list)


@dataclass(frozen=True)
class ModelsPulled:
    name: str
    path: str


Output = Union[
    Unit,
    Maybe,
    MaybeVersioned,
    MaybeVersion,
    Version,
    Bool,
    Uint,
    Text,
    VersionedValues,
    VersionHistory,
    Keys,
    JsonListResult,
    Versions,
    SpaceList,
    BatchResults,
    VectorMatches,
    VectorData,
    VectorCollectionList,
    MaybeBranchInfo,
    BranchInfoList,
    BranchWithVersion,
    BranchForked,
    BranchDiff,
    BranchMerged,
    BranchExported,
    BranchImported,
    BundleValidated,
    TxnInfo,
    TxnBegun,
    TxnCommitted,
    TxnAborted,
    DatabaseInfo,
    Pong,
    TimeRange,
    DurabilityCounters,
    Config,
    SearchResults,
    EmbedStatus,
    Embedding,
    Embeddings,
    Generated,
    TokenIds,
    ModelsList,
    ModelsPulled,
]
