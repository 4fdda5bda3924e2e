"""Table metadata: snapshots, snapshot references and the logs of changes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from icelake.spec import PartitionSpec, SortOrder
from icelake.types import ErrorKind, IcelakeError, Schema

MAIN_BRANCH = "main"
UNASSIGNED_SEQ_NUM = -1
EMPTY_SNAPSHOT_ID = -1


class TableFormatVersion(enum.IntEnum):
    """Table format version number."""

    V1 = 1
    V2 = 2

    @classmethod
    def from_int(cls, value: int) -> TableFormatVersion:
        try:
            return cls(value)
        except ValueError:
            raise IcelakeError(
                ErrorKind.ICEBERG_DATA_INVALID, f"Unknown table format: {value}"
            ) from None

    def __str__(self) -> str:
        return str(int(self))


class SnapshotReferenceType(enum.Enum):
    """Type of a snapshot reference: a tag or a branch."""

    TAG = "tag"
    BRANCH = "branch"

    @classmethod
    def parse(cls, s: str) -> SnapshotReferenceType:
        try:
            return cls(s)
        except ValueError:
            raise IcelakeError(
                ErrorKind.ICEBERG_DATA_INVALID, f"Invalid snapshot reference type: {s}"
            ) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SnapshotLog:
    """A timestamp and the snapshot that became current at that time."""

    timestamp_ms: int
    snapshot_id: int


@dataclass
class Snapshot:
    """The state of a table at a point in time."""

    snapshot_id: int = 0
    parent_snapshot_id: Optional[int] = None
    sequence_number: int = 0
    timestamp_ms: int = 0
    manifest_list: str = ""
    summary: dict[str, str] = field(default_factory=dict)
    schema_id: Optional[int] = None

    def log(self) -> SnapshotLog:
        """Return the snapshot log entry for this snapshot."""
        return SnapshotLog(timestamp_ms=self.timestamp_ms, snapshot_id=self.snapshot_id)


@dataclass
class SnapshotReference:
    """A named reference (branch or tag) to a snapshot."""

    snapshot_id: int
    typ: SnapshotReferenceType
    min_snapshots_to_keep: Optional[int] = None
    max_snapshot_age_ms: Optional[int] = None
    max_ref_age_ms: Optional[int] = None


@dataclass(frozen=True)
class MetadataLog:
    """A timestamp and the location of a previous metadata file."""

    timestamp_ms: int
    metadata_file: str


@dataclass
class TableMetadata:
    """Everything known about a table at one version."""

    format_version: TableFormatVersion
    table_uuid: str
    location: str
    last_sequence_number: int
    last_updated_ms: int
    last_column_id: int
    schemas: list[Schema]
    current_schema_id: int
    partition_specs: list[PartitionSpec]
    default_spec_id: int
    last_partition_id: int
    properties: Optional[dict[str, str]] = None
    current_snapshot_id: Optional[int] = None
    snapshots: Optional[list[Snapshot]] = None
    snapshot_log: Optional[list[SnapshotLog]] = None
    metadata_log: Optional[list[MetadataLog]] = None
    sort_orders: list[SortOrder] = field(default_factory=list)
    default_sort_order_id: int = 0
    refs: dict[str, SnapshotReference] = field(default_factory=dict)

    def current_partition_spec(self) -> PartitionSpec:
        spec = self.partition_spec(self.default_spec_id)
        if spec is None:
            raise IcelakeError(
                ErrorKind.ICEBERG_DATA_INVALID,
                f"Partition spec id {self.default_spec_id} not found!",
            )
        return spec

    def partition_spec(self, spec_id: int) -> Optional[PartitionSpec]:
        return next((p for p in self.partition_specs if p.spec_id == spec_id), None)

    def current_schema(self) -> Schema:
        schema = self.schema(self.current_schema_id)
        if schema is None:
            raise IcelakeError(
                ErrorKind.ICEBERG_DATA_INVALID,
                f"Schema id {self.current_schema_id} not found!",
            )
        return schema

    def schema(self, schema_id: int) -> Optional[Schema]:
        return next((s for s in self.schemas if s.schema_id == schema_id), None)

    def current_snapshot(self) -> Optional[Snapshot]:
        """Return the current snapshot, or ``None`` if the table has none."""
        snapshot_id = self.current_snapshot_id
        if snapshot_id is None or snapshot_id == EMPTY_SNAPSHOT_ID:
            return None
        snapshot = self.snapshot(snapshot_id)
        if snapshot is None:
            raise IcelakeError(
                ErrorKind.ICEBERG_DATA_INVALID, f"Snapshot id {snapshot_id} not found!"
            )
        return snapshot

    def snapshot(self, snapshot_id: int) -> Optional[Snapshot]:
        if not self.snapshots:
            return None
        return next((s for s in self.snapshots if s.snapshot_id == snapshot_id), None)

    def snapshot_ref(self, branch: str) -> Optional[SnapshotReference]:
        return self.refs.get(branch)

    def set_snapshot_ref(self, branch: str, snap_ref: SnapshotReference) -> None:
        """Point ``branch`` at the snapshot of ``snap_ref``.

        Setting the main branch also makes that snapshot current.
        """
        snapshot = self.snapshot(snap_ref.snapshot_id)
        if snapshot is None:
            raise IcelakeError(
                ErrorKind.ICEBERG_DATA_INVALID,
                f"Snapshot id {snap_ref.snapshot_id} not found!",
            )

        existing = self.refs.get(branch)
        if existing is not None:
            existing.snapshot_id = snap_ref.snapshot_id
            existing.typ = snap_ref.typ
            if snap_ref.min_snapshots_to_keep is not None:
                existing.min_snapshots_to_keep = snap_ref.min_snapshots_to_keep
            if snap_ref.max_snapshot_age_ms is not None:
                existing.max_snapshot_age_ms = snap_ref.max_snapshot_age_ms
            if snap_ref.max_ref_age_ms is not None:
                existing.max_ref_age_ms = snap_ref.max_ref_age_ms
        else:
            self.refs[branch] = SnapshotReference(
                snap_ref.snapshot_id, SnapshotReferenceType.BRANCH
            )

        if branch == MAIN_BRANCH:
            self.current_snapshot_id = snap_ref.snapshot_id
            self.last_updated_ms = snapshot.timestamp_ms
            self.last_sequence_number = snapshot.sequence_number
            if self.snapshot_log is None:
                self.snapshot_log = []
            self.snapshot_log.append(snapshot.log())

    def add_snapshot(self, snapshot: Snapshot) -> None:
        if self.snapshots is None:
            self.snapshots = []
        self.snapshots.append(snapshot)