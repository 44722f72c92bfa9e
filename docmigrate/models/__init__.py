"""Data models for the migration engine."""

from .schema import (
    TransformType,
    FieldMapping,
    EntityMapping,
)
from .migration import (
    EntityKind,
    KIND_ORDER,
    MigrationJob,
    MigrationStatus,
    MigrationLog,
    LogEntry,
    KindResult,
    ValidationReport,
    MigrationResult,
)
from .record import (
    GeoPoint,
    SourceRecord,
    TargetRecord,
    BatchOutcome,
)

__all__ = [
    "TransformType",
    "FieldMapping",
    "EntityMapping",
    "EntityKind",
    "KIND_ORDER",
    "MigrationJob",
    "MigrationStatus",
    "MigrationLog",
    "LogEntry",
    "KindResult",
    "ValidationReport",
    "MigrationResult",
    "GeoPoint",
    "SourceRecord",
    "TargetRecord",
    "BatchOutcome",
]
