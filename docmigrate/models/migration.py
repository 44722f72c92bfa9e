"""Migration execution models."""

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional
from enum import Enum
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntityKind(str, Enum):
    """Categories of record migrated from the legacy store."""
    USER = "user"
    CLIENT_PROFILE = "client_profile"
    PROFESSIONAL_PROFILE = "professional_profile"
    APPOINTMENT = "appointment"

    @classmethod
    def parse(cls, value: str) -> "EntityKind":
        """Resolve a kind from its value or member name (case-insensitive)."""
        normalized = value.strip().lower().replace("-", "_")
        for kind in cls:
            if normalized in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(f"Unknown entity kind: {value}")


# Users first so profiles and appointments land after the accounts they reference
KIND_ORDER = [
    EntityKind.USER,
    EntityKind.CLIENT_PROFILE,
    EntityKind.PROFESSIONAL_PROFILE,
    EntityKind.APPOINTMENT,
]


class MigrationStatus(str, Enum):
    """Status of a migration run or of one entity kind within it."""
    IDLE = "idle"
    PAGINATING = "paginating"
    TRANSFORMING = "transforming"
    COMMITTING = "committing"
    PACING = "pacing"
    RECONCILING = "reconciling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class MigrationJob:
    """Configuration for one migration run. Immutable once built."""
    entity_kinds: FrozenSet[EntityKind] = frozenset(KIND_ORDER)
    batch_size: int = 50
    inter_batch_delay: float = 1.0
    skip_existing: bool = True
    dry_run: bool = False
    entity_filter: Mapping[EntityKind, Mapping[str, Any]] = field(default_factory=dict, hash=False)
    parallel_workers: int = 1
    name: str = "parse-to-firestore"

    def __post_init__(self):
        if not self.entity_kinds:
            raise ValueError("At least one entity kind must be selected")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.inter_batch_delay < 0:
            raise ValueError(f"inter_batch_delay must not be negative, got {self.inter_batch_delay}")
        if self.parallel_workers <= 0:
            raise ValueError(f"parallel_workers must be positive, got {self.parallel_workers}")
        object.__setattr__(self, "entity_kinds", frozenset(self.entity_kinds))
        object.__setattr__(self, "entity_filter", MappingProxyType({
            kind: MappingProxyType(dict(constraints)) for kind, constraints in self.entity_filter.items()
        }))

    @property
    def ordered_kinds(self) -> List[EntityKind]:
        """Selected kinds in dependency order."""
        return [kind for kind in KIND_ORDER if kind in self.entity_kinds]

    def filter_for(self, kind: EntityKind) -> Dict[str, Any]:
        """Get the field-equality filter for a kind."""
        return dict(self.entity_filter.get(kind, {}))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "entity_kinds": [k.value for k in self.ordered_kinds],
            "batch_size": self.batch_size,
            "inter_batch_delay": self.inter_batch_delay,
            "skip_existing": self.skip_existing,
            "dry_run": self.dry_run,
            "entity_filter": {k.value: dict(v) for k, v in self.entity_filter.items()},
            "parallel_workers": self.parallel_workers,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationJob":
        """Create from dictionary representation."""
        kinds = data.get("entity_kinds")
        return cls(
            entity_kinds=frozenset(EntityKind.parse(k) for k in kinds) if kinds else frozenset(KIND_ORDER),
            batch_size=data.get("batch_size", 50),
            inter_batch_delay=data.get("inter_batch_delay", 1.0),
            skip_existing=data.get("skip_existing", True),
            dry_run=data.get("dry_run", False),
            entity_filter={
                EntityKind.parse(k): dict(v) for k, v in data.get("entity_filter", {}).items()
            },
            parallel_workers=data.get("parallel_workers", 1),
            name=data.get("name", "parse-to-firestore"),
        )


@dataclass(frozen=True)
class LogEntry:
    """A single timestamped migration log line."""
    timestamp: datetime
    level: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "message": self.message,
        }


class MigrationLog:
    """
    Ordered log shared by every worker of a run.

    Appends are serialized with a lock; each entry is also forwarded to
    the standard logging module.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._entries: List[LogEntry] = []
        self._lock = threading.Lock()
        self._logger = logger or logging.getLogger("docmigrate.migration")

    def log(self, message: str, level: str = "info") -> LogEntry:
        entry = LogEntry(timestamp=utcnow(), level=level, message=message)
        with self._lock:
            self._entries.append(entry)
        self._logger.log(logging.getLevelName(level.upper()), message)
        return entry

    def info(self, message: str) -> LogEntry:
        return self.log(message, "info")

    def warning(self, message: str) -> LogEntry:
        return self.log(message, "warning")

    def error(self, message: str) -> LogEntry:
        return self.log(message, "error")

    @property
    def entries(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.entries]


@dataclass
class KindResult:
    """Aggregated counts for one entity kind."""
    kind: EntityKind
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    errors: int = 0
    status: MigrationStatus = MigrationStatus.IDLE
    failed_record_ids: List[str] = field(default_factory=list)
    error_details: List[Dict[str, Any]] = field(default_factory=list)
    batches: List[Any] = field(default_factory=list)  # BatchOutcome
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "kind": self.kind.value,
            "status": self.status.value,
            "total": self.total,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "errors": self.errors,
            "failed_record_ids": self.failed_record_ids,
            "error_details": self.error_details,
            "batches": [b.to_dict() for b in self.batches],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class ValidationReport:
    """Source vs. target count comparison for one entity kind."""
    kind: EntityKind
    source_count: int
    target_count: int
    expected_count: int
    matched: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "source_count": self.source_count,
            "target_count": self.target_count,
            "expected_count": self.expected_count,
            "matched": self.matched,
        }


@dataclass
class MigrationResult:
    """Outcome of a complete migration run."""
    job: MigrationJob
    kinds: Dict[EntityKind, KindResult] = field(default_factory=dict)
    log: MigrationLog = field(default_factory=MigrationLog)
    validation: List[ValidationReport] = field(default_factory=list)
    status: MigrationStatus = MigrationStatus.IDLE
    cancelled: bool = False
    fatal_error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def dry_run(self) -> bool:
        return self.job.dry_run

    @property
    def total(self) -> int:
        return sum(r.total for r in self.kinds.values())

    @property
    def migrated(self) -> int:
        return sum(r.migrated for r in self.kinds.values())

    @property
    def skipped(self) -> int:
        return sum(r.skipped for r in self.kinds.values())

    @property
    def errors(self) -> int:
        return sum(r.errors for r in self.kinds.values())

    @property
    def error_details(self) -> List[Dict[str, Any]]:
        details = []
        for result in self.kinds.values():
            details.extend(result.error_details)
        return details

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def kind_result(self, kind: EntityKind) -> KindResult:
        """Get or create the result bucket for a kind."""
        if kind not in self.kinds:
            self.kinds[kind] = KindResult(kind=kind)
        return self.kinds[kind]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "job": self.job.to_dict(),
            "status": self.status.value,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "fatal_error": self.fatal_error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "totals": {
                "total": self.total,
                "migrated": self.migrated,
                "skipped": self.skipped,
                "errors": self.errors,
            },
            "kinds": {k.value: r.to_dict() for k, r in self.kinds.items()},
            "validation": [v.to_dict() for v in self.validation],
            "log": self.log.to_list(),
        }
