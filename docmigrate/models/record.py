"""Record models for migration data."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime

from .migration import EntityKind


@dataclass(frozen=True)
class GeoPoint:
    """Geographic point in the target store's representation."""
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class SourceRecord:
    """A record read from the legacy store."""
    source_id: str
    kind: EntityKind
    data: Dict[str, Any]

    def get_field(self, path: str, default: Any = None) -> Any:
        """Get a field value by dot-notation path (e.g., 'client.email')."""
        parts = path.split(".")
        value = self.data
        for part in parts:
            if isinstance(value, dict):
                value = value.get(part)
            elif isinstance(value, list) and part.isdigit():
                idx = int(part)
                value = value[idx] if idx < len(value) else None
            else:
                return default
            if value is None:
                return default
        return value


@dataclass
class TargetRecord:
    """A record transformed for the target store."""
    target_id: str
    source_id: str
    kind: EntityKind
    collection: str
    data: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "target_id": self.target_id,
            "source_id": self.source_id,
            "kind": self.kind.value,
            "collection": self.collection,
            "data": self.data,
        }


@dataclass
class BatchOutcome:
    """Result of committing one batch to the target store."""
    attempted: int = 0
    committed: int = 0
    failed_record_ids: List[str] = field(default_factory=list)
    batch_error: Optional[str] = None
    batch_number: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        """Check if the batch was committed."""
        return self.batch_error is None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "batch_number": self.batch_number,
            "attempted": self.attempted,
            "committed": self.committed,
            "failed_record_ids": self.failed_record_ids,
            "batch_error": self.batch_error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }
