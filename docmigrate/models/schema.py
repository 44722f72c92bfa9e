"""Schema models for field mapping tables."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum

from .migration import EntityKind


class TransformType(str, Enum):
    """Supported transformation types."""
    DIRECT = "direct"
    TIMESTAMP = "timestamp"
    GEO_POINT = "geo_point"
    ENUM_MAP = "enum_map"
    POINTER = "pointer"
    COALESCE = "coalesce"
    CONSTANT = "constant"
    MIGRATION_TIME = "migration_time"


@dataclass
class FieldMapping:
    """Mapping of one source field onto one target field."""
    source_field: Optional[str]
    target_field: str
    transform: TransformType = TransformType.DIRECT
    transform_config: Dict[str, Any] = field(default_factory=dict)
    required: bool = False
    default_value: Optional[Any] = None
    description: str = ""


@dataclass
class EntityMapping:
    """Ordered field mapping table for one entity kind."""
    kind: EntityKind
    target_collection: str
    field_mappings: List[FieldMapping] = field(default_factory=list)
    id_prefix: str = ""
    description: str = ""

    def target_id(self, source_id: str) -> str:
        """Derive the target document id from a source id."""
        return f"{self.id_prefix}{source_id}"
