"""Transformation engine for converting legacy records to the target schema."""

import copy
import logging
from typing import Any, Callable, Dict, Optional
from datetime import datetime, timezone
from dateutil import parser as date_parser

from ..exceptions import TransformError
from ..models.migration import EntityKind, utcnow
from ..models.schema import (
    TransformType,
    EntityMapping,
    FieldMapping,
)
from ..models.record import (
    GeoPoint,
    SourceRecord,
    TargetRecord,
)

logger = logging.getLogger(__name__)


class TransformEngine:
    """
    Engine for transforming source records to target format.

    Each entity kind has a declarative mapping table. Fields not named in
    the table are dropped; fields that are named but absent take the
    mapping's default value.
    """

    def __init__(
        self,
        mappings: Optional[Dict[EntityKind, EntityMapping]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the transform engine.

        Args:
            mappings: Mapping table per entity kind (defaults to the built-in tables)
            clock: Source of the migration timestamp
        """
        if mappings is None:
            from .mappings import DEFAULT_MAPPINGS
            mappings = DEFAULT_MAPPINGS
        self.mappings = mappings
        self._clock = clock or utcnow
        self._custom_transforms: Dict[str, Callable] = {}
        self._builtin_transforms = self._register_builtin_transforms()

    def _register_builtin_transforms(self) -> Dict[str, Callable]:
        """Register all built-in transformation functions."""
        return {
            TransformType.DIRECT.value: self._transform_direct,
            TransformType.TIMESTAMP.value: self._transform_timestamp,
            TransformType.GEO_POINT.value: self._transform_geo_point,
            TransformType.ENUM_MAP.value: self._transform_enum_map,
            TransformType.POINTER.value: self._transform_pointer,
            TransformType.COALESCE.value: self._transform_coalesce,
            TransformType.CONSTANT.value: self._transform_constant,
            TransformType.MIGRATION_TIME.value: self._transform_migration_time,
        }

    def register_transform(self, name: str, func: Callable) -> None:
        """Register a custom transformation function."""
        self._custom_transforms[name] = func

    def get_mapping(self, kind: EntityKind) -> EntityMapping:
        mapping = self.mappings.get(kind)
        if mapping is None:
            raise ValueError(f"No field mapping registered for {kind.value}")
        return mapping

    def target_id(self, kind: EntityKind, source_id: str) -> str:
        """Deterministic target document id for a source id."""
        return self.get_mapping(kind).target_id(source_id)

    def transform_record(self, record: SourceRecord) -> TargetRecord:
        """
        Transform a source record to target format.

        Args:
            record: Record read from the legacy store

        Returns:
            The transformed record

        Raises:
            TransformError: A required field is missing or a value cannot be converted
        """
        mapping = self.get_mapping(record.kind)

        if not record.source_id:
            raise TransformError("", "objectId", "Record has no source id")

        target_data: Dict[str, Any] = {}

        for field_mapping in mapping.field_mappings:
            source_value = (
                record.get_field(field_mapping.source_field)
                if field_mapping.source_field else None
            )

            if field_mapping.required and self._is_missing(source_value):
                raise TransformError(
                    record.source_id,
                    field_mapping.source_field or field_mapping.target_field,
                    "Required field is missing",
                )

            transformed_value = self._apply(field_mapping, source_value, record)

            if transformed_value is None and field_mapping.default_value is not None:
                transformed_value = copy.deepcopy(field_mapping.default_value)

            if transformed_value is not None:
                self._set_nested_value(target_data, field_mapping.target_field, transformed_value)

        return TargetRecord(
            target_id=mapping.target_id(record.source_id),
            source_id=record.source_id,
            kind=record.kind,
            collection=mapping.target_collection,
            data=target_data,
        )

    # Alias matching the mapper contract
    map = transform_record

    def _apply(self, field_mapping: FieldMapping, value: Any, record: SourceRecord) -> Any:
        transform_name = (
            field_mapping.transform.value
            if isinstance(field_mapping.transform, TransformType)
            else field_mapping.transform
        )
        transform_func = (
            self._custom_transforms.get(transform_name) or
            self._builtin_transforms.get(transform_name)
        )
        if not transform_func:
            raise TransformError(
                record.source_id,
                field_mapping.target_field,
                f"Unknown transform: {transform_name}",
            )

        try:
            return transform_func(value, field_mapping.transform_config, record)
        except (ValueError, TypeError, OverflowError) as e:
            raise TransformError(
                record.source_id,
                field_mapping.source_field or field_mapping.target_field,
                str(e),
            ) from e

    @staticmethod
    def _is_missing(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    def _set_nested_value(self, data: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested value using dot notation."""
        parts = path.split(".")
        current = data

        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        current[parts[-1]] = value

    # Built-in transform functions

    def _transform_direct(self, value: Any, config: Dict, record: SourceRecord) -> Any:
        """Direct copy without transformation."""
        return value

    def _transform_timestamp(self, value: Any, config: Dict, record: SourceRecord) -> Any:
        """Convert a legacy date into an aware datetime, keeping its instant."""
        if value is None:
            return None

        if isinstance(value, dict):
            if value.get("__type") != "Date" or "iso" not in value:
                raise ValueError(f"Not a date value: {value!r}")
            value = value["iso"]

        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, str):
            dt = date_parser.isoparse(value)
        else:
            raise ValueError(f"Cannot convert {type(value).__name__} to timestamp")

        # Legacy dates without an offset are UTC
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    def _transform_geo_point(self, value: Any, config: Dict, record: SourceRecord) -> Any:
        """Reshape a {latitude, longitude} mapping into a GeoPoint."""
        if value is None:
            return None
        if isinstance(value, GeoPoint):
            return value
        if not isinstance(value, dict) or "latitude" not in value or "longitude" not in value:
            raise ValueError(f"Not a geo point: {value!r}")
        return GeoPoint(
            latitude=float(value["latitude"]),
            longitude=float(value["longitude"]),
        )

    def _transform_enum_map(self, value: Any, config: Dict, record: SourceRecord) -> Any:
        """Map a coded value through a lookup table; unknown codes take the default."""
        mapping = config.get("mapping", {})
        default = config.get("default")

        if value is None:
            return default

        # JSON exports may carry integer codes as 3.0
        if isinstance(value, float) and value.is_integer():
            value = int(value)

        key = str(value)
        if key not in mapping:
            logger.debug(f"Unrecognized code {value!r} on {record.kind.value} {record.source_id}, using {default!r}")
            return default
        return mapping[key]

    def _transform_pointer(self, value: Any, config: Dict, record: SourceRecord) -> Any:
        """Read an attribute of a referenced (pointer or included) object."""
        if value is None:
            return None

        attribute = config.get("attribute", "objectId")
        if isinstance(value, str):
            return value if attribute == "objectId" else None
        if not isinstance(value, dict):
            raise ValueError(f"Not a pointer: {value!r}")
        return value.get(attribute)

    def _transform_coalesce(self, value: Any, config: Dict, record: SourceRecord) -> Any:
        """Use the first non-empty value among the field and its fallbacks."""
        if not self._is_missing(value):
            return value

        for field in config.get("fallback_fields", []):
            fallback_value = record.get_field(field)
            if self._is_missing(fallback_value):
                continue
            if config.get("strip_email_domain") and isinstance(fallback_value, str):
                fallback_value = fallback_value.split("@", 1)[0]
                if not fallback_value:
                    continue
            return fallback_value

        return None

    def _transform_constant(self, value: Any, config: Dict, record: SourceRecord) -> Any:
        """Write a fixed value regardless of the source."""
        return copy.deepcopy(config.get("value"))

    def _transform_migration_time(self, value: Any, config: Dict, record: SourceRecord) -> Any:
        """Stamp the record with the migration time."""
        return self._clock()
