"""JSON export file extractor."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .base import BaseExtractor
from ..exceptions import SourceUnavailable
from ..models.migration import EntityKind
from ..models.record import SourceRecord

logger = logging.getLogger(__name__)


class JSONExtractor(BaseExtractor):
    """
    Extractor for Parse JSON exports.

    Reads one file per entity kind from a directory, e.g.
    ``<dir>/user.json``. Files may hold a bare list of objects or a
    ``{"results": [...]}`` export. Records keep file order.
    """

    source_name = "json"

    def __init__(
        self,
        directory: Union[str, Path],
        file_names: Optional[Dict[EntityKind, str]] = None,
        encoding: str = "utf-8"
    ):
        """
        Initialize the JSON extractor.

        Args:
            directory: Directory containing the export files
            file_names: Override file name per kind
            encoding: File encoding
        """
        self.directory = Path(directory)
        self.file_names = file_names or {}
        self.encoding = encoding
        self._cache: Dict[EntityKind, List[Dict[str, Any]]] = {}

    def _get_file(self, kind: EntityKind) -> Path:
        return self.directory / self.file_names.get(kind, f"{kind.value}.json")

    def _load(self, kind: EntityKind) -> List[Dict[str, Any]]:
        if kind in self._cache:
            return self._cache[kind]

        if not self.directory.is_dir():
            raise SourceUnavailable(f"Export directory not found: {self.directory}")

        file_path = self._get_file(kind)
        if not file_path.exists():
            logger.warning(f"No export file for {kind.value}: {file_path}")
            items: List[Dict[str, Any]] = []
        else:
            try:
                with open(file_path, "r", encoding=self.encoding) as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                raise SourceUnavailable(f"Failed to read export file {file_path}: {e}") from e
            items = self._extract_items(data, file_path)

        self._cache[kind] = items
        logger.info(f"Loaded {len(items)} {kind.value} records from {file_path}")
        return items

    def _extract_items(self, data: Any, file_path: Path) -> List[Dict[str, Any]]:
        """Handle the supported JSON layouts."""
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ["results", "data", "records", "items"]:
                if key in data and isinstance(data[key], list):
                    return data[key]
        raise SourceUnavailable(f"Unexpected JSON structure in {file_path}")

    def _filtered(self, kind: EntityKind, filters: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [item for item in self._load(kind) if self.matches(item, filters)]

    def count(self, kind: EntityKind, filters: Optional[Dict[str, Any]] = None) -> int:
        return len(self._filtered(kind, filters))

    def extract_batch(
        self,
        kind: EntityKind,
        filters: Optional[Dict[str, Any]] = None,
        offset: int = 0,
        limit: int = 50
    ) -> List[SourceRecord]:
        """Return a slice of the filtered export."""
        items = self._filtered(kind, filters)[offset:offset + limit]
        return [
            SourceRecord(
                source_id=str(item.get("objectId") or item.get("id") or ""),
                kind=kind,
                data=item,
            )
            for item in items
        ]
