"""Local JSON directory loader."""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Union
from datetime import datetime

from .base import BaseLoader
from ..exceptions import BatchCommitError, TargetUnavailable
from ..models.record import GeoPoint, TargetRecord

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, GeoPoint):
        return value.to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JSONLoader(BaseLoader):
    """
    Loader writing each collection to ``<dir>/<collection>.json``.

    Useful for rehearsing a migration offline. Each file maps document id
    to document fields; a commit rewrites the collection file atomically.
    """

    target_name = "json"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._collections: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _get_file(self, collection: str) -> Path:
        return self.directory / f"{collection}.json"

    def _load(self, collection: str) -> Dict[str, Any]:
        if collection not in self._collections:
            file_path = self._get_file(collection)
            documents: Dict[str, Any] = {}
            if file_path.exists():
                try:
                    with open(file_path) as f:
                        documents = json.load(f)
                except (OSError, ValueError) as e:
                    raise TargetUnavailable(f"Failed to read {file_path}: {e}") from e
            self._collections[collection] = documents
        return self._collections[collection]

    def _save(self, collection: str, documents: Dict[str, Any]) -> None:
        file_path = self._get_file(collection)
        tmp_path = file_path.with_suffix(".json.tmp")
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w") as f:
            json.dump(documents, f, indent=2, default=_json_default)
        os.replace(tmp_path, file_path)

    def write_batch(self, records: List[TargetRecord]) -> None:
        with self._lock:
            by_collection: Dict[str, Dict[str, Any]] = {}
            for record in records:
                documents = by_collection.setdefault(
                    record.collection, dict(self._load(record.collection))
                )
                # Round-trip through JSON so stored documents match the file
                try:
                    documents[record.target_id] = json.loads(
                        json.dumps(record.data, default=_json_default)
                    )
                except TypeError as e:
                    raise BatchCommitError(f"Unencodable value in {record.source_id}: {e}") from e

            try:
                for collection, documents in by_collection.items():
                    self._save(collection, documents)
            except OSError as e:
                raise BatchCommitError(f"Failed to write batch: {e}") from e

            self._collections.update(by_collection)

    def exists(self, collection: str, target_id: str) -> bool:
        with self._lock:
            return target_id in self._load(collection)

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._load(collection))

    def get(self, collection: str, target_id: str) -> Dict[str, Any]:
        with self._lock:
            return self._load(collection)[target_id]
