"""Base extractor interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional
import logging

from ..models.migration import EntityKind
from ..models.record import SourceRecord

logger = logging.getLogger(__name__)


class BaseExtractor(ABC):
    """
    Base class for legacy store readers.

    Extractors expose a paginated view of one entity kind. Ordering must be
    stable for the duration of a run so that increasing ``skip`` values never
    return a record twice or miss one.
    """

    source_name = "source"

    @abstractmethod
    def count(self, kind: EntityKind, filters: Optional[Dict[str, Any]] = None) -> int:
        """
        Count records of a kind matching the filter.

        Raises:
            SourceUnavailable: The store cannot be reached
        """
        pass

    @abstractmethod
    def extract_batch(
        self,
        kind: EntityKind,
        filters: Optional[Dict[str, Any]] = None,
        offset: int = 0,
        limit: int = 50
    ) -> List[SourceRecord]:
        """
        Extract one page of records.

        Args:
            kind: Entity kind to read
            filters: Field-equality constraints
            offset: Number of records to skip
            limit: Maximum records to return

        Returns:
            List of SourceRecord objects in stable order

        Raises:
            SourceUnavailable: The store cannot be reached
        """
        pass

    def page(
        self,
        kind: EntityKind,
        filters: Optional[Dict[str, Any]],
        skip: int,
        limit: int
    ) -> List[SourceRecord]:
        """Read one page after checking the window."""
        self.validate_window(skip, limit)
        return self.extract_batch(kind, filters, offset=skip, limit=limit)

    def stream(
        self,
        kind: EntityKind,
        filters: Optional[Dict[str, Any]] = None,
        batch_size: int = 50
    ) -> Iterator[List[SourceRecord]]:
        """
        Stream records in batches.

        Yields:
            Batches of SourceRecord objects
        """
        offset = 0

        while True:
            batch = self.page(kind, filters, offset, batch_size)
            if not batch:
                break

            yield batch
            offset += len(batch)

            if len(batch) < batch_size:
                break

    @staticmethod
    def validate_window(skip: int, limit: int) -> None:
        if skip < 0:
            raise ValueError(f"skip must be >= 0, got {skip}")
        if limit <= 0:
            raise ValueError(f"limit must be > 0, got {limit}")

    @staticmethod
    def matches(data: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        """Check a raw record against field-equality filters."""
        if not filters:
            return True
        return all(data.get(key) == value for key, value in filters.items())
