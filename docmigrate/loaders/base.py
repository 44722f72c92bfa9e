"""Base loader interface for target stores."""

from abc import ABC, abstractmethod
from typing import List
from datetime import datetime, timezone
import logging

from ..exceptions import BatchCommitError
from ..models.record import BatchOutcome, TargetRecord

logger = logging.getLogger(__name__)


class BaseLoader(ABC):
    """
    Base class for target store writers.

    A batch is upserted in a single operation: every record is created or
    fully replaced under its target id. If the operation fails the whole
    batch is reported failed. Loaders never retry a batch.
    """

    target_name = "target"
    max_batch_size = 500

    @abstractmethod
    def write_batch(self, records: List[TargetRecord]) -> None:
        """
        Upsert records in one operation.

        Raises:
            BatchCommitError: The store rejected the batch
            TargetUnavailable: The store cannot be reached
        """
        pass

    @abstractmethod
    def exists(self, collection: str, target_id: str) -> bool:
        """
        Check whether a document already exists.

        Raises:
            TargetUnavailable: The store cannot be reached
        """
        pass

    @abstractmethod
    def count(self, collection: str) -> int:
        """
        Count documents in a collection.

        Raises:
            TargetUnavailable: The store cannot be reached
        """
        pass

    def commit(self, records: List[TargetRecord], batch_number: int = 0) -> BatchOutcome:
        """
        Commit a batch of records.

        Args:
            records: Transformed records to upsert
            batch_number: Position of the batch within its entity kind

        Returns:
            BatchOutcome with batch statistics
        """
        if len(records) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(records)} exceeds {self.target_name} limit of {self.max_batch_size}"
            )

        outcome = BatchOutcome(attempted=len(records), batch_number=batch_number)
        outcome.started_at = datetime.now(timezone.utc)

        if records:
            try:
                self.write_batch(records)
                outcome.committed = len(records)
            except BatchCommitError as e:
                outcome.batch_error = str(e)
                outcome.failed_record_ids = [r.source_id for r in records]
                logger.error(f"Batch {batch_number} commit to {self.target_name} failed: {e}")

        outcome.completed_at = datetime.now(timezone.utc)
        return outcome
