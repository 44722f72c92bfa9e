"""Exception types raised by the migration engine."""

from typing import Any, Optional


class MigrationError(Exception):
    """Base class for migration errors."""


class FatalMigrationError(MigrationError):
    """
    Error that aborts the whole run.

    When raised out of a run, ``result`` holds the partial MigrationResult
    accumulated before the failure.
    """

    def __init__(self, message: str, result: Optional[Any] = None):
        super().__init__(message)
        self.result = result


class SourceUnavailable(FatalMigrationError):
    """The legacy store cannot be reached or refused the credentials."""


class TargetUnavailable(FatalMigrationError):
    """The target store cannot be reached or refused the credentials."""


class TransformError(MigrationError):
    """A single record could not be mapped to the target schema."""

    def __init__(self, source_id: str, field: str, reason: str):
        super().__init__(f"Record {source_id}: field '{field}': {reason}")
        self.source_id = source_id
        self.field = field
        self.reason = reason

    def to_dict(self):
        return {
            "record_id": self.source_id,
            "field": self.field,
            "error": self.reason,
        }


class BatchCommitError(MigrationError):
    """The target store rejected a batch; every record in it is failed."""
