"""Service layer for the migration engine."""

from .transformer import TransformEngine
from .mappings import DEFAULT_MAPPINGS
from .validator import MigrationValidator
from .reporter import MigrationReporter

__all__ = [
    "TransformEngine",
    "DEFAULT_MAPPINGS",
    "MigrationValidator",
    "MigrationReporter",
]
