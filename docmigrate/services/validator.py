"""Post-migration reconciliation of source and target counts."""

import logging
from typing import Dict, List, Optional

from ..models.migration import EntityKind, MigrationResult, MigrationStatus, ValidationReport

logger = logging.getLogger(__name__)


class MigrationValidator:
    """
    Compares source and target record counts per entity kind.

    Reconciliation is read-only and advisory: mismatches are reported and
    logged, never corrected.
    """

    def __init__(self, extractor, loader, transformer):
        """
        Initialize the validator.

        Args:
            extractor: Reader for the legacy store
            loader: Writer for the target store
            transformer: Transform engine holding the collection per kind
        """
        self.extractor = extractor
        self.loader = loader
        self.transformer = transformer

    def reconcile(
        self,
        result: MigrationResult,
        exclusions: Optional[Dict[EntityKind, int]] = None
    ) -> List[ValidationReport]:
        """
        Re-count source and target for every kind in the result.

        Args:
            result: Result of the migration run
            exclusions: Records per kind deliberately left out of the target

        Returns:
            One ValidationReport per kind
        """
        exclusions = exclusions or {}
        reports = []

        result.log.info("Starting migration validation")

        for kind, kind_result in result.kinds.items():
            previous_status = kind_result.status
            kind_result.status = MigrationStatus.RECONCILING
            try:
                reports.append(self.validate_kind(result, kind, exclusions.get(kind, 0)))
            finally:
                kind_result.status = previous_status

        mismatched = [r.kind.value for r in reports if not r.matched]
        if mismatched:
            result.log.warning(f"Validation found count mismatches for: {', '.join(mismatched)}")
        else:
            result.log.info("Validation passed: source and target counts match")

        return reports

    def validate_kind(
        self,
        result: MigrationResult,
        kind: EntityKind,
        excluded: int = 0
    ) -> ValidationReport:
        """Compare counts for one kind."""
        collection = self.transformer.get_mapping(kind).target_collection

        source_count = self.extractor.count(kind, result.job.filter_for(kind))
        target_count = self.loader.count(collection)
        expected_count = source_count - excluded

        report = ValidationReport(
            kind=kind,
            source_count=source_count,
            target_count=target_count,
            expected_count=expected_count,
            matched=target_count == expected_count,
        )

        message = (
            f"Validation {kind.value}: source={source_count}, "
            f"{collection}={target_count}, expected={expected_count}"
        )
        if report.matched:
            result.log.info(message)
        else:
            result.log.warning(f"{message} (mismatch)")

        return report
