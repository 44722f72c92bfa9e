"""Structured migration reports."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from ..models.migration import MigrationResult, utcnow

logger = logging.getLogger(__name__)


class MigrationReporter:
    """Builds and saves the JSON report for a migration run."""

    def build(self, result: MigrationResult) -> Dict[str, Any]:
        """Assemble the report dictionary."""
        entries = result.log.entries
        errors = result.error_details

        report = result.to_dict()
        report["start_time"] = entries[0].timestamp.isoformat() if entries else None
        report["end_time"] = entries[-1].timestamp.isoformat() if entries else None
        report["errors"] = errors
        report["summary"] = {
            "total_log_entries": len(entries),
            "total_errors": result.errors,
            "error_rate": round(result.errors / max(result.total, 1) * 100, 2),
            "validation_passed": all(v.matched for v in result.validation) if result.validation else None,
        }
        return report

    def save(self, result: MigrationResult, directory: Union[str, Path]) -> Path:
        """Save the report as ``migration-report-<timestamp>.json``."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        filepath = directory / f"migration-report-{utcnow().strftime('%Y-%m-%dT%H-%M-%S-%f')}.json"
        with open(filepath, 'w') as f:
            json.dump(self.build(result), f, indent=2, default=str)

        logger.info(f"Saved migration report to {filepath}")
        return filepath
