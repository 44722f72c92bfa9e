"""Migration orchestrator - coordinates the complete migration process."""

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import FatalMigrationError, TransformError
from .models.migration import (
    EntityKind,
    KindResult,
    MigrationJob,
    MigrationResult,
    MigrationStatus,
    utcnow,
)
from .models.record import SourceRecord, TargetRecord
from .extractors.base import BaseExtractor
from .loaders.base import BaseLoader
from .services.transformer import TransformEngine
from .services.validator import MigrationValidator
from .services.reporter import MigrationReporter

logger = logging.getLogger(__name__)


@dataclass
class _PageTally:
    """Counts for one page, merged into the kind result only once the page is done."""
    migrated: int = 0
    skipped: int = 0
    errors: int = 0
    failed_record_ids: List[str] = field(default_factory=list)
    error_details: List[Dict[str, Any]] = field(default_factory=list)
    staged: List[TargetRecord] = field(default_factory=list)

    def merge_into(self, result: KindResult) -> None:
        result.migrated += self.migrated
        result.skipped += self.skipped
        result.errors += self.errors
        result.failed_record_ids.extend(self.failed_record_ids)
        result.error_details.extend(self.error_details)


class MigrationOrchestrator:
    """
    Orchestrates the complete migration process.

    Handles:
    - Paginated reads per entity kind
    - Skip-existing filtering
    - Record transformation with per-record error isolation
    - Batched commits and inter-batch pacing
    - Cancellation and fatal-error handling
    - Reconciliation and reporting
    """

    def __init__(
        self,
        job: MigrationJob,
        extractor: BaseExtractor,
        loader: BaseLoader,
        transformer: Optional[TransformEngine] = None,
        report_dir: Optional[Union[str, Path]] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            job: Migration job configuration
            extractor: Reader for the legacy store
            loader: Writer for the target store
            transformer: Field mapper (defaults to the built-in tables)
            report_dir: Directory for the JSON report, if one should be written
        """
        if job.batch_size > loader.max_batch_size:
            raise ValueError(
                f"batch_size {job.batch_size} exceeds {loader.target_name} limit of {loader.max_batch_size}"
            )

        self.job = job
        self.extractor = extractor
        self.loader = loader
        self.transformer = transformer or TransformEngine()
        self.validator = MigrationValidator(extractor, loader, self.transformer)
        self.reporter = MigrationReporter()
        self.report_dir = Path(report_dir) if report_dir else None
        self.report_path: Optional[Path] = None

        # Runtime state
        self.result: Optional[MigrationResult] = None
        self._stop = threading.Event()
        self._cancel_requested = False

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next batch boundary."""
        self._cancel_requested = True
        self._stop.set()
        if self.result:
            self.result.log.warning("Cancellation requested")

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested

    def run_migration(self) -> MigrationResult:
        """
        Run the migration for every selected entity kind.

        Returns:
            MigrationResult with counts, log and validation reports

        Raises:
            FatalMigrationError: A store became unavailable; ``exc.result``
                holds the partial result
        """
        self.result = result = MigrationResult(job=self.job)
        result.started_at = utcnow()
        result.status = MigrationStatus.PAGINATING

        kinds = self.job.ordered_kinds
        for kind in kinds:
            result.kind_result(kind)

        mode = " (dry run)" if self.job.dry_run else ""
        result.log.info(
            f"Starting migration '{self.job.name}'{mode}: "
            f"{', '.join(k.value for k in kinds)}, batch size {self.job.batch_size}"
        )

        try:
            if self.job.parallel_workers > 1 and len(kinds) > 1:
                self._run_parallel(kinds)
            else:
                for kind in kinds:
                    if self._stop.is_set():
                        break
                    self.migrate_kind(kind)

            if self.cancelled:
                result.cancelled = True
                result.status = MigrationStatus.CANCELLED
                result.log.warning(
                    f"Migration cancelled: {result.migrated} migrated, "
                    f"{result.skipped} skipped, {result.errors} errors"
                )
            else:
                result.status = MigrationStatus.RECONCILING
                result.validation = self.validator.reconcile(result)
                result.status = MigrationStatus.COMPLETED
                result.log.info(
                    f"Migration completed: {result.migrated} migrated, "
                    f"{result.skipped} skipped, {result.errors} errors"
                )

        except FatalMigrationError as e:
            self._fail(result, e)
            e.result = result
            raise

        except Exception as e:
            self._fail(result, e)
            raise FatalMigrationError(f"Migration aborted: {e}", result) from e

        finally:
            result.completed_at = utcnow()
            if self.report_dir:
                self._save_report(result)

        return result

    def _save_report(self, result: MigrationResult) -> None:
        """Write the report, logging instead of raising on failure."""
        try:
            self.report_path = self.reporter.save(result, self.report_dir)
        except (OSError, TypeError, ValueError) as e:
            self.report_path = None
            logger.error(f"Failed to save migration report to {self.report_dir}: {e}")

    def _fail(self, result: MigrationResult, error: Exception) -> None:
        self._stop.set()
        result.status = MigrationStatus.FAILED
        result.cancelled = self.cancelled
        result.fatal_error = str(error)
        result.log.error(f"Migration failed: {error}")

    def _run_parallel(self, kinds: List[EntityKind]) -> None:
        """Run one worker per kind; the first fatal error stops the others."""
        workers = min(self.job.parallel_workers, len(kinds))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="migrate") as pool:
            futures = [pool.submit(self.migrate_kind, kind) for kind in kinds]
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            errors = [f.exception() for f in futures if f in done and f.exception() is not None]
            if errors:
                self._stop.set()
        if errors:
            raise errors[0]

    def migrate_kind(self, kind: EntityKind) -> KindResult:
        """
        Migrate every record of one entity kind.

        Args:
            kind: Entity kind to migrate

        Returns:
            KindResult for the kind
        """
        result = self.result
        kind_result = result.kind_result(kind)
        kind_result.started_at = utcnow()
        kind_result.status = MigrationStatus.PAGINATING

        filters = self.job.filter_for(kind)
        mapping = self.transformer.get_mapping(kind)
        batch_size = self.job.batch_size
        log = result.log

        try:
            filter_note = f" matching {filters}" if filters else ""
            log.info(f"Starting {kind.value} migration{filter_note}")

            total = self.extractor.count(kind, filters)
            kind_result.total = total
            log.info(f"Found {total} {kind.value} records to migrate")

            batch_number = 0
            for skip in range(0, total, batch_size):
                if self._stop.is_set():
                    break

                batch_number += 1
                kind_result.status = MigrationStatus.PAGINATING
                page = self.extractor.page(kind, filters, skip, batch_size)
                if not page:
                    log.warning(f"{kind.value}: source returned no records at offset {skip}, stopping")
                    break

                log.info(f"Processing {kind.value} batch {batch_number}: {len(page)} records")
                kind_result.status = MigrationStatus.TRANSFORMING
                tally = self._stage_page(page, mapping.target_collection)

                if self._stop.is_set():
                    log.warning(f"{kind.value} batch {batch_number} abandoned before commit")
                    break

                self._commit_page(kind_result, tally, batch_number)
                tally.merge_into(kind_result)

                if skip + batch_size < total:
                    kind_result.status = MigrationStatus.PACING
                    self._pause(self.job.inter_batch_delay)

            if self.cancelled:
                kind_result.status = MigrationStatus.CANCELLED
            elif self._stop.is_set():
                kind_result.status = MigrationStatus.FAILED
            else:
                kind_result.status = MigrationStatus.COMPLETED

            log.info(
                f"{kind.value} migration {kind_result.status.value}: {kind_result.migrated} migrated, "
                f"{kind_result.skipped} skipped, {kind_result.errors} errors"
            )
            return kind_result

        except Exception as e:
            kind_result.status = MigrationStatus.FAILED
            log.error(f"{kind.value} migration failed: {e}")
            raise

        finally:
            kind_result.completed_at = utcnow()

    def _stage_page(self, page: List[SourceRecord], collection: str) -> _PageTally:
        """Filter existing records and transform the rest."""
        tally = _PageTally()
        log = self.result.log

        for record in page:
            if self.job.skip_existing and record.source_id:
                target_id = self.transformer.target_id(record.kind, record.source_id)
                if self.loader.exists(collection, target_id):
                    logger.debug(f"Skipping existing {record.kind.value} {record.source_id}")
                    tally.skipped += 1
                    continue

            try:
                tally.staged.append(self.transformer.transform_record(record))
            except TransformError as e:
                tally.errors += 1
                tally.failed_record_ids.append(e.source_id or record.source_id)
                detail = e.to_dict()
                detail["kind"] = record.kind.value
                tally.error_details.append(detail)
                log.error(f"Error migrating {record.kind.value} {record.source_id}: {e.reason} ({e.field})")

        return tally

    def _commit_page(self, kind_result: KindResult, tally: _PageTally, batch_number: int) -> None:
        log = self.result.log
        kind = kind_result.kind

        if self.job.dry_run:
            tally.migrated += len(tally.staged)
            log.info(f"Dry run: {kind.value} batch {batch_number} would write {len(tally.staged)} records")
            return

        if not tally.staged:
            return

        kind_result.status = MigrationStatus.COMMITTING
        outcome = self.loader.commit(tally.staged, batch_number)
        kind_result.batches.append(outcome)

        if outcome.batch_error:
            tally.errors += outcome.attempted
            tally.failed_record_ids.extend(outcome.failed_record_ids)
            tally.error_details.append({
                "kind": kind.value,
                "batch": batch_number,
                "record_ids": list(outcome.failed_record_ids),
                "error": outcome.batch_error,
            })
            log.error(f"{kind.value} batch {batch_number} commit error: {outcome.batch_error}")
        else:
            tally.migrated += outcome.committed
            tally.errors += len(outcome.failed_record_ids)
            tally.failed_record_ids.extend(outcome.failed_record_ids)
            log.info(f"{kind.value} batch {batch_number} committed: {outcome.committed} records")

    def _pause(self, seconds: float) -> None:
        """Wait between batches; returns early when stopped."""
        if seconds > 0:
            self._stop.wait(seconds)

