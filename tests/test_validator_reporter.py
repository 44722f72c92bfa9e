import json

from docmigrate.models.migration import EntityKind, MigrationJob, MigrationResult, MigrationStatus
from docmigrate.services import MigrationReporter, MigrationValidator, TransformEngine

from conftest import MemoryExtractor, make_user


def _result(*kinds) -> MigrationResult:
    result = MigrationResult(job=MigrationJob(entity_kinds=frozenset(kinds)))
    for kind in kinds:
        result.kind_result(kind)
    return result


def _fill(loader, collection, count):
    loader.collections[collection] = {f"id{i}": {} for i in range(count)}


def test_reconcile_matches_counts(loader):
    extractor = MemoryExtractor({EntityKind.USER: [make_user(i) for i in range(3)]})
    _fill(loader, "users", 3)
    result = _result(EntityKind.USER, EntityKind.APPOINTMENT)

    reports = MigrationValidator(extractor, loader, TransformEngine()).reconcile(result)

    assert [(r.kind, r.source_count, r.target_count, r.matched) for r in reports] == [
        (EntityKind.USER, 3, 3, True),
        (EntityKind.APPOINTMENT, 0, 0, True),
    ]
    assert result.log.entries[-1].message.startswith("Validation passed")


def test_reconcile_reports_mismatch(loader):
    extractor = MemoryExtractor({EntityKind.USER: [make_user(i) for i in range(5)]})
    _fill(loader, "users", 4)
    result = _result(EntityKind.USER)

    report = MigrationValidator(extractor, loader, TransformEngine()).reconcile(result)[0]

    assert report.matched is False
    assert report.expected_count == 5
    assert any(e.level == "warning" for e in result.log.entries)


def test_reconcile_accounts_for_exclusions(loader):
    extractor = MemoryExtractor({EntityKind.USER: [make_user(i) for i in range(5)]})
    _fill(loader, "users", 4)
    result = _result(EntityKind.USER)

    report = MigrationValidator(extractor, loader, TransformEngine()).reconcile(
        result, exclusions={EntityKind.USER: 1}
    )[0]

    assert report.expected_count == 4
    assert report.matched is True


def test_reconcile_uses_job_filter(loader):
    users = [make_user(i, userType=1 if i == 0 else 2) for i in range(4)]
    extractor = MemoryExtractor({EntityKind.USER: users})
    _fill(loader, "users", 1)
    result = MigrationResult(job=MigrationJob(
        entity_kinds=frozenset({EntityKind.USER}),
        entity_filter={EntityKind.USER: {"userType": 1}},
    ))
    result.kind_result(EntityKind.USER)

    report = MigrationValidator(extractor, loader, TransformEngine()).reconcile(result)[0]

    assert report.source_count == 1
    assert report.matched is True


def test_reporter_summary():
    result = _result(EntityKind.USER)
    users = result.kind_result(EntityKind.USER)
    users.total, users.migrated, users.errors = 8, 6, 2
    users.error_details.append({"record_id": "u1", "field": "email", "error": "Required field is missing"})
    result.log.info("Starting migration")
    result.log.error("Error migrating user u1")

    report = MigrationReporter().build(result)

    assert report["summary"]["total_errors"] == 2
    assert report["summary"]["error_rate"] == 25.0
    assert report["summary"]["total_log_entries"] == 2
    assert report["summary"]["validation_passed"] is None
    assert report["errors"][0]["record_id"] == "u1"
    assert report["start_time"] == result.log.entries[0].timestamp.isoformat()


def test_reporter_saves_file(tmp_path):
    result = _result(EntityKind.USER)
    result.log.info("Starting migration")

    path = MigrationReporter().save(result, tmp_path / "reports")

    assert path.name.startswith("migration-report-")
    with open(path) as f:
        saved = json.load(f)
    assert saved["kinds"]["user"]["status"] == "idle"
    assert saved["log"][0]["message"] == "Starting migration"


def test_kind_is_reconciling_while_counted(loader):
    extractor = MemoryExtractor({EntityKind.USER: [make_user(0)]})
    result = _result(EntityKind.USER)
    result.kind_result(EntityKind.USER).status = MigrationStatus.COMPLETED
    seen = []
    count = loader.count

    def recording_count(collection):
        seen.append(result.kinds[EntityKind.USER].status)
        return count(collection)

    loader.count = recording_count

    MigrationValidator(extractor, loader, TransformEngine()).reconcile(result)

    assert seen == [MigrationStatus.RECONCILING]
    assert result.kinds[EntityKind.USER].status == MigrationStatus.COMPLETED
