import json

from docmigrate.cli import build_parser, build_settings, main
from docmigrate.models.migration import EntityKind

from conftest import make_appointment, make_user


def _write(path, data):
    with open(path, "w") as f:
        json.dump(data, f)


def test_build_settings_merges_flags(tmp_path):
    config = tmp_path / "job.json"
    _write(config, {"name": "nightly", "batch_size": 100, "entity_kinds": ["user", "appointment"]})
    args = build_parser().parse_args([
        "run", "--config", str(config), "--batch-size", "25", "--user-type", "3",
        "--no-skip-existing", "--dry-run",
    ])

    job = build_settings(args).to_job()

    assert job.name == "nightly"
    assert job.batch_size == 25
    assert job.skip_existing is False
    assert job.dry_run is True
    assert job.entity_kinds == frozenset({EntityKind.USER, EntityKind.APPOINTMENT})
    assert job.filter_for(EntityKind.USER) == {"userType": 3}


def test_run_json_to_json(tmp_path, capsys):
    source = tmp_path / "export"
    source.mkdir()
    _write(source / "user.json", {"results": [make_user(i) for i in range(12)]})
    _write(source / "appointment.json", [make_appointment(i) for i in range(3)])
    target = tmp_path / "out"

    code = main([
        "run", "--source", "json", "--source-dir", str(source),
        "--target", "json", "--target-dir", str(target),
        "--kinds", "user,appointment", "--batch-size", "5", "--delay", "0",
        "--report-dir", str(tmp_path / "reports"),
    ])

    assert code == 0
    with open(target / "users.json") as f:
        assert len(json.load(f)) == 12
    with open(target / "appointments.json") as f:
        appointments = json.load(f)
    assert appointments["a0000"]["scheduling"]["duration"] == 60
    assert len(list((tmp_path / "reports").glob("migration-report-*.json"))) == 1

    output = capsys.readouterr().out
    assert "MIGRATION COMPLETE" in output
    assert "user: 12 total, 12 migrated, 0 skipped, 0 errors" in output


def test_run_with_missing_source_dir_reports_failure(tmp_path, capsys):
    code = main([
        "run", "--source", "json", "--source-dir", str(tmp_path / "missing"),
        "--target", "json", "--target-dir", str(tmp_path / "out"), "--delay", "0",
    ])

    assert code == 1
    assert "Migration failed" in capsys.readouterr().err


def test_invalid_batch_size_is_configuration_error(tmp_path, capsys):
    code = main([
        "run", "--source", "json", "--source-dir", str(tmp_path),
        "--target", "json", "--target-dir", str(tmp_path), "--batch-size", "0",
    ])

    assert code == 2
    assert "Configuration error" in capsys.readouterr().err


def test_preview_prints_mapped_records(tmp_path, capsys):
    sample = tmp_path / "sample.json"
    _write(sample, [make_user(1), make_user(2, email="")])

    assert main(["preview", "--input", str(sample), "--kind", "user"]) == 0

    output = capsys.readouterr().out
    assert '"parseObjectId": "u0001"' in output
    assert "Transform error" in output


def test_no_command_prints_help(capsys):
    assert main([]) == 1


def test_user_type_scopes_kinds_to_matching_profiles():
    professional = build_settings(build_parser().parse_args(["run", "--user-type", "3"])).to_job()
    client = build_settings(build_parser().parse_args(["run", "--user-type", "2"])).to_job()
    admin = build_settings(build_parser().parse_args(["run", "--user-type", "1"])).to_job()

    assert professional.ordered_kinds == [EntityKind.USER, EntityKind.PROFESSIONAL_PROFILE]
    assert professional.filter_for(EntityKind.USER) == {"userType": 3}
    assert client.ordered_kinds == [EntityKind.USER, EntityKind.CLIENT_PROFILE]
    assert admin.ordered_kinds == [EntityKind.USER]


def test_user_type_respects_explicit_kinds():
    args = build_parser().parse_args(["run", "--kinds", "user,client_profile,appointment", "--user-type", "3"])
    assert build_settings(args).to_job().ordered_kinds == [EntityKind.USER]
