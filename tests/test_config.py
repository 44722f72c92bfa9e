import json

import pytest
from pydantic import ValidationError

from docmigrate.config import FirestoreSettings, JobSettings, ParseSettings
from docmigrate.models.migration import EntityKind, MigrationJob


def test_job_defaults():
    job = MigrationJob()

    assert job.batch_size == 50
    assert job.inter_batch_delay == 1.0
    assert job.skip_existing is True
    assert job.dry_run is False
    assert job.ordered_kinds == [
        EntityKind.USER,
        EntityKind.CLIENT_PROFILE,
        EntityKind.PROFESSIONAL_PROFILE,
        EntityKind.APPOINTMENT,
    ]


@pytest.mark.parametrize("overrides", [
    {"batch_size": 0},
    {"inter_batch_delay": -1},
    {"entity_kinds": frozenset()},
    {"parallel_workers": 0},
])
def test_job_rejects_invalid_values(overrides):
    with pytest.raises(ValueError):
        MigrationJob(**overrides)


def test_job_dict_round_trip():
    job = MigrationJob(
        entity_kinds=frozenset({EntityKind.APPOINTMENT, EntityKind.USER}),
        batch_size=25,
        entity_filter={EntityKind.USER: {"userType": 1}},
    )
    assert MigrationJob.from_dict(job.to_dict()) == job


def test_entity_kind_parse_accepts_names_and_values():
    assert EntityKind.parse("client_profile") is EntityKind.CLIENT_PROFILE
    assert EntityKind.parse("Professional-Profile") is EntityKind.PROFESSIONAL_PROFILE
    with pytest.raises(ValueError):
        EntityKind.parse("invoice")


def test_job_settings_from_file(tmp_path):
    path = tmp_path / "job.json"
    with open(path, "w") as f:
        json.dump({
            "name": "users-only",
            "entity_kinds": ["user"],
            "batch_size": 100,
            "inter_batch_delay": 0.5,
            "entity_filter": {"user": {"userType": 3}},
        }, f)

    job = JobSettings.from_json_file(path).to_job()

    assert job.name == "users-only"
    assert job.entity_kinds == frozenset({EntityKind.USER})
    assert job.batch_size == 100
    assert job.filter_for(EntityKind.USER) == {"userType": 3}


@pytest.mark.parametrize("values", [
    {"batch_size": 0},
    {"batch_size": 501},
    {"inter_batch_delay": -0.1},
    {"entity_kinds": []},
    {"parallel_workers": 0},
])
def test_job_settings_validation(values):
    with pytest.raises(ValidationError):
        JobSettings(**values)


def test_unknown_kind_in_settings_fails_on_conversion():
    with pytest.raises(ValueError):
        JobSettings(entity_kinds=["invoice"]).to_job()


def test_parse_settings_from_env():
    settings = ParseSettings.from_env({
        "PARSE_SERVER_URL": "https://parse.example.com/parse",
        "PARSE_APP_ID": "app",
        "PARSE_MASTER_KEY": "mk",
    })
    assert settings.app_id == "app"
    assert settings.master_key == "mk"
    assert settings.rest_api_key is None


def test_parse_settings_missing_env():
    with pytest.raises(ValueError) as exc_info:
        ParseSettings.from_env({"PARSE_APP_ID": "app"})
    assert "PARSE_SERVER_URL" in str(exc_info.value)


def test_firestore_settings_require_token_outside_emulator():
    with pytest.raises(ValueError) as exc_info:
        FirestoreSettings.from_env({"FIRESTORE_PROJECT_ID": "demo"})
    assert "FIRESTORE_ACCESS_TOKEN" in str(exc_info.value)


def test_firestore_settings_for_emulator():
    settings = FirestoreSettings.from_env({"FIRESTORE_PROJECT_ID": "demo"}, use_emulator=True)

    assert settings.emulator_host == "localhost:8080"
    assert settings.base_url == "http://localhost:8080/v1"
    assert settings.documents_path == "projects/demo/databases/(default)/documents"


def test_job_filter_is_read_only_and_job_hashable():
    constraints = {"userType": 3}
    job = MigrationJob(entity_filter={EntityKind.USER: constraints})
    constraints["userType"] = 1

    assert job.filter_for(EntityKind.USER) == {"userType": 3}
    with pytest.raises(TypeError):
        job.entity_filter[EntityKind.APPOINTMENT] = {}
    with pytest.raises(TypeError):
        job.entity_filter[EntityKind.USER]["userType"] = 2
    assert hash(job) == hash(MigrationJob(entity_filter={EntityKind.USER: {"userType": 1}}))
    assert job.to_dict()["entity_filter"] == {"user": {"userType": 3}}
