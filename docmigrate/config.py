"""Configuration for stores and migration jobs."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field

from .models.migration import EntityKind, KIND_ORDER, MigrationJob


def _require_env(env: Mapping[str, str], names: List[str]) -> None:
    missing = [name for name in names if not env.get(name)]
    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")


@dataclass
class ParseSettings:
    """Connection settings for a Parse Server."""
    server_url: str
    app_id: str
    rest_api_key: Optional[str] = None
    master_key: Optional[str] = None
    timeout: float = 30.0
    max_retries: int = 3
    backoff_factor: float = 2.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ParseSettings":
        """Build settings from PARSE_* environment variables."""
        env = os.environ if env is None else env
        _require_env(env, ["PARSE_SERVER_URL", "PARSE_APP_ID"])
        return cls(
            server_url=env["PARSE_SERVER_URL"],
            app_id=env["PARSE_APP_ID"],
            rest_api_key=env.get("PARSE_REST_API_KEY"),
            master_key=env.get("PARSE_MASTER_KEY"),
        )


@dataclass
class FirestoreSettings:
    """Connection settings for a Firestore database."""
    project_id: str
    database: str = "(default)"
    access_token: Optional[str] = None
    emulator_host: Optional[str] = None
    timeout: float = 30.0
    max_retries: int = 3
    backoff_factor: float = 2.0

    @property
    def base_url(self) -> str:
        if self.emulator_host:
            return f"http://{self.emulator_host}/v1"
        return "https://firestore.googleapis.com/v1"

    @property
    def database_path(self) -> str:
        return f"projects/{self.project_id}/databases/{self.database}"

    @property
    def documents_path(self) -> str:
        return f"{self.database_path}/documents"

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        use_emulator: bool = False
    ) -> "FirestoreSettings":
        """Build settings from FIRESTORE_* environment variables."""
        env = os.environ if env is None else env
        required = ["FIRESTORE_PROJECT_ID"]
        if use_emulator:
            emulator_host = env.get("FIRESTORE_EMULATOR_HOST") or "localhost:8080"
        else:
            emulator_host = env.get("FIRESTORE_EMULATOR_HOST")
            if not emulator_host:
                required.append("FIRESTORE_ACCESS_TOKEN")
        _require_env(env, required)
        return cls(
            project_id=env["FIRESTORE_PROJECT_ID"],
            database=env.get("FIRESTORE_DATABASE") or "(default)",
            access_token=env.get("FIRESTORE_ACCESS_TOKEN"),
            emulator_host=emulator_host,
        )


class JobSettings(BaseModel):
    """Migration job as written in a JSON config file."""
    name: str = "parse-to-firestore"
    entity_kinds: List[str] = Field(default_factory=lambda: [k.value for k in KIND_ORDER], min_length=1)
    batch_size: int = Field(default=50, gt=0, le=500)
    inter_batch_delay: float = Field(default=1.0, ge=0)
    skip_existing: bool = True
    dry_run: bool = False
    entity_filter: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    parallel_workers: int = Field(default=1, ge=1)
    report_dir: Optional[str] = None

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "JobSettings":
        with open(path) as f:
            return cls(**json.load(f))

    def to_job(self) -> MigrationJob:
        """Convert to the immutable runtime job."""
        return MigrationJob(
            name=self.name,
            entity_kinds=frozenset(EntityKind.parse(k) for k in self.entity_kinds),
            batch_size=self.batch_size,
            inter_batch_delay=self.inter_batch_delay,
            skip_existing=self.skip_existing,
            dry_run=self.dry_run,
            entity_filter={EntityKind.parse(k): dict(v) for k, v in self.entity_filter.items()},
            parallel_workers=self.parallel_workers,
        )
