"""Shared fixtures: in-memory stores and record factories."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from docmigrate.exceptions import BatchCommitError, SourceUnavailable, TargetUnavailable
from docmigrate.extractors.base import BaseExtractor
from docmigrate.loaders.base import BaseLoader
from docmigrate.models.migration import EntityKind
from docmigrate.models.record import SourceRecord, TargetRecord


class MemoryExtractor(BaseExtractor):
    """Source store held in memory, ordered by insertion."""

    source_name = "memory"

    def __init__(self, records: Optional[Dict[EntityKind, List[Dict[str, Any]]]] = None):
        self.records = records or {}
        self.page_calls: List[tuple] = []
        self.fail_on_page: Optional[int] = None

    def count(self, kind, filters=None):
        return len(self._filtered(kind, filters))

    def extract_batch(self, kind, filters=None, offset=0, limit=50):
        self.page_calls.append((kind, offset, limit))
        if self.fail_on_page is not None and len(self.page_calls) >= self.fail_on_page:
            raise SourceUnavailable("connection reset by peer")
        items = self._filtered(kind, filters)[offset:offset + limit]
        return [SourceRecord(source_id=item.get("objectId", ""), kind=kind, data=item) for item in items]

    def _filtered(self, kind, filters):
        return [item for item in self.records.get(kind, []) if self.matches(item, filters)]


class MemoryLoader(BaseLoader):
    """Target store held in memory."""

    target_name = "memory"

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.commits: List[List[TargetRecord]] = []
        self.fail_batches: set = set()
        self.unavailable = False
        self.on_commit: Optional[Callable[[List[TargetRecord]], None]] = None

    def write_batch(self, records):
        if self.unavailable:
            raise TargetUnavailable("permission denied")
        self.commits.append(list(records))
        if len(self.commits) in self.fail_batches:
            raise BatchCommitError("deadline exceeded")
        for record in records:
            self.collections.setdefault(record.collection, {})[record.target_id] = record.data
        if self.on_commit:
            self.on_commit(records)

    def exists(self, collection, target_id):
        if self.unavailable:
            raise TargetUnavailable("permission denied")
        return target_id in self.collections.get(collection, {})

    def count(self, collection):
        return len(self.collections.get(collection, {}))


def make_user(index: int, **overrides) -> Dict[str, Any]:
    user = {
        "objectId": f"u{index:04d}",
        "username": f"user{index}",
        "email": f"user{index}@example.com",
        "emailVerified": True,
        "userType": 2,
        "createdAt": "2023-03-01T10:00:00.000Z",
        "updatedAt": "2023-03-02T10:00:00.000Z",
    }
    user.update(overrides)
    return user


def make_appointment(index: int, **overrides) -> Dict[str, Any]:
    appointment = {
        "objectId": f"a{index:04d}",
        "appointmentDate": {"__type": "Date", "iso": "2024-05-10T14:30:00.000Z"},
        "client": {"__type": "Object", "className": "_User", "objectId": "u0001", "email": "c@example.com"},
        "professional": {"__type": "Pointer", "className": "_User", "objectId": "u0002"},
        "createdAt": "2024-05-01T09:00:00.000Z",
    }
    appointment.update(overrides)
    return appointment


def make_response(status: int = 200, payload: Any = None, url: str = "http://test/") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(payload if payload is not None else {}).encode()
    response.url = url
    response.reason = "test"
    return response


@pytest.fixture
def users() -> List[Dict[str, Any]]:
    return [make_user(i) for i in range(120)]


@pytest.fixture
def extractor(users) -> MemoryExtractor:
    return MemoryExtractor({EntityKind.USER: users})


@pytest.fixture
def loader() -> MemoryLoader:
    return MemoryLoader()
