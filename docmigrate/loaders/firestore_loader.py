"""Firestore REST loader."""

import base64
import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import BaseLoader
from ..config import FirestoreSettings
from ..exceptions import BatchCommitError, TargetUnavailable
from ..models.record import GeoPoint, TargetRecord

logger = logging.getLogger(__name__)

AUTH_FAILURE_CODES = (401, 403)


def encode_value(value: Any) -> Dict[str, Any]:
    """Encode a Python value as a Firestore REST ``Value``."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {"timestampValue": value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, GeoPoint):
        return {"geoPointValue": value.to_dict()}
    if isinstance(value, bytes):
        return {"bytesValue": base64.b64encode(value).decode()}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} for Firestore")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    return {str(key): encode_value(value) for key, value in data.items()}


class FirestoreLoader(BaseLoader):
    """
    Loader for the Cloud Firestore REST API.

    Each batch is sent as one ``documents:commit`` call with full-document
    ``update`` writes, so a batch is applied atomically and re-running it
    replaces the same documents.
    """

    target_name = "firestore"
    max_batch_size = 500

    def __init__(
        self,
        settings: FirestoreSettings,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the Firestore loader.

        Args:
            settings: Firestore connection settings
            session: Custom requests session
        """
        self.settings = settings
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session; only reads are retried."""
        session = requests.Session()

        retries = Retry(
            total=self.settings.max_retries,
            backoff_factor=self.settings.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=frozenset(["GET"]),
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        token = self.settings.access_token
        if not token and self.settings.emulator_host:
            token = "owner"
        if token:
            session.headers["Authorization"] = f"Bearer {token}"
        session.headers["Content-Type"] = "application/json"

        return session

    def document_name(self, collection: str, target_id: str) -> str:
        return f"{self.settings.documents_path}/{collection}/{target_id}"

    def _url(self, path: str) -> str:
        return f"{self.settings.base_url}/{path}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send a request, translating transport and auth failures."""
        try:
            response = self._session.request(method, url, timeout=self.settings.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TargetUnavailable(f"Firestore unreachable at {url}: {e}") from e

        if response.status_code in AUTH_FAILURE_CODES:
            raise TargetUnavailable(
                f"Firestore refused credentials ({response.status_code}): {response.text[:200]}"
            )
        return response

    def write_batch(self, records: List[TargetRecord]) -> None:
        """Upsert the batch with a single commit request."""
        try:
            writes = [
                {
                    "update": {
                        "name": self.document_name(record.collection, record.target_id),
                        "fields": encode_fields(record.data),
                    }
                }
                for record in records
            ]
        except TypeError as e:
            raise BatchCommitError(f"Unencodable value in batch: {e}") from e

        url = self._url(f"{self.settings.database_path}/documents:commit")
        response = self._request("POST", url, json={"writes": writes})

        if not response.ok:
            raise BatchCommitError(f"Commit failed with HTTP {response.status_code}: {response.text[:500]}")

        logger.debug(f"Committed {len(records)} documents to Firestore")

    def exists(self, collection: str, target_id: str) -> bool:
        url = self._url(self.document_name(collection, target_id))
        response = self._request("GET", url, params={"mask.fieldPaths": "__name__"})

        if response.status_code == 404:
            return False
        if not response.ok:
            raise TargetUnavailable(
                f"Existence check for {collection}/{target_id} failed with HTTP {response.status_code}"
            )
        return True

    def count(self, collection: str) -> int:
        """Count documents with a COUNT aggregation query."""
        url = self._url(f"{self.settings.documents_path}:runAggregationQuery")
        body = {
            "structuredAggregationQuery": {
                "structuredQuery": {"from": [{"collectionId": collection}]},
                "aggregations": [{"alias": "total", "count": {}}],
            }
        }
        response = self._request("POST", url, json=body)
        if not response.ok:
            raise TargetUnavailable(
                f"Count of {collection} failed with HTTP {response.status_code}: {response.text[:200]}"
            )

        for item in response.json():
            fields = item.get("result", {}).get("aggregateFields", {})
            if "total" in fields:
                return int(fields["total"].get("integerValue", 0))
        return 0
