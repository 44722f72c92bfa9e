"""Parse Server REST extractor."""

import json
import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import BaseExtractor
from ..config import ParseSettings
from ..exceptions import SourceUnavailable
from ..models.migration import EntityKind
from ..models.record import SourceRecord

logger = logging.getLogger(__name__)


class ParseExtractor(BaseExtractor):
    """
    Extractor for the Parse Server REST API.

    Supports:
    - Offset pagination with a stable createdAt/objectId sort
    - Field-equality filters via the ``where`` parameter
    - Pointer expansion via ``include``
    - Retry on 429/5xx for read requests
    """

    source_name = "parse"

    CLASS_ENDPOINTS = {
        EntityKind.USER: "/users",
        EntityKind.CLIENT_PROFILE: "/classes/Client",
        EntityKind.PROFESSIONAL_PROFILE: "/classes/Professional",
        EntityKind.APPOINTMENT: "/classes/Appointment",
    }

    INCLUDES = {
        EntityKind.APPOINTMENT: "client,professional",
    }

    ORDER = "createdAt,objectId"

    def __init__(
        self,
        settings: ParseSettings,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the Parse extractor.

        Args:
            settings: Parse Server connection settings
            session: Custom requests session
        """
        self.settings = settings
        self.base_url = settings.server_url.rstrip("/")
        self._session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        retries = Retry(
            total=self.settings.max_retries,
            backoff_factor=self.settings.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def _get_headers(self) -> Dict[str, str]:
        """Get Parse authentication headers."""
        headers = {"X-Parse-Application-Id": self.settings.app_id}
        if self.settings.master_key:
            headers["X-Parse-Master-Key"] = self.settings.master_key
        elif self.settings.rest_api_key:
            headers["X-Parse-REST-API-Key"] = self.settings.rest_api_key
        return headers

    def _get_endpoint(self, kind: EntityKind) -> str:
        return f"{self.base_url}{self.CLASS_ENDPOINTS[kind]}"

    def _query(self, kind: EntityKind, params: Dict[str, Any]) -> Dict[str, Any]:
        url = self._get_endpoint(kind)
        try:
            response = self._session.get(
                url,
                headers=self._get_headers(),
                params=params,
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
            return response.json()

        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise SourceUnavailable(f"Parse query on {url} failed with HTTP {status}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise SourceUnavailable(f"Parse server unreachable at {url}: {e}") from e

    def _build_params(self, kind: EntityKind, filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if filters:
            params["where"] = json.dumps(filters)
        return params

    def count(self, kind: EntityKind, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count matching records with a zero-limit count query."""
        params = self._build_params(kind, filters)
        params.update({"count": 1, "limit": 0})

        data = self._query(kind, params)
        total = int(data.get("count", 0))
        logger.debug(f"Parse count {kind.value}: {total}")
        return total

    def extract_batch(
        self,
        kind: EntityKind,
        filters: Optional[Dict[str, Any]] = None,
        offset: int = 0,
        limit: int = 50
    ) -> List[SourceRecord]:
        """Extract a page of records from Parse."""
        params = self._build_params(kind, filters)
        params.update({"skip": offset, "limit": limit, "order": self.ORDER})
        if kind in self.INCLUDES:
            params["include"] = self.INCLUDES[kind]

        data = self._query(kind, params)
        return self._parse_response(kind, data)

    def _parse_response(self, kind: EntityKind, data: Dict[str, Any]) -> List[SourceRecord]:
        """Parse a query response into SourceRecords."""
        items = data.get("results", [])
        if not isinstance(items, list):
            items = [items]

        return [
            SourceRecord(
                source_id=str(item.get("objectId") or ""),
                kind=kind,
                data=item,
            )
            for item in items
        ]
