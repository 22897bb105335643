"""Search backend client.

Fetches request-log documents from Elasticsearch over HTTP. Documents are
returned as delivered (``{"fields": {name: [value]}}``); unwrapping them is
left to ``dashboard_core.data``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
import pandas as pd

from dashboard_core.config import DashboardSettings
from dashboard_core.data import FIELD_NAMES, parse_timestamp
from dashboard_core.errors import AuthorizationError, BackendQueryError, ConfigurationError


logger = logging.getLogger(__name__)

TIMESTAMP_FIELD = FIELD_NAMES["timestamp"]


def build_search_query(start: object = None, end: object = None, *, size: int = 10000) -> Dict[str, Any]:
    """Search body for all requests between ``start`` and ``end`` (inclusive)."""
    bounds: Dict[str, str] = {}
    for op, value in (("gte", start), ("lte", end)):
        ts = parse_timestamp(value)
        if not pd.isna(ts):
            bounds[op] = ts.isoformat() + "Z"

    query: Dict[str, Any] = {"match_all": {}}
    if bounds:
        query = {"range": {TIMESTAMP_FIELD: bounds}}

    return {
        "size": int(size),
        "query": query,
        "fields": list(FIELD_NAMES.values()),
        "_source": False,
        "sort": [{TIMESTAMP_FIELD: {"order": "desc"}}],
    }


class SearchBackend:
    def __init__(self, settings: DashboardSettings, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.settings = settings
        self._transport = transport

    def _check_user(self, user: Optional[str]) -> None:
        name = (user or "").strip()
        if not name:
            raise AuthorizationError("User is not authorised.")
        allowed = self.settings.auth.allowed_users
        if allowed and name not in allowed:
            raise AuthorizationError("User is not authorised.")

    def search(self, query: Dict[str, Any], *, user: Optional[str]) -> List[Dict[str, Any]]:
        """Run ``query`` and return the hit documents.

        Raises:
            AuthorizationError: ``user`` is missing or not allowed; nothing is sent.
            ConfigurationError: No backend host is configured.
            BackendQueryError: The request failed or the response is malformed.
        """
        self._check_user(user)

        backend = self.settings.backend
        if not backend.host:
            raise ConfigurationError("Elasticsearch host is not defined. Please check your settings.")

        url = f"{backend.host}/{backend.index}/_search"
        started = time.perf_counter()
        logger.info("Fetching data from %s", url)
        try:
            with httpx.Client(timeout=backend.timeout, verify=backend.verify_tls, transport=self._transport) as client:
                response = client.post(url, json=query)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Search request failed: %s", exc)
            raise BackendQueryError("Analytics data is not found.") from exc
        except ValueError as exc:
            raise BackendQueryError("Analytics data is not found.") from exc

        outer = payload.get("hits") if isinstance(payload, dict) else None
        hits = outer.get("hits") if isinstance(outer, dict) else None
        if not isinstance(hits, list):
            raise BackendQueryError("Analytics data is not found.")

        logger.info("Fetching chart data took %.2f seconds (%d documents)", time.perf_counter() - started, len(hits))
        return hits


def fetch_documents(
    settings: DashboardSettings,
    *,
    user: Optional[str],
    start: object = None,
    end: object = None,
    size: Optional[int] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> List[Dict[str, Any]]:
    query = build_search_query(start, end, size=size or settings.backend.size)
    return SearchBackend(settings, transport=transport).search(query, user=user)
