"""Tests for the search backend client."""

import json

import httpx
import pytest

from dashboard_core.backend import SearchBackend, build_search_query, fetch_documents
from dashboard_core.config import AuthSettings, BackendSettings, DashboardSettings
from dashboard_core.errors import AuthorizationError, BackendQueryError, ConfigurationError
from tests.helpers import make_doc


def _settings(host="http://es.test", allowed=()) -> DashboardSettings:
    return DashboardSettings(
        backend=BackendSettings(host=host, index="logs-*"),
        auth=AuthSettings(allowed_users=list(allowed)),
    )


class _Recorder:
    """MockTransport handler that records requests and replies with ``payload``."""

    def __init__(self, payload=None, status_code=200) -> None:
        self.requests = []
        self.payload = payload if payload is not None else {"hits": {"hits": []}}
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)


class TestBuildSearchQuery:
    def test_time_range_on_request_at(self) -> None:
        query = build_search_query("2024-03-04T00:00:00Z", "2024-03-05T00:00:00+02:00", size=50)

        assert query["query"] == {
            "range": {"request_at": {"gte": "2024-03-04T00:00:00Z", "lte": "2024-03-04T22:00:00Z"}}
        }
        assert query["size"] == 50
        assert query["_source"] is False
        assert "response_status" in query["fields"]

    def test_without_bounds_matches_everything(self) -> None:
        assert build_search_query()["query"] == {"match_all": {}}

    def test_one_sided_range(self) -> None:
        query = build_search_query(start="2024-03-04")

        assert query["query"]["range"]["request_at"] == {"gte": "2024-03-04T00:00:00Z"}


class TestSearchBackend:
    def test_returns_hit_documents(self) -> None:
        docs = [make_doc(status_code=200), make_doc(status_code=404)]
        handler = _Recorder({"hits": {"hits": docs}})
        backend = SearchBackend(_settings(), transport=httpx.MockTransport(handler))

        hits = backend.search({"query": {"match_all": {}}}, user="alice")

        assert hits == docs
        assert handler.requests[0].method == "POST"
        assert handler.requests[0].url.host == "es.test"
        assert handler.requests[0].url.path.endswith("/_search")
        assert json.loads(handler.requests[0].content) == {"query": {"match_all": {}}}

    @pytest.mark.parametrize("user", [None, "", "   "])
    def test_missing_user_sends_nothing(self, user) -> None:
        handler = _Recorder()
        backend = SearchBackend(_settings(), transport=httpx.MockTransport(handler))

        with pytest.raises(AuthorizationError) as exc_info:
            backend.search({}, user=user)

        assert exc_info.value.status_code == 401
        assert handler.requests == []

    def test_allow_list(self) -> None:
        handler = _Recorder()
        backend = SearchBackend(_settings(allowed=["alice"]), transport=httpx.MockTransport(handler))

        backend.search({}, user="alice")
        with pytest.raises(AuthorizationError):
            backend.search({}, user="mallory")

        assert len(handler.requests) == 1

    def test_missing_host(self) -> None:
        backend = SearchBackend(_settings(host=None))

        with pytest.raises(ConfigurationError, match="host is not defined"):
            backend.search({}, user="alice")

    def test_http_error_becomes_backend_error(self) -> None:
        backend = SearchBackend(_settings(), transport=httpx.MockTransport(_Recorder({"error": "boom"}, 500)))

        with pytest.raises(BackendQueryError) as exc_info:
            backend.search({}, user="alice")

        assert exc_info.value.status_code == 502

    @pytest.mark.parametrize("payload", [{"hits": {}}, {"hits": "nope"}, {"took": 3}, [1, 2]])
    def test_malformed_response(self, payload) -> None:
        backend = SearchBackend(_settings(), transport=httpx.MockTransport(_Recorder(payload)))

        with pytest.raises(BackendQueryError):
            backend.search({}, user="alice")

    def test_non_json_response(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        backend = SearchBackend(_settings(), transport=transport)

        with pytest.raises(BackendQueryError):
            backend.search({}, user="alice")


class TestFetchDocuments:
    def test_uses_configured_size(self) -> None:
        handler = _Recorder()

        fetch_documents(_settings(), user="alice", start="2024-03-04", transport=httpx.MockTransport(handler))

        body = json.loads(handler.requests[0].content)
        assert body["size"] == 10000
        assert body["query"]["range"]["request_at"]["gte"] == "2024-03-04T00:00:00Z"
