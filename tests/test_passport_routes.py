"""
HTTP-level tests for the OAuth and pipe management routes.
"""

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, patch

from config.settings import config
from conftest import FakeConnector, FakeStore, FakeStrategy, build_orchestrator
from main import create_app
from oauth.exceptions import AuthenticationError, ConnectorPostProcessingError
from oauth.state import encode_state
from utils.schemas import AuthResult


@pytest.fixture
def store(fake_pipe):
    return FakeStore(fake_pipe)


@pytest.fixture
def strategy():
    return FakeStrategy()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def client(registry, store, connector, strategy):
    orch = build_orchestrator(registry, store, connector, strategy)
    return TestClient(create_app(orch), follow_redirects=False)


class TestAuthorizationRoute:
    def test_redirects_to_provider(self, client):
        resp = client.get("/auth/passport/pipe-1", params={"url": "https://app.test/done"})

        assert resp.status_code == 302
        location = urlparse(resp.headers["location"])
        assert location.netloc == "provider.test"
        assert "state" in parse_qs(location.query)

    def test_unknown_pipe_is_json_error(self, client):
        resp = client.get("/auth/passport/nope")

        assert resp.status_code == 404
        assert "error" in resp.json()


class TestCallbackRoute:
    def test_missing_state(self, client, strategy):
        resp = client.get("/auth/callback", params={"code": "abc"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "OAuth callback - data pipe configuration id is missing."}
        assert strategy.calls == []

    def test_authentication_error_is_html(self, client, strategy):
        strategy.result = AuthResult(error=AuthenticationError("boom", status_code=500))
        resp = client.get("/auth/callback", params={"state": encode_state("pipe-1")})

        assert resp.status_code == 401
        assert resp.headers["content-type"].startswith("text/html")
        assert "Authentication failed with error 500" in resp.text

    def test_unknown_user_is_html(self, client, strategy):
        strategy.result = AuthResult()
        resp = client.get("/auth/callback", params={"state": encode_state("pipe-1")})

        assert resp.status_code == 401
        assert "The user is not known to the data source." in resp.text

    def test_round_trip_through_session(self, client, store):
        start = client.get("/auth/passport/pipe-1", params={"url": "/pipes/pipe-1/done"})
        assert start.status_code == 302

        # provider redirect without a state parameter: the session supplies it
        resp = client.get("/auth/callback", params={"code": "abc"})

        assert resp.status_code == 302
        assert resp.headers["location"] == "/pipes/pipe-1/done"
        assert [p.id for p in store.saved] == ["pipe-1"]
        assert store.saved[0].oauth["access_token"]

    def test_without_return_url_returns_pipe(self, client, store):
        resp = client.get("/auth/callback", params={"state": encode_state("pipe-1"), "code": "abc"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == "pipe-1"
        assert "client_secret" not in body
        assert "access_token" not in body["oauth"]

    def test_non_ascii_state_signature(self, client, strategy):
        resp = client.get("/auth/callback", params={"state": "e30=.é", "code": "abc"})

        assert resp.status_code == 400
        assert resp.headers["content-type"].startswith("application/json")
        assert strategy.calls == []

    def test_foreign_return_url_is_not_followed(self, client, store):
        client.get("/auth/passport/pipe-1", params={"url": "https://evil.example/phish"})
        resp = client.get("/auth/callback", params={"code": "abc"})

        assert resp.status_code == 200
        assert "location" not in resp.headers
        assert resp.json()["id"] == "pipe-1"
        assert [p.id for p in store.saved] == ["pipe-1"]

    def test_allowed_host_return_url(self, client):
        with patch.object(config, "allowed_return_hosts", ["app.test"]):
            client.get("/auth/passport/pipe-1", params={"url": "https://app.test/done"})
            resp = client.get("/auth/callback", params={"code": "abc"})

        assert resp.status_code == 302
        assert resp.headers["location"] == "https://app.test/done"

    def test_failed_callback_clears_session_state(self, client, strategy):
        client.get("/auth/passport/pipe-1")
        strategy.result = AuthResult()

        first = client.get("/auth/callback", params={"code": "abc"})
        assert first.status_code == 401

        # a replayed provider redirect finds no state to resume
        second = client.get("/auth/callback", params={"code": "abc"})
        assert second.status_code == 400
        assert second.json() == {"error": "OAuth callback - data pipe configuration id is missing."}
        assert len(strategy.calls) == 1

    def test_unknown_pipe_at_callback(self, client, store, connector):
        store.pipes.clear()
        resp = client.get("/auth/callback", params={"state": encode_state("pipe-1"), "code": "abc"})

        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/json")
        assert "pipe-1" in resp.json()["error"]
        assert connector.calls == []


class TestConnectorFailureRoutes:
    def _callback(self, client):
        return client.get("/auth/callback", params={"state": encode_state("pipe-1"), "code": "abc"})

    def test_connector_exception_is_json(self, client, connector, store):
        connector.post_processing = AsyncMock(side_effect=KeyError("token"))
        resp = self._callback(client)

        assert resp.status_code == 500
        assert resp.headers["content-type"].startswith("application/json")
        error = resp.json()["error"]
        assert "fake" in error
        assert "pipe-1" in error
        assert "KeyError" in error
        assert store.saved == []

    def test_post_processing_failure_is_html(self, client, connector, store):
        connector.post_processing = AsyncMock(side_effect=ConnectorPostProcessingError("quota exceeded"))
        resp = self._callback(client)

        assert resp.status_code == 401
        assert resp.headers["content-type"].startswith("text/html")
        assert "fake" in resp.text
        assert "quota exceeded" in resp.text
        assert store.saved == []

    def test_empty_result_is_json(self, client, connector, store):
        connector.post_processing = AsyncMock(return_value=None)
        resp = self._callback(client)

        assert resp.status_code == 500
        assert resp.headers["content-type"].startswith("application/json")
        assert "no results were returned" in resp.json()["error"]
        assert store.saved == []


class TestResponseHeaders:
    def test_auth_routes_are_not_cached(self, client):
        start = client.get("/auth/passport/pipe-1")
        callback = client.get("/auth/callback", params={"code": "abc"})

        for resp in (start, callback):
            assert resp.headers["cache-control"] == "no-store"
            assert resp.headers["pragma"] == "no-cache"

    def test_api_routes_keep_default_caching(self, client):
        resp = client.get("/api/v1/connectors")
        assert "cache-control" not in resp.headers


class TestPipeRoutes:
    def test_list_connectors(self, client):
        resp = client.get("/api/v1/connectors")
        assert resp.json() == [{"connector_id": "fake", "display_name": "Fake"}]

    def test_create_registers_strategy(self, client, store):
        resp = client.post(
            "/api/v1/pipes",
            json={"id": "pipe-2", "name": "New", "connector_id": "fake", "client_id": "c2"},
        )

        assert resp.status_code == 201
        assert "pipe-2" in store.pipes
        assert client.app.state.orchestrator.authenticator.get("pipe-2") is not None

    def test_create_unknown_connector(self, client):
        resp = client.post("/api/v1/pipes", json={"name": "New", "connector_id": "nope"})
        assert resp.status_code == 400

    def test_get_pipe(self, client):
        assert client.get("/api/v1/pipes/pipe-1").json()["name"] == "Fake pipe"
        assert client.get("/api/v1/pipes/missing").status_code == 404

    def test_delete_removes_strategy(self, client, store):
        resp = client.delete("/api/v1/pipes/pipe-1")

        assert resp.status_code == 200
        assert "pipe-1" not in store.pipes
        assert client.app.state.orchestrator.authenticator.get("pipe-1") is None
        assert client.delete("/api/v1/pipes/pipe-1").status_code == 404
