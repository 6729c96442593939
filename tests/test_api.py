"""Tests for the HTTP endpoints."""

import time
from unittest.mock import Mock

import pytest
import requests
from fastapi.testclient import TestClient

from server.app import create_app
from server.config import AuthConfig, ProxyConfig, ServerConfig, StorageConfig, TrackerConfig
from tracker.auth import TokenService


@pytest.fixture
def test_config(tmp_path):
    """Create a test configuration."""
    return TrackerConfig(
        server=ServerConfig(),
        auth=AuthConfig(secret_key="test-secret", password="hunter2"),
        storage=StorageConfig(path=tmp_path / "mangas"),
        proxy=ProxyConfig(timeout_seconds=5),
    )


@pytest.fixture
def client(test_config):
    return TestClient(create_app(test_config))


@pytest.fixture
def token(client):
    response = client.post("/get_token", json={"password": "hunter2"})
    assert response.status_code == 200
    return response.json()["token"]


def test_get_token_wrong_password(client):
    response = client.post("/get_token", json={"password": "wrong"})
    assert response.status_code == 403
    assert response.json()["error"] == "wrong_password"


def test_verify_token(client, token):
    response = client.post("/verify_token", json={"token": token})
    assert response.status_code == 200
    assert response.json()["valid"] is True


def test_verify_token_missing(client):
    response = client.post("/verify_token", json={})
    assert response.status_code == 401
    assert response.json()["error"] == "missing_token"


def test_verify_token_garbage(client):
    response = client.post("/verify_token", json={"token": "garbage"})
    assert response.status_code == 403


@pytest.mark.parametrize("value", [123, ["a"], {"t": 1}, True])
def test_non_string_token_is_invalid_not_missing(client, value):
    response = client.post("/get_favorites", json={"token": value, "username": "alice"})
    assert response.status_code == 403
    assert response.json()["error"] == "invalid_token"


@pytest.mark.parametrize(
    "path, body",
    [
        ("/add_fav", {"username": "alice", "mangaName": "Berserk"}),
        ("/remove_fav", {"username": "alice", "mangaName": "Berserk"}),
        ("/get_favorites", {"username": "alice"}),
        ("/add_finished", {"username": "alice", "mangaName": "Berserk", "chapterNumber": 1}),
        ("/get_finished", {"username": "alice", "mangaName": "Berserk"}),
        ("/create_user", {"username": "alice"}),
        ("/list_users", {}),
        ("/proxy", {"url": "https://example.com/a.jpg"}),
    ],
)
def test_gate_on_every_operation(client, test_config, path, body):
    """No token -> 401, garbage or expired -> 403, and the store stays untouched."""
    assert client.post(path, json=body).status_code == 401
    assert client.post(path, json={**body, "token": "garbage"}).status_code == 403

    issued_at = time.time() - 25 * 3600
    expired = TokenService(test_config.auth, clock=lambda: issued_at).issue("hunter2")
    assert client.post(path, json={**body, "token": expired}).status_code == 403

    assert list(test_config.storage_dir.iterdir()) == []


def test_gate_checked_before_body_validation(client):
    response = client.post("/add_finished", json={"username": ["not", "a", "string"]})
    assert response.status_code == 401


def test_bearer_header_accepted(client, token):
    response = client.post(
        "/get_favorites",
        json={"username": "alice"},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "favorites": []}


def test_reading_scenario(client, token):
    """Favorites and finished chapters for one user, end to end."""
    response = client.post("/add_fav", json={"token": token, "username": "alice", "mangaName": "Berserk"})
    assert response.json() == {"success": True, "favorites": ["Berserk"]}

    response = client.post("/add_fav", json={"token": token, "username": "alice", "mangaName": "Berserk"})
    assert response.json()["favorites"] == ["Berserk"]

    body = {"token": token, "username": "alice", "mangaName": "Berserk", "chapterNumber": 1}
    client.post("/add_finished", json=body)
    response = client.post("/add_finished", json=body)
    assert response.json() == {"success": True, "finishedChapters": ["1"]}

    response = client.post("/add_finished", json={**body, "chapterNumber": "1"})
    assert response.json()["finishedChapters"] == ["1"]

    response = client.post("/get_finished", json={"token": token, "username": "alice", "mangaName": "Berserk"})
    assert response.json() == {"success": True, "mangaName": "Berserk", "finishedChapters": ["1"]}

    response = client.post("/remove_fav", json={"token": token, "username": "alice", "mangaName": "Berserk"})
    assert response.json() == {"success": True, "favorites": []}


def test_get_favorites_unknown_user(client, token):
    response = client.post("/get_favorites", json={"token": token, "username": "never-seen-user"})
    assert response.status_code == 200
    assert response.json()["favorites"] == []


@pytest.mark.parametrize(
    "path, body",
    [
        ("/add_fav", {"username": "alice"}),
        ("/remove_fav", {"mangaName": "Berserk"}),
        ("/get_favorites", {}),
        ("/add_finished", {"username": "alice", "mangaName": "Berserk"}),
        ("/get_finished", {"username": "alice"}),
        ("/create_user", {"username": ""}),
    ],
)
def test_missing_fields(client, token, path, body):
    response = client.post(path, json={**body, "token": token})
    assert response.status_code == 400
    assert response.json()["error"] == "missing_field"


@pytest.mark.parametrize("username", ["../secrets", "alice\n"])
def test_unsafe_username(client, token, test_config, username):
    response = client.post("/add_fav", json={"token": token, "username": username, "mangaName": "X"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_field"
    assert list(test_config.storage_dir.iterdir()) == []

    response = client.post("/list_users", json={"token": token})
    assert response.json() == {"users": []}


def test_malformed_field_type(client, token):
    response = client.post("/add_fav", json={"token": token, "username": 42, "mangaName": "Berserk"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


def test_create_and_list_users(client, token):
    assert client.post("/create_user", json={"token": token, "username": "bob"}).json() == {"success": True}
    client.post("/add_fav", json={"token": token, "username": "alice", "mangaName": "Monster"})

    response = client.post("/create_user", json={"token": token, "username": "bob"})
    assert response.status_code == 409

    response = client.post("/list_users", json={"token": token})
    assert response.json() == {"users": ["alice", "bob"]}


def test_store_failure_is_500(client, token, monkeypatch):
    def _fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("tracker.store.os.replace", _fail)
    response = client.post("/add_fav", json={"token": token, "username": "alice", "mangaName": "Berserk"})
    assert response.status_code == 500
    assert response.json()["error"] == "store_error"


def test_proxy_forwards_bytes_and_content_type(client, token, monkeypatch):
    upstream = Mock(content=b"\x89PNG...", headers={"content-type": "image/png"})
    get = Mock(return_value=upstream)
    monkeypatch.setattr("tracker.proxy.requests.get", get)

    response = client.post("/proxy", json={"token": token, "url": "https://cdn.example.com/p1.png"})
    assert response.status_code == 200
    assert response.content == b"\x89PNG..."
    assert response.headers["content-type"] == "image/png"
    assert get.call_args.kwargs["timeout"] == 5


@pytest.mark.parametrize("url", [None, "", "ftp://example.com/a.png", "not a url"])
def test_proxy_invalid_url(client, token, url):
    response = client.post("/proxy", json={"token": token, "url": url})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_url"


def test_proxy_fetch_failure(client, token, monkeypatch):
    monkeypatch.setattr(
        "tracker.proxy.requests.get",
        Mock(side_effect=requests.ConnectionError("unreachable")),
    )
    response = client.post("/proxy", json={"token": token, "url": "https://cdn.example.com/p1.png"})
    assert response.status_code == 500
    assert response.json()["error"] == "fetch_failed"


def test_proxy_upstream_error_status(client, token, monkeypatch):
    upstream = Mock(headers={})
    upstream.raise_for_status.side_effect = requests.HTTPError("404")
    monkeypatch.setattr("tracker.proxy.requests.get", Mock(return_value=upstream))
    response = client.post("/proxy", json={"token": token, "url": "https://cdn.example.com/p1.png"})
    assert response.status_code == 500


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
