from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from api import RemoteBlobStore, RemoteEntryStore, parse_rows
from config import Settings


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("SUPABASE_URL", "https://project.example.test/")
    monkeypatch.setenv("SUPABASE_KEY", "anon-key")
    monkeypatch.setenv("LILY_TABLE", "items")
    monkeypatch.setenv("LILY_BUCKET", "covers")
    return Settings()


def _response(json_body=None, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_body
    if status_code >= 400:
        error = requests.HTTPError(f"{status_code} error")
        error.response = response
        response.reason = "Bad Request"
        response.raise_for_status.side_effect = error
    return response


def test_client_sends_key_headers(settings: Settings) -> None:
    session = MagicMock()
    RemoteEntryStore(settings, session=session)
    session.headers.update.assert_called_once_with(
        {"apikey": "anon-key", "Authorization": "Bearer anon-key"}
    )


def test_list_entries_orders_newest_first_and_skips_bad_rows(settings: Settings) -> None:
    session = MagicMock()
    session.get.return_value = _response(
        [
            {"id": 1, "title": "Citrus", "author": "Saburouta", "category": "漫畫", "rating": "極品"},
            {"id": 2, "title": "Broken", "author": "x", "category": "poetry", "rating": "普通"},
        ]
    )
    store = RemoteEntryStore(settings, session=session)

    result = store.list_entries()

    assert result.ok
    assert [entry.title for entry in result.value] == ["Citrus"]
    args, kwargs = session.get.call_args
    assert args[0] == "https://project.example.test/rest/v1/items"
    assert kwargs["params"] == {"select": "*", "order": "created_at.desc"}


def test_list_entries_reports_http_errors(settings: Settings) -> None:
    session = MagicMock()
    session.get.return_value = _response({"message": "permission denied"}, status_code=401)
    store = RemoteEntryStore(settings, session=session)

    result = store.list_entries()

    assert not result.ok
    assert result.error == "401: permission denied"


def test_list_entries_reports_connection_errors(settings: Settings) -> None:
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("offline")
    store = RemoteEntryStore(settings, session=session)

    result = store.list_entries()

    assert not result.ok
    assert "offline" in result.error


def test_create_entry_returns_generated_id(settings: Settings) -> None:
    session = MagicMock()
    session.post.return_value = _response([{"id": 17, "title": "Carol"}], status_code=201)
    store = RemoteEntryStore(settings, session=session)

    result = store.create_entry({"title": "Carol", "author": "Highsmith", "id": "ignored"})

    assert result.ok
    assert result.value == "17"
    _, kwargs = session.post.call_args
    assert "id" not in kwargs["json"]
    assert kwargs["headers"] == {"Prefer": "return=representation"}


def test_create_entry_failure_is_returned(settings: Settings) -> None:
    session = MagicMock()
    session.post.side_effect = requests.Timeout("timed out")
    store = RemoteEntryStore(settings, session=session)

    result = store.create_entry({"title": "Carol", "author": "Highsmith"})

    assert not result.ok


def test_upload_returns_public_url(settings: Settings, png_bytes: bytes) -> None:
    session = MagicMock()
    session.post.return_value = _response({"Key": "covers/x.png"})
    store = RemoteBlobStore(settings, session=session)

    result = store.upload(png_bytes, "cover.png")

    assert result.ok
    assert result.value.startswith("https://project.example.test/storage/v1/object/public/covers/")
    assert result.value.endswith(".png")
    args, kwargs = session.post.call_args
    assert args[0].startswith("https://project.example.test/storage/v1/object/covers/")
    assert kwargs["headers"]["Content-Type"] == "image/png"


def test_upload_rejects_non_images_without_calling_storage(settings: Settings) -> None:
    session = MagicMock()
    store = RemoteBlobStore(settings, session=session)

    result = store.upload(b"hello", "notes.txt")

    assert not result.ok
    session.post.assert_not_called()


def test_missing_credentials_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    with pytest.raises(ValueError):
        RemoteEntryStore(Settings(), session=MagicMock())


def test_parse_rows_ignores_non_list_payloads() -> None:
    assert parse_rows({"message": "not a list"}) == []
    assert parse_rows(None) == []
