from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from api import BackendResult
from server import _stores, app, get_blob_store, get_entry_store


class UnreachableStore:
    def list_entries(self) -> BackendResult:
        return BackendResult.failure("connection refused")

    def create_entry(self, payload) -> BackendResult:
        return BackendResult.failure("connection refused")

    def close(self) -> None:
        pass


@pytest.fixture
def client(entry_store, blob_store):
    app.dependency_overrides[get_entry_store] = lambda: entry_store
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def offline_client(blob_store):
    app.dependency_overrides[get_entry_store] = lambda: UnreachableStore()
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _add(client: TestClient, **fields) -> str:
    body = {"title": "Untitled", "author": "Someone"}
    body.update(fields)
    response = client.post("/api/entries", json=body)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_health(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_options_list_every_category_and_rating(client: TestClient) -> None:
    data = client.get("/api/options").json()
    assert [c["name"] for c in data["categories"]] == ["MANGA", "NOVEL", "MOVIE", "ANIMATION", "OTHER"]
    assert {"name": "BIBLE", "label": "聖經"} in data["ratings"]
    assert len(data["ratings"]) == 6


def test_entries_are_filtered_but_summary_covers_collection(client: TestClient) -> None:
    _add(client, title="Citrus", category="漫畫", rating="聖經", tags=["drama"])
    _add(client, title="Carol", category="電影", rating="極品", note="Cate Blanchett")
    _add(client, title="Adachi", category="小說", rating="普通", tags="校園 百合")

    response = client.get("/api/entries", params={"category": "MOVIE"})
    assert response.status_code == 200
    data = response.json()
    assert [entry["title"] for entry in data["entries"]] == ["Carol"]
    assert data["entries"][0]["kind"] == "ANIME / MOVIE"
    assert data["summary"] == {"total": 3, "bible_count": 1, "book_count": 2, "movie_count": 1}
    assert data["error"] is None

    searched = client.get("/api/entries", params={"q": "BLANCHETT"}).json()
    assert [entry["title"] for entry in searched["entries"]] == ["Carol"]

    tagged = client.get("/api/entries", params={"q": "百合", "rating": "ALL"}).json()
    assert [entry["tags"] for entry in tagged["entries"]] == [["校園", "百合"]]


def test_unknown_filter_value_is_a_bad_request(client: TestClient) -> None:
    response = client.get("/api/entries", params={"category": "poetry"})
    assert response.status_code == 400


def test_list_failure_is_reported_in_payload(offline_client: TestClient) -> None:
    response = offline_client.get("/api/entries")
    assert response.status_code == 200
    data = response.json()
    assert data["entries"] == []
    assert data["summary"]["total"] == 0
    assert data["error"] == "connection refused"


def test_stats_and_create_fail_with_bad_gateway_when_offline(offline_client: TestClient) -> None:
    assert offline_client.get("/api/stats").status_code == 502
    response = offline_client.post("/api/entries", json={"title": "Carol", "author": "Highsmith"})
    assert response.status_code == 502


def test_blank_title_is_rejected(client: TestClient) -> None:
    response = client.post("/api/entries", json={"title": "   ", "author": "Someone"})
    assert response.status_code == 422
    assert client.get("/api/stats").json()["total"] == 0


def test_unknown_category_on_create_is_a_bad_request(client: TestClient) -> None:
    response = client.post(
        "/api/entries", json={"title": "t", "author": "a", "category": "poetry"}
    )
    assert response.status_code == 400


def test_cover_upload_and_download(client: TestClient, png_bytes: bytes) -> None:
    response = client.post("/api/covers", params={"filename": "cover.png"}, content=png_bytes)
    assert response.status_code == 201
    url = response.json()["url"]
    assert url.startswith("/api/covers/")

    image = client.get(url)
    assert image.status_code == 200
    assert image.content == png_bytes

    entry_id = _add(client, title="Citrus", cover_url=url)
    entries = client.get("/api/entries").json()["entries"]
    assert entries[0]["id"] == entry_id
    assert entries[0]["cover_url"] == url


def test_cover_upload_rejects_non_images(client: TestClient) -> None:
    assert client.post("/api/covers", content=b"").status_code == 400
    assert client.post("/api/covers", content=b"not an image").status_code == 400
    assert client.get("/api/covers/missing.png").status_code == 404


def test_export_json_contains_whole_collection(client: TestClient) -> None:
    _add(client, title="Citrus", category="漫畫")
    _add(client, title="Carol", category="電影")

    response = client.get("/api/export")

    assert response.status_code == 200
    assert 'filename="lily_collection.json"' in response.headers["content-disposition"]
    rows = json.loads(response.content.decode("utf-8"))
    assert sorted(row["title"] for row in rows) == ["Carol", "Citrus"]
    assert {row["category"] for row in rows} == {"漫畫", "電影"}


def test_export_csv(client: TestClient) -> None:
    _add(client, title="Citrus", tags=["drama", "school"])

    response = client.get("/api/export", params={"format": "csv"})

    assert response.status_code == 200
    assert 'filename="lily_collection.csv"' in response.headers["content-disposition"]
    lines = response.content.decode("utf-8").splitlines()
    assert lines[0].startswith("id,title,author,category,rating")
    assert "drama, school" in lines[1]


def test_list_tags_are_stored_as_given(client: TestClient) -> None:
    _add(client, title="Carol", tags=["slow burn", "1950s", "  "])
    _add(client, title="Citrus", tags="drama，校園 school")

    entries = {entry["title"]: entry for entry in client.get("/api/entries").json()["entries"]}

    assert entries["Carol"]["tags"] == ["slow burn", "1950s"]
    assert entries["Citrus"]["tags"] == ["drama", "校園", "school"]


def test_lifespan_closes_shared_stores(entry_store, blob_store) -> None:
    _stores._instance = (entry_store, blob_store)
    with TestClient(app) as test_client:
        assert test_client.get("/api/stats").json()["total"] == 0

    assert not hasattr(_stores, "_instance")
    assert not entry_store.list_entries().ok
