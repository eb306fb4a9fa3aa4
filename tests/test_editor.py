from __future__ import annotations

from typing import Any, Dict, List

import pytest

from api import BackendResult
from catalog import DEFAULT_COVER_URL, Category, Rating
from editor import DraftError, EntryDraft, build_payload, parse_tags, submit_draft


class RecordingEntries:
    def __init__(self) -> None:
        self.payloads: List[Dict[str, Any]] = []

    def create_entry(self, payload: Dict[str, Any]) -> BackendResult:
        self.payloads.append(payload)
        return BackendResult.success(f"id-{len(self.payloads)}")


class FailingCovers:
    def upload(self, data: bytes, filename: str) -> BackendResult:
        return BackendResult.failure("bucket unavailable")


class StaticCovers:
    def __init__(self) -> None:
        self.uploads: List[str] = []

    def upload(self, data: bytes, filename: str) -> BackendResult:
        self.uploads.append(filename)
        return BackendResult.success(f"https://cdn.example.test/{filename}")


def test_parse_tags_splits_on_commas_and_spaces() -> None:
    assert parse_tags("校園, 唯美，百合  drama") == ["校園", "唯美", "百合", "drama"]
    assert parse_tags("") == []
    assert parse_tags(" , ， ") == []


def test_build_payload_fills_defaults() -> None:
    payload = build_payload(EntryDraft(title="  Citrus ", author="Saburouta"))
    assert payload["title"] == "Citrus"
    assert payload["category"] == Category.MANGA.value
    assert payload["rating"] == Rating.ORDINARY.value
    assert payload["cover_url"] == DEFAULT_COVER_URL
    assert payload["note"] is None
    assert payload["tags"] == []
    assert "id" not in payload
    assert payload["created_at"]


@pytest.mark.parametrize("title,author", [("", "someone"), ("title", "  ")])
def test_blank_title_or_author_is_rejected(title: str, author: str) -> None:
    entries = RecordingEntries()
    with pytest.raises(DraftError):
        submit_draft(EntryDraft(title=title, author=author), entries)
    assert entries.payloads == []


def test_submit_uploads_cover_before_insert(png_bytes: bytes) -> None:
    entries = RecordingEntries()
    covers = StaticCovers()
    draft = EntryDraft(
        title="Carol",
        author="Patricia Highsmith",
        category=Category.NOVEL,
        rating=Rating.BIBLE,
        tags_text="classic, 1950s",
        cover_bytes=png_bytes,
        cover_filename="carol.png",
    )

    result = submit_draft(draft, entries, covers)

    assert result.ok
    assert result.value == "id-1"
    assert covers.uploads == ["carol.png"]
    assert entries.payloads[0]["cover_url"] == "https://cdn.example.test/carol.png"
    assert entries.payloads[0]["tags"] == ["classic", "1950s"]


def test_failed_upload_skips_insert(png_bytes: bytes) -> None:
    entries = RecordingEntries()
    draft = EntryDraft(title="Carol", author="Highsmith", cover_bytes=png_bytes)

    result = submit_draft(draft, entries, FailingCovers())

    assert not result.ok
    assert "bucket unavailable" in result.error
    assert entries.payloads == []


def test_cover_is_inlined_without_blob_store(png_bytes: bytes) -> None:
    entries = RecordingEntries()
    draft = EntryDraft(title="Carol", author="Highsmith", cover_bytes=png_bytes)

    result = submit_draft(draft, entries)

    assert result.ok
    assert entries.payloads[0]["cover_url"].startswith("data:image/png;base64,")


def test_non_image_cover_without_blob_store_fails() -> None:
    entries = RecordingEntries()
    draft = EntryDraft(title="Carol", author="Highsmith", cover_bytes=b"not an image")

    result = submit_draft(draft, entries)

    assert not result.ok
    assert entries.payloads == []


def test_tag_list_is_not_split_again() -> None:
    draft = EntryDraft(title="Carol", author="Highsmith", tags_text="ignored text", tags=["slow burn", "", "1950s"])
    assert build_payload(draft)["tags"] == ["slow burn", "1950s"]
