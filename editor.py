from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from api import BackendResult
from catalog import DEFAULT_COVER_URL, Category, Rating, clean_tags
from media import detect_content_type, to_data_url

logger = logging.getLogger(__name__)

TAG_SEPARATORS = re.compile(r"[,， ]+")


class DraftError(ValueError):
    """Raised when the entry form is missing required fields."""


@dataclass
class EntryDraft:
    """Field values collected by the add-entry form."""

    title: str = ""
    author: str = ""
    category: Category = Category.MANGA
    rating: Rating = Rating.ORDINARY
    note: str = ""
    tags_text: str = ""
    tags: Optional[List[str]] = None
    cover_bytes: Optional[bytes] = None
    cover_filename: Optional[str] = None


def parse_tags(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [token.strip() for token in TAG_SEPARATORS.split(text) if token.strip()]


def draft_tags(draft: EntryDraft) -> List[str]:
    """Tags given as a list are kept as-is; free text is split on separators."""
    if draft.tags is not None:
        return clean_tags(draft.tags)
    return parse_tags(draft.tags_text)


def validate_draft(draft: EntryDraft) -> None:
    if not draft.title.strip():
        raise DraftError("A title is required.")
    if not draft.author.strip():
        raise DraftError("An author is required.")


def build_payload(draft: EntryDraft, cover_url: Optional[str] = None) -> Dict[str, Any]:
    """Create a storage-ready row (without an identifier) from a draft."""
    return {
        "title": draft.title.strip(),
        "author": draft.author.strip(),
        "category": Category.parse(draft.category).value,
        "rating": Rating.parse(draft.rating).value,
        "cover_url": cover_url or DEFAULT_COVER_URL,
        "note": draft.note.strip() or None,
        "tags": draft_tags(draft),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


def submit_draft(draft: EntryDraft, entries: Any, covers: Any = None) -> BackendResult[str]:
    """Upload the cover (if any) and then insert the row.

    ``entries`` must provide ``create_entry(payload)`` and ``covers`` (when given)
    ``upload(data, filename)``. Without a blob store the cover is inlined as a
    ``data:`` URI. A failed upload stops the submission before anything is
    written.
    """
    validate_draft(draft)

    cover_url: Optional[str] = None
    if draft.cover_bytes:
        if covers is not None:
            uploaded = covers.upload(draft.cover_bytes, draft.cover_filename or "cover")
            if not uploaded.ok:
                logger.error("Cover upload failed for %r: %s", draft.title, uploaded.error)
                return BackendResult.failure(f"Cover upload failed: {uploaded.error}")
            cover_url = uploaded.value
        else:
            content_type = detect_content_type(draft.cover_bytes)
            if content_type is None:
                return BackendResult.failure("Cover upload failed: not a supported image")
            cover_url = to_data_url(draft.cover_bytes, content_type)

    return entries.create_entry(build_payload(draft, cover_url))
