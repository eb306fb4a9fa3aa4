from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

import requests

from catalog import Entry
from config import Settings
from media import cover_object_name, detect_content_type

logger = logging.getLogger(__name__)

T = TypeVar("T")

ENTRY_COLUMNS = [
    "title",
    "author",
    "category",
    "rating",
    "cover_url",
    "note",
    "tags",
    "created_at",
]


@dataclass
class BackendResult(Generic[T]):
    """Outcome of a call to a persistence collaborator."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "BackendResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, message: str) -> "BackendResult[T]":
        return cls(error=message or "unknown error")


def parse_rows(rows: Any) -> List[Entry]:
    """Convert backend rows to entries, skipping any that fail to parse."""
    if not isinstance(rows, list):
        return []
    entries: List[Entry] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            entries.append(Entry.from_row(row))
        except (TypeError, ValueError) as error:
            logger.warning("Skipping malformed row %r: %s", row.get("id"), error)
    return entries


def _describe(error: requests.RequestException) -> str:
    response = getattr(error, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("message") or body.get("error") or body.get("msg")
            if detail:
                return f"{response.status_code}: {detail}"
        return f"{response.status_code}: {response.reason}"
    return str(error)


class _RemoteClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set for the remote backend.")
        self.base_url = settings.SUPABASE_URL
        self.timeout = settings.HTTP_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": settings.SUPABASE_KEY,
                "Authorization": f"Bearer {settings.SUPABASE_KEY}",
            }
        )

    def close(self) -> None:
        self.session.close()


class RemoteEntryStore(_RemoteClient):
    """Entry store backed by a hosted table exposed over PostgREST."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        super().__init__(settings, session)
        self.table = settings.TABLE

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def list_entries(self) -> BackendResult[List[Entry]]:
        try:
            response = self.session.get(
                self.table_url,
                params={"select": "*", "order": "created_at.desc"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            rows = response.json()
        except requests.RequestException as error:
            message = _describe(error)
            logger.error("Failed to load entries: %s", message)
            return BackendResult.failure(message)
        except ValueError as error:
            logger.error("Entry listing returned invalid JSON: %s", error)
            return BackendResult.failure("invalid response from entry store")
        return BackendResult.success(parse_rows(rows))

    def create_entry(self, payload: Dict[str, Any]) -> BackendResult[str]:
        body = {column: payload.get(column) for column in ENTRY_COLUMNS if column in payload}
        try:
            response = self.session.post(
                self.table_url,
                json=body,
                headers={"Prefer": "return=representation"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            created = response.json()
        except requests.RequestException as error:
            message = _describe(error)
            logger.error("Failed to create entry %r: %s", payload.get("title"), message)
            return BackendResult.failure(message)
        except ValueError:
            created = None

        if isinstance(created, list) and created:
            created = created[0]
        new_id = str(created.get("id", "")) if isinstance(created, dict) else ""
        logger.info("Created entry %r (%s)", payload.get("title"), new_id or "id not returned")
        return BackendResult.success(new_id)


class RemoteBlobStore(_RemoteClient):
    """Cover storage in a public object-storage bucket."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        super().__init__(settings, session)
        self.bucket = settings.BUCKET

    def public_url(self, object_name: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{object_name}"

    def upload(self, data: bytes, filename: str) -> BackendResult[str]:
        content_type = detect_content_type(data)
        if content_type is None:
            return BackendResult.failure(f"{filename or 'upload'} is not a supported image")
        object_name = cover_object_name(data, content_type)
        try:
            response = self.session.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{object_name}",
                data=data,
                headers={"Content-Type": content_type, "x-upsert": "true"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as error:
            message = _describe(error)
            logger.error("Failed to upload cover %r: %s", filename, message)
            return BackendResult.failure(message)
        return BackendResult.success(self.public_url(object_name))
