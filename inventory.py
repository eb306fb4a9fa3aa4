from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from api import BackendResult, RemoteBlobStore, RemoteEntryStore, parse_rows
from catalog import DEFAULT_COVER_URL, Category, Rating, clean_tags
from config import Settings, get_settings
from media import LOCAL_COVER_PREFIX, cover_object_name, detect_content_type

logger = logging.getLogger(__name__)


class LocalEntryStore:
    """SQLite-backed entry store with the same interface as the hosted table."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or get_settings().db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # --------------------------------------------------------------------- #
    # Schema
    # --------------------------------------------------------------------- #
    def _ensure_schema(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS items (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    author TEXT NOT NULL,
                    category TEXT NOT NULL,
                    rating TEXT NOT NULL,
                    cover_url TEXT NOT NULL,
                    note TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                );
                """
            )
            self._conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_items_created_at
                ON items(created_at);
                """
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # --------------------------------------------------------------------- #
    # Entry store interface
    # --------------------------------------------------------------------- #
    def list_entries(self) -> BackendResult:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT * FROM items ORDER BY created_at DESC, rowid DESC;"
                ).fetchall()
        except sqlite3.Error as error:
            logger.error("Failed to load entries from %s: %s", self.db_path, error)
            return BackendResult.failure(str(error))
        records: List[Dict[str, Any]] = []
        for row in rows:
            record = dict(row)
            try:
                record["tags"] = json.loads(record.get("tags") or "[]")
            except ValueError:
                record["tags"] = []
            records.append(record)
        return BackendResult.success(parse_rows(records))

    def create_entry(self, payload: Dict[str, Any]) -> BackendResult:
        try:
            category = Category.parse(payload.get("category"))
            rating = Rating.parse(payload.get("rating"))
        except ValueError as error:
            return BackendResult.failure(str(error))
        title = str(payload.get("title") or "").strip()
        author = str(payload.get("author") or "").strip()
        if not title or not author:
            return BackendResult.failure("title and author are required")

        created_at = payload.get("created_at") or datetime.now(timezone.utc).isoformat()
        entry_id = uuid.uuid4().hex
        values = (
            entry_id,
            title,
            author,
            category.value,
            rating.value,
            payload.get("cover_url") or DEFAULT_COVER_URL,
            payload.get("note") or None,
            json.dumps(clean_tags(payload.get("tags")), ensure_ascii=False),
            str(created_at),
        )
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO items (id, title, author, category, rating, cover_url, note, tags, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    values,
                )
        except sqlite3.Error as error:
            logger.error("Failed to create entry %r: %s", title, error)
            return BackendResult.failure(str(error))
        logger.info("Created entry %r (%s)", title, entry_id)
        return BackendResult.success(entry_id)

    def count(self) -> int:
        with self._lock:
            return int(self._conn.execute("SELECT COUNT(*) FROM items;").fetchone()[0])


class LocalBlobStore:
    """Stores covers on disk; the HTTP server exposes them under /api/covers/."""

    def __init__(self, covers_dir: Optional[Path] = None):
        self.covers_dir = Path(covers_dir or get_settings().covers_dir)
        self.covers_dir.mkdir(parents=True, exist_ok=True)

    def public_url(self, object_name: str) -> str:
        return f"{LOCAL_COVER_PREFIX}{object_name}"

    def path_for(self, filename: str) -> Path:
        return self.covers_dir / Path(filename).name

    def upload(self, data: bytes, filename: str) -> BackendResult:
        content_type = detect_content_type(data)
        if content_type is None:
            return BackendResult.failure(f"{filename or 'upload'} is not a supported image")
        object_name = cover_object_name(data, content_type)
        target = self.covers_dir / object_name
        try:
            if not target.exists():
                target.write_bytes(data)
        except OSError as error:
            logger.error("Failed to store cover %r: %s", filename, error)
            return BackendResult.failure(str(error))
        return BackendResult.success(self.public_url(object_name))

    def close(self) -> None:
        pass


EntryStore = Union[LocalEntryStore, RemoteEntryStore]
BlobStore = Union[LocalBlobStore, RemoteBlobStore]


# ------------------------------------------------------------------------------
# Convenience factory
# ------------------------------------------------------------------------------
def open_stores(settings: Optional[Settings] = None) -> Tuple[EntryStore, BlobStore]:
    settings = settings or get_settings()
    if settings.is_remote:
        return RemoteEntryStore(settings), RemoteBlobStore(settings)
    if settings.BACKEND != "local":
        raise ValueError(f"Unknown backend {settings.BACKEND!r}; expected 'local' or 'remote'.")
    return LocalEntryStore(settings.db_path), LocalBlobStore(settings.covers_dir)
