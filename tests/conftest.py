from __future__ import annotations

import io
from pathlib import Path

import pytest
from PIL import Image

from inventory import LocalBlobStore, LocalEntryStore


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 12), color=(200, 120, 140)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def entry_store(tmp_path: Path) -> LocalEntryStore:
    store = LocalEntryStore(db_path=tmp_path / "collection.db")
    yield store
    store.close()


@pytest.fixture
def blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(covers_dir=tmp_path / "covers")
