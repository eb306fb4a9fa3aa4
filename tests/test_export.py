from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pandas

from catalog import Category, Entry, Rating
from export import CSV_COLUMNS, EXPORT_FILENAME, export_csv, export_json, write_export


def _collection():
    return [
        Entry(
            id="1",
            title="Citrus",
            author="Saburouta",
            category=Category.MANGA,
            rating=Rating.BIBLE,
            note="step-sisters",
            tags=["drama", "校園"],
            created_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
        ),
        Entry(
            id="2",
            title="Carol",
            author="Todd Haynes",
            category=Category.MOVIE,
            rating=Rating.TOP_TIER,
            created_at=datetime(2024, 4, 1, 10, 0, tzinfo=timezone.utc),
        ),
    ]


def test_json_export_keeps_labels_and_unicode() -> None:
    text = export_json(_collection())
    assert "校園" in text
    rows = json.loads(text)
    assert [row["id"] for row in rows] == ["1", "2"]
    assert rows[0]["category"] == "漫畫"
    assert rows[0]["created_at"] == "2024-05-01T10:00:00+00:00"
    assert rows[1]["note"] is None


def test_write_export_uses_fixed_filename(tmp_path: Path) -> None:
    target = write_export(_collection(), tmp_path / "out")
    assert target == tmp_path / "out" / EXPORT_FILENAME
    assert len(json.loads(target.read_text(encoding="utf-8"))) == 2


def test_empty_collection_exports_empty_array(tmp_path: Path) -> None:
    target = write_export([], tmp_path)
    assert json.loads(target.read_text(encoding="utf-8")) == []


def test_csv_export(tmp_path: Path) -> None:
    target = export_csv(_collection(), tmp_path / "lily.csv")
    frame = pandas.read_csv(target, keep_default_na=False)
    assert list(frame.columns) == CSV_COLUMNS
    assert frame.loc[0, "tags"] == "drama, 校園"
    assert frame.loc[1, "note"] == ""
    assert frame.loc[1, "rating"] == "極品"
