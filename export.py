from __future__ import annotations

import json
from pathlib import Path
from typing import List, Sequence

import pandas

from catalog import Entry

EXPORT_FILENAME = "lily_collection.json"
CSV_FILENAME = "lily_collection.csv"

CSV_COLUMNS = [
    "id",
    "title",
    "author",
    "category",
    "rating",
    "note",
    "tags",
    "cover_url",
    "created_at",
]


def export_rows(entries: Sequence[Entry]) -> List[dict]:
    return [entry.to_row() for entry in entries]


def export_json(entries: Sequence[Entry]) -> str:
    """Serialize the whole collection (never a filtered view) as a JSON array."""
    return json.dumps(export_rows(entries), ensure_ascii=False, indent=2)


def write_export(entries: Sequence[Entry], directory: Path) -> Path:
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / EXPORT_FILENAME
    target.write_text(export_json(entries), encoding="utf-8")
    return target


def collection_frame(entries: Sequence[Entry]) -> pandas.DataFrame:
    rows = export_rows(entries)
    for row in rows:
        row["tags"] = ", ".join(row["tags"])
        row["note"] = row["note"] or ""
    return pandas.DataFrame(rows, columns=CSV_COLUMNS)


def export_csv(entries: Sequence[Entry], path: Path) -> Path:
    """Write the collection as a spreadsheet-friendly CSV file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    collection_frame(entries).to_csv(path, index=False, encoding="utf-8")
    return path
