from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from catalog import Category, Entry, FilterCriteria, Rating, filter_entries, summarize
from config import configure_logging, get_settings
from editor import DraftError, EntryDraft, submit_draft
from export import CSV_FILENAME, export_csv, write_export
from inventory import open_stores


def describe_entry(entry: Entry, index: int) -> str:
    """Return a printable description for an entry."""
    lines = [
        f"{index}. {entry.title}  [{entry.category.label} / {entry.rating.label}]",
        f"   by {entry.author}",
    ]
    if entry.note:
        lines.append(f"   \"{entry.note}\"")
    if entry.tags:
        lines.append("   " + " ".join(f"#{tag}" for tag in entry.tags))
    lines.append(f"   Added: {entry.created_at:%Y-%m-%d %H:%M}")
    return "\n".join(lines)


def _load(store) -> Optional[List[Entry]]:
    result = store.list_entries()
    if not result.ok:
        print(f"Unable to load the collection: {result.error}", file=sys.stderr)
        return None
    return list(result.value or [])


def _prompt(label: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    value = input(f"{label}{suffix}: ").strip()
    return value or default


def _prompt_choice(label: str, options: Sequence, default) -> object:
    names = ", ".join(f"{option.name.lower()}={option.label}" for option in options)
    while True:
        value = _prompt(f"{label} ({names})", default.name.lower())
        try:
            return type(default).parse(value)
        except ValueError:
            print("Please choose one of the listed options.")


def interactive_draft() -> EntryDraft:
    """Collect the entry fields from the terminal."""
    print("\nEnter the details of the new entry.")
    title = _prompt("Title")
    author = _prompt("Author")
    category = _prompt_choice("Category", list(Category), Category.MANGA)
    rating = _prompt_choice("Rating", list(Rating), Rating.ORDINARY)
    tags = _prompt("Tags (separated by commas or spaces)")
    note = _prompt("Note")
    cover = _prompt("Cover image path (leave blank to skip)")
    cover_path = Path(cover).expanduser() if cover else None
    return EntryDraft(
        title=title,
        author=author,
        category=category,  # type: ignore[arg-type]
        rating=rating,  # type: ignore[arg-type]
        note=note,
        tags_text=tags,
        cover_bytes=cover_path.read_bytes() if cover_path else None,
        cover_filename=cover_path.name if cover_path else None,
    )


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #
def cmd_list(args: argparse.Namespace, entries_store, _covers) -> int:
    entries = _load(entries_store)
    if entries is None:
        return 1
    criteria = FilterCriteria.parse(args.category, args.rating, args.search)
    visible = filter_entries(entries, criteria)
    if not visible:
        print("沒有找到相關的收藏...")
        return 0
    for index, entry in enumerate(visible, start=1):
        print(describe_entry(entry, index))
    print(f"\nShowing {len(visible)} of {len(entries)} entries.")
    return 0


def cmd_stats(args: argparse.Namespace, entries_store, _covers) -> int:
    entries = _load(entries_store)
    if entries is None:
        return 1
    summary = summarize(entries)
    if args.json:
        print(json.dumps(summary.as_dict()))
        return 0
    print(f"總收藏: {summary.total}")
    print(f"聖經級: {summary.bible_count}")
    print(f"圖書:   {summary.book_count}")
    print(f"影視:   {summary.movie_count}")
    return 0


def cmd_add(args: argparse.Namespace, entries_store, covers_store) -> int:
    if args.title is None:
        draft = interactive_draft()
    else:
        cover_path = Path(args.cover).expanduser() if args.cover else None
        draft = EntryDraft(
            title=args.title,
            author=args.author or "",
            category=Category.parse(args.category),
            rating=Rating.parse(args.rating),
            note=args.note or "",
            tags_text=args.tags or "",
            cover_bytes=cover_path.read_bytes() if cover_path else None,
            cover_filename=cover_path.name if cover_path else None,
        )
    try:
        result = submit_draft(draft, entries_store, covers_store)
    except DraftError as error:
        print(str(error), file=sys.stderr)
        return 2
    if not result.ok:
        print(f"Unable to add '{draft.title}': {result.error}", file=sys.stderr)
        return 1
    print(f"Added '{draft.title.strip()}' ({result.value}).")
    return 0


def cmd_export(args: argparse.Namespace, entries_store, _covers) -> int:
    entries = _load(entries_store)
    if entries is None:
        return 1
    directory = Path(args.output).expanduser()
    if args.format == "csv":
        target = export_csv(entries, directory / CSV_FILENAME)
    else:
        target = write_export(entries, directory)
    print(f"Exported {len(entries)} entries to {target}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lily", description="Personal media collection tracker.")
    parser.add_argument("--log-level", default=None, help="Logging level (default from LILY_LOG_LEVEL).")
    commands = parser.add_subparsers(dest="command", required=True)

    list_parser = commands.add_parser("list", help="List entries, optionally filtered.")
    list_parser.add_argument("--category", default="ALL")
    list_parser.add_argument("--rating", default="ALL")
    list_parser.add_argument("--search", default="")
    list_parser.set_defaults(handler=cmd_list)

    stats_parser = commands.add_parser("stats", help="Show collection totals.")
    stats_parser.add_argument("--json", action="store_true")
    stats_parser.set_defaults(handler=cmd_stats)

    add_parser = commands.add_parser("add", help="Add an entry (prompts when --title is omitted).")
    add_parser.add_argument("--title")
    add_parser.add_argument("--author")
    add_parser.add_argument("--category", default=Category.MANGA.name)
    add_parser.add_argument("--rating", default=Rating.ORDINARY.name)
    add_parser.add_argument("--tags")
    add_parser.add_argument("--note")
    add_parser.add_argument("--cover", help="Path to a cover image.")
    add_parser.set_defaults(handler=cmd_add)

    export_parser = commands.add_parser("export", help="Export the whole collection.")
    export_parser.add_argument("--format", choices=["json", "csv"], default="json")
    export_parser.add_argument("--output", default=".")
    export_parser.set_defaults(handler=cmd_export)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    try:
        entries_store, covers_store = open_stores(get_settings())
    except ValueError as error:
        print(str(error), file=sys.stderr)
        return 2
    try:
        return args.handler(args, entries_store, covers_store)
    except ValueError as error:
        print(str(error), file=sys.stderr)
        return 2
    except OSError as error:
        print(f"File error: {error}", file=sys.stderr)
        return 1
    finally:
        entries_store.close()
        covers_store.close()


if __name__ == "__main__":
    sys.exit(main())
