from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

DEFAULT_COVER_URL = (
    "https://images.unsplash.com/photo-1543002588-bfa74002ed7e"
    "?auto=format&fit=crop&q=80&w=200&h=300"
)

ALL_TOKENS = {"", "all"}

FRACTION = re.compile(r"\.(\d+)")


class _LabelledEnum(Enum):
    """Enum whose stored value is the display label used by the hosted table."""

    @classmethod
    def parse(cls, token: Any):
        if isinstance(token, cls):
            return token
        text = str(token or "").strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        raise ValueError(f"Unknown {cls.__name__.lower()}: {token!r}")

    @property
    def label(self) -> str:
        return self.value


class Category(_LabelledEnum):
    MANGA = "漫畫"
    NOVEL = "小說"
    MOVIE = "電影"
    ANIMATION = "動畫"
    OTHER = "其他"


class Rating(_LabelledEnum):
    BIBLE = "聖經"
    TOP_TIER = "極品"
    STRICT = "嚴格"
    ORDINARY = "普通"
    MYSTERIOUS = "神秘"
    DESTINY = "緣分"


BOOK_CATEGORIES = frozenset({Category.MANGA, Category.NOVEL})
SCREEN_CATEGORIES = frozenset({Category.MOVIE, Category.ANIMATION})


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        # Epoch milliseconds, as written by browser clients.
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.isdigit():
            return datetime.fromtimestamp(int(text) / 1000.0, tz=timezone.utc)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # fromisoformat before 3.11 only takes 3 or 6 fractional digits.
        text = FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def clean_tags(tags: Optional[Iterable[Any]]) -> List[str]:
    if not tags:
        return []
    if isinstance(tags, str):
        tags = [tags]
    return [str(tag).strip() for tag in tags if tag is not None and str(tag).strip()]


@dataclass
class Entry:
    id: str
    title: str
    author: str
    category: Category
    rating: Rating
    cover_url: str = DEFAULT_COVER_URL
    note: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def kind_label(self) -> str:
        return "MANGA / NOVEL" if self.category in BOOK_CATEGORIES else "ANIME / MOVIE"

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Entry":
        """Build an entry from a stored row, accepting snake_case or camelCase keys."""
        cover = row.get("cover_url") or row.get("coverUrl") or DEFAULT_COVER_URL
        created = row.get("created_at", row.get("createdAt"))
        note = row.get("note")
        return cls(
            id=str(row.get("id", "")),
            title=str(row.get("title") or ""),
            author=str(row.get("author") or ""),
            category=Category.parse(row.get("category")),
            rating=Rating.parse(row.get("rating")),
            cover_url=str(cover),
            note=str(note) if note else None,
            tags=clean_tags(row.get("tags")),
            created_at=_parse_timestamp(created),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "category": self.category.value,
            "rating": self.rating.value,
            "cover_url": self.cover_url,
            "note": self.note,
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class FilterCriteria:
    """Active selection. ``None`` means "no filter" for category and rating."""

    category: Optional[Category] = None
    rating: Optional[Rating] = None
    search: str = ""

    @classmethod
    def parse(
        cls,
        category: Optional[str] = None,
        rating: Optional[str] = None,
        search: Optional[str] = None,
    ) -> "FilterCriteria":
        return cls(
            category=None
            if str(category or "").strip().lower() in ALL_TOKENS
            else Category.parse(category),
            rating=None
            if str(rating or "").strip().lower() in ALL_TOKENS
            else Rating.parse(rating),
            search=search or "",
        )

    @property
    def is_default(self) -> bool:
        return self.category is None and self.rating is None and not self.search


@dataclass(frozen=True)
class Summary:
    total: int = 0
    bible_count: int = 0
    book_count: int = 0
    movie_count: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "bible_count": self.bible_count,
            "book_count": self.book_count,
            "movie_count": self.movie_count,
        }


# --------------------------------------------------------------------------- #
# Filtering and aggregation
# --------------------------------------------------------------------------- #
def matches_search(entry: Entry, term: str) -> bool:
    if not term:
        return True
    needle = term.lower()
    if needle in (entry.title or "").lower():
        return True
    if needle in (entry.author or "").lower():
        return True
    if entry.note and needle in entry.note.lower():
        return True
    return any(needle in tag.lower() for tag in entry.tags or [])


def matches(entry: Entry, criteria: FilterCriteria) -> bool:
    if criteria.category is not None and entry.category != criteria.category:
        return False
    if criteria.rating is not None and entry.rating != criteria.rating:
        return False
    return matches_search(entry, criteria.search)


def filter_entries(entries: Sequence[Entry], criteria: FilterCriteria) -> List[Entry]:
    """Return the entries matching every predicate, in their original order."""
    return [entry for entry in entries if matches(entry, criteria)]


def summarize(entries: Sequence[Entry]) -> Summary:
    """Aggregate counts over the whole collection, independent of any filter."""
    bible = books = movies = 0
    for entry in entries:
        if entry.rating is Rating.BIBLE:
            bible += 1
        if entry.category in BOOK_CATEGORIES:
            books += 1
        elif entry.category in SCREEN_CATEGORIES:
            movies += 1
    return Summary(total=len(entries), bible_count=bible, book_count=books, movie_count=movies)
