from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, List, Optional, Tuple

from api import BackendResult
from catalog import Category, Entry, FilterCriteria, Rating, Summary, filter_entries, summarize
from editor import EntryDraft, submit_draft

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewState:
    """Everything the presentation layer renders from."""

    entries: Tuple[Entry, ...] = ()
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    dark_mode: bool = False
    drawer_open: bool = False
    rating_menu_open: bool = False
    loading: bool = False
    error: Optional[str] = None


# --------------------------------------------------------------------------- #
# Transitions
# --------------------------------------------------------------------------- #
def start_loading(state: ViewState) -> ViewState:
    return replace(state, loading=True)


def apply_load(state: ViewState, result: BackendResult) -> ViewState:
    if result.ok:
        return replace(state, entries=tuple(result.value or ()), loading=False, error=None)
    return replace(state, entries=(), loading=False, error=result.error)


def select_category(state: ViewState, category: Optional[Category]) -> ViewState:
    criteria = replace(state.criteria, category=category)
    return replace(state, criteria=criteria, drawer_open=False)


def select_rating(state: ViewState, rating: Optional[Rating]) -> ViewState:
    criteria = replace(state.criteria, rating=rating)
    return replace(state, criteria=criteria, rating_menu_open=False)


def set_search(state: ViewState, text: str) -> ViewState:
    return replace(state, criteria=replace(state.criteria, search=text or ""))


def toggle_theme(state: ViewState) -> ViewState:
    return replace(state, dark_mode=not state.dark_mode)


def toggle_drawer(state: ViewState) -> ViewState:
    return replace(state, drawer_open=not state.drawer_open)


def toggle_rating_menu(state: ViewState) -> ViewState:
    return replace(state, rating_menu_open=not state.rating_menu_open)


def close_rating_menu(state: ViewState) -> ViewState:
    return replace(state, rating_menu_open=False)


def render(state: ViewState) -> Tuple[List[Entry], Summary]:
    """Visible entries for the active criteria plus totals over the whole collection."""
    return filter_entries(state.entries, state.criteria), summarize(state.entries)


# --------------------------------------------------------------------------- #
# Theme preference
# --------------------------------------------------------------------------- #
def load_dark_mode(path: Path) -> bool:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return False
    return isinstance(data, dict) and data.get("theme") == "dark"


def save_dark_mode(path: Path, dark_mode: bool) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"theme": "dark" if dark_mode else "light"}), encoding="utf-8")
    except OSError as error:
        logger.warning("Unable to save theme preference to %s: %s", path, error)


# --------------------------------------------------------------------------- #
# Collaborator coordination
# --------------------------------------------------------------------------- #
class Library:
    """Holds the view state and talks to the entry and cover stores."""

    def __init__(self, entries: Any, covers: Any = None, state: Optional[ViewState] = None):
        self.entries = entries
        self.covers = covers
        self.state = state or ViewState()

    def reload(self) -> ViewState:
        self.state = start_loading(self.state)
        self.state = apply_load(self.state, self.entries.list_entries())
        return self.state

    def add(self, draft: EntryDraft) -> BackendResult[str]:
        result = submit_draft(draft, self.entries, self.covers)
        if result.ok:
            self.reload()
        else:
            self.state = replace(self.state, error=result.error)
        return result

    def view(self) -> Tuple[List[Entry], Summary]:
        return render(self.state)

    def update(self, state: ViewState) -> None:
        self.state = state
