from __future__ import annotations

import logging
import threading
import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from PIL import ImageTk

from catalog import Category, Entry, Rating, Summary
from config import Settings, configure_logging, get_settings
from editor import DraftError, EntryDraft, submit_draft, validate_draft
from export import EXPORT_FILENAME, export_json
from inventory import open_stores
from media import THUMBNAIL_EDGE, fetch_and_cache_cover, fit_cover
from state import (
    ViewState,
    apply_load,
    close_rating_menu,
    load_dark_mode,
    render,
    save_dark_mode,
    select_category,
    select_rating,
    set_search,
    start_loading,
    toggle_drawer,
    toggle_rating_menu,
    toggle_theme,
)

logger = logging.getLogger(__name__)

THEMES: Dict[str, Dict[str, str]] = {
    "light": {
        "bg": "#fbf7f3",
        "panel": "#ffffff",
        "drawer": "#efe7de",
        "text": "#44403c",
        "muted": "#a8a29e",
        "accent": "#8c7b6d",
        "selected": "#b8a493",
        "footer": "#8c7b6d",
        "footer_text": "#fbf7f3",
        "cover": "#f5f5f4",
    },
    "dark": {
        "bg": "#191919",
        "panel": "#202020",
        "drawer": "#292524",
        "text": "#e7e5e4",
        "muted": "#78716c",
        "accent": "#d6c7b8",
        "selected": "#57534e",
        "footer": "#292524",
        "footer_text": "#d6d3d1",
        "cover": "#1c1917",
    },
}

CATEGORY_COLORS = {
    Category.MANGA: "#ea580c",
    Category.NOVEL: "#2563eb",
    Category.MOVIE: "#9333ea",
    Category.ANIMATION: "#db2777",
    Category.OTHER: "#4b5563",
}

RATING_BADGES = {
    Rating.BIBLE: ("#fef3c7", "#b45309"),
    Rating.TOP_TIER: ("#ffe4e6", "#be123c"),
    Rating.STRICT: ("#f5f5f4", "#44403c"),
    Rating.ORDINARY: ("#f1f5f9", "#475569"),
    Rating.MYSTERIOUS: ("#ede9fe", "#6d28d9"),
    Rating.DESTINY: ("#d1fae5", "#047857"),
}

RATING_ICONS = {
    Rating.BIBLE: "👑",
    Rating.TOP_TIER: "🌹",
    Rating.STRICT: "",
    Rating.ORDINARY: "☕",
    Rating.MYSTERIOUS: "🔮",
    Rating.DESTINY: "✨",
}

ALL_CATEGORIES_LABEL = "全部收藏"
ALL_RATINGS_LABEL = "所有等級"


# --------------------------------------------------------------------------- #
# Utility helpers
# --------------------------------------------------------------------------- #
def truncate(value: str, length: int) -> str:
    if len(value) <= length:
        return value
    return value[: length - 1] + "…"


def card_photo(path: Path, height: int) -> Optional[ImageTk.PhotoImage]:
    fitted = fit_cover(path, (height * 2 // 3, height))
    return ImageTk.PhotoImage(fitted) if fitted else None


def rating_label(rating: Optional[Rating]) -> str:
    if rating is None:
        return ALL_RATINGS_LABEL
    icon = RATING_ICONS.get(rating, "")
    return f"{icon} {rating.label}".strip()


# --------------------------------------------------------------------------- #
# Category drawer
# --------------------------------------------------------------------------- #
class CategoryDrawer(tk.Frame):
    def __init__(self, master: tk.Misc, controller: "MainApplication"):
        super().__init__(master, width=220, padx=12, pady=16)
        self.controller = controller
        self.buttons: Dict[Optional[Category], tk.Button] = {}

        self.heading = tk.Label(self, text="圖書登記清單", font=("Helvetica", 13, "bold"), anchor="w")
        self.heading.pack(fill="x", pady=(0, 12))

        options: List[Optional[Category]] = [None, *Category]
        for category in options:
            label = ALL_CATEGORIES_LABEL if category is None else category.label
            button = tk.Button(
                self,
                text=label,
                anchor="w",
                relief="flat",
                padx=12,
                pady=6,
                command=lambda c=category: self.controller.on_select_category(c),
            )
            button.pack(fill="x", pady=2)
            self.buttons[category] = button

    def apply_theme(self, theme: Dict[str, str], selected: Optional[Category]) -> None:
        self.configure(bg=theme["drawer"])
        self.heading.configure(bg=theme["drawer"], fg=theme["text"])
        for category, button in self.buttons.items():
            active = category == selected
            button.configure(
                bg=theme["selected"] if active else theme["drawer"],
                fg="#ffffff" if active else theme["text"],
                activebackground=theme["selected"],
            )


# --------------------------------------------------------------------------- #
# Rating dropdown
# --------------------------------------------------------------------------- #
class RatingDropdown(tk.Frame):
    def __init__(self, master: tk.Misc, controller: "MainApplication"):
        super().__init__(master)
        self.controller = controller
        self.button = tk.Button(self, text=ALL_RATINGS_LABEL + " ▾", relief="groove", padx=10,
                                command=self.controller.on_toggle_rating_menu)
        self.button.pack()
        self.menu = tk.Frame(controller, relief="solid", bd=1)
        self.options: Dict[Optional[Rating], tk.Button] = {}
        for rating in [None, *Rating]:
            option = tk.Button(
                self.menu,
                text=rating_label(rating),
                anchor="w",
                relief="flat",
                padx=12,
                command=lambda r=rating: self.controller.on_select_rating(r),
            )
            option.pack(fill="x")
            self.options[rating] = option

    def contains(self, widget: Any) -> bool:
        while widget is not None:
            if widget in (self, self.menu):
                return True
            widget = getattr(widget, "master", None)
        return False

    def sync(self, state: ViewState, theme: Dict[str, str]) -> None:
        selected = state.criteria.rating
        self.button.configure(text=f"{rating_label(selected)} ▾", bg=theme["panel"], fg=theme["text"])
        self.menu.configure(bg=theme["panel"])
        for rating, option in self.options.items():
            active = rating == selected
            option.configure(
                text=("✓ " if active else "   ") + rating_label(rating),
                bg=theme["selected"] if active else theme["panel"],
                fg=theme["text"],
            )
        if state.rating_menu_open:
            self.update_idletasks()
            x = self.winfo_rootx() - self.controller.winfo_rootx()
            y = self.winfo_rooty() - self.controller.winfo_rooty() + self.winfo_height() + 4
            self.menu.place(x=x, y=y)
            self.menu.lift()
        else:
            self.menu.place_forget()


# --------------------------------------------------------------------------- #
# Entry cards
# --------------------------------------------------------------------------- #
class EntryList(tk.Frame):
    card_height = 180

    def __init__(self, master: tk.Misc, controller: "MainApplication"):
        super().__init__(master)
        self.controller = controller
        self.photo_cache: Dict[str, tk.PhotoImage] = {}
        self.pending: Set[str] = set()
        self.cover_labels: Dict[str, tk.Label] = {}

        self.canvas = tk.Canvas(self, highlightthickness=0)
        scrollbar = ttk.Scrollbar(self, orient="vertical", command=self.canvas.yview)
        self.inner = tk.Frame(self.canvas)
        self.inner.bind(
            "<Configure>", lambda _e: self.canvas.configure(scrollregion=self.canvas.bbox("all"))
        )
        self.window = self.canvas.create_window((0, 0), window=self.inner, anchor="nw")
        self.canvas.bind("<Configure>", lambda e: self.canvas.itemconfigure(self.window, width=e.width))
        self.canvas.configure(yscrollcommand=scrollbar.set)
        self.canvas.pack(side="left", fill="both", expand=True)
        scrollbar.pack(side="right", fill="y")
        self.canvas.bind_all("<MouseWheel>", self._on_mousewheel)

    def _on_mousewheel(self, event: tk.Event) -> None:
        if event.delta:
            self.canvas.yview_scroll(int(-event.delta / 120) or (-1 if event.delta > 0 else 1), "units")

    def show(self, entries: List[Entry], theme: Dict[str, str]) -> None:
        for child in self.inner.winfo_children():
            child.destroy()
        self.cover_labels.clear()
        self.canvas.configure(bg=theme["bg"])
        self.inner.configure(bg=theme["bg"])

        if not entries:
            tk.Label(
                self.inner,
                text="沒有找到相關的收藏...",
                bg=theme["bg"],
                fg=theme["muted"],
                pady=80,
            ).pack(fill="x")
            return

        for entry in entries:
            self._build_card(entry, theme)
        self.canvas.yview_moveto(0)

    def _build_card(self, entry: Entry, theme: Dict[str, str]) -> None:
        card = tk.Frame(self.inner, bg=theme["panel"], height=self.card_height, padx=0, pady=0)
        card.pack(fill="x", padx=16, pady=8)
        card.pack_propagate(False)

        cover = tk.Label(card, bg=theme["cover"], fg=theme["muted"], width=12,
                         text=(entry.title[:1] or "?"), font=("Helvetica", 22))
        cover.pack(side="left", fill="y")
        self.cover_labels[entry.id] = cover
        self._set_cover(entry, cover)

        body = tk.Frame(card, bg=theme["panel"], padx=16, pady=12)
        body.pack(side="left", fill="both", expand=True)

        top = tk.Frame(body, bg=theme["panel"])
        top.pack(fill="x")
        tk.Label(top, text=entry.kind_label, bg=theme["panel"], fg=CATEGORY_COLORS[entry.category],
                 font=("Helvetica", 8, "bold")).pack(side="left")
        badge_bg, badge_fg = RATING_BADGES[entry.rating]
        tk.Label(top, text=entry.rating.label, bg=badge_bg, fg=badge_fg, padx=6,
                 font=("Helvetica", 8)).pack(side="right")

        tk.Label(body, text=truncate(entry.title, 60), bg=theme["panel"], fg=theme["text"],
                 font=("Georgia", 15, "bold"), anchor="w").pack(fill="x", pady=(4, 0))
        tk.Label(body, text=f"by {entry.author}", bg=theme["panel"], fg=theme["muted"],
                 font=("Helvetica", 9), anchor="w").pack(fill="x")
        if entry.note:
            tk.Label(body, text=f"“{truncate(entry.note, 140)}”", bg=theme["panel"],
                     fg=theme["text"], font=("Georgia", 10, "italic"), anchor="w",
                     justify="left", wraplength=520).pack(fill="x", pady=(6, 0))
        if entry.tags:
            tk.Label(body, text="  ".join(f"#{tag}" for tag in entry.tags), bg=theme["panel"],
                     fg=theme["muted"], font=("Helvetica", 8), anchor="w").pack(side="bottom", fill="x")

    def _set_cover(self, entry: Entry, label: tk.Label) -> None:
        if entry.id in self.photo_cache:
            image = self.photo_cache[entry.id]
            label.configure(image=image, text="", width=0)
            label.image = image
            return
        if entry.id in self.pending:
            return
        self.pending.add(entry.id)
        threading.Thread(target=self._load_cover_background, args=(entry,), daemon=True).start()

    def _load_cover_background(self, entry: Entry) -> None:
        settings = self.controller.settings
        path = fetch_and_cache_cover(
            entry.cover_url,
            entry.id,
            settings.DATA_DIR / "thumbnails",
            covers_dir=settings.covers_dir,
            max_edge=THUMBNAIL_EDGE,
        )

        def apply() -> None:
            self.pending.discard(entry.id)
            if not path:
                return
            image = card_photo(Path(path), self.card_height)
            if not image:
                return
            self.photo_cache[entry.id] = image
            label = self.cover_labels.get(entry.id)
            if label is not None and label.winfo_exists():
                label.configure(image=image, text="", width=0)
                label.image = image

        self.after(0, apply)


# --------------------------------------------------------------------------- #
# Stats footer
# --------------------------------------------------------------------------- #
class StatsFooter(tk.Frame):
    fields = [
        ("total", "總收藏"),
        ("bible_count", "聖經級"),
        ("book_count", "圖書"),
        ("movie_count", "影視"),
    ]

    def __init__(self, master: tk.Misc):
        super().__init__(master, pady=12)
        self.heading = tk.Label(self, text="今日的百合能量", font=("Georgia", 14))
        self.heading.grid(row=0, column=0, columnspan=4, pady=(0, 8))
        self.values: Dict[str, tk.Label] = {}
        self.captions: List[tk.Label] = []
        for column, (key, caption) in enumerate(self.fields):
            self.columnconfigure(column, weight=1)
            value = tk.Label(self, text="0", font=("Helvetica", 20, "bold"))
            value.grid(row=1, column=column)
            label = tk.Label(self, text=caption, font=("Helvetica", 9))
            label.grid(row=2, column=column)
            self.values[key] = value
            self.captions.append(label)

    def show(self, summary: Summary, theme: Dict[str, str]) -> None:
        self.configure(bg=theme["footer"])
        self.heading.configure(bg=theme["footer"], fg=theme["footer_text"])
        data = summary.as_dict()
        for key, label in self.values.items():
            label.configure(text=str(data[key]), bg=theme["footer"], fg="#ffffff")
        for caption in self.captions:
            caption.configure(bg=theme["footer"], fg=theme["footer_text"])


# --------------------------------------------------------------------------- #
# Add entry dialog
# --------------------------------------------------------------------------- #
class AddEntryDialog(tk.Toplevel):
    def __init__(self, controller: "MainApplication"):
        super().__init__(controller)
        self.controller = controller
        self.title("新增收藏")
        self.resizable(False, False)
        self.grab_set()
        self.cover_path: Optional[Path] = None

        form = ttk.Frame(self, padding=16)
        form.grid(row=0, column=0, sticky="nsew")
        form.columnconfigure(1, weight=1)

        self.cover_button = ttk.Button(form, text="上傳封面…", command=self._choose_cover)
        self.cover_button.grid(row=0, column=0, columnspan=2, sticky="w", pady=(0, 8))

        ttk.Label(form, text="作品名稱").grid(row=1, column=0, sticky="w", pady=2)
        self.title_var = tk.StringVar()
        title_entry = ttk.Entry(form, textvariable=self.title_var, width=40)
        title_entry.grid(row=1, column=1, sticky="ew", padx=(8, 0), pady=2)

        ttk.Label(form, text="作者").grid(row=2, column=0, sticky="w", pady=2)
        self.author_var = tk.StringVar()
        ttk.Entry(form, textvariable=self.author_var).grid(row=2, column=1, sticky="ew", padx=(8, 0), pady=2)

        ttk.Label(form, text="分類").grid(row=3, column=0, sticky="w", pady=2)
        self.category_var = tk.StringVar(value=Category.MANGA.label)
        ttk.Combobox(
            form,
            values=[c.label for c in Category],
            textvariable=self.category_var,
            state="readonly",
        ).grid(row=3, column=1, sticky="ew", padx=(8, 0), pady=2)

        ttk.Label(form, text="標籤").grid(row=4, column=0, sticky="w", pady=2)
        self.tags_var = tk.StringVar()
        ttk.Entry(form, textvariable=self.tags_var).grid(row=4, column=1, sticky="ew", padx=(8, 0), pady=2)

        ttk.Label(form, text="評價").grid(row=5, column=0, sticky="nw", pady=2)
        self.rating_var = tk.StringVar(value=Rating.ORDINARY.label)
        ratings = ttk.Frame(form)
        ratings.grid(row=5, column=1, sticky="w", padx=(8, 0), pady=2)
        for index, rating in enumerate(Rating):
            ttk.Radiobutton(ratings, text=rating.label, value=rating.label, variable=self.rating_var).grid(
                row=index // 3, column=index % 3, sticky="w", padx=(0, 8)
            )

        ttk.Label(form, text="心得").grid(row=6, column=0, sticky="nw", pady=2)
        self.note_text = tk.Text(form, height=5, width=40, wrap="word")
        self.note_text.grid(row=6, column=1, sticky="ew", padx=(8, 0), pady=2)

        buttons = ttk.Frame(form)
        buttons.grid(row=7, column=0, columnspan=2, sticky="e", pady=(12, 0))
        ttk.Button(buttons, text="取消", command=self.destroy).grid(row=0, column=0, padx=4)
        self.save_button = ttk.Button(buttons, text="儲存", command=self._save)
        self.save_button.grid(row=0, column=1, padx=4)

        title_entry.focus_set()

    def _choose_cover(self) -> None:
        filename = filedialog.askopenfilename(
            parent=self,
            title="選擇封面",
            filetypes=[("Images", "*.png *.jpg *.jpeg *.gif *.webp *.bmp"), ("All files", "*")],
        )
        if filename:
            self.cover_path = Path(filename)
            self.cover_button.configure(text=f"封面：{truncate(self.cover_path.name, 30)}")

    def _draft(self) -> EntryDraft:
        cover_bytes = None
        if self.cover_path:
            try:
                cover_bytes = self.cover_path.read_bytes()
            except OSError as error:
                raise DraftError(f"Unable to read {self.cover_path.name}: {error}")
        return EntryDraft(
            title=self.title_var.get(),
            author=self.author_var.get(),
            category=Category.parse(self.category_var.get()),
            rating=Rating.parse(self.rating_var.get()),
            note=self.note_text.get("1.0", "end").strip(),
            tags_text=self.tags_var.get(),
            cover_bytes=cover_bytes,
            cover_filename=self.cover_path.name if self.cover_path else None,
        )

    def _save(self) -> None:
        try:
            draft = self._draft()
            validate_draft(draft)
        except DraftError as error:
            messagebox.showerror("新增收藏", str(error), parent=self)
            return
        self.save_button.configure(state="disabled")
        self.controller.submit(draft, self)

    def on_failed(self, message: str) -> None:
        self.save_button.configure(state="normal")
        messagebox.showerror("新增失敗", message, parent=self)


# --------------------------------------------------------------------------- #
# Main application
# --------------------------------------------------------------------------- #
class MainApplication(tk.Tk):
    def __init__(self, settings: Optional[Settings] = None):
        super().__init__()
        self.settings = settings or get_settings()
        self.title("百合圖書與電影")
        self.geometry("1100x820")
        self.minsize(820, 600)

        self.entries_store, self.covers_store = open_stores(self.settings)
        self.view_state = ViewState(dark_mode=load_dark_mode(self.settings.prefs_path))
        self.status_var = tk.StringVar(value="Ready.")

        self._build_ui()
        self.protocol("WM_DELETE_WINDOW", self.on_close)
        self.bind_all("<Button-1>", self._on_global_click, add="+")
        self.refresh()
        self.reload()

    def _build_ui(self) -> None:
        self.drawer = CategoryDrawer(self, self)

        self.main = tk.Frame(self)
        self.main.pack(side="left", fill="both", expand=True)

        header = tk.Frame(self.main, padx=16, pady=10)
        header.pack(fill="x")
        self.header = header
        self.menu_button = tk.Button(header, text="☰", relief="flat", command=self.on_toggle_drawer)
        self.menu_button.pack(side="left")
        self.title_label = tk.Label(header, text="百合圖書與電影", font=("Georgia", 18))
        self.title_label.pack(side="left", padx=16)
        self.theme_button = tk.Button(header, relief="flat", command=self.on_toggle_theme)
        self.theme_button.pack(side="right")

        toolbar = tk.Frame(self.main, padx=16, pady=8)
        toolbar.pack(fill="x")
        self.toolbar = toolbar

        self.category_buttons: Dict[Optional[Category], tk.Button] = {}
        for category in [None, *Category]:
            label = "全部" if category is None else category.label
            button = tk.Button(toolbar, text=label, relief="flat", padx=8,
                               command=lambda c=category: self.on_select_category(c))
            button.pack(side="left", padx=2)
            self.category_buttons[category] = button

        self.rating_dropdown = RatingDropdown(toolbar, self)
        self.rating_dropdown.pack(side="left", padx=(12, 0))

        self.export_button = tk.Button(toolbar, text="匯出", relief="groove", padx=10, command=self.export)
        self.export_button.pack(side="right", padx=(6, 0))
        self.add_button = tk.Button(toolbar, text="＋ 新增", relief="groove", padx=10,
                                    command=lambda: AddEntryDialog(self))
        self.add_button.pack(side="right", padx=(6, 0))
        self.search_var = tk.StringVar()
        self.search_var.trace_add("write", lambda *_: self.on_search(self.search_var.get()))
        self.search_entry = ttk.Entry(toolbar, textvariable=self.search_var, width=24)
        self.search_entry.pack(side="right")

        self.footer = StatsFooter(self.main)
        self.footer.pack(side="bottom", fill="x")
        status_bar = ttk.Label(self.main, textvariable=self.status_var, anchor="w", padding=(8, 4))
        status_bar.pack(side="bottom", fill="x")

        self.entry_list = EntryList(self.main, self)
        self.entry_list.pack(fill="both", expand=True)

    # ------------------------------------------------------------------
    @property
    def theme(self) -> Dict[str, str]:
        return THEMES["dark" if self.view_state.dark_mode else "light"]

    def set_status(self, message: str) -> None:
        self.status_var.set(message)

    def set_state(self, state: ViewState) -> None:
        self.view_state = state
        self.refresh()

    def refresh(self) -> None:
        theme = self.theme
        visible, summary = render(self.view_state)

        self.configure(bg=theme["bg"])
        for frame in (self.main, self.header, self.toolbar):
            frame.configure(bg=theme["bg"])
        self.title_label.configure(bg=theme["bg"], fg=theme["text"])
        self.menu_button.configure(bg=theme["bg"], fg=theme["text"])
        self.theme_button.configure(text="☀" if self.view_state.dark_mode else "☾", bg=theme["bg"], fg=theme["text"])
        for category, button in self.category_buttons.items():
            active = category == self.view_state.criteria.category
            button.configure(bg=theme["panel"] if active else theme["bg"], fg=theme["text"])
        for button in (self.export_button, self.add_button):
            button.configure(bg=theme["panel"], fg=theme["text"])

        if self.view_state.drawer_open:
            self.drawer.pack(side="left", fill="y", before=self.main)
        else:
            self.drawer.pack_forget()
        self.drawer.apply_theme(theme, self.view_state.criteria.category)
        self.rating_dropdown.sync(self.view_state, theme)

        self.entry_list.show(visible, theme)
        self.footer.show(summary, theme)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def on_select_category(self, category: Optional[Category]) -> None:
        self.set_state(select_category(self.view_state, category))

    def on_select_rating(self, rating: Optional[Rating]) -> None:
        self.set_state(select_rating(self.view_state, rating))

    def on_search(self, text: str) -> None:
        self.set_state(set_search(self.view_state, text))

    def on_toggle_theme(self) -> None:
        self.set_state(toggle_theme(self.view_state))
        save_dark_mode(self.settings.prefs_path, self.view_state.dark_mode)

    def on_toggle_drawer(self) -> None:
        self.set_state(toggle_drawer(self.view_state))

    def on_toggle_rating_menu(self) -> None:
        self.set_state(toggle_rating_menu(self.view_state))

    def _on_global_click(self, event: tk.Event) -> None:
        if self.view_state.rating_menu_open and not self.rating_dropdown.contains(event.widget):
            self.set_state(close_rating_menu(self.view_state))

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------
    def reload(self) -> None:
        self.view_state = start_loading(self.view_state)
        self.set_status("Loading collection…")
        threading.Thread(target=self._load_thread, daemon=True).start()

    def _load_thread(self) -> None:
        result = self.entries_store.list_entries()
        self.after(0, lambda: self._on_loaded(result))

    def _on_loaded(self, result: Any) -> None:
        self.set_state(apply_load(self.view_state, result))
        if result.ok:
            self.set_status(f"Loaded {len(self.view_state.entries)} entries.")
        else:
            self.set_status("Unable to load the collection.")
            messagebox.showerror("讀取資料失敗", result.error or "Unknown error", parent=self)

    def submit(self, draft: EntryDraft, dialog: AddEntryDialog) -> None:
        self.set_status(f"Saving '{draft.title.strip()}'…")

        def worker() -> None:
            try:
                result = submit_draft(draft, self.entries_store, self.covers_store)
            except DraftError as error:
                message = str(error)
                self.after(0, lambda: dialog.on_failed(message))
                return
            self.after(0, lambda: self._on_submitted(result, dialog, draft))

        threading.Thread(target=worker, daemon=True).start()

    def _on_submitted(self, result: Any, dialog: AddEntryDialog, draft: EntryDraft) -> None:
        if not result.ok:
            self.set_status("Saving failed.")
            dialog.on_failed(result.error or "Unknown error")
            return
        dialog.destroy()
        self.set_status(f"Added '{draft.title.strip()}'.")
        self.reload()

    def export(self) -> None:
        filename = filedialog.asksaveasfilename(
            parent=self,
            initialfile=EXPORT_FILENAME,
            defaultextension=".json",
            filetypes=[("JSON", "*.json")],
        )
        if not filename:
            return
        try:
            Path(filename).write_text(export_json(self.view_state.entries), encoding="utf-8")
        except OSError as error:
            messagebox.showerror("匯出失敗", str(error), parent=self)
            return
        self.set_status(f"Exported {len(self.view_state.entries)} entries to {filename}.")

    def on_close(self) -> None:
        try:
            self.entries_store.close()
            self.covers_store.close()
        finally:
            self.destroy()


if __name__ == "__main__":
    configure_logging()
    app = MainApplication()
    app.mainloop()
