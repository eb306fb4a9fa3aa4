from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from catalog import Category, Entry, FilterCriteria, Rating, filter_entries, summarize
from config import configure_logging, get_settings
from editor import DraftError, EntryDraft, build_payload, validate_draft
from export import CSV_FILENAME, EXPORT_FILENAME, collection_frame, export_json
from inventory import LocalBlobStore, open_stores
from media import detect_content_type

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Application setup
# -----------------------------------------------------------------------------

def _stores():
    if not hasattr(_stores, "_instance"):
        _stores._instance = open_stores(get_settings())
    return _stores._instance  # type: ignore[attr-defined]


def get_entry_store():
    return _stores()[0]


def get_blob_store():
    return _stores()[1]


def _close_stores() -> None:
    stores = getattr(_stores, "_instance", None)
    if stores:
        for store in stores:
            store.close()
        delattr(_stores, "_instance")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    yield
    _close_stores()


app = FastAPI(title="Lily Collection API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------------------------------------------------------
# Pydantic models
# -----------------------------------------------------------------------------


class SummaryPayload(BaseModel):
    total: int
    bible_count: int
    book_count: int
    movie_count: int


class CollectionResponse(BaseModel):
    entries: List[Dict[str, Any]]
    summary: SummaryPayload
    error: Optional[str] = None


class EntryPayload(BaseModel):
    title: str
    author: str
    category: str = Category.MANGA.value
    rating: str = Rating.ORDINARY.value
    note: Optional[str] = None
    tags: Union[List[str], str] = Field(default_factory=list)
    cover_url: Optional[str] = None


class CreatedResponse(BaseModel):
    id: str


class CoverResponse(BaseModel):
    url: str


class Options(BaseModel):
    categories: List[Dict[str, str]]
    ratings: List[Dict[str, str]]


# -----------------------------------------------------------------------------
# Helper utilities
# -----------------------------------------------------------------------------


def _load_entries(store: Any) -> tuple[List[Entry], Optional[str]]:
    result = store.list_entries()
    if not result.ok:
        return [], result.error
    return list(result.value or []), None


def _serialize(entry: Entry) -> Dict[str, Any]:
    row = entry.to_row()
    row["category_name"] = entry.category.name
    row["rating_name"] = entry.rating.name
    row["kind"] = entry.kind_label
    return row


def _draft_from_payload(payload: EntryPayload) -> EntryDraft:
    text_tags = payload.tags if isinstance(payload.tags, str) else ""
    list_tags = None if isinstance(payload.tags, str) else list(payload.tags)
    return EntryDraft(
        title=payload.title,
        author=payload.author,
        category=Category.parse(payload.category),
        rating=Rating.parse(payload.rating),
        note=payload.note or "",
        tags_text=text_tags,
        tags=list_tags,
    )


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------


@app.get("/api/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/options", response_model=Options)
def options() -> Options:
    return Options(
        categories=[{"name": c.name, "label": c.label} for c in Category],
        ratings=[{"name": r.name, "label": r.label} for r in Rating],
    )


@app.get("/api/entries", response_model=CollectionResponse)
def list_entries(
    category: Optional[str] = Query(None, description="Category name or label; ALL for no filter"),
    rating: Optional[str] = Query(None, description="Rating name or label; ALL for no filter"),
    q: Optional[str] = Query(None, description="Case-insensitive search text"),
    store: Any = Depends(get_entry_store),
) -> CollectionResponse:
    try:
        criteria = FilterCriteria.parse(category, rating, q)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    entries, error = _load_entries(store)
    visible = filter_entries(entries, criteria)
    return CollectionResponse(
        entries=[_serialize(entry) for entry in visible],
        summary=SummaryPayload(**summarize(entries).as_dict()),
        error=error,
    )


@app.get("/api/stats", response_model=SummaryPayload)
def stats(store: Any = Depends(get_entry_store)) -> SummaryPayload:
    entries, error = _load_entries(store)
    if error:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=error)
    return SummaryPayload(**summarize(entries).as_dict())


@app.post("/api/entries", status_code=status.HTTP_201_CREATED, response_model=CreatedResponse)
def create_entry(payload: EntryPayload, store: Any = Depends(get_entry_store)) -> CreatedResponse:
    try:
        draft = _draft_from_payload(payload)
        validate_draft(draft)
        result = store.create_entry(build_payload(draft, payload.cover_url))
    except DraftError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return CreatedResponse(id=result.value or "")


@app.post("/api/covers", status_code=status.HTTP_201_CREATED, response_model=CoverResponse)
async def upload_cover(
    request: Request,
    filename: str = Query("cover"),
    covers: Any = Depends(get_blob_store),
) -> CoverResponse:
    data = await request.body()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")
    if detect_content_type(data) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not a supported image")
    result = covers.upload(data, filename)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return CoverResponse(url=result.value)


@app.get("/api/covers/{filename}")
def cover_image(filename: str, covers: Any = Depends(get_blob_store)) -> FileResponse:
    if not isinstance(covers, LocalBlobStore):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cover not found")
    target = covers.path_for(filename)
    if not target.exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cover not found")
    return FileResponse(target)


@app.get("/api/export")
def export_collection(
    format: str = Query("json", pattern="^(json|csv)$"),
    store: Any = Depends(get_entry_store),
) -> Response:
    entries, error = _load_entries(store)
    if error:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=error)
    if format == "csv":
        body = collection_frame(entries).to_csv(index=False)
        filename, media_type = CSV_FILENAME, "text/csv; charset=utf-8"
    else:
        body = export_json(entries)
        filename, media_type = EXPORT_FILENAME, "application/json; charset=utf-8"
    return Response(
        content=body.encode("utf-8"),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
