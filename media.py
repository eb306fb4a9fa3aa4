from __future__ import annotations

import base64
import hashlib
import io
import logging
from pathlib import Path
from typing import Optional, Tuple

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

LOCAL_COVER_PREFIX = "/api/covers/"
THUMBNAIL_EDGE = 240

IMAGE_TYPES = {
    "JPEG": ("image/jpeg", ".jpg"),
    "PNG": ("image/png", ".png"),
    "GIF": ("image/gif", ".gif"),
    "WEBP": ("image/webp", ".webp"),
    "BMP": ("image/bmp", ".bmp"),
}
EXTENSIONS = {mime: ext for mime, ext in IMAGE_TYPES.values()}


def _safe_name(identifier: str) -> str:
    return hashlib.sha1(identifier.encode("utf-8")).hexdigest()


def detect_content_type(data: bytes) -> Optional[str]:
    """Return the MIME type of an image payload, or None if Pillow cannot read it."""
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError):
        return None
    known = IMAGE_TYPES.get(image_format or "")
    return known[0] if known else None


def cover_object_name(data: bytes, content_type: str) -> str:
    digest = hashlib.sha1(data).hexdigest()
    return f"{digest}{EXTENSIONS.get(content_type, '.img')}"


def to_data_url(data: bytes, content_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def decode_data_url(url: str) -> Optional[bytes]:
    if not url.startswith("data:") or ";base64," not in url:
        return None
    try:
        return base64.b64decode(url.split(";base64,", 1)[1])
    except ValueError:
        return None


def cached_cover_path(cache_dir: Path, identifier: str, max_edge: Optional[int]) -> Path:
    if max_edge:
        safe_name = _safe_name(f"{identifier}:{max_edge}")
    else:
        safe_name = _safe_name(f"{identifier}:orig")
    return cache_dir / f"{safe_name}.png"


def read_cover_bytes(cover_url: Optional[str], covers_dir: Optional[Path] = None) -> Optional[bytes]:
    """Fetch the raw bytes behind a cover reference (remote URL, data URI or local cover)."""
    if not cover_url:
        return None
    if cover_url.startswith("data:"):
        return decode_data_url(cover_url)
    if cover_url.startswith(LOCAL_COVER_PREFIX):
        if covers_dir is None:
            return None
        target = covers_dir / Path(cover_url[len(LOCAL_COVER_PREFIX):]).name
        try:
            return target.read_bytes()
        except OSError:
            return None
    try:
        response = requests.get(cover_url, timeout=15)
        response.raise_for_status()
    except requests.RequestException as error:
        logger.warning("Unable to fetch cover %s: %s", cover_url[:80], error)
        return None
    return response.content


def fetch_and_cache_cover(
    cover_url: Optional[str],
    identifier: str,
    cache_dir: Path,
    *,
    covers_dir: Optional[Path] = None,
    max_edge: Optional[int] = None,
) -> Optional[Path]:
    """Fetch a cover image (if any) and save a copy to the thumbnail cache."""
    if not cover_url:
        return None

    target_path = cached_cover_path(cache_dir, identifier, max_edge)
    if target_path.exists():
        return target_path

    content = read_cover_bytes(cover_url, covers_dir)
    if not content:
        return None

    cache_dir.mkdir(parents=True, exist_ok=True)
    try:
        image = Image.open(io.BytesIO(content))
        if max_edge:
            image.thumbnail((max_edge, max_edge), Image.LANCZOS)
        image.save(target_path, format="PNG")
    except (UnidentifiedImageError, OSError):
        return None
    return target_path


def fit_cover(path: Path, size: Tuple[int, int]) -> Optional[Image.Image]:
    """Scale a cached cover to fit inside ``size``, keeping its aspect ratio."""
    try:
        with Image.open(path) as image:
            return ImageOps.contain(image.convert("RGB"), size)
    except (UnidentifiedImageError, OSError):
        return None
