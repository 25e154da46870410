from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .errors import CoverDecodeError

logger = logging.getLogger(__name__)


def load_image(cover_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(cover_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise CoverDecodeError("COVER_DECODE_FAILED", f"Unable to decode cover image: {exc}") from exc
    return img


def to_jpeg(cover_bytes: bytes, quality: int = 92) -> bytes:
    """Re-encode any Pillow-readable image as baseline JPEG for ID3 embedding."""
    if not cover_bytes:
        return b""
    img = load_image(cover_bytes)
    logger.info(f"Re-encoding {img.format} cover {img.size[0]}x{img.size[1]} as JPEG")
    if img.mode != "RGB":
        img = img.convert("RGB")
    out = BytesIO()
    img.save(out, format="JPEG", quality=quality)
    return out.getvalue()


def square_crop(img: Image.Image) -> Image.Image:
    width, height = img.size
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    return img.crop((left, top, left + side, top + side))


def thumbnail(cover_bytes: bytes, size: int = 256) -> Image.Image | None:
    """Centred square preview of the cover for display collaborators."""
    if not cover_bytes:
        return None
    img = square_crop(load_image(cover_bytes))
    if img.width != size:
        img = img.resize((size, size), Image.Resampling.LANCZOS)
    return img
