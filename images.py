"""
images.py — Pillow helpers shared by the upload path, OCR and colour sampling.
"""
from __future__ import annotations

import io
import logging
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

import config

logger = logging.getLogger(__name__)


def open_image(image_bytes: bytes) -> Optional[Image.Image]:
    """
    Decode image bytes, honouring EXIF orientation (phone photos are usually
    stored sideways). Returns None for anything Pillow can't read.
    """
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Skipping unreadable image (%d bytes): %s", len(image_bytes), exc)
        return None
    except Image.DecompressionBombError as exc:
        logger.warning("Skipping oversized image: %s", exc)
        return None
    return ImageOps.exif_transpose(img)


def prepare_for_upload(image_bytes: bytes, max_size: Optional[int] = None) -> Optional[bytes]:
    """
    Downscale so the longer side fits max_size (never upscale) and re-encode
    as JPEG. Returns None when the bytes aren't an image.
    """
    max_size = max_size or config.IMAGE_MAX_SIZE
    img = open_image(image_bytes)
    if img is None:
        return None

    if img.width > max_size or img.height > max_size:
        ratio = min(max_size / img.width, max_size / img.height)
        new_size = (max(1, round(img.width * ratio)), max(1, round(img.height * ratio)))
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    # JPEG has no alpha channel
    if img.mode != "RGB":
        img = img.convert("RGB")

    out = io.BytesIO()
    img.save(out, format="JPEG", quality=config.JPEG_QUALITY, optimize=True)
    return out.getvalue()


def process_images_for_analysis(images: list[bytes]) -> list[bytes]:
    """Prepare every photo for upload, silently dropping undecodable ones."""
    prepared = []
    for image_bytes in images:
        data = prepare_for_upload(image_bytes)
        if data is not None:
            prepared.append(data)
    return prepared
