"""
ocr.py — text recognition on product photos via tesseract (pytesseract).

One OCR request per image, fanned out to worker threads and gathered back in
image order. Pillow decodes, tesseract recognises; nothing here is clever.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

import pytesseract

import config
from images import open_image

logger = logging.getLogger(__name__)


def _recognise(image_bytes: bytes) -> list[str]:
    """Blocking: return the non-empty text lines tesseract finds in one image."""
    img = open_image(image_bytes)
    if img is None:
        return []
    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    try:
        text = pytesseract.image_to_string(img, lang=config.OCR_LANG, config=config.OCR_CONFIG)
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as exc:
        logger.warning("OCR failed for one image: %s", exc)
        return []

    return [line.strip() for line in text.splitlines() if line.strip()]


async def extract_text_from_images(images: list[bytes]) -> list[str]:
    """All recognised lines across all images, in image order."""
    if not images:
        return []
    per_image = await asyncio.gather(*(asyncio.to_thread(_recognise, b) for b in images))
    all_text: list[str] = []
    for lines in per_image:
        all_text.extend(lines)
    logger.info("OCR: %d line(s) from %d image(s)", len(all_text), len(images))
    return all_text


def filter_brand_lines(lines: Iterable[str], known_brands: Optional[list[str]] = None) -> list[str]:
    """Keep lines mentioning a known brand (case-insensitive). Unique, sorted."""
    brands = [b.casefold() for b in (known_brands or config.KNOWN_BRANDS)]
    found = {
        line for line in lines
        if any(brand in line.casefold() for brand in brands)
    }
    return sorted(found)


async def detect_brands(images: list[bytes], known_brands: Optional[list[str]] = None) -> list[str]:
    lines = await extract_text_from_images(images)
    return filter_brand_lines(lines, known_brands)
