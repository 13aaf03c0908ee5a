"""
colors.py — coarse dominant-colour label per photo.

Each image is averaged down to a single RGB pixel and bucketed with fixed
thresholds. Good enough to pre-fill a "colour" field, nothing more.
"""
from __future__ import annotations

import logging

from PIL import Image

from images import open_image

logger = logging.getLogger(__name__)


def classify_rgb(red: int, green: int, blue: int) -> str:
    if red > 200 and green < 100 and blue < 100:
        return "Red"
    if red < 100 and green > 200 and blue < 100:
        return "Green"
    if red < 100 and green < 100 and blue > 200:
        return "Blue"
    if red > 200 and green > 200 and blue > 200:
        return "White"
    if red < 50 and green < 50 and blue < 50:
        return "Black"
    return "Mixed"


def average_rgb(img: Image.Image) -> tuple[int, int, int]:
    pixel = img.convert("RGB").resize((1, 1), Image.Resampling.BOX).getpixel((0, 0))
    return pixel[0], pixel[1], pixel[2]


def detect_colors(images: list[bytes]) -> list[str]:
    """Unique colour labels across all decodable images, sorted."""
    labels: set[str] = set()
    for image_bytes in images:
        img = open_image(image_bytes)
        if img is None:
            continue
        labels.add(classify_rgb(*average_rgb(img)))
    return sorted(labels)
