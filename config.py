"""
Central configuration — reads from .env file.

API keys are resolved at call time through key_store.py:
  1. Database (set via /setkey in the bot) — takes precedence
  2. Environment variable / .env file      — fallback / bootstrap

Everything else is a plain module attribute read once at import time.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# ── Telegram front-end ────────────────────────────────────────────────────────
# Only needed when running the bot (main.py). The service layer works without it.
TELEGRAM_BOT_TOKEN: str | None = os.getenv("TELEGRAM_BOT_TOKEN")

# Comma-separated Telegram user IDs that may use /stats, /setkey, /delkey
ADMIN_IDS: set[int] = {
    int(x.strip())
    for x in os.getenv("ADMIN_IDS", "").split(",")
    if x.strip().isdigit()
}

DATA_DIR: str = os.getenv("DATA_DIR", "data")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ── AI Vision providers ────────────────────────────────────────────────────────
# The keys themselves (OPENAI_API_KEY, ANTHROPIC_API_KEY, GOOGLE_API_KEY) are
# read by key_store so that a key stored with /setkey can shadow them.

# Vision mode, i.e. how to use the configured providers:
#   single:openai/gpt-4o  → one call to one provider (default)
#   best                  → run all providers in parallel, keep the best identification
#   cheapest              → always use the cheapest available provider
VISION_MODE: str = os.getenv("VISION_MODE", "single:openai/gpt-4o")

# Overall wall-clock budget for one identification round-trip
ANALYSIS_TIMEOUT_SECS: float = float(os.getenv("ANALYSIS_TIMEOUT_SECS", "60"))

# Only the first N photos of an item are sent to the model
MAX_IMAGES_PER_REQUEST: int = int(os.getenv("MAX_IMAGES_PER_REQUEST", "4"))

VISION_MAX_TOKENS: int     = int(os.getenv("VISION_MAX_TOKENS", "1500"))
VISION_TEMPERATURE: float  = float(os.getenv("VISION_TEMPERATURE", "0.1"))

# ── Image preparation ─────────────────────────────────────────────────────────
IMAGE_MAX_SIZE: int = int(os.getenv("IMAGE_MAX_SIZE", "1024"))   # longest side, px
JPEG_QUALITY: int   = int(os.getenv("JPEG_QUALITY", "80"))

# ── OCR (tesseract via pytesseract) ───────────────────────────────────────────
# --oem 3 = default LSTM engine, --psm 3 = fully automatic page segmentation
OCR_CONFIG: str = os.getenv("OCR_CONFIG", "--oem 3 --psm 3")
OCR_LANG: str   = os.getenv("OCR_LANG", "eng")

KNOWN_BRANDS: list[str] = [
    b.strip()
    for b in os.getenv(
        "KNOWN_BRANDS",
        "Nike,Adidas,Jordan,Apple,Samsung,Supreme,Off-White,Yeezy",
    ).split(",")
    if b.strip()
]

# ── Bot behaviour ─────────────────────────────────────────────────────────────
RATE_MAX_REQUESTS: int = int(os.getenv("RATE_MAX_REQUESTS", "5"))
RATE_WINDOW_SECS: int  = int(os.getenv("RATE_WINDOW_SECS", "60"))

# Show per-request cost info in the bot (useful during development)
SHOW_COST_INFO: bool = os.getenv("SHOW_COST_INFO", "false").lower() == "true"
