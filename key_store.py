"""
key_store.py — resolves the vision provider API keys.

A key saved with /setkey lives in the api_keys table and shadows the
environment; /delkey removes the stored copy and the .env value (if any)
becomes visible again. Provider clients are built from these values, so
callers clear the provider cache after every change.

  openai_api_key     ←  OPENAI_API_KEY
  anthropic_api_key  ←  ANTHROPIC_API_KEY
  google_api_key     ←  GOOGLE_API_KEY
"""
from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

KEY_NAMES = ("openai_api_key", "anthropic_api_key", "google_api_key")

SOURCE_DB = "db"
SOURCE_ENV = "env"


async def resolve(key_name: str) -> tuple[Optional[str], Optional[str]]:
    """Return (value, source) for key_name; (None, None) when it is set nowhere."""
    import database as db

    try:
        stored = await db.get_api_key(key_name)
    except Exception as exc:
        # An unreadable DB must not hide keys that are present in .env
        logger.warning("Stored key lookup failed for %s: %s", key_name, exc)
        stored = None
    if stored:
        return stored, SOURCE_DB

    from_env = os.getenv(key_name.upper())
    if from_env:
        return from_env, SOURCE_ENV
    return None, None


async def get(key_name: str) -> Optional[str]:
    value, _ = await resolve(key_name)
    return value


def _check_name(key_name: str) -> None:
    if key_name not in KEY_NAMES:
        raise ValueError(f"Unknown key '{key_name}'. Known keys: {', '.join(KEY_NAMES)}")


async def set(key_name: str, value: str, admin_id: int) -> None:
    import database as db

    _check_name(key_name)
    value = value.strip()
    if not value:
        raise ValueError(f"Empty value for '{key_name}'")
    await db.set_api_key(key_name, value, admin_id)
    logger.info("Admin %s stored %s", admin_id, key_name)


async def delete(key_name: str) -> None:
    import database as db

    _check_name(key_name)
    await db.delete_api_key(key_name)


async def describe_all() -> dict[str, str]:
    """Masked value plus origin for every known key, ready for /keys."""
    described = {}
    for name in KEY_NAMES:
        value, source = await resolve(name)
        shown = mask(value)
        if source is not None:
            shown = f"{shown} ({source})"
        described[name] = shown
    return described


def mask(value: Optional[str]) -> str:
    """Return a masked version safe to show in chat."""
    if not value:
        return "❌ not set"
    if len(value) <= 8:
        return "✅ ****"
    return f"✅ {value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"
