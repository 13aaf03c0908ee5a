"""
database.py — async SQLite persistence via aiosqlite.

Tables:
  api_keys       — provider keys set via /setkey (override .env values)
  analysis_logs  — one row per completed analysis (item, prospect, barcode)

The DB file is created automatically on first run.
"""
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiosqlite

logger = logging.getLogger(__name__)

# Store the DB in a dedicated data/ directory so Docker volume mounts work
# correctly (mount ./data:/app/data) and the file survives container restarts.
_DATA_DIR = Path(os.getenv("DATA_DIR", "data"))
_DATA_DIR.mkdir(parents=True, exist_ok=True)

DB_PATH = str(_DATA_DIR / "resell_data.db")
_lock = asyncio.Lock()          # serialise schema creation


# ── Data models ───────────────────────────────────────────────────────────────

@dataclass
class AnalysisLog:
    id: int
    user_id: int
    kind: str                   # item | prospect | barcode
    product_name: str
    brand: str
    provider_used: str
    confidence: float
    recommended_price: float
    decision: str               # prospect decision, "" for plain analyses
    cost_usd: float
    analysed_at: datetime


# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
-- API keys set via the bot (override .env values)
CREATE TABLE IF NOT EXISTS api_keys (
    key_name   TEXT PRIMARY KEY,
    key_value  TEXT NOT NULL,
    updated_by INTEGER NOT NULL,
    updated_at TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS analysis_logs (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id           INTEGER NOT NULL DEFAULT 0,
    kind              TEXT    NOT NULL DEFAULT 'item',
    product_name      TEXT    NOT NULL DEFAULT '',
    brand             TEXT    NOT NULL DEFAULT '',
    provider_used     TEXT    NOT NULL DEFAULT '',
    confidence        REAL    NOT NULL DEFAULT 0,
    recommended_price REAL    NOT NULL DEFAULT 0,
    decision          TEXT    NOT NULL DEFAULT '',
    cost_usd          REAL    NOT NULL DEFAULT 0,
    analysed_at       TEXT    NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_analysis_logs_at ON analysis_logs (analysed_at);
"""


async def init_db() -> None:
    """Create tables if they don't exist. Safe to call multiple times."""
    async with _lock:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.executescript(_SCHEMA)
            await db.commit()
    logger.info("Database initialised at %s", DB_PATH)


# ── Analysis log operations ───────────────────────────────────────────────────

async def log_analysis(
    user_id: int,
    kind: str,
    product_name: str,
    brand: str,
    provider_used: str,
    confidence: float,
    recommended_price: float,
    decision: str = "",
    cost_usd: float = 0.0,
) -> None:
    """Record a completed analysis."""
    now = datetime.now(timezone.utc).isoformat()
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT INTO analysis_logs
               (user_id, kind, product_name, brand, provider_used, confidence,
                recommended_price, decision, cost_usd, analysed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, kind, product_name, brand, provider_used, confidence,
             recommended_price, decision, cost_usd, now),
        )
        await db.commit()


async def get_recent_analyses(limit: int = 10, user_id: Optional[int] = None) -> list[AnalysisLog]:
    """Newest first. Pass user_id to restrict to one user."""
    sql = "SELECT * FROM analysis_logs"
    params: tuple = ()
    if user_id is not None:
        sql += " WHERE user_id = ?"
        params = (user_id,)
    sql += " ORDER BY analysed_at DESC, id DESC LIMIT ?"
    params += (limit,)

    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(sql, params) as cursor:
            rows = await cursor.fetchall()
    return [
        AnalysisLog(
            id=r["id"],
            user_id=r["user_id"],
            kind=r["kind"],
            product_name=r["product_name"],
            brand=r["brand"],
            provider_used=r["provider_used"],
            confidence=r["confidence"],
            recommended_price=r["recommended_price"],
            decision=r["decision"],
            cost_usd=r["cost_usd"],
            analysed_at=datetime.fromisoformat(r["analysed_at"]),
        )
        for r in rows
    ]


async def get_stats() -> dict:
    """Return summary stats for /stats."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute("SELECT COUNT(*) FROM analysis_logs") as cur:
            total_analyses = (await cur.fetchone())[0]

        async with db.execute(
            "SELECT COUNT(DISTINCT user_id) FROM analysis_logs"
        ) as cur:
            unique_users = (await cur.fetchone())[0]

        async with db.execute(
            "SELECT kind, COUNT(*) as n FROM analysis_logs GROUP BY kind ORDER BY n DESC"
        ) as cur:
            analyses_per_kind = dict(await cur.fetchall())

        async with db.execute(
            "SELECT decision, COUNT(*) as n FROM analysis_logs "
            "WHERE decision != '' GROUP BY decision ORDER BY n DESC"
        ) as cur:
            decisions = dict(await cur.fetchall())

        async with db.execute(
            "SELECT COALESCE(SUM(cost_usd), 0), COALESCE(AVG(recommended_price), 0) FROM analysis_logs"
        ) as cur:
            total_cost, avg_price = await cur.fetchone()

        async with db.execute(
            "SELECT analysed_at FROM analysis_logs ORDER BY analysed_at DESC LIMIT 1"
        ) as cur:
            row = await cur.fetchone()
            last_analysis = row[0] if row else "never"

    return {
        "total_analyses": total_analyses,
        "unique_users": unique_users,
        "analyses_per_kind": analyses_per_kind,
        "decisions": decisions,
        "total_cost_usd": total_cost,
        "avg_recommended_price": avg_price,
        "last_analysis": last_analysis,
    }


# ── API key operations ────────────────────────────────────────────────────────

async def get_api_key(key_name: str) -> Optional[str]:
    """Return DB-stored value for key_name, or None if not set."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT key_value FROM api_keys WHERE key_name = ?", (key_name,)
        ) as cur:
            row = await cur.fetchone()
            return row[0] if row else None


async def set_api_key(key_name: str, key_value: str, admin_id: int) -> None:
    """Insert or replace an API key in the DB."""
    now = datetime.now(timezone.utc).isoformat()
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT INTO api_keys (key_name, key_value, updated_by, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(key_name) DO UPDATE SET
                 key_value=excluded.key_value,
                 updated_by=excluded.updated_by,
                 updated_at=excluded.updated_at""",
            (key_name, key_value, admin_id, now),
        )
        await db.commit()


async def delete_api_key(key_name: str) -> None:
    """Remove a key from DB (falls back to .env value)."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("DELETE FROM api_keys WHERE key_name = ?", (key_name,))
        await db.commit()
