"""
Tests for bot.py handlers, with Telegram objects mocked.

Covers:
  - parse_caption(): item / prospect / barcode modes
  - handle_photo(): analysis card, prospect card, failure card, DB logging
  - cmd_barcode(): usage message and barcode-only prospect
  - admin guards on /stats and /setkey
"""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

import analysis_service
import bot
import database as db
from errors import NetworkError
from models import PrecisionIdentification, ProductCategory
from providers.base import ProviderResult


@pytest_asyncio.fixture(autouse=True)
async def init(tmp_data_dir):
    await db.init_db()
    bot._sessions.clear()
    bot._rate_buckets.clear()
    yield
    bot._sessions.clear()
    bot._rate_buckets.clear()


def make_update(user_id: int = 42, caption=None, image: bytes = b""):
    sent = MagicMock()
    sent.edit_text = AsyncMock()

    update = MagicMock()
    update.effective_user.id = user_id
    update.message.caption = caption
    update.message.reply_text = AsyncMock(return_value=sent)
    update.message.delete = AsyncMock()
    update.effective_chat.send_message = AsyncMock()
    update.message.photo = [MagicMock(file_id="small"), MagicMock(file_id="large")]

    photo_file = MagicMock()
    photo_file.download_as_bytearray = AsyncMock(return_value=bytearray(image))
    context = MagicMock()
    context.bot.get_file = AsyncMock(return_value=photo_file)
    context.args = []
    return update, context, sent


def provider_result() -> ProviderResult:
    return ProviderResult(
        provider_name="openai/gpt-4o",
        model_id="gpt-4o",
        identification=PrecisionIdentification(
            exact_model_name="Stan Smith",
            brand="Adidas",
            category=ProductCategory.SNEAKERS,
            confidence=0.8,
        ),
        latency_ms=700,
        input_tokens=1200,
        output_tokens=150,
        cost_usd=0.004,
    )


@pytest.fixture
def mock_analyse():
    r = provider_result()
    mock = AsyncMock(return_value=(r, [r]))
    with patch.object(analysis_service, "analyse_images", mock), \
         patch("ocr.pytesseract.image_to_string", return_value="ADIDAS"):
        yield mock


# ── parse_caption ─────────────────────────────────────────────────────────────

class TestParseCaption:
    @pytest.mark.parametrize("caption, expected", [
        (None,                       ("item", None)),
        ("",                         ("item", None)),
        ("nice shoes",               ("item", None)),
        ("prospect",                 ("prospect", None)),
        ("Prospect vintage denim",   ("prospect", "vintage denim")),
        ("barcode 012345678905",     ("barcode", "012345678905")),
        ("barcode",                  ("item", None)),
    ])
    def test_modes(self, caption, expected):
        assert bot.parse_caption(caption) == expected


# ── handle_photo ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestHandlePhoto:
    async def test_analysis_card_sent_and_logged(self, mock_analyse, image_factory):
        update, context, sent = make_update(image=image_factory())
        await bot.handle_photo(update, context)

        context.bot.get_file.assert_awaited_once_with("large")
        final_text = sent.edit_text.call_args.args[0]
        assert "ITEM IDENTIFIED" in final_text
        assert "Stan Smith" in final_text
        assert "ADIDAS" in final_text

        recent = await db.get_recent_analyses()
        assert len(recent) == 1
        assert recent[0].kind == "item"
        assert recent[0].provider_used == "openai/gpt-4o"
        assert recent[0].cost_usd == pytest.approx(0.004)
        assert bot.get_session(42).last_analysis is not None

    async def test_prospect_caption(self, mock_analyse, image_factory):
        update, context, sent = make_update(caption="prospect sneakers", image=image_factory())
        await bot.handle_photo(update, context)

        assert mock_analyse.call_args.kwargs["context_hint"] == "Sourcing category: sneakers"
        assert "SOURCING CHECK" in sent.edit_text.call_args.args[0]
        recent = await db.get_recent_analyses()
        assert recent[0].kind == "prospect"
        assert recent[0].decision == "Buy"

    async def test_failure_card(self, image_factory):
        update, context, sent = make_update(image=image_factory())
        with patch.object(analysis_service, "analyse_images",
                          AsyncMock(side_effect=NetworkError("down"))):
            await bot.handle_photo(update, context)

        assert "Analysis Failed" in sent.edit_text.call_args.args[0]
        assert await db.get_recent_analyses() == []

    async def test_unexpected_crash_still_answers(self, image_factory):
        update, context, sent = make_update(image=image_factory())
        context.bot.get_file = AsyncMock(side_effect=RuntimeError("telegram down"))
        await bot.handle_photo(update, context)
        assert "Analysis Failed" in sent.edit_text.call_args.args[0]

    async def test_progress_edits_land_in_order(self, mock_analyse, image_factory):
        update, context, _ = make_update(image=image_factory())
        started, landed = [], []

        async def slow_first_edit(msg, text, **kwargs):
            started.append(text)
            await asyncio.sleep(0.05 if len(started) == 1 else 0)
            landed.append(text)

        with patch.object(bot, "_safe_edit", slow_first_edit):
            await bot.handle_photo(update, context)

        assert len(landed) > 2
        assert landed == started
        assert "ITEM IDENTIFIED" in landed[-1]

    async def test_rate_limited(self, mock_analyse, image_factory, monkeypatch):
        monkeypatch.setattr(bot.config, "RATE_MAX_REQUESTS", 0)
        update, context, _ = make_update(image=image_factory())
        await bot.handle_photo(update, context)
        assert "Slow Down" in update.message.reply_text.call_args.args[0]
        mock_analyse.assert_not_awaited()


# ── /barcode ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestBarcodeCommand:
    async def test_usage_without_args(self):
        update, context, _ = make_update()
        await bot.cmd_barcode(update, context)
        assert "Usage" in update.message.reply_text.call_args.args[0]

    async def test_barcode_prospect(self, mock_analyse):
        update, context, _ = make_update()
        context.args = ["012345678905"]
        await bot.cmd_barcode(update, context)

        mock_analyse.assert_not_awaited()
        text = update.message.reply_text.call_args.args[0]
        assert "SOURCING CHECK" in text
        assert "Scanned Product" in text
        recent = await db.get_recent_analyses()
        assert recent[0].kind == "barcode"
        assert recent[0].cost_usd == 0.0


# ── Admin commands ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestAdminCommands:
    async def test_stats_requires_admin(self, monkeypatch):
        monkeypatch.setattr(bot.config, "ADMIN_IDS", set())
        update, context, _ = make_update()
        await bot.cmd_stats(update, context)
        assert "Admins only" in update.message.reply_text.call_args.args[0]

    async def test_stats_for_admin(self, monkeypatch):
        monkeypatch.setattr(bot.config, "ADMIN_IDS", {42})
        update, context, _ = make_update()
        await bot.cmd_stats(update, context)
        assert "USAGE STATS" in update.message.reply_text.call_args.args[0]

    async def test_setkey_saves_and_clears_cache(self, monkeypatch):
        monkeypatch.setattr(bot.config, "ADMIN_IDS", {42})
        update, context, _ = make_update()
        context.args = ["openai_api_key", "sk-test-1234567890"]
        with patch.object(bot, "clear_cache") as clear:
            await bot.cmd_setkey(update, context)

        update.message.delete.assert_awaited_once()
        clear.assert_called_once()
        assert await db.get_api_key("openai_api_key") == "sk-test-1234567890"

    async def test_setkey_unknown_name(self, monkeypatch):
        monkeypatch.setattr(bot.config, "ADMIN_IDS", {42})
        update, context, _ = make_update()
        context.args = ["bitly_token", "x"]
        await bot.cmd_setkey(update, context)
        assert "Unknown key" in update.effective_chat.send_message.call_args.args[0]
        assert await db.get_api_key("bitly_token") is None
