"""
bot.py — Telegram bot handlers.

All visual formatting is delegated to style.py.
All analysis is delegated to analysis_service.py (one service per user so
progress state never leaks between chats).
Session state is kept in-memory per user_id.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message, Update
from telegram.error import BadRequest
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

import config
import database as db
import key_store
import pricing
import style
from analysis_service import AnalysisProgress, ResellAnalysisService
from errors import ApiKeyMissing
from models import AnalysisResult, ProspectAnalysis
from providers.manager import clear_cache, get_providers

logger = logging.getLogger(__name__)

# ── Callback data ──────────────────────────────────────────────────────────────
CB_PROSPECT    = "act:prospect"
CB_DESCRIPTION = "act:description"


# ── Session ────────────────────────────────────────────────────────────────────

@dataclass
class UserSession:
    service: ResellAnalysisService = field(default_factory=ResellAnalysisService)
    last_analysis: Optional[AnalysisResult] = None
    image_bytes: Optional[bytes] = None


_sessions: dict[int, UserSession] = {}


def get_session(user_id: int) -> UserSession:
    if user_id not in _sessions:
        _sessions[user_id] = UserSession()
    return _sessions[user_id]


# ── Rate limiter ───────────────────────────────────────────────────────────────
_rate_buckets: dict[int, deque] = defaultdict(deque)


def _is_rate_limited(user_id: int) -> bool:
    now    = time.monotonic()
    bucket = _rate_buckets[user_id]
    while bucket and now - bucket[0] > config.RATE_WINDOW_SECS:
        bucket.popleft()
    if len(bucket) >= config.RATE_MAX_REQUESTS:
        return True
    bucket.append(now)
    return False


def _is_admin(user_id: int) -> bool:
    return user_id in config.ADMIN_IDS


# ── Caption parsing ────────────────────────────────────────────────────────────

def parse_caption(caption: Optional[str]) -> tuple[str, Optional[str]]:
    """
    Map a photo caption to (mode, argument):
      "prospect [category]" → ("prospect", category or None)
      "barcode <code>"      → ("barcode", code)
      anything else         → ("item", None)
    """
    words = (caption or "").split()
    if not words:
        return "item", None
    head = words[0].lower().lstrip("/")
    rest = " ".join(words[1:]) or None
    if head == "prospect":
        return "prospect", rest
    if head == "barcode" and rest:
        return "barcode", rest
    return "item", None


# ── Keyboards ──────────────────────────────────────────────────────────────────

def analysis_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("🧮  Sourcing check", callback_data=CB_PROSPECT)],
        [InlineKeyboardButton("📝  Listing description", callback_data=CB_DESCRIPTION)],
    ])


# ── Helpers ────────────────────────────────────────────────────────────────────

async def _safe_edit(msg: Message, text: str, **kwargs) -> None:
    try:
        await msg.edit_text(text, parse_mode="MarkdownV2", **kwargs)
    except BadRequest as exc:
        # Telegram rejects edits that don't change the text
        if "not modified" not in str(exc).lower():
            raise


def _failure_text(service: ResellAnalysisService) -> str:
    if isinstance(service.last_error, ApiKeyMissing):
        return style.error_no_providers()
    return style.error_analysis_failed(str(service.last_error) if service.last_error else None)


async def _log(user_id: int, kind: str, analysis: AnalysisResult,
               service: ResellAnalysisService, decision: str = "") -> None:
    provider = service.last_provider_result
    try:
        await db.log_analysis(
            user_id=user_id,
            kind=kind,
            product_name=analysis.product_name,
            brand=analysis.identification.brand,
            provider_used=analysis.provider_name or "barcode",
            confidence=analysis.confidence.overall,
            recommended_price=analysis.realistic_price,
            decision=decision,
            cost_usd=provider.cost_usd if provider and analysis.provider_name else 0.0,
        )
    except Exception as exc:
        logger.error("Failed to log analysis for user %s: %s", user_id, exc)


# ── Handlers ───────────────────────────────────────────────────────────────────

async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(style.welcome(), parse_mode="MarkdownV2")


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(style.help_text(), parse_mode="MarkdownV2")


async def cmd_providers(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    try:
        providers = await get_providers()
    except ApiKeyMissing:
        await update.message.reply_text(style.error_no_providers(), parse_mode="MarkdownV2")
        return
    await update.message.reply_text(
        style.providers_info(providers, config.VISION_MODE),
        parse_mode="MarkdownV2",
    )


async def cmd_barcode(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/barcode <code> — barcode-only sourcing check, no photo needed."""
    args = context.args or []
    if not args:
        await update.message.reply_text(
            style.usage("Usage: /barcode 012345678905"), parse_mode="MarkdownV2"
        )
        return

    user_id = update.effective_user.id
    session = get_session(user_id)
    prospect = await session.service.lookup_barcode_for_prospecting(args[0])
    if prospect is None:
        await update.message.reply_text(_failure_text(session.service), parse_mode="MarkdownV2")
        return

    session.last_analysis = prospect.analysis
    await _log(user_id, "barcode", prospect.analysis, session.service,
               decision=prospect.recommendation.value)
    await update.message.reply_text(style.prospect_card(prospect), parse_mode="MarkdownV2")


async def handle_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    user_id = update.effective_user.id

    if _is_rate_limited(user_id):
        await update.message.reply_text(
            style.error_rate_limited(config.RATE_MAX_REQUESTS, config.RATE_WINDOW_SECS),
            parse_mode="MarkdownV2",
        )
        return

    session = get_session(user_id)
    msg = await update.message.reply_text(style.loading("Starting..."), parse_mode="MarkdownV2")
    try:
        await _analyse_photo(update, context, session, msg)
    except Exception:
        logger.exception("Photo analysis crashed for user %s", user_id)
        await _safe_edit(msg, style.error_analysis_failed())


async def _analyse_photo(update: Update, context: ContextTypes.DEFAULT_TYPE,
                         session: UserSession, msg) -> None:
    user_id = update.effective_user.id
    service = session.service
    mode, argument = parse_caption(update.message.caption)

    photo       = update.message.photo[-1]
    photo_file  = await context.bot.get_file(photo.file_id)
    image_bytes = bytes(await photo_file.download_as_bytearray())
    session.image_bytes = image_bytes
    images = [image_bytes]

    # Mirror service progress into the loading message, one edit at a time
    edits: list[asyncio.Task] = []

    async def _edit_after(previous: Optional[asyncio.Task], text: str) -> None:
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)
        await _safe_edit(msg, text)

    def _on_progress(progress: AnalysisProgress) -> None:
        if progress.is_analyzing:
            previous = edits[-1] if edits else None
            text = style.loading(progress.current_step, progress.analysis_progress)
            edits.append(asyncio.create_task(_edit_after(previous, text)))

    unsubscribe = service.subscribe(_on_progress)
    prospect: Optional[ProspectAnalysis] = None
    try:
        if mode == "prospect":
            prospect = await service.analyze_for_prospecting(images, argument)
            analysis = prospect.analysis if prospect else None
        elif mode == "barcode":
            analysis = await service.analyze_barcode(argument, images)
        else:
            analysis = await service.analyze_item(images)
    finally:
        unsubscribe()
        await asyncio.gather(*edits, return_exceptions=True)

    if analysis is None:
        await _safe_edit(msg, _failure_text(service))
        return

    session.last_analysis = analysis

    if prospect is not None:
        await _log(user_id, "prospect", analysis, service, decision=prospect.recommendation.value)
        await _safe_edit(msg, style.prospect_card(prospect))
        return

    await _log(user_id, mode, analysis, service)

    brands, detected_colors = await asyncio.gather(
        service.detect_brands(images),
        service.detect_colors(images),
    )
    provider = service.last_provider_result
    await _safe_edit(
        msg,
        style.analysis_card(
            analysis,
            brands=brands,
            detected_colors=detected_colors,
            market=service.get_market_intelligence(analysis.identification),
            auth=service.authenticate_product(images, analysis.identification),
            cost_line=(
                f"{provider.cost_str} · {provider.latency_ms}ms"
                if config.SHOW_COST_INFO and provider else None
            ),
        ),
        reply_markup=analysis_keyboard(),
    )


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    await query.answer()
    session = get_session(update.effective_user.id)
    data    = query.data

    if not session.last_analysis:
        await query.message.reply_text(
            "⚠️ Session expired — please send a new photo\\.",
            parse_mode="MarkdownV2",
        )
        return

    # ── Sourcing check from the analysis already on screen ───────────────────
    if data == CB_PROSPECT:
        prospect = pricing.build_prospect(session.last_analysis)
        await query.message.reply_text(style.prospect_card(prospect), parse_mode="MarkdownV2")
        return

    if data == CB_DESCRIPTION:
        await query.message.reply_text(
            f"📝 *LISTING DESCRIPTION*\n{style.SDIV}\n"
            f"```\n{session.last_analysis.description}\n```",
            parse_mode="MarkdownV2",
        )
        return


async def handle_non_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(style.not_a_photo(), parse_mode="MarkdownV2")


# ── Admin commands ─────────────────────────────────────────────────────────────

async def cmd_stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_admin(update.effective_user.id):
        await update.message.reply_text(style.admin_only(), parse_mode="MarkdownV2")
        return
    stats = await db.get_stats()
    await update.message.reply_text(style.stats_card(stats), parse_mode="MarkdownV2")


async def cmd_keys(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not _is_admin(update.effective_user.id):
        await update.message.reply_text(style.admin_only(), parse_mode="MarkdownV2")
        return
    await update.message.reply_text(
        style.key_list(await key_store.describe_all()),
        parse_mode="MarkdownV2",
    )


async def cmd_setkey(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/setkey <name> <value> — store a provider key in the DB."""
    user_id = update.effective_user.id
    if not _is_admin(user_id):
        await update.message.reply_text(style.admin_only(), parse_mode="MarkdownV2")
        return

    chat = update.effective_chat
    # Delete the message right away so the key doesn't sit in chat history
    try:
        await update.message.delete()
    except BadRequest as exc:
        logger.warning("Could not delete /setkey message: %s", exc)

    args = context.args or []
    if len(args) != 2:
        await chat.send_message(
            style.usage(f"Usage: /setkey <name> <value>. Names: {', '.join(key_store.KEY_NAMES)}"),
            parse_mode="MarkdownV2",
        )
        return

    key_name, value = args[0].lower(), args[1]
    try:
        await key_store.set(key_name, value, user_id)
    except ValueError as exc:
        await chat.send_message(style.usage(str(exc)), parse_mode="MarkdownV2")
        return

    clear_cache()
    await chat.send_message(
        style.usage(f"Saved {key_name} ({key_store.mask(value)}). Providers reloaded."),
        parse_mode="MarkdownV2",
    )


async def cmd_delkey(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    user_id = update.effective_user.id
    if not _is_admin(user_id):
        await update.message.reply_text(style.admin_only(), parse_mode="MarkdownV2")
        return

    args = context.args or []
    if len(args) != 1 or args[0].lower() not in key_store.KEY_NAMES:
        await update.message.reply_text(
            style.usage(f"Usage: /delkey <name>. Names: {', '.join(key_store.KEY_NAMES)}"),
            parse_mode="MarkdownV2",
        )
        return

    await key_store.delete(args[0].lower())
    clear_cache()
    logger.info("Admin %s deleted %s", user_id, args[0].lower())
    await update.message.reply_text(
        style.usage(f"Deleted {args[0].lower()}. The .env value applies again if set."),
        parse_mode="MarkdownV2",
    )


# ── App factory ────────────────────────────────────────────────────────────────

async def _post_init(application: Application) -> None:
    await db.init_db()


def build_application() -> Application:
    if not config.TELEGRAM_BOT_TOKEN:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")

    app = (
        Application.builder()
        .token(config.TELEGRAM_BOT_TOKEN)
        .post_init(_post_init)
        .build()
    )

    app.add_handler(CommandHandler("start",     cmd_start))
    app.add_handler(CommandHandler("help",      cmd_help))
    app.add_handler(CommandHandler("providers", cmd_providers))
    app.add_handler(CommandHandler("barcode",   cmd_barcode))
    app.add_handler(CommandHandler("stats",     cmd_stats))
    app.add_handler(CommandHandler("keys",      cmd_keys))
    app.add_handler(CommandHandler("setkey",    cmd_setkey))
    app.add_handler(CommandHandler("delkey",    cmd_delkey))
    app.add_handler(MessageHandler(filters.PHOTO,                   handle_photo))
    app.add_handler(CallbackQueryHandler(handle_callback))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_non_photo))
    return app
