"""
style.py — Complete visual style system for the bot.

Design language:
  • Structured cards with consistent emoji icons
  • Unicode box-drawing dividers
  • Clear visual hierarchy: header → body → footer
  • MarkdownV2 throughout

All text that goes into Telegram messages should be formatted through this module.
"""
from __future__ import annotations
from typing import Optional

from models import (
    AnalysisResult,
    AuthenticationResult,
    MarketIntelligence,
    ProspectAnalysis,
    ProspectDecision,
)

# ── Escape ────────────────────────────────────────────────────────────────────

def esc(text: str) -> str:
    """Escape all MarkdownV2 special characters."""
    for ch in r"\_*[]()~`>#+-=|{}.!":
        text = text.replace(ch, f"\\{ch}")
    return text


# ── Visual constants ──────────────────────────────────────────────────────────

DIV   = "━━━━━━━━━━━━━━━━━━━━━━━━━━"    # thick divider
SDIV  = "┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄┄"    # subtle divider

DECISION_ICON = {
    ProspectDecision.STRONG_BUY:     "🟢",
    ProspectDecision.BUY:            "🟢",
    ProspectDecision.MAYBE_WORTH_IT: "🟡",
    ProspectDecision.INVESTIGATE:    "🟠",
    ProspectDecision.PASS:           "🔴",
}

MAX_MESSAGE_LEN = 4050


def conf_icon(confidence: float) -> str:
    if confidence >= 0.8:
        return "🟢"
    if confidence >= 0.5:
        return "🟡"
    return "🔴"


def money(value: float) -> str:
    return esc(f"${value:,.2f}")


def pct(value: float) -> str:
    return esc(f"{value * 100:.0f}%")


def _truncate(text: str) -> str:
    return text[:MAX_MESSAGE_LEN] + "\\.\\.\\." if len(text) > MAX_MESSAGE_LEN else text


def _bullets(items: list[str], empty: str = "_none_") -> str:
    return "\n".join(f"  ▸ {esc(i)}" for i in items) or f"  ▸ {empty}"


# ══════════════════════════════════════════════════════════════════════════════
# START / WELCOME
# ══════════════════════════════════════════════════════════════════════════════

def welcome() -> str:
    return (
        f"🏷️ *RESELL PHOTO ANALYZER*\n"
        f"{DIV}\n\n"
        f"Send a photo of an item and I'll identify it with AI\n"
        f"and estimate what it resells for\\.\n\n"
        f"✨  *What I can do*\n"
        f"▸ Identify brand, model, style code and size\n"
        f"▸ Suggest a listing title, price band and description\n"
        f"▸ Read label text and spot known brands\n"
        f"▸ Give a buy/pass call while you're sourcing\n\n"
        f"{DIV}\n"
        f"_📸 Just send a photo to get started_"
    )


def help_text() -> str:
    return (
        f"📖 *HOW TO USE*\n"
        f"{DIV}\n\n"
        f"*1️⃣  Send a photo*\n"
        f"_Clear, well\\-lit, labels and tags visible_\n\n"
        f"*2️⃣  Get a listing analysis*\n"
        f"_Identification, price band, title and description_\n\n"
        f"*3️⃣  Sourcing?*\n"
        f"_Caption the photo with_ `prospect` _or_ `prospect sneakers`\n"
        f"_for a buy/pass call with max buy price_\n\n"
        f"*4️⃣  No photo?*\n"
        f"_/barcode 012345678905 for a barcode\\-only lookup_\n\n"
        f"{DIV}\n"
        f"💡  *Tips for best results*\n"
        f"▸ Photograph the size tag and style code\n"
        f"▸ Avoid extreme angles or blur\n"
        f"▸ One item per photo\n\n"
        f"{DIV}\n"
        f"_Commands: /start · /help · /barcode · /providers_"
    )


# ══════════════════════════════════════════════════════════════════════════════
# LOADING MESSAGES
# ══════════════════════════════════════════════════════════════════════════════

def loading(step: str, progress: float = 0.0) -> str:
    filled = max(0, min(10, round(progress * 10)))
    bar = "▰" * filled + "▱" * (10 - filled)
    return (
        f"🔍 *Analysing your item*\n"
        f"{SDIV}\n"
        f"{bar}\n"
        f"⠋ {esc(step or 'Starting...')}"
    )


# ══════════════════════════════════════════════════════════════════════════════
# ANALYSIS RESULT
# ══════════════════════════════════════════════════════════════════════════════

def analysis_card(
    result: AnalysisResult,
    brands: Optional[list[str]] = None,
    detected_colors: Optional[list[str]] = None,
    market: Optional[MarketIntelligence] = None,
    auth: Optional[AuthenticationResult] = None,
    cost_line: Optional[str] = None,
) -> str:
    ident = result.identification
    p = result.pricing
    low, high = p.price_range

    details = []
    if ident.style_code:
        details.append(f"🔢 `{esc(ident.style_code)}`")
    if ident.size:
        details.append(f"📏 {esc(ident.size)}")
    if ident.colorway:
        details.append(f"🎨 {esc(ident.colorway)}")
    detail_line = "   ".join(details)

    lines = [
        f"✨ *ITEM IDENTIFIED*",
        f"{DIV}\n",
        f"🏷️ *{esc(ident.exact_model_name)}*",
        f"🏢 {esc(ident.brand or 'Unknown brand')}",
        f"📦 {esc(result.category_path)}",
    ]
    if detail_line:
        lines.append(detail_line)
    lines += [
        "",
        f"{conf_icon(result.confidence.overall)} *Confidence:* {pct(result.confidence.overall)}"
        + (f"   🤖 {esc(result.provider_name)}" if result.provider_name else ""),
    ]
    if cost_line:
        lines.append(f"💸 `{esc(cost_line)}`")

    lines += [
        "",
        f"💰 *PRICING*  _\\({esc(result.condition.value)}\\)_",
        f"{SDIV}",
        f"▸ Recommended: *{money(p.recommended_price)}*",
        f"▸ Range: {money(low)} – {money(high)}",
        f"▸ Quick sale: {money(p.quick_sale_price)}   Max profit: {money(p.max_profit_price)}",
    ]

    if market is not None:
        lines += [
            "",
            f"📈 *MARKET*",
            f"{SDIV}",
            f"Demand: {esc(market.demand.value)}   Competition: {esc(market.competition.value)}",
            _bullets(market.market_insights),
        ]

    if auth is not None:
        verdict = "✅ Looks authentic" if auth.is_authentic else "⚠️ Authenticity doubtful"
        lines += [
            "",
            f"🛡️ *AUTHENTICITY*  {esc(verdict)} \\({pct(auth.confidence)}\\)",
            _bullets(auth.recommendations),
        ]

    if brands or detected_colors:
        lines += ["", f"🔎 *FROM THE PHOTO*", f"{SDIV}"]
        if brands:
            lines.append(f"Label text: {esc(', '.join(brands))}")
        if detected_colors:
            lines.append(f"Colours: {esc(', '.join(detected_colors))}")

    lines += [
        "",
        f"📝 *LISTING TITLE*",
        f"`{esc(result.suggested_title)}`",
        f"{DIV}",
    ]
    return _truncate("\n".join(lines))


def prospect_card(prospect: ProspectAnalysis) -> str:
    ident = prospect.identification
    icon = DECISION_ICON.get(prospect.recommendation, "⚪")
    return _truncate(
        f"🧮 *SOURCING CHECK*\n"
        f"{DIV}\n\n"
        f"🏷️ *{esc(ident.exact_model_name)}*\n"
        f"🏢 {esc(ident.brand or 'Unknown brand')}\n\n"
        f"{icon} *{esc(prospect.recommendation.value)}*   "
        f"ROI {esc(f'{prospect.expected_roi:.0f}%')}\n"
        f"{SDIV}\n"
        f"▸ Resells for: *{money(prospect.analysis.realistic_price)}*\n"
        f"▸ Max buy: {money(prospect.max_buy_price)}\n"
        f"▸ Target buy: {money(prospect.target_buy_price)}\n"
        f"▸ Break\\-even: {money(prospect.break_even_price)}\n\n"
        f"{conf_icon(prospect.confidence.overall)} Confidence {pct(prospect.confidence.overall)}\n"
        f"{DIV}"
    )


# ══════════════════════════════════════════════════════════════════════════════
# PROVIDERS INFO / STATS
# ══════════════════════════════════════════════════════════════════════════════

def providers_info(providers: dict, vision_mode: str) -> str:
    lines = [f"🤖 *AI PROVIDERS*\n{DIV}\n"]
    for name, p in providers.items():
        cost = p.cost_per_image + p.cost_per_1k_input_tokens * 0.8
        cost_str = f"\\~\\${cost*1000:.3f}m/img"
        lines.append(f"▸ *{esc(name)}*  {esc(cost_str)}")
    lines += [
        f"\n{SDIV}",
        f"Mode: `{esc(vision_mode)}`",
    ]
    return "\n".join(lines)


def stats_card(stats: dict) -> str:
    per_kind = stats.get("analyses_per_kind") or {}
    decisions = stats.get("decisions") or {}
    spend = stats.get("total_cost_usd") or 0.0
    lines = [
        f"📊 *USAGE STATS*",
        f"{DIV}\n",
        f"▸ Analyses: *{stats.get('total_analyses', 0)}*",
        f"▸ Users: *{stats.get('unique_users', 0)}*",
        f"▸ Avg recommended price: {money(stats.get('avg_recommended_price') or 0.0)}",
        f"▸ AI spend: {esc(f'${spend:.4f}')}",
    ]
    if per_kind:
        lines += ["", f"*By kind*", f"{SDIV}"]
        lines += [f"▸ {esc(k)}: {v}" for k, v in sorted(per_kind.items())]
    if decisions:
        lines += ["", f"*Sourcing calls*", f"{SDIV}"]
        lines += [f"▸ {esc(k)}: {v}" for k, v in sorted(decisions.items())]
    if stats.get("last_analysis"):
        lines += ["", f"_Last analysis: {esc(str(stats['last_analysis']))}_"]
    return "\n".join(lines)


def key_list(masked: dict[str, str]) -> str:
    lines = [f"🔑 *API KEYS*\n{DIV}\n"]
    for name, shown in masked.items():
        lines.append(f"▸ `{esc(name)}`  {esc(shown)}")
    lines.append(f"\n_/setkey name value · /delkey name_")
    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════════════════════
# ERROR MESSAGES
# ══════════════════════════════════════════════════════════════════════════════

def error_no_providers() -> str:
    return (
        f"⚠️ *No AI Providers Configured*\n"
        f"{DIV}\n\n"
        f"An admin needs to add at least one vision API key\\.\n\n"
        f"▸ /setkey openai\\_api\\_key sk\\-\\.\\.\\.\n"
        f"▸ Or set OPENAI\\_API\\_KEY, ANTHROPIC\\_API\\_KEY or GOOGLE\\_API\\_KEY\n\n"
        f"_Keys available at openai\\.com, anthropic\\.com, aistudio\\.google\\.com_"
    )


def error_analysis_failed(reason: Optional[str] = None) -> str:
    reason_line = f"_{esc(reason)}_\n\n" if reason else ""
    return (
        f"❌ *Analysis Failed*\n"
        f"{DIV}\n\n"
        f"{reason_line}"
        f"Couldn't identify this item\\. Try:\n"
        f"▸ Better lighting\n"
        f"▸ Less angle / closer shot\n"
        f"▸ Include the brand label or size tag\n"
    )


def not_a_photo() -> str:
    return (
        f"📸 *Send a Photo*\n"
        f"{SDIV}\n"
        f"I need an item photo to analyse\\.\n"
        f"_Or try /barcode followed by the number on the tag\\._"
    )


def usage(text: str) -> str:
    return f"ℹ️ {esc(text)}"


def admin_only() -> str:
    return "⛔ *Admins only\\.*"


def error_rate_limited(max_requests: int, window_secs: int) -> str:
    return (
        f"⏱ *Slow Down\\!*\n"
        f"{SDIV}\n"
        f"You can analyse up to *{max_requests} items* every *{window_secs} seconds*\\.\n\n"
        f"_Please wait a moment before sending another photo\\._"
    )
