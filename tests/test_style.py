"""
Tests for style.py — MarkdownV2 formatting helpers.

Covers:
  - esc(): all MarkdownV2 special characters are escaped
  - money() / pct() / conf_icon()
  - welcome() / help_text(): non-empty with required keywords
  - loading(): progress bar
  - analysis_card() / prospect_card(): key fields present and escaped
  - stats_card() / providers_info() / key_list()
  - error messages
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

import pricing
import style
from models import PrecisionIdentification, ProductCategory


def make_analysis(**kwargs):
    ident = dict(
        exact_model_name="Air Max 90 (Infrared)",
        brand="Nike",
        category=ProductCategory.SNEAKERS,
        confidence=0.9,
        style_code="CT1685-100",
        size="10.5",
    )
    ident.update(kwargs)
    return pricing.build_analysis(
        PrecisionIdentification(**ident), image_count=1, provider_name="openai/gpt-4o",
    )


# ── esc() ─────────────────────────────────────────────────────────────────────

class TestEsc:
    MDV2_SPECIALS = r"\_*[]()~`>#+-=|{}.!"

    def test_all_special_characters_escaped(self):
        for ch in self.MDV2_SPECIALS:
            escaped = style.esc(ch)
            assert escaped == f"\\{ch}", f"Character {ch!r} not escaped"

    def test_plain_text_unchanged(self):
        assert style.esc("Hello World") == "Hello World"

    def test_mixed_text(self):
        result = style.esc("price: $49.99 (best!)")
        # $ is NOT a MarkdownV2 special char, so it passes through unchanged
        assert "$" in result and "\\$" not in result
        assert "\\." in result
        assert "\\(" in result
        assert "\\!" in result


# ── Small formatters ──────────────────────────────────────────────────────────

class TestFormatters:
    def test_money(self):
        assert style.money(1234.5) == "$1,234\\.50"

    def test_pct(self):
        assert style.pct(0.8) == "80%"

    @pytest.mark.parametrize("confidence, icon", [(0.95, "🟢"), (0.6, "🟡"), (0.2, "🔴")])
    def test_conf_icon(self, confidence, icon):
        assert style.conf_icon(confidence) == icon

    def test_loading_bar(self):
        text = style.loading("Processing images...", 0.5)
        assert "▰▰▰▰▰▱▱▱▱▱" in text
        assert "Processing images\\.\\.\\." in text


# ── Static screens ────────────────────────────────────────────────────────────

class TestScreens:
    def test_welcome(self):
        assert "RESELL PHOTO ANALYZER" in style.welcome()

    def test_help_mentions_commands(self):
        text = style.help_text()
        assert "/barcode" in text
        assert "prospect" in text

    def test_rate_limited_contains_numbers(self):
        text = style.error_rate_limited(5, 60)
        assert "5" in text and "60" in text

    def test_analysis_failed_reason_escaped(self):
        text = style.error_analysis_failed("Network error: timeout (x)")
        assert "Network error: timeout \\(x\\)" in text


# ── Cards ─────────────────────────────────────────────────────────────────────

class TestAnalysisCard:
    def test_key_fields(self):
        analysis = make_analysis()
        text = style.analysis_card(analysis)
        assert "Air Max 90 \\(Infrared\\)" in text
        assert "CT1685\\-100" in text
        assert "10\\.5" in text
        assert style.money(analysis.realistic_price) in text
        assert "openai/gpt\\-4o" in text

    def test_optional_sections(self):
        service_auth = MagicMock(is_authentic=True, confidence=0.85, recommendations=["Check tags"])
        market = MagicMock(market_insights=["Steady"])
        market.demand.value = "Medium"
        market.competition.value = "Moderate"
        text = style.analysis_card(
            make_analysis(),
            brands=["NIKE AIR"],
            detected_colors=["Red", "White"],
            market=market,
            auth=service_auth,
            cost_line="$0.0060 · 900ms",
        )
        assert "NIKE AIR" in text
        assert "Red, White" in text
        assert "Moderate" in text
        assert "Looks authentic" in text
        assert "900ms" in text

    def test_sections_omitted_by_default(self):
        text = style.analysis_card(make_analysis())
        assert "FROM THE PHOTO" not in text
        assert "AUTHENTICITY" not in text

    def test_truncated(self):
        text = style.analysis_card(make_analysis(), brands=["x" * 5000])
        assert len(text) <= style.MAX_MESSAGE_LEN + 6


class TestProspectCard:
    def test_decision_and_numbers(self):
        prospect = pricing.build_prospect(make_analysis())
        text = style.prospect_card(prospect)
        assert "*Buy*" in text
        assert "ROI 112%" in text or "ROI 113%" in text
        assert style.money(prospect.max_buy_price) in text
        assert "Break\\-even" in text


class TestAdminCards:
    def test_stats_card(self):
        text = style.stats_card({
            "total_analyses": 12,
            "unique_users": 3,
            "analyses_per_kind": {"item": 10, "prospect": 2},
            "decisions": {"Buy": 2},
            "total_cost_usd": 0.0421,
            "avg_recommended_price": 88.0,
            "last_analysis": "2026-01-01T10:00:00+00:00",
        })
        assert "*12*" in text
        assert "$0\\.0421" in text
        assert "prospect: 2" in text
        assert "Buy: 2" in text

    def test_providers_info(self):
        p = MagicMock(cost_per_image=0.0019, cost_per_1k_input_tokens=0.0025)
        text = style.providers_info({"openai/gpt-4o": p}, "best")
        assert "openai/gpt\\-4o" in text
        assert "`best`" in text

    def test_key_list(self):
        text = style.key_list({"openai_api_key": "✅ sk-1****cdef"})
        assert "openai\\_api\\_key" in text
        assert "sk\\-1\\*\\*\\*\\*cdef" in text
