"""
Tests for pricing.py — the fixed-ratio builders.

Covers:
  - pricing_intelligence(): exact price * multiplier * {0.8, 1.2, 0.85, 1.15}
  - estimate_base_price(): brand/category lookup
  - build_market_data() / build_pricing_recommendation(): fixed ratios
  - build_title(): composition and 80-char truncation
  - build_analysis(): confidence blend, listing text, checklist
  - decide() / build_prospect(): ROI thresholds and buy-side numbers
  - barcode_identification(): canned barcode result
"""
from __future__ import annotations

import pytest

import pricing
from models import (
    CompetitionLevel,
    DemandLevel,
    EbayCondition,
    IdentificationMethod,
    PrecisionIdentification,
    PricingStrategy,
    ProductCategory,
    ProspectDecision,
)


def make_identification(**kwargs) -> PrecisionIdentification:
    defaults = dict(
        exact_model_name="Air Max 90",
        brand="Nike",
        category=ProductCategory.SNEAKERS,
        confidence=0.9,
    )
    defaults.update(kwargs)
    return PrecisionIdentification(**defaults)


# ── pricing_intelligence ──────────────────────────────────────────────────────

class TestPricingIntelligence:
    @pytest.mark.parametrize("condition", list(EbayCondition))
    def test_exact_derived_prices(self, condition):
        price = 120.0
        adjusted = price * condition.price_multiplier
        result = pricing.pricing_intelligence(price, condition)

        assert result.optimal_price == pytest.approx(adjusted)
        assert result.price_range[0] == pytest.approx(adjusted * 0.8)
        assert result.price_range[1] == pytest.approx(adjusted * 1.2)
        assert result.quick_sale_price == pytest.approx(adjusted * 0.85)
        assert result.max_profit_price == pytest.approx(adjusted * 1.15)

    def test_static_fields(self):
        result = pricing.pricing_intelligence(100.0, EbayCondition.GOOD)
        assert result.pricing_strategy is PricingStrategy.COMPETITIVE
        assert result.confidence_level == 0.8
        assert result.market_factors == ["Based on recent sales data", "Adjusted for condition"]

    def test_zero_price(self):
        result = pricing.pricing_intelligence(0.0, EbayCondition.NEW_WITH_TAGS)
        assert result.optimal_price == 0.0
        assert result.price_range == (0.0, 0.0)


# ── estimate_base_price ───────────────────────────────────────────────────────

class TestEstimateBasePrice:
    @pytest.mark.parametrize("brand, category, expected", [
        ("Nike",    ProductCategory.SNEAKERS,    190.0),
        ("Jordan",  ProductCategory.SNEAKERS,    190.0),
        ("Adidas",  ProductCategory.SNEAKERS,    155.0),
        ("Vans",    ProductCategory.SNEAKERS,    95.0),
        ("Apple",   ProductCategory.ELECTRONICS, 500.0),
        ("Samsung", ProductCategory.ELECTRONICS, 225.0),
        ("Zara",    ProductCategory.CLOTHING,    47.5),
        ("Coach",   ProductCategory.ACCESSORIES, 45.0),
        ("Lego",    ProductCategory.TOYS,        30.0),
    ])
    def test_brand_category_table(self, brand, category, expected):
        ident = make_identification(brand=brand, category=category)
        assert pricing.estimate_base_price(ident) == expected

    @pytest.mark.parametrize("product, expected", [
        ("Logo T-Shirt", 30.0),
        ("Floral Dress", 50.0),
        ("Slim Jeans",   55.0),
        ("Handbag",      40.0),
    ])
    def test_guess_items(self, product, expected):
        ident = make_identification(
            brand="Guess", exact_model_name=product, category=ProductCategory.CLOTHING,
        )
        assert pricing.estimate_base_price(ident) == expected


# ── Market data / recommendation ──────────────────────────────────────────────

class TestMarketBuilders:
    def test_market_data_ratios(self):
        data = pricing.build_market_data(200.0)
        pr = data.price_range
        assert pr.new_with_tags == pytest.approx(200.0)
        assert pr.new_without_tags == pytest.approx(190.0)
        assert pr.like_new == pytest.approx(170.0)
        assert pr.excellent == pytest.approx(150.0)
        assert pr.very_good == pytest.approx(130.0)
        assert pr.good == pytest.approx(100.0)
        assert pr.acceptable == pytest.approx(70.0)
        assert pr.average == pytest.approx(150.0)
        assert data.competition is CompetitionLevel.MODERATE
        assert data.demand is DemandLevel.MEDIUM

    def test_recommendation_ratios(self):
        rec = pricing.build_pricing_recommendation(100.0)
        assert rec.recommended_price == pytest.approx(75.0)
        assert rec.price_range == (pytest.approx(60.0), pytest.approx(90.0))
        assert rec.competitive_price == pytest.approx(72.0)
        assert rec.quick_sale_price == pytest.approx(65.0)
        assert rec.max_profit_price == pytest.approx(85.0)
        assert rec.strategy is PricingStrategy.COMPETITIVE


# ── Listing text ──────────────────────────────────────────────────────────────

class TestBuildTitle:
    def test_full_title(self):
        ident = make_identification(style_code="CN8490-100", size="10")
        title = pricing.build_title(ident, EbayCondition.GOOD)
        assert title == "Nike Air Max 90 CN8490-100 Size 10 - Good"

    def test_brand_not_repeated(self):
        ident = make_identification(exact_model_name="Nike Air Max 90")
        assert pricing.build_title(ident, EbayCondition.GOOD) == "Nike Air Max 90 - Good"

    def test_truncated_to_80_chars(self):
        ident = make_identification(exact_model_name="Extremely Long Model Name " * 5)
        title = pricing.build_title(ident, EbayCondition.NEW_WITH_TAGS)
        assert len(title) == pricing.MAX_TITLE_LENGTH
        assert title.endswith("...")

    def test_keywords_skip_empty(self):
        ident = make_identification(product_line="Air Max", colorway="")
        assert pricing.build_keywords(ident) == ["Nike", "Air Max", "sneakers"]

    def test_description_mentions_condition(self):
        ident = make_identification()
        text = pricing.build_description(ident, EbayCondition.LIKE_NEW)
        assert "Condition: Like New" in text
        assert "• Brand: Nike" in text


# ── build_analysis ────────────────────────────────────────────────────────────

class TestBuildAnalysis:
    def test_confidence_blend(self):
        result = pricing.build_analysis(make_identification(confidence=0.9), image_count=2)
        assert result.confidence.overall == pytest.approx((0.9 + 0.8 + 0.7) / 3)
        assert result.confidence.identification == 0.9

    def test_realistic_price_is_recommended(self):
        result = pricing.build_analysis(make_identification(), image_count=1)
        # Nike sneakers → base 190 → recommended 0.75 × 190
        assert result.realistic_price == pytest.approx(142.5)
        assert result.market_data.price_range.average == pytest.approx(142.5)

    def test_listing_fields(self):
        result = pricing.build_analysis(
            make_identification(), image_count=3, provider_name="openai/gpt-4o",
        )
        assert result.condition is EbayCondition.GOOD
        assert result.category_path == ProductCategory.SNEAKERS.category_path
        assert result.photography_checklist == pricing.PHOTOGRAPHY_CHECKLIST
        assert result.photography_checklist is not pricing.PHOTOGRAPHY_CHECKLIST
        assert result.image_count == 3
        assert result.provider_name == "openai/gpt-4o"
        assert result.product_name == "Air Max 90"


# ── Prospecting ───────────────────────────────────────────────────────────────

class TestProspecting:
    @pytest.mark.parametrize("roi, expected", [
        (200.0, ProspectDecision.STRONG_BUY),
        (150.0, ProspectDecision.BUY),          # strictly greater than
        (112.5, ProspectDecision.BUY),
        (75.0,  ProspectDecision.MAYBE_WORTH_IT),
        (30.0,  ProspectDecision.INVESTIGATE),
        (25.0,  ProspectDecision.PASS),
        (-10.0, ProspectDecision.PASS),
    ])
    def test_decide(self, roi, expected):
        assert pricing.decide(roi) is expected

    def test_buy_side_numbers(self):
        analysis = pricing.build_analysis(make_identification(), image_count=1)
        p = analysis.realistic_price
        prospect = pricing.build_prospect(analysis)

        assert prospect.max_buy_price == pytest.approx(p * 0.40)
        assert prospect.target_buy_price == pytest.approx(p * 0.30)
        assert prospect.break_even_price == pytest.approx(p * 0.65)
        # profit = P - 0.4P - 0.15P = 0.45P → ROI 112.5 %
        assert prospect.expected_roi == pytest.approx(112.5)
        assert prospect.recommendation is ProspectDecision.BUY
        assert prospect.analysis is analysis
        assert prospect.confidence is analysis.confidence

    def test_zero_price_gives_zero_roi(self):
        analysis = pricing.build_analysis(make_identification(), image_count=1)
        analysis.pricing.recommended_price = 0.0
        prospect = pricing.build_prospect(analysis)
        assert prospect.expected_roi == 0.0
        assert prospect.recommendation is ProspectDecision.PASS


# ── Barcode ───────────────────────────────────────────────────────────────────

class TestBarcodeIdentification:
    def test_canned_fields(self):
        ident = pricing.barcode_identification("012345678905")
        assert ident.exact_model_name == "Scanned Product"
        assert ident.brand == "Unknown"
        assert ident.style_code == "012345678905"
        assert ident.confidence == 0.6
        assert ident.method is IdentificationMethod.TEXT_ONLY
        assert ident.category is ProductCategory.OTHER
        assert ident.identification_details == ["Identified by barcode: 012345678905"]
