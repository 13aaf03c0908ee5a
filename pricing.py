"""
pricing.py — fixed-ratio price builders.

No real market data is sourced anywhere in this project: every number here
is a literal ratio applied to one base price. The base price itself is a
brand/category lookup table.
"""
from __future__ import annotations

import logging

from models import (
    AnalysisResult,
    CompetitionLevel,
    DemandLevel,
    EbayCondition,
    IdentificationMethod,
    MarketConfidence,
    MarketData,
    PrecisionIdentification,
    PriceRange,
    PricingIntelligence,
    PricingRecommendation,
    PricingStrategy,
    ProductCategory,
    ProspectAnalysis,
    ProspectDecision,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 80

# Prospecting ratios, as a share of the expected resale price
MAX_BUY_RATIO    = 0.40     # 40% of market for a good ROI
TARGET_BUY_RATIO = 0.30     # 30% for a great deal
BREAK_EVEN_RATIO = 0.65     # break even after fees
FEE_RATIO        = 0.15

# (ROI threshold %, decision), checked top to bottom with ">"
_DECISION_THRESHOLDS: list[tuple[float, ProspectDecision]] = [
    (150, ProspectDecision.STRONG_BUY),
    (100, ProspectDecision.BUY),
    (50,  ProspectDecision.MAYBE_WORTH_IT),
    (25,  ProspectDecision.INVESTIGATE),
]

PHOTOGRAPHY_CHECKLIST = [
    "Main product photo",
    "Multiple angles",
    "Close-ups of condition",
    "Brand/size labels",
]


# ── Pricing intelligence ──────────────────────────────────────────────────────

def pricing_intelligence(base_price: float, condition: EbayCondition) -> PricingIntelligence:
    """
    Condition-adjust base_price, then derive the band around it:
    range ×0.8 / ×1.2, quick sale ×0.85, max profit ×1.15.
    """
    adjusted = base_price * condition.price_multiplier
    return PricingIntelligence(
        optimal_price=adjusted,
        price_range=(adjusted * 0.8, adjusted * 1.2),
        quick_sale_price=adjusted * 0.85,
        max_profit_price=adjusted * 1.15,
        pricing_strategy=PricingStrategy.COMPETITIVE,
        confidence_level=0.8,
        market_factors=["Based on recent sales data", "Adjusted for condition"],
    )


# ── Base price lookup ─────────────────────────────────────────────────────────

def estimate_base_price(identification: PrecisionIdentification) -> float:
    """Mid-point of a typical resale range for the brand/category."""
    brand = identification.brand.lower()
    product = identification.exact_model_name.lower()

    if "guess" in brand:
        if any(word in product for word in ("shirt", "t-shirt", "tee")):
            return 30.0
        if "dress" in product:
            return 50.0
        if "jeans" in product or "pants" in product:
            return 55.0
        return 40.0

    category = identification.category
    if category is ProductCategory.SNEAKERS:
        if "nike" in brand or "jordan" in brand:
            return 190.0
        if "adidas" in brand:
            return 155.0
        return 95.0
    if category is ProductCategory.ELECTRONICS:
        return 500.0 if "apple" in brand else 225.0
    if category is ProductCategory.CLOTHING:
        return 47.5
    if category is ProductCategory.ACCESSORIES:
        return 45.0
    return 30.0


# ── Market / recommendation builders ──────────────────────────────────────────

def build_market_data(base_price: float, sample_size: int = 0) -> MarketData:
    price_range = PriceRange(
        new_with_tags=base_price * 1.0,
        new_without_tags=base_price * 0.95,
        like_new=base_price * 0.85,
        excellent=base_price * 0.75,
        very_good=base_price * 0.65,
        good=base_price * 0.50,
        acceptable=base_price * 0.35,
        average=base_price * 0.75,
        sample_size=sample_size,
    )
    return MarketData(
        price_range=price_range,
        competition=CompetitionLevel.MODERATE,
        demand=DemandLevel.MEDIUM,
    )


def build_pricing_recommendation(base_price: float) -> PricingRecommendation:
    return PricingRecommendation(
        recommended_price=base_price * 0.75,
        price_range=(base_price * 0.6, base_price * 0.9),
        competitive_price=base_price * 0.72,
        quick_sale_price=base_price * 0.65,
        max_profit_price=base_price * 0.85,
        strategy=PricingStrategy.COMPETITIVE,
        justification=["Based on similar items", "Adjusted for condition"],
    )


# ── Listing text ──────────────────────────────────────────────────────────────

def build_title(identification: PrecisionIdentification, condition: EbayCondition) -> str:
    title = identification.exact_model_name
    if identification.brand and identification.brand not in title:
        title = f"{identification.brand} {title}"
    if identification.style_code:
        title += f" {identification.style_code}"
    if identification.size:
        title += f" Size {identification.size}"
    title += f" - {condition.value}"

    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


def build_keywords(identification: PrecisionIdentification) -> list[str]:
    keywords = [
        identification.brand,
        identification.product_line,
        identification.style_code,
        identification.category.value,
        identification.colorway,
    ]
    return [k for k in keywords if k]


def build_description(identification: PrecisionIdentification, condition: EbayCondition) -> str:
    return "\n".join([
        identification.exact_model_name,
        "",
        f"Condition: {condition.value}",
        "",
        "Product Details:",
        f"• Brand: {identification.brand}",
        f"• Model: {identification.exact_model_name}",
        f"• Style Code: {identification.style_code}",
        f"• Size: {identification.size}",
        f"• Colorway: {identification.colorway}",
        "",
        "Fast shipping and excellent customer service!",
        "Questions? Message us anytime.",
    ])


# ── Full analysis ─────────────────────────────────────────────────────────────

def build_analysis(
    identification: PrecisionIdentification,
    image_count: int,
    condition: EbayCondition = EbayCondition.GOOD,
    provider_name: str = "",
) -> AnalysisResult:
    """Wrap an identification with estimated market data and listing text."""
    base_price = estimate_base_price(identification)
    condition_confidence, pricing_confidence = 0.8, 0.7

    confidence = MarketConfidence(
        overall=(identification.confidence + condition_confidence + pricing_confidence) / 3.0,
        identification=identification.confidence,
        condition=condition_confidence,
        pricing=pricing_confidence,
        data_quality="fair",
    )

    logger.debug("Base price for %s: %.2f", identification.exact_model_name, base_price)
    return AnalysisResult(
        identification=identification,
        condition=condition,
        market_data=build_market_data(base_price),
        pricing=build_pricing_recommendation(base_price),
        confidence=confidence,
        suggested_title=build_title(identification, condition),
        keywords=build_keywords(identification),
        category_path=identification.category.category_path,
        description=build_description(identification, condition),
        photography_checklist=list(PHOTOGRAPHY_CHECKLIST),
        image_count=image_count,
        provider_name=provider_name,
    )


# ── Prospecting ───────────────────────────────────────────────────────────────

def decide(expected_roi: float) -> ProspectDecision:
    for threshold, decision in _DECISION_THRESHOLDS:
        if expected_roi > threshold:
            return decision
    return ProspectDecision.PASS


def build_prospect(analysis: AnalysisResult) -> ProspectAnalysis:
    """Turn an analysis into buy-side numbers and a buy/pass call."""
    market_price = analysis.realistic_price
    max_buy = market_price * MAX_BUY_RATIO
    potential_profit = market_price - max_buy - market_price * FEE_RATIO
    expected_roi = (potential_profit / max_buy) * 100 if max_buy > 0 else 0.0

    return ProspectAnalysis(
        identification=analysis.identification,
        analysis=analysis,
        max_buy_price=max_buy,
        target_buy_price=market_price * TARGET_BUY_RATIO,
        break_even_price=market_price * BREAK_EVEN_RATIO,
        expected_roi=expected_roi,
        recommendation=decide(expected_roi),
        confidence=analysis.confidence,
    )


# ── Canned identifications ────────────────────────────────────────────────────

def barcode_identification(barcode: str) -> PrecisionIdentification:
    return PrecisionIdentification(
        exact_model_name="Scanned Product",
        brand="Unknown",
        category=ProductCategory.OTHER,
        confidence=0.6,
        method=IdentificationMethod.TEXT_ONLY,
        style_code=barcode,
        identification_details=[f"Identified by barcode: {barcode}"],
    )

