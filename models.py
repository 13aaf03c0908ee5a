"""
models.py — canonical home of every result type the service hands out.

Flat value records only. Builders live in pricing.py, the façade in
analysis_service.py. Keep this module free of I/O so the bot, the providers
and the tests can all import it cheaply.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


# ── Enums ─────────────────────────────────────────────────────────────────────

class EbayCondition(Enum):
    NEW_WITH_TAGS    = "New with tags"
    NEW_WITHOUT_TAGS = "New without tags"
    NEW_OTHER        = "New other"
    LIKE_NEW         = "Like New"
    EXCELLENT        = "Excellent"
    VERY_GOOD        = "Very Good"
    GOOD             = "Good"
    ACCEPTABLE       = "Acceptable"
    FOR_PARTS        = "For parts or not working"

    @property
    def price_multiplier(self) -> float:
        return _CONDITION_MULTIPLIERS[self]


_CONDITION_MULTIPLIERS: dict[EbayCondition, float] = {
    EbayCondition.NEW_WITH_TAGS:    1.0,
    EbayCondition.NEW_WITHOUT_TAGS: 0.95,
    EbayCondition.NEW_OTHER:        0.9,
    EbayCondition.LIKE_NEW:         0.85,
    EbayCondition.EXCELLENT:        0.8,
    EbayCondition.VERY_GOOD:        0.7,
    EbayCondition.GOOD:             0.6,
    EbayCondition.ACCEPTABLE:       0.45,
    EbayCondition.FOR_PARTS:        0.3,
}


class ProductCategory(Enum):
    SNEAKERS     = "sneakers"
    CLOTHING     = "clothing"
    ELECTRONICS  = "electronics"
    ACCESSORIES  = "accessories"
    HOME         = "home"
    COLLECTIBLES = "collectibles"
    BOOKS        = "books"
    TOYS         = "toys"
    SPORTS       = "sports"
    OTHER        = "other"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ProductCategory":
        """Lenient lookup — anything the model invents becomes OTHER."""
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.OTHER

    @property
    def category_path(self) -> str:
        return _CATEGORY_PATHS[self]


_CATEGORY_PATHS: dict[ProductCategory, str] = {
    ProductCategory.SNEAKERS:     "Clothing, Shoes & Accessories > Unisex Shoes",
    ProductCategory.CLOTHING:     "Clothing, Shoes & Accessories",
    ProductCategory.ELECTRONICS:  "Consumer Electronics",
    ProductCategory.ACCESSORIES:  "Clothing, Shoes & Accessories > Accessories",
    ProductCategory.HOME:         "Home & Garden",
    ProductCategory.COLLECTIBLES: "Collectibles",
    ProductCategory.BOOKS:        "Books & Magazines",
    ProductCategory.TOYS:         "Toys & Hobbies",
    ProductCategory.SPORTS:       "Sporting Goods",
    ProductCategory.OTHER:        "Everything Else",
}


class IdentificationMethod(Enum):
    VISUAL_AND_TEXT = "visual_and_text"
    VISUAL_ONLY     = "visual_only"
    TEXT_ONLY       = "text_only"
    CATEGORY_BASED  = "category_based"


class DemandLevel(Enum):
    HIGH   = "High"
    MEDIUM = "Medium"
    LOW    = "Low"


class CompetitionLevel(Enum):
    LOW       = "Low"
    MODERATE  = "Moderate"
    HIGH      = "High"
    VERY_HIGH = "Very High"


class PriceStability(Enum):
    STABLE     = "Stable"
    VOLATILE   = "Volatile"
    INCREASING = "Increasing"
    DECREASING = "Decreasing"


class PricingStrategy(Enum):
    AGGRESSIVE  = "Aggressive"
    COMPETITIVE = "Competitive"
    PREMIUM     = "Premium"
    QUICK_SALE  = "Quick Sale"

    @property
    def multiplier(self) -> float:
        return {
            PricingStrategy.AGGRESSIVE:  0.85,
            PricingStrategy.COMPETITIVE: 1.0,
            PricingStrategy.PREMIUM:     1.15,
            PricingStrategy.QUICK_SALE:  0.75,
        }[self]


class ProspectDecision(Enum):
    STRONG_BUY     = "Strong Buy"
    BUY            = "Buy"
    MAYBE_WORTH_IT = "Maybe Worth It"
    INVESTIGATE    = "Investigate"
    PASS           = "Pass"


# ── Identification ────────────────────────────────────────────────────────────

@dataclass
class PrecisionIdentification:
    """What the vision model (or a barcode lookup) says the item is."""
    exact_model_name: str
    brand: str
    category: ProductCategory
    confidence: float                   # 0..1
    method: IdentificationMethod = IdentificationMethod.VISUAL_AND_TEXT
    product_line: str = ""
    style_variant: str = ""
    style_code: str = ""
    colorway: str = ""
    size: str = ""
    subcategory: str = ""
    identification_details: list[str] = field(default_factory=list)
    alternative_possibilities: list[str] = field(default_factory=list)


# ── Market / pricing records ──────────────────────────────────────────────────

@dataclass
class PriceRange:
    new_with_tags: float
    new_without_tags: float
    like_new: float
    excellent: float
    very_good: float
    good: float
    acceptable: float
    average: float
    sample_size: int = 0
    date_range: str = "Last 30 days"


@dataclass
class MarketData:
    price_range: PriceRange
    competition: CompetitionLevel
    demand: DemandLevel
    trend: PriceStability = PriceStability.STABLE
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PricingRecommendation:
    recommended_price: float
    price_range: tuple[float, float]    # (min, max)
    competitive_price: float
    quick_sale_price: float
    max_profit_price: float
    strategy: PricingStrategy
    justification: list[str] = field(default_factory=list)


@dataclass
class MarketConfidence:
    overall: float
    identification: float
    condition: float
    pricing: float
    data_quality: str                   # excellent | good | fair | poor


@dataclass
class MarketIntelligence:
    demand: DemandLevel
    competition: CompetitionLevel
    price_stability: PriceStability
    seasonal_trends: list[str]
    market_insights: list[str]


@dataclass
class AuthenticationResult:
    is_authentic: bool
    confidence: float
    authenticity_factors: list[str]
    warnings: list[str]
    recommendations: list[str]


@dataclass
class PricingIntelligence:
    optimal_price: float
    price_range: tuple[float, float]    # (min, max)
    quick_sale_price: float
    max_profit_price: float
    pricing_strategy: PricingStrategy
    confidence_level: float
    market_factors: list[str]


# ── Top-level results ─────────────────────────────────────────────────────────

@dataclass
class AnalysisResult:
    identification: PrecisionIdentification
    condition: EbayCondition
    market_data: MarketData
    pricing: PricingRecommendation
    confidence: MarketConfidence
    suggested_title: str
    keywords: list[str]
    category_path: str
    description: str
    photography_checklist: list[str]
    image_count: int
    provider_name: str = ""             # e.g. "openai/gpt-4o"; empty for barcode-only lookups
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def realistic_price(self) -> float:
        return self.pricing.recommended_price

    @property
    def product_name(self) -> str:
        return self.identification.exact_model_name


@dataclass
class ProspectAnalysis:
    identification: PrecisionIdentification
    analysis: AnalysisResult
    max_buy_price: float
    target_buy_price: float
    break_even_price: float
    expected_roi: float                 # percent
    recommendation: ProspectDecision
    confidence: MarketConfidence
