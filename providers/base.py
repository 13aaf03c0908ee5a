"""
Shared prompt, result type, response parsing and base class for all vision providers.
"""
from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from errors import ParseError
from models import IdentificationMethod, PrecisionIdentification, ProductCategory

logger = logging.getLogger(__name__)

# ── Prompt (shared across all providers) ──────────────────────────────────────

SYSTEM_PROMPT = """You are an expert product identifier for resale sellers.
Analyse the image(s) and identify the EXACT product with maximum accuracy.

Focus on:
1. EXACT model name, style code, SKU, or product number
2. Brand identification from logos, tags, labels
3. Specific product line and variant details
4. Size information from tags or labels
5. Color/colorway descriptions
6. Any text, numbers, or codes visible on the product

Return ONLY a valid JSON object — no markdown, no prose:
{
  "exactModelName":           "most specific product name possible",
  "brand":                    "exact brand name",
  "productLine":              "product line if applicable",
  "styleVariant":             "specific style variant",
  "styleCode":                "any style/SKU/model code visible",
  "colorway":                 "specific color description",
  "size":                     "size if visible on tags/labels",
  "category":                 "sneakers|clothing|electronics|accessories|home|collectibles|books|toys|sports|other",
  "subcategory":              "most specific subcategory",
  "confidence":               0.95,
  "identificationDetails":    ["features, text or codes that helped identify"],
  "alternativePossibilities": ["other very similar products if uncertain"]
}

Rules:
- Be specific: "Nike Air Force 1 Low '07 White", not "Nike shoes"
- Include style codes such as "CW2288-111" when visible
- If a field is not found or not applicable, use "" not null
"""

USER_PROMPT = (
    "Identify this product with maximum precision. Look for text, style codes, "
    "SKUs, brand logos, size labels and distinctive design elements. "
    "Return ONLY the JSON object."
)


def build_user_prompt(context_hint: Optional[str] = None) -> str:
    """Append caller-supplied context (barcode, sourcing category) to the user prompt."""
    if not context_hint:
        return USER_PROMPT
    return f"{USER_PROMPT}\n\nAdditional context: {context_hint}"


# ── Shared result type ─────────────────────────────────────────────────────────

@dataclass
class ProviderResult:
    """Result from a single vision provider."""
    provider_name: str          # e.g. "openai/gpt-4o"
    model_id: str
    identification: PrecisionIdentification
    latency_ms: int
    input_tokens: int
    output_tokens: int
    cost_usd: float

    # internal quality score for ranking (higher = better)
    quality_score: float = field(init=False)

    def __post_init__(self) -> None:
        ident = self.identification
        completeness = (
            (1 if ident.exact_model_name and ident.exact_model_name != "Unknown Product" else 0)
            + (1 if ident.brand else 0)
            + (0.5 if ident.style_code else 0)
            + (0.25 if ident.size else 0)
            + (0.25 if ident.colorway else 0)
        )
        self.quality_score = max(0.0, min(ident.confidence, 1.0)) * completeness

    @property
    def cost_str(self) -> str:
        if self.cost_usd < 0.001:
            return f"${self.cost_usd * 1000:.3f}m"   # show in milli-dollars
        return f"${self.cost_usd:.4f}"


# ── Response parsing ──────────────────────────────────────────────────────────

def clean_json_text(raw: str) -> str:
    """Strip markdown fences and anything outside the outermost {...}."""
    text = re.sub(r"```(?:json)?", "", raw, flags=re.IGNORECASE)
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        text = text[start:end + 1]
    return text.strip()


def _as_str(value) -> str:
    return "" if value is None else str(value).strip()


def _as_str_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


def _as_confidence(value, default: float = 0.5) -> float:
    try:
        conf = float(value)
    except (TypeError, ValueError):
        return default
    # Some models answer 95 instead of 0.95
    if conf > 1:
        conf /= 100
    return max(0.0, min(conf, 1.0))


def identification_from_dict(data: dict) -> PrecisionIdentification:
    return PrecisionIdentification(
        exact_model_name=_as_str(data.get("exactModelName")) or "Unknown Product",
        brand=_as_str(data.get("brand")),
        category=ProductCategory.parse(data.get("category")),
        confidence=_as_confidence(data.get("confidence")),
        method=IdentificationMethod.VISUAL_AND_TEXT,
        product_line=_as_str(data.get("productLine")),
        style_variant=_as_str(data.get("styleVariant")),
        style_code=_as_str(data.get("styleCode")),
        colorway=_as_str(data.get("colorway")),
        size=_as_str(data.get("size")),
        subcategory=_as_str(data.get("subcategory")),
        identification_details=_as_str_list(data.get("identificationDetails")),
        alternative_possibilities=_as_str_list(data.get("alternativePossibilities")),
    )


_PARTIAL_FIELDS = ("exactModelName", "brand", "size", "colorway", "category")


def parse_partial_identification(text: str) -> Optional[PrecisionIdentification]:
    """
    Pull the key string fields out of a malformed JSON answer with regexes.
    Returns None when not a single field can be recovered.
    """
    found: dict[str, str] = {}
    for key in _PARTIAL_FIELDS:
        m = re.search(rf'"{key}"\s*:\s*"([^"]+)"', text)
        if m:
            found[key] = m.group(1).strip()
    if not found:
        return None

    return PrecisionIdentification(
        exact_model_name=found.get("exactModelName", "Unknown Product"),
        brand=found.get("brand", ""),
        category=ProductCategory.parse(found.get("category")),
        confidence=0.7,
        method=IdentificationMethod.VISUAL_ONLY,
        colorway=found.get("colorway", ""),
        size=found.get("size", ""),
        identification_details=["Extracted from partial JSON response"],
    )


def parse_identification(raw: Optional[str], provider_name: str) -> PrecisionIdentification:
    """
    Turn a model answer into a PrecisionIdentification.
    Full JSON first, then regex salvage. Raises ParseError when both fail.
    """
    if not raw or not raw.strip():
        raise ParseError(f"[{provider_name}] empty response")

    text = clean_json_text(raw)
    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("top-level JSON value is not an object")
        return identification_from_dict(data)
    except ValueError as exc:
        # json.JSONDecodeError is a ValueError subclass
        logger.warning("[%s] Non-JSON response, trying partial parse: %s", provider_name, raw[:300])
        partial = parse_partial_identification(text)
        if partial is not None:
            return partial
        raise ParseError(f"[{provider_name}] {exc}") from exc


def detect_media_type(image_bytes: bytes) -> str:
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"GIF8":
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


# ── Abstract base ──────────────────────────────────────────────────────────────

class VisionProvider(ABC):
    """Base class all vision providers must implement."""

    name: str           # e.g. "openai"
    model_id: str       # e.g. "gpt-4o"
    cost_per_1k_input_tokens: float
    cost_per_1k_output_tokens: float
    # Extra per-image cost for vision (input image processing flat fee or per-tile)
    cost_per_image: float = 0.0

    @abstractmethod
    async def identify(
        self,
        images: list[bytes],
        context_hint: Optional[str] = None,
    ) -> ProviderResult:
        """Run vision inference on one or more photos of the same item."""
        ...

    @property
    def full_name(self) -> str:
        return f"{self.name}/{self.model_id}"

    def estimate_cost(self, input_tokens: int, output_tokens: int, n_images: int = 1) -> float:
        return (
            self.cost_per_image * n_images
            + input_tokens / 1000 * self.cost_per_1k_input_tokens
            + output_tokens / 1000 * self.cost_per_1k_output_tokens
        )
