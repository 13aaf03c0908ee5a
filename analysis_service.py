"""
analysis_service.py — the façade the front-end talks to.

Wraps the provider manager (identification), the OCR / colour helpers and the
fixed-ratio builders in pricing.py behind one object that also publishes
progress. Every analysis operation returns its result, or None after the
failure has been logged through handle_analysis_error().

Progress state:
  is_analyzing       True while an analysis is in flight
  analysis_progress  0.0 … 1.0  (current step / total_steps)
  current_step       human-readable status line
  total_steps        8

Listeners registered with subscribe() receive a snapshot on every change.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import colors
import config
import ocr
import pricing
from errors import AnalysisError, AnalysisTimeout, NoImagesProvided
from images import process_images_for_analysis
from models import (
    AnalysisResult,
    AuthenticationResult,
    CompetitionLevel,
    DemandLevel,
    EbayCondition,
    MarketData,
    MarketIntelligence,
    PrecisionIdentification,
    PriceStability,
    PricingIntelligence,
    ProspectAnalysis,
)
from providers.base import ProviderResult
from providers.manager import analyse_images

logger = logging.getLogger(__name__)

TOTAL_STEPS = 8

T = TypeVar("T")


@dataclass
class AnalysisProgress:
    is_analyzing: bool = False
    analysis_progress: float = 0.0
    current_step: str = ""
    total_steps: int = TOTAL_STEPS


ProgressListener = Callable[[AnalysisProgress], None]


class ResellAnalysisService:

    def __init__(self) -> None:
        self._progress = AnalysisProgress()
        self._listeners: list[ProgressListener] = []
        # Raw provider result behind the most recent successful analysis
        self.last_provider_result: Optional[ProviderResult] = None
        self.last_error: Optional[AnalysisError] = None

    # ── Progress state ────────────────────────────────────────────────────────

    @property
    def is_analyzing(self) -> bool:
        return self._progress.is_analyzing

    @property
    def analysis_progress(self) -> float:
        return self._progress.analysis_progress

    @property
    def current_step(self) -> str:
        return self._progress.current_step

    @property
    def total_steps(self) -> int:
        return self._progress.total_steps

    def snapshot(self) -> AnalysisProgress:
        return dataclasses.replace(self._progress)

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a progress listener. Returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Progress listener %r raised", listener)

    def _update(self, step: int, message: str) -> None:
        self._progress.is_analyzing = True
        self._progress.analysis_progress = step / self._progress.total_steps
        self._progress.current_step = message
        self._publish()

    def _reset(self) -> None:
        self.last_error = None
        self.last_provider_result = None

    def _finish(self, message: str) -> None:
        self._progress.is_analyzing = False
        self._progress.analysis_progress = 1.0
        self._progress.current_step = message
        self._publish()

    # ── Error handling ────────────────────────────────────────────────────────

    def handle_analysis_error(self, error: AnalysisError) -> None:
        """Log the failure, reset the progress flags and yield an empty result."""
        logger.error("Analysis failed: %s", error)
        self.last_error = error
        self._progress.is_analyzing = False
        self._progress.analysis_progress = 0.0
        self._progress.current_step = f"Analysis failed: {error}"
        self._publish()
        return None

    # ── Core pipeline ─────────────────────────────────────────────────────────

    async def _identify(
        self,
        images: list[bytes],
        context_hint: Optional[str] = None,
    ) -> tuple[ProviderResult, int]:
        """Return the winning provider result and how many photos survived decoding."""
        if not images:
            raise NoImagesProvided()

        self._update(1, "Processing images...")
        prepared = await asyncio.to_thread(process_images_for_analysis, images)
        if not prepared:
            raise NoImagesProvided("none of the images could be decoded")

        self._update(2, "Identifying product with AI vision...")
        try:
            winner, all_results = await asyncio.wait_for(
                analyse_images(prepared, mode=config.VISION_MODE, context_hint=context_hint),
                timeout=config.ANALYSIS_TIMEOUT_SECS,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("No provider answer within %gs", config.ANALYSIS_TIMEOUT_SECS)
            raise AnalysisTimeout() from exc

        logger.info(
            "Identified %r via %s (%d provider result(s))",
            winner.identification.exact_model_name,
            winner.provider_name,
            len(all_results),
        )
        self.last_provider_result = winner
        return winner, len(prepared)

    async def _analyse(
        self,
        images: list[bytes],
        context_hint: Optional[str] = None,
    ) -> AnalysisResult:
        winner, image_count = await self._identify(images, context_hint)

        self._update(3, "Estimating market value...")
        result = pricing.build_analysis(
            winner.identification,
            image_count=image_count,
            provider_name=winner.provider_name,
        )

        self._update(7, "Finalizing analysis...")
        return result

    async def _run(self, operation: Awaitable[T]) -> Optional[T]:
        """
        Await one analysis operation. Success publishes the final step; any
        failure, expected or not, ends in handle_analysis_error() and None.
        """
        self._reset()
        try:
            result = await operation
        except AnalysisError as exc:
            return self.handle_analysis_error(exc)
        except Exception as exc:
            logger.exception("Unexpected error during analysis")
            return self.handle_analysis_error(AnalysisError(str(exc) or type(exc).__name__))
        self._finish("Analysis complete!")
        return result

    # ── Public operations ─────────────────────────────────────────────────────

    async def analyze_item(self, images: list[bytes]) -> Optional[AnalysisResult]:
        """Full identification + pricing for a photographed item."""
        return await self._run(self._analyse(images))

    async def analyze_for_prospecting(
        self,
        images: list[bytes],
        category: Optional[str] = None,
    ) -> Optional[ProspectAnalysis]:
        """
        Buy/pass evaluation while sourcing. The optional category the user is
        shopping for is passed to the model as a hint.
        """
        hint = f"Sourcing category: {category}" if category else None

        async def _prospect() -> ProspectAnalysis:
            return pricing.build_prospect(await self._analyse(images, hint))

        return await self._run(_prospect())

    async def analyze_barcode(
        self,
        barcode: str,
        images: Optional[list[bytes]] = None,
    ) -> Optional[AnalysisResult]:
        """
        With photos: a full analysis with the barcode handed to the model.
        Without photos: a barcode-only lookup built from canned values.
        """
        if images:
            return await self._run(self._analyse(images, f"Barcode/UPC: {barcode}"))

        async def _lookup() -> AnalysisResult:
            self._update(1, f"Looking up barcode {barcode}...")
            return pricing.build_analysis(pricing.barcode_identification(barcode), image_count=0)

        return await self._run(_lookup())

    async def lookup_barcode_for_prospecting(self, barcode: str) -> Optional[ProspectAnalysis]:
        analysis = await self.analyze_barcode(barcode)
        if analysis is None:
            return None
        return pricing.build_prospect(analysis)

    # ── Image helpers ─────────────────────────────────────────────────────────

    async def process_images_for_analysis(self, images: list[bytes]) -> list[bytes]:
        return await asyncio.to_thread(process_images_for_analysis, images)

    async def extract_text_from_images(self, images: list[bytes]) -> list[str]:
        return await ocr.extract_text_from_images(images)

    async def detect_brands(self, images: list[bytes]) -> list[str]:
        return await ocr.detect_brands(images)

    async def detect_colors(self, images: list[bytes]) -> list[str]:
        return await asyncio.to_thread(colors.detect_colors, images)

    # ── Static builders ───────────────────────────────────────────────────────

    def get_market_intelligence(self, product: PrecisionIdentification) -> MarketIntelligence:
        return MarketIntelligence(
            demand=DemandLevel.MEDIUM,
            competition=CompetitionLevel.MODERATE,
            price_stability=PriceStability.STABLE,
            seasonal_trends=[],
            market_insights=["Popular item with steady demand", "Good profit potential"],
        )

    def authenticate_product(
        self,
        images: list[bytes],
        identification: PrecisionIdentification,
    ) -> AuthenticationResult:
        # No authentication model exists; every item gets the same verdict.
        return AuthenticationResult(
            is_authentic=True,
            confidence=0.85,
            authenticity_factors=["Brand markings consistent", "Construction quality good"],
            warnings=[],
            recommendations=["Get professional authentication for high-value items"],
        )

    def get_pricing_recommendations(
        self,
        identification: PrecisionIdentification,
        condition: EbayCondition,
        market_data: MarketData,
    ) -> PricingIntelligence:
        return pricing.pricing_intelligence(market_data.price_range.average, condition)
