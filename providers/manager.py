"""
Provider Manager — initialises and runs the enabled vision providers.
Keys are read from key_store (DB → .env fallback) on every cold-start so that
changing a key with /setkey takes effect without restarting.

Modes:
  single:X  — run only provider named X (e.g. "single:openai/gpt-4o")
  best      — run all enabled providers in parallel, return highest quality_score winner
  cheapest  — run only the cheapest available provider

Per-model enable/disable via environment variables:
  ENABLE_GPT_4O=true/false                         (default true)
  ENABLE_GPT_4O_MINI=true/false                    (default true)
  ENABLE_CLAUDE_3_HAIKU_20240307=true/false        (default true)
  ENABLE_CLAUDE_3_5_SONNET_20241022=true/false     (default false)
  ENABLE_GEMINI_2_0_FLASH=true/false               (default true)
  ENABLE_GEMINI_1_5_PRO=true/false                 (default false)
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from errors import AnalysisError, AnalysisTimeout, ApiKeyMissing, NetworkError, ParseError
from providers.base import ProviderResult, VisionProvider

logger = logging.getLogger(__name__)

# Module-level cache, reset with clear_cache() when a key changes
_providers: dict[str, VisionProvider] = {}


def _model_enabled(env_key: str, default: bool = True) -> bool:
    """
    Check whether a specific model is enabled via an environment variable.
    Pass default=False to require explicit opt-in.
    """
    raw = os.getenv(env_key, "true" if default else "false")
    return raw.strip().lower() not in ("false", "0", "no")


async def _build_providers() -> dict[str, VisionProvider]:
    """
    Instantiate every provider whose API key is available (DB or .env)
    AND whose per-model toggle is enabled.
    Raises ApiKeyMissing when nothing could be loaded.
    """
    import key_store
    providers: dict[str, VisionProvider] = {}

    # ── OpenAI ────────────────────────────────────────────────────────────────
    openai_key = await key_store.get("openai_api_key")
    if openai_key:
        from providers.openai_provider import OpenAIProvider
        for model, env_flag in [
            ("gpt-4o-mini", "ENABLE_GPT_4O_MINI"),
            ("gpt-4o",      "ENABLE_GPT_4O"),
        ]:
            if _model_enabled(env_flag):
                p = OpenAIProvider(openai_key, model)
                providers[p.full_name] = p
                logger.info("Loaded provider: %s", p.full_name)
            else:
                logger.info("Skipped provider openai/%s (disabled by %s)", model, env_flag)

    # ── Anthropic ─────────────────────────────────────────────────────────────
    anthropic_key = await key_store.get("anthropic_api_key")
    if anthropic_key:
        from providers.anthropic_provider import AnthropicProvider
        for model, env_flag, default_on in [
            ("claude-3-haiku-20240307",    "ENABLE_CLAUDE_3_HAIKU_20240307",    True),
            # Sonnet requires a paid Anthropic tier; opt-in only.
            ("claude-3-5-sonnet-20241022", "ENABLE_CLAUDE_3_5_SONNET_20241022", False),
        ]:
            if _model_enabled(env_flag, default=default_on):
                p = AnthropicProvider(anthropic_key, model)
                providers[p.full_name] = p
                logger.info("Loaded provider: %s", p.full_name)
            else:
                logger.info("Skipped provider anthropic/%s (disabled by %s)", model, env_flag)

    # ── Google ────────────────────────────────────────────────────────────────
    google_key = await key_store.get("google_api_key")
    if google_key:
        from providers.gemini_provider import GeminiProvider
        for model, env_flag, default_on in [
            ("gemini-2.0-flash", "ENABLE_GEMINI_2_0_FLASH", True),
            ("gemini-1.5-pro",   "ENABLE_GEMINI_1_5_PRO",   False),
        ]:
            if _model_enabled(env_flag, default=default_on):
                p = GeminiProvider(google_key, model)
                providers[p.full_name] = p
                logger.info("Loaded provider: %s", p.full_name)
            else:
                logger.info("Skipped provider google/%s (disabled by %s)", model, env_flag)

    if not providers:
        raise ApiKeyMissing(
            "set OPENAI_API_KEY, ANTHROPIC_API_KEY or GOOGLE_API_KEY (or /setkey in the bot)"
        )

    return providers


async def get_providers() -> dict[str, VisionProvider]:
    global _providers
    if not _providers:
        _providers = await _build_providers()
    return _providers


def clear_cache() -> None:
    """Forget loaded providers so the next call re-reads keys."""
    global _providers
    _providers = {}


async def cheapest_provider() -> VisionProvider:
    providers = await get_providers()
    return min(
        providers.values(),
        key=lambda p: p.cost_per_image + p.cost_per_1k_input_tokens * 0.8,
    )


def _combined_error(errors: list[Exception]) -> AnalysisError:
    """Pick the error to surface when every provider failed."""
    if all(isinstance(e, ParseError) for e in errors):
        return ParseError("; ".join(e.message for e in errors))
    if all(isinstance(e, AnalysisTimeout) for e in errors):
        return AnalysisTimeout()
    return NetworkError("All vision providers failed: " + "; ".join(str(e) for e in errors))


# ── Core analysis function ────────────────────────────────────────────────────

async def analyse_images(
    images: list[bytes],
    mode: str = "best",
    context_hint: Optional[str] = None,
) -> tuple[ProviderResult, list[ProviderResult]]:
    """
    Identify the item shown in `images` using the requested mode.

    Returns:
        (winner, all_results)
    """
    providers = await get_providers()

    if mode == "cheapest":
        targets = [await cheapest_provider()]
    elif mode.startswith("single:"):
        name = mode[len("single:"):]
        if name not in providers:
            available = ", ".join(providers)
            raise ApiKeyMissing(f"Provider '{name}' not available. Available: {available}")
        targets = [providers[name]]
    else:
        targets = list(providers.values())

    errors: list[Exception] = []

    async def _safe_run(provider: VisionProvider) -> Optional[ProviderResult]:
        try:
            result = await provider.identify(images, context_hint)
            logger.info(
                "[%s] OK — %s (confidence=%.2f cost=%s latency=%dms)",
                provider.full_name,
                result.identification.exact_model_name,
                result.identification.confidence,
                result.cost_str,
                result.latency_ms,
            )
            return result
        except Exception as exc:
            logger.error("[%s] Failed: %s", provider.full_name, exc)
            errors.append(exc)
            return None

    raw_results = await asyncio.gather(*[_safe_run(p) for p in targets])
    all_results  = [r for r in raw_results if r is not None]

    if not all_results:
        raise _combined_error(errors)

    winner = max(all_results, key=lambda r: r.quality_score)
    return winner, all_results
