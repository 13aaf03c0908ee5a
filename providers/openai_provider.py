"""
OpenAI vision provider — supports gpt-4o and gpt-4o-mini.

Pricing (as of early 2025):
  gpt-4o:       $5.00 / 1M input tokens,  $15.00 / 1M output tokens
                + image tiles: each 512×512 tile = 170 tokens (~$0.00085/tile)
                A 1024×1024 product photo at high detail ≈ 765 input tokens
  gpt-4o-mini:  $0.15 / 1M input tokens,  $0.60 / 1M output tokens
                Image tiles same count but much cheaper per token
"""
from __future__ import annotations

import base64
import time
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

import config
from errors import AnalysisTimeout, NetworkError
from providers.base import (
    SYSTEM_PROMPT, build_user_prompt, detect_media_type,
    ProviderResult, VisionProvider, parse_identification,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(VisionProvider):

    def __init__(self, api_key: str, model: str = "gpt-4o"):
        self.name = "openai"
        self.model_id = model
        self._client = AsyncOpenAI(api_key=api_key)

        # Pricing per 1k tokens
        _pricing = {
            "gpt-4o":      (0.005,  0.015),
            "gpt-4o-mini": (0.00015, 0.0006),
        }
        self.cost_per_1k_input_tokens, self.cost_per_1k_output_tokens = _pricing.get(
            model, (0.005, 0.015)
        )
        # High-detail image processing: ~765 tokens for a typical product photo
        self.cost_per_image = 765 / 1000 * self.cost_per_1k_input_tokens

    async def identify(
        self,
        images: list[bytes],
        context_hint: Optional[str] = None,
    ) -> ProviderResult:
        images = images[: config.MAX_IMAGES_PER_REQUEST]
        content: list[dict] = [{"type": "text", "text": build_user_prompt(context_hint)}]
        for image_bytes in images:
            b64 = base64.b64encode(image_bytes).decode()
            content.append({
                "type": "image_url",
                "image_url": {
                    "url": f"data:{detect_media_type(image_bytes)};base64,{b64}",
                    "detail": "high",
                },
            })

        t0 = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self.model_id,
                max_tokens=config.VISION_MAX_TOKENS,
                temperature=config.VISION_TEMPERATURE,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": content},
                ],
            )
        except openai.APITimeoutError as exc:
            raise AnalysisTimeout() from exc
        except openai.APIError as exc:
            raise NetworkError(f"[{self.full_name}] {exc}") from exc

        latency_ms = int((time.monotonic() - t0) * 1000)
        raw = response.choices[0].message.content if response.choices else None
        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 800 * len(images)
        output_tokens = usage.completion_tokens if usage else 300

        identification = parse_identification(raw, self.full_name)
        cost = self.estimate_cost(input_tokens, output_tokens, len(images))

        return ProviderResult(
            provider_name=self.full_name,
            model_id=self.model_id,
            identification=identification,
            latency_ms=latency_ms,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=cost,
        )
