"""
Anthropic vision provider — supports claude-3-5-sonnet and claude-3-haiku.

Pricing (as of early 2025):
  claude-3-5-sonnet-20241022: $3.00 / 1M input,  $15.00 / 1M output
                               Images: ~1600 tokens per standard image
  claude-3-haiku-20240307:    $0.25 / 1M input,  $1.25  / 1M output
                               Images: ~1600 tokens per standard image

Claude is good at reading small print on care labels and size tags, which
is where style codes usually hide.
"""
from __future__ import annotations

import base64
import time
import logging
from typing import Optional

import anthropic

import config
from errors import AnalysisTimeout, NetworkError
from providers.base import (
    SYSTEM_PROMPT, build_user_prompt, detect_media_type,
    ProviderResult, VisionProvider, parse_identification,
)

logger = logging.getLogger(__name__)

_ANTHROPIC_IMAGE_TOKENS = 1600  # approximate tokens per image for Claude


class AnthropicProvider(VisionProvider):

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-20241022"):
        self.name = "anthropic"
        self.model_id = model
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

        _pricing = {
            "claude-3-5-sonnet-20241022": (0.003,  0.015),
            "claude-3-haiku-20240307":    (0.00025, 0.00125),
        }
        self.cost_per_1k_input_tokens, self.cost_per_1k_output_tokens = _pricing.get(
            model, (0.003, 0.015)
        )
        self.cost_per_image = _ANTHROPIC_IMAGE_TOKENS / 1000 * self.cost_per_1k_input_tokens

    async def identify(
        self,
        images: list[bytes],
        context_hint: Optional[str] = None,
    ) -> ProviderResult:
        images = images[: config.MAX_IMAGES_PER_REQUEST]
        content: list[dict] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": detect_media_type(image_bytes),
                    "data": base64.b64encode(image_bytes).decode(),
                },
            }
            for image_bytes in images
        ]
        content.append({"type": "text", "text": build_user_prompt(context_hint)})

        t0 = time.monotonic()
        try:
            message = await self._client.messages.create(
                model=self.model_id,
                max_tokens=config.VISION_MAX_TOKENS,
                temperature=config.VISION_TEMPERATURE,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APITimeoutError as exc:
            raise AnalysisTimeout() from exc
        except anthropic.APIError as exc:
            raise NetworkError(f"[{self.full_name}] {exc}") from exc

        latency_ms = int((time.monotonic() - t0) * 1000)
        raw = message.content[0].text if message.content else None
        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens

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
