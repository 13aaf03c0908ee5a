"""
Google Gemini vision provider — uses the google-genai SDK (v1 API).

Pricing (as of early 2025):
  gemini-1.5-pro:        $3.50 / 1M input,  $10.50 / 1M output
                          Images: $0.001315 per image
  gemini-1.5-flash:      $0.075 / 1M input,  $0.30  / 1M output
                          Images: $0.00002 per image  ← extremely cheap
  gemini-2.0-flash:      $0.10  / 1M input,  $0.40  / 1M output
                          Images: $0.00004 per image
"""
from __future__ import annotations

import time
import logging
from typing import Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

import config
from errors import NetworkError
from providers.base import (
    SYSTEM_PROMPT, build_user_prompt, detect_media_type,
    ProviderResult, VisionProvider, parse_identification,
)

logger = logging.getLogger(__name__)

_PRICING: dict[str, tuple[float, float, float]] = {
    # model_id: ($/1k_input_tokens, $/1k_output_tokens, $/image)
    "gemini-1.5-pro":        (0.0035,   0.0105,  0.001315),
    "gemini-1.5-flash":      (0.000075, 0.0003,  0.00002),
    "gemini-2.0-flash":      (0.0001,   0.0004,  0.00004),
}


class GeminiProvider(VisionProvider):

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash"):
        self.name     = "google"
        self.model_id = model
        # Force the stable v1 API; v1beta doesn't expose gemini-1.5-* by bare name
        self._client  = genai.Client(api_key=api_key, http_options={"api_version": "v1"})

        rates = _PRICING.get(model, _PRICING["gemini-2.0-flash"])
        self.cost_per_1k_input_tokens  = rates[0]
        self.cost_per_1k_output_tokens = rates[1]
        self.cost_per_image            = rates[2]

    async def identify(
        self,
        images: list[bytes],
        context_hint: Optional[str] = None,
    ) -> ProviderResult:
        images = images[: config.MAX_IMAGES_PER_REQUEST]
        contents: list = [
            genai_types.Part.from_bytes(data=image_bytes, mime_type=detect_media_type(image_bytes))
            for image_bytes in images
        ]
        contents.append(build_user_prompt(context_hint))

        gen_config = genai_types.GenerateContentConfig(
            system_instruction=SYSTEM_PROMPT,
            temperature=config.VISION_TEMPERATURE,
            max_output_tokens=config.VISION_MAX_TOKENS,
        )

        t0 = time.monotonic()
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_id,
                contents=contents,
                config=gen_config,
            )
        except genai_errors.APIError as exc:
            raise NetworkError(f"[{self.full_name}] {exc}") from exc

        latency_ms = int((time.monotonic() - t0) * 1000)
        raw = response.text

        usage         = response.usage_metadata
        input_tokens  = getattr(usage, "prompt_token_count", None) or 800 * len(images)
        output_tokens = getattr(usage, "candidates_token_count", None) or 300

        identification = parse_identification(raw, self.full_name)
        cost = self.estimate_cost(input_tokens, output_tokens, len(images))

        return ProviderResult(
            provider_name  = self.full_name,
            model_id       = self.model_id,
            identification = identification,
            latency_ms     = latency_ms,
            input_tokens   = input_tokens,
            output_tokens  = output_tokens,
            cost_usd       = cost,
        )
