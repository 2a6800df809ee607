"""Gemini provider using google-genai SDK with native async."""

import logging
import os
from collections.abc import AsyncIterator

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from roundtable.models import SamplingParams
from roundtable.providers.base import AgentProviderError, ModelGateway, ProviderError

logger = logging.getLogger(__name__)


class GeminiProvider(ModelGateway):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _generation_config(self, params: SamplingParams, system: str | None) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(
            max_output_tokens=params.max_tokens,
            temperature=params.temperature,
            system_instruction=system,
        )

    async def _complete(self, prompt: str, params: SamplingParams, system: str | None) -> str:
        response = await self._client.aio.models.generate_content(
            model=self._config.model,
            contents=prompt,
            config=self._generation_config(params, system),
        )
        if not response.text:
            raise AgentProviderError(self._config.name, "Empty response text")
        if response.usage_metadata:
            logger.debug("Gemini usage: %s tokens", response.usage_metadata.total_token_count)
        return response.text

    async def _stream(self, prompt: str, params: SamplingParams, system: str | None) -> AsyncIterator[str]:
        stream = await self._client.aio.models.generate_content_stream(
            model=self._config.model,
            contents=prompt,
            config=self._generation_config(params, system),
        )
        try:
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        finally:
            await stream.aclose()
