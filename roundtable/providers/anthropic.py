"""Anthropic Claude provider using anthropic SDK with native async."""

import logging
import os
from collections.abc import AsyncIterator

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from roundtable.models import SamplingParams
from roundtable.providers.base import AgentProviderError, ModelGateway, ProviderError

logger = logging.getLogger(__name__)


class AnthropicProvider(ModelGateway):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _request(self, prompt: str, params: SamplingParams, system: str | None) -> dict:
        # No temperature: the Messages API on current SDKs rejects it.
        request = {
            "model": self._config.model,
            "max_tokens": params.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            request["system"] = system
        return request

    async def _complete(self, prompt: str, params: SamplingParams, system: str | None) -> str:
        response = await self._client.messages.create(**self._request(prompt, params, system))

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise AgentProviderError(self._config.name, "No text blocks in response")

        if response.usage:
            logger.debug(
                "Anthropic usage: %d tokens",
                response.usage.input_tokens + response.usage.output_tokens,
            )
        return "\n".join(text_blocks)

    async def _stream(self, prompt: str, params: SamplingParams, system: str | None) -> AsyncIterator[str]:
        # Leaving the context manager closes the HTTP response.
        async with self._client.messages.stream(**self._request(prompt, params, system)) as stream:
            async for text in stream.text_stream:
                if text:
                    yield text
