"""OpenAI provider using openai SDK with native async.

Also serves OpenAI-compatible hosts (xAI Grok, DeepSeek) through ``base_url``.
"""

import logging
import os
from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from roundtable.models import SamplingParams
from roundtable.providers.base import AgentProviderError, ModelGateway, ProviderError

logger = logging.getLogger(__name__)


def _messages(prompt: str, system: str | None) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": system}] if system else []
    messages.append({"role": "user", "content": prompt})
    return messages


class OpenAIProvider(ModelGateway):
    """OpenAI chat completions via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def _complete(self, prompt: str, params: SamplingParams, system: str | None) -> str:
        response = await self._client.chat.completions.create(
            model=self._config.model,
            messages=_messages(prompt, system),
            temperature=params.temperature,
            max_tokens=params.max_tokens,
        )
        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise AgentProviderError(self._config.name, "Empty response content")
        if response.usage:
            logger.debug("OpenAI usage: %s tokens", response.usage.total_tokens)
        return choice.message.content

    async def _stream(self, prompt: str, params: SamplingParams, system: str | None) -> AsyncIterator[str]:
        stream = await self._client.chat.completions.create(
            model=self._config.model,
            messages=_messages(prompt, system),
            temperature=params.temperature,
            max_tokens=params.max_tokens,
            stream=True,
        )
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        finally:
            await stream.close()
