"""Build gateways from model config entries, keyed by SDK."""

import logging

from config.config_loader import AppConfig, ModelConfig
from roundtable.providers.anthropic import AnthropicProvider
from roundtable.providers.base import ModelGateway
from roundtable.providers.gemini import GeminiProvider
from roundtable.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

GATEWAY_CLASSES: dict[str, type[ModelGateway]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "genai": GeminiProvider,
}


def build_gateway(config: ModelConfig) -> ModelGateway:
    """Instantiate the gateway for one model entry.

    Raises:
        ValueError: Unknown SDK name.
        ProviderError: Missing API key.
    """
    try:
        gateway_cls = GATEWAY_CLASSES[config.sdk]
    except KeyError:
        raise ValueError(f"Unknown sdk '{config.sdk}' for provider '{config.name}'") from None
    return gateway_cls(config)


def build_available_gateways(config: AppConfig) -> dict[str, ModelGateway]:
    """Build every provider that has an API key. Returns dict keyed by name."""
    gateways: dict[str, ModelGateway] = {}
    for name in sorted(config.available_providers):
        try:
            gateways[name] = build_gateway(config.models[name])
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return gateways
