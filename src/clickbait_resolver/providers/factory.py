"""Builds the configured classification provider."""

from typing import Optional

from ..config import ProviderConfig
from ..logger import get_logger
from .base import AIProvider
from .anthropic_provider import AnthropicProvider
from .exceptions import ProviderConfigError
from .openai_provider import OpenAIProvider


def create_provider(config: ProviderConfig) -> Optional[AIProvider]:
    """
    Create a provider instance from configuration.

    Args:
        config: Provider configuration

    Returns:
        Provider instance, or None when no credential is configured

    Raises:
        ProviderConfigError: If the provider type is unknown
    """
    logger = get_logger()

    if not config.has_credential:
        logger.info("No AI credential configured; batch classifier will run in simulation mode")
        return None

    provider_id = f"{config.provider_type}_classifier"

    if config.provider_type == "openai":
        provider = OpenAIProvider(provider_id, config)
    elif config.provider_type == "anthropic":
        provider = AnthropicProvider(provider_id, config)
    else:
        raise ProviderConfigError(f"Unknown provider type: {config.provider_type}")

    logger.info(
        f"Initialized provider: {provider_id} "
        f"(model: {config.model}, endpoint: {config.endpoint})"
    )
    return provider
