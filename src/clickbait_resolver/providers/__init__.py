"""Classification provider abstraction layer."""

from .exceptions import ProviderAPIError, ProviderConfigError
from .metrics import ProviderMetrics
from .base import AIProvider
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider
from .factory import create_provider

__all__ = [
    "ProviderAPIError",
    "ProviderConfigError",
    "ProviderMetrics",
    "AIProvider",
    "AnthropicProvider",
    "OpenAIProvider",
    "create_provider",
]
