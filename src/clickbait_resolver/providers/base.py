"""Abstract base class for classification providers."""

from abc import ABC, abstractmethod
from typing import Dict, Tuple

from ..config import ProviderConfig
from .metrics import ProviderMetrics


class AIProvider(ABC):
    """Abstract base class for chat-style model APIs."""

    def __init__(self, provider_id: str, config: ProviderConfig):
        """
        Initialize provider.

        Args:
            provider_id: Unique identifier for this provider instance
            config: Provider configuration
        """
        self.provider_id = provider_id
        self.config = config
        self.metrics = ProviderMetrics(provider_id)

    @abstractmethod
    async def complete_async(
        self,
        system_prompt: str,
        prompt: str
    ) -> Tuple[str, Dict[str, int]]:
        """
        Send one request and return the raw text of the reply.

        Exactly one attempt is made; callers decide what to do on failure.

        Args:
            system_prompt: Task instruction for the model
            prompt: User message with the request payload

        Returns:
            Tuple of (response_text, usage_dict)
            usage_dict contains 'input_tokens' and 'output_tokens'

        Raises:
            ProviderAPIError: If the call fails or returns a non-success status
        """
        pass

    def get_usage_stats(self) -> Dict:
        """Cumulative request and token counts for this provider."""
        return self.metrics.to_dict()
