"""Anthropic Claude API provider implementation."""

import time
from typing import Dict, Tuple

from anthropic import AsyncAnthropic
from anthropic import APIError

from ..config import ProviderConfig
from .base import AIProvider
from .exceptions import ProviderAPIError

_MESSAGES_SUFFIX = "/v1/messages"


class AnthropicProvider(AIProvider):
    """Anthropic Claude API provider."""

    def __init__(self, provider_id: str, config: ProviderConfig):
        """
        Initialize Anthropic provider.

        Args:
            provider_id: Unique identifier for this provider
            config: Provider configuration
        """
        super().__init__(provider_id, config)

        client_kwargs = {
            "api_key": config.api_key,
            "timeout": config.timeout,
            "max_retries": 0
        }
        endpoint = config.endpoint.rstrip('/')
        if endpoint.endswith(_MESSAGES_SUFFIX):
            client_kwargs["base_url"] = endpoint[:-len(_MESSAGES_SUFFIX)]

        self.client = AsyncAnthropic(**client_kwargs)
        self.model = config.model

    async def complete_async(
        self,
        system_prompt: str,
        prompt: str
    ) -> Tuple[str, Dict[str, int]]:
        """
        Send a messages request to Claude.

        Args:
            system_prompt: Task instruction
            prompt: User message

        Returns:
            Tuple of (response_text, usage_dict)

        Raises:
            ProviderAPIError: If the API call fails
        """
        start_time = time.time()

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}]
            )
        except APIError as e:
            self.metrics.record_failure(str(e))
            raise ProviderAPIError(f"Anthropic API error: {e}")
        except Exception as e:
            self.metrics.record_failure(str(e))
            raise ProviderAPIError(f"Unexpected error calling Anthropic API: {e}")

        text = "".join(
            getattr(block, "text", "") for block in response.content
        )

        usage = {
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens
        }
        self.metrics.record_success(
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"]
        )

        return text, usage
