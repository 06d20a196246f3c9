"""OpenAI-compatible chat completions provider."""

import time
from typing import Dict, Tuple

from openai import AsyncOpenAI
from openai import APIError

from ..config import ProviderConfig
from .base import AIProvider
from .exceptions import ProviderAPIError

_COMPLETIONS_SUFFIX = "/chat/completions"


def base_url_from_endpoint(endpoint: str) -> str:
    """Turn a full chat-completions endpoint into the client base URL."""
    url = endpoint.rstrip('/')
    if url.endswith(_COMPLETIONS_SUFFIX):
        url = url[:-len(_COMPLETIONS_SUFFIX)]
    return url


class OpenAIProvider(AIProvider):
    """OpenAI API provider (any endpoint speaking the chat completions protocol)."""

    def __init__(self, provider_id: str, config: ProviderConfig):
        """
        Initialize OpenAI provider.

        Args:
            provider_id: Unique identifier for this provider
            config: Provider configuration
        """
        super().__init__(provider_id, config)

        # Single attempt per request: SDK retries are disabled
        self.client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=base_url_from_endpoint(config.endpoint),
            timeout=config.timeout,
            max_retries=0
        )
        self.model = config.model

    async def complete_async(
        self,
        system_prompt: str,
        prompt: str
    ) -> Tuple[str, Dict[str, int]]:
        """
        Send a chat completion request.

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
            response = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt}
                ]
            )
        except APIError as e:
            self.metrics.record_failure(str(e))
            raise ProviderAPIError(f"OpenAI API error: {e}")
        except Exception as e:
            self.metrics.record_failure(str(e))
            raise ProviderAPIError(f"Unexpected error calling OpenAI API: {e}")

        if not response.choices:
            self.metrics.record_failure("empty choices")
            raise ProviderAPIError("OpenAI API returned no choices")

        text = response.choices[0].message.content or ""

        usage = {
            "input_tokens": response.usage.prompt_tokens if response.usage else 0,
            "output_tokens": response.usage.completion_tokens if response.usage else 0
        }
        self.metrics.record_success(
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"]
        )

        return text, usage
