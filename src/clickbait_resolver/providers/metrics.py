"""Request accounting for classification providers."""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class ProviderMetrics:
    """Counts classification requests and tokens for one provider.

    One request corresponds to one headline batch.
    """
    provider_id: str
    requests: int = 0
    failures: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    latency_seconds: float = 0.0
    last_error: Optional[str] = None

    def record_success(self, latency: float, input_tokens: int, output_tokens: int) -> None:
        self.requests += 1
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.latency_seconds += latency

    def record_failure(self, error: str) -> None:
        self.requests += 1
        self.failures += 1
        self.last_error = error

    def to_dict(self) -> Dict:
        """Snapshot for the processing report."""
        answered = self.requests - self.failures
        return {
            "provider_id": self.provider_id,
            "requests": self.requests,
            "failures": self.failures,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "mean_latency_seconds": round(self.latency_seconds / answered, 3) if answered else None,
            "last_error": self.last_error
        }
