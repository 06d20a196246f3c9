"""Custom exceptions for classification provider operations."""


class ProviderAPIError(Exception):
    """Raised when a provider call fails or returns a non-success status."""
    pass


class ProviderConfigError(Exception):
    """Raised when provider configuration is invalid."""
    pass
