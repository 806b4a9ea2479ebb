from __future__ import annotations


class TasteDiscoveryError(Exception):
    """Base class for every error raised by the service."""


class ClientInputError(TasteDiscoveryError):
    """The request is missing a required field. Never retried."""


class ProviderFailure(TasteDiscoveryError):
    """An external provider could not produce a usable answer.

    Stages catch this family and fall through to the next tier.
    """

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderUnauthenticated(ProviderFailure):
    """No credential configured for the provider. Raised before any I/O."""


class ProviderTimeout(ProviderFailure):
    """The provider did not answer within its budget."""


class ProviderError(ProviderFailure):
    """Non-2xx response, transport failure or malformed payload."""


class ParseError(TasteDiscoveryError):
    """Generated text could not be decoded as a JSON array of places."""


class PipelineTimeout(TasteDiscoveryError):
    """The whole recommendation pipeline exceeded its deadline."""
