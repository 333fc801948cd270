"""
Exception hierarchy for the LLM relay.

Three failure categories reach callers of the router:
- NoProviderAvailable: no configured provider has a credential
- ConfigurationError: deployment inconsistency (unknown adapter, bad config file)
- ProviderCommunicationError: transport / HTTP / body failure after the
  single fallback attempt

Token-usage parsing failures and malformed streaming frames never surface
here; they degrade silently inside the adapters and the stream decoder.

Usage:
    from relay.exceptions import ProviderCommunicationError

    try:
        response = await router.send_request(request)
    except ProviderCommunicationError as e:
        logger.error("llm_failed", extra={"provider": e.provider})
        raise
"""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """
    Base exception for all relay errors.

    Catch `RelayError` to handle any failure raised by this package.
    """

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


# ── Selection Errors ──────────────────────────────────────────────


class NoProviderAvailable(RelayError):
    """
    Raised when the registry has no provider with a credential.

    Also raised by the fallback attempt of an explicit-provider request
    when nothing is left to fall back to.
    """

    def __init__(
        self,
        message: str = "No LLM provider is available. Check the API keys.",
        *,
        requested_provider: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.requested_provider = requested_provider


# ── Configuration Errors ──────────────────────────────────────────


class ConfigurationError(RelayError):
    """
    Raised when provider configuration is inconsistent.

    Examples:
    - A registry provider has no matching adapter
    - The YAML config file is malformed or fails validation

    Never retried: a second provider will not fix a broken deployment.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        config_path: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.provider = provider
        self.config_path = config_path


# ── Transport Errors ──────────────────────────────────────────────


class ProviderCommunicationError(RelayError):
    """
    Raised when talking to a provider failed and no fallback remains.

    The underlying exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details=details)
        self.provider = provider
        self.status_code = status_code
