"""Exception hierarchy for the desktop OAuth 2.0 PKCE flow.

Provides specific exception types for different failure modes so callers can
tell fatal failures from ones worth retrying.
"""

from __future__ import annotations


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.0 related errors."""

    retryable: bool = False


class ConfigurationError(OAuth2Error):
    """Raised when client configuration is missing or malformed."""

    pass


class EntropySourceError(OAuth2Error):
    """Raised when the operating system's secure random source is unavailable.

    There is no fallback to non-cryptographic randomness.
    """

    pass


class PKCEError(OAuth2Error):
    """Raised when generated PKCE parameters violate RFC 7636 bounds."""

    pass


class FlowStateError(OAuth2Error):
    """Raised when a flow operation is attempted out of order."""

    pass


class PortAllocationError(OAuth2Error):
    """Raised when a loopback port cannot be allocated or bound."""

    retryable = True


class CallbackTimeoutError(OAuth2Error):
    """Raised when no browser redirect arrives before the deadline."""

    retryable = True


class CallbackListenerError(OAuth2Error):
    """Raised when the loopback listener stops before a redirect arrives."""

    retryable = True


class CallbackValidationError(OAuth2Error):
    """Raised when the captured redirect cannot be used for token exchange."""

    pass


class ProviderError(CallbackValidationError):
    """Raised when the identity provider reports an error in the redirect.

    Not retryable without the user authorizing again.
    """

    def __init__(
        self,
        error: str,
        error_description: str | None = None,
        error_uri: str | None = None,
    ) -> None:
        self.error = error
        self.error_description = error_description
        self.error_uri = error_uri

        message = f"Authorization failed: {error}"
        if error_description:
            message += f" - {error_description}"
        if error_uri:
            message += f" (see {error_uri})"
        super().__init__(message)


class StateMismatchError(CallbackValidationError):
    """Raised when the callback state is missing or does not match.

    This indicates either a CSRF attempt or a stale or duplicate callback.
    """

    pass


class MissingCodeError(CallbackValidationError):
    """Raised when the callback carries no authorization code."""

    pass


class TokenExchangeError(OAuth2Error):
    """Raised when exchanging the authorization code for tokens fails."""

    pass


class TokenEndpointError(TokenExchangeError):
    """Raised when the token endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Token endpoint returned {status_code}: {body}")


class TransportError(TokenExchangeError):
    """Raised on network or TLS failure while talking to the token endpoint."""

    retryable = True

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"HTTP error during token exchange: {cause}")
