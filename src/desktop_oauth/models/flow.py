"""Authorization flow models.

Contains the authorization request and the parameters captured from the
single loopback redirect.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import quote, urlencode


def build_authorization_url(
    endpoint: str,
    client_id: str,
    redirect_uri: str,
    scope: str,
    code_challenge: str,
    state: str,
) -> str:
    """Compose the authorization URL the user visits in their browser.

    Every value is percent-encoded as a query component, with spaces
    encoded as ``%20`` rather than ``+``.
    """
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "state": state,
    }
    separator = "&" if "?" in endpoint else "?"
    return f"{endpoint}{separator}{urlencode(params, quote_via=quote, safe='')}"


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for the PKCE flow."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    scope: str
    code_challenge: str = field(repr=False)
    state: str = field(repr=False)

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        return build_authorization_url(
            self.authorization_endpoint,
            self.client_id,
            self.redirect_uri,
            self.scope,
            self.code_challenge,
            self.state,
        )


@dataclass(frozen=True)
class CallbackResult:
    """Query parameters captured from the loopback redirect."""

    code: str | None = field(default=None, repr=False)
    state: str | None = field(default=None, repr=False)
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> CallbackResult:
        """Build from a mapping of query parameter names to values."""
        return cls(
            code=params.get("code"),
            state=params.get("state"),
            error=params.get("error"),
            error_description=params.get("error_description"),
            error_uri=params.get("error_uri"),
        )

    def is_success(self) -> bool:
        return not self.is_error() and bool(self.code)

    def is_error(self) -> bool:
        return bool(self.error)
