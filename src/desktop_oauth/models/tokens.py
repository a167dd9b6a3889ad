"""Token exchange request and response models."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code token request parameters (RFC 6749 Section 4.1.3).

    Includes the PKCE code_verifier (RFC 7636). client_secret is always sent,
    even when empty, because some providers insist on the field.
    """

    token_endpoint: str
    code: str = field(repr=False)
    redirect_uri: str
    client_id: str
    code_verifier: str = field(repr=False)
    client_secret: str = field(default="", repr=False)
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for an application/x-www-form-urlencoded request."""
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code_verifier": self.code_verifier,
        }


class TokenResponse(BaseModel):
    """Successful token endpoint response, passed through unmodified.

    The body is kept as received. Interpreting token fields is left to the
    consumer; payload() is a convenience for JSON bodies.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: str
    content_type: str | None = None

    def payload(self) -> dict[str, Any]:
        """Decode the body as a JSON object.

        Raises:
            ValueError: If the body is not a JSON object
        """
        data = json.loads(self.body)
        if not isinstance(data, dict):
            raise ValueError("Token response body is not a JSON object")
        return data
