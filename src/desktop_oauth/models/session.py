"""The immutable state of one authorization attempt."""

from __future__ import annotations

from dataclasses import dataclass, field

from desktop_oauth.config import ClientConfig
from desktop_oauth.models.flow import AuthorizationRequest
from desktop_oauth.models.security import PKCEParameters
from desktop_oauth.models.tokens import TokenRequest
from desktop_oauth.primitives.pkce import generate_pkce_parameters, generate_state


@dataclass(frozen=True)
class AuthorizationSession:
    """One authorization attempt: redirect URI, PKCE pair, state and config.

    Every value is generated once in create() and never changes, so the code
    challenge always matches the code verifier. Sessions share nothing with
    each other.
    """

    config: ClientConfig
    redirect_uri: str
    pkce: PKCEParameters
    state: str = field(repr=False)

    @classmethod
    def create(cls, config: ClientConfig, redirect_uri: str) -> AuthorizationSession:
        """Generate fresh PKCE parameters and state for a new attempt.

        Raises:
            EntropySourceError: If the secure random source is unavailable
            PKCEError: If the generated verifier violates RFC 7636 bounds
        """
        pkce = generate_pkce_parameters()
        state = generate_state()
        return cls(config=config, redirect_uri=redirect_uri, pkce=pkce, state=state)

    @property
    def code_verifier(self) -> str:
        return self.pkce.code_verifier

    @property
    def code_challenge(self) -> str:
        return self.pkce.code_challenge

    def authorization_request(self) -> AuthorizationRequest:
        return AuthorizationRequest(
            authorization_endpoint=self.config.authorization_endpoint,
            client_id=self.config.client_id,
            redirect_uri=self.redirect_uri,
            scope=self.config.scope,
            code_challenge=self.pkce.code_challenge,
            state=self.state,
        )

    def token_request(self, code: str) -> TokenRequest:
        return TokenRequest(
            token_endpoint=self.config.token_endpoint,
            code=code,
            redirect_uri=self.redirect_uri,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            code_verifier=self.pkce.code_verifier,
        )
