"""OAuth 2.0 authorization code flow with PKCE for locally-run public clients."""

from desktop_oauth.config import ClientConfig
from desktop_oauth.models.errors import OAuth2Error
from desktop_oauth.models.session import AuthorizationSession
from desktop_oauth.services.flow import AuthorizationCodeFlow, FlowResult, FlowState

__all__ = [
    "AuthorizationCodeFlow",
    "AuthorizationSession",
    "ClientConfig",
    "FlowResult",
    "FlowState",
    "OAuth2Error",
]
