"""Authorization code to token exchange.

Implements the RFC 6749 Section 4.1.3 token request with the PKCE
code_verifier (RFC 7636). No retries are made here.
"""

from __future__ import annotations

import logging

import httpx

from desktop_oauth.models.errors import TokenEndpointError, TransportError
from desktop_oauth.models.tokens import TokenRequest, TokenResponse

logger = logging.getLogger(__name__)


class OAuth2TokenExchanger:
    """Posts the authorization code to the token endpoint.

    Uses application/x-www-form-urlencoded encoding as required by RFC 6749.
    A 2xx response body is returned unmodified; anything else becomes a
    TokenEndpointError, and network or TLS failures become TransportError.
    """

    def __init__(
        self, timeout: float = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize the token exchanger.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Optional preconfigured client, not closed by close()
        """
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> OAuth2TokenExchanger:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def exchange_code_for_token(
        self, token_request: TokenRequest, timeout: float | None = None
    ) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Args:
            token_request: Token exchange request parameters
            timeout: Overrides the exchanger's timeout for this call

        Returns:
            TokenResponse: The raw success response

        Raises:
            TokenEndpointError: If the endpoint answers with a non-2xx status
            TransportError: On DNS, TLS, connection or timeout failures
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        form_data = token_request.to_form_data()

        # Never log code, verifier or secret
        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={form_data['client_id']}, "
            f"redirect_uri={form_data['redirect_uri']}"
        )

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=form_data,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"Token exchange transport failure: {e}")
            raise TransportError(e) from e

        return self._parse_token_response(response)

    async def exchange(
        self,
        token_endpoint: str,
        client_id: str,
        client_secret: str,
        code: str,
        code_verifier: str,
        redirect_uri: str,
        timeout: float | None = None,
    ) -> TokenResponse:
        """Flat-argument form of exchange_code_for_token."""
        return await self.exchange_code_for_token(
            TokenRequest(
                token_endpoint=token_endpoint,
                code=code,
                redirect_uri=redirect_uri,
                client_id=client_id,
                client_secret=client_secret,
                code_verifier=code_verifier,
            ),
            timeout=timeout,
        )

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        if 200 <= response.status_code < 300:
            logger.info("Token exchange successful")
            return TokenResponse(
                status_code=response.status_code,
                body=response.text,
                content_type=response.headers.get("content-type"),
            )

        logger.warning(f"Token exchange failed with {response.status_code}")
        raise TokenEndpointError(response.status_code, response.text)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self._owns_client:
            await self._http_client.aclose()
