"""Authorization code flow orchestration.

Drives one AuthorizationSession through the PKCE state machine:

    IDLE -> VERIFIER_GENERATED -> URL_BUILT -> AWAITING_CALLBACK
         -> CALLBACK_RECEIVED -> VALIDATED -> EXCHANGING -> SUCCEEDED | FAILED

SUCCEEDED and FAILED are terminal; a failed flow is never retried here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from desktop_oauth.browser import BrowserLauncher, SystemBrowserLauncher
from desktop_oauth.config import ClientConfig
from desktop_oauth.models.errors import FlowStateError, OAuth2Error
from desktop_oauth.models.flow import CallbackResult
from desktop_oauth.models.session import AuthorizationSession
from desktop_oauth.models.tokens import TokenResponse
from desktop_oauth.services.callback import (
    DEFAULT_CALLBACK_TIMEOUT,
    LoopbackCallbackReceiver,
    allocate_loopback_port,
    build_redirect_uri,
)
from desktop_oauth.services.tokens import OAuth2TokenExchanger
from desktop_oauth.services.validation import validate_callback

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    IDLE = "idle"
    VERIFIER_GENERATED = "verifier_generated"
    URL_BUILT = "url_built"
    AWAITING_CALLBACK = "awaiting_callback"
    CALLBACK_RECEIVED = "callback_received"
    VALIDATED = "validated"
    EXCHANGING = "exchanging"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: dict[FlowState, frozenset[FlowState]] = {
    FlowState.IDLE: frozenset({FlowState.VERIFIER_GENERATED}),
    FlowState.VERIFIER_GENERATED: frozenset({FlowState.URL_BUILT}),
    FlowState.URL_BUILT: frozenset({FlowState.AWAITING_CALLBACK}),
    FlowState.AWAITING_CALLBACK: frozenset({FlowState.CALLBACK_RECEIVED}),
    FlowState.CALLBACK_RECEIVED: frozenset({FlowState.VALIDATED}),
    FlowState.VALIDATED: frozenset({FlowState.EXCHANGING}),
    FlowState.EXCHANGING: frozenset({FlowState.SUCCEEDED}),
    FlowState.SUCCEEDED: frozenset(),
    FlowState.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({FlowState.SUCCEEDED, FlowState.FAILED})


@dataclass(frozen=True)
class FlowResult:
    """Outcome of a flow run: the token response or the typed error."""

    state: FlowState
    token_response: TokenResponse | None = None
    error: OAuth2Error | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is FlowState.SUCCEEDED


class AuthorizationCodeFlow:
    """Runs a single authorization attempt for a public client.

    A flow owns exactly one session. It builds at most one authorization URL
    and accepts at most one callback; running it again raises FlowStateError.
    """

    def __init__(
        self,
        config: ClientConfig,
        browser: BrowserLauncher | None = None,
        token_exchanger: OAuth2TokenExchanger | None = None,
        receiver_factory: Callable[[str], LoopbackCallbackReceiver] | None = None,
        port_allocator: Callable[[], int] = allocate_loopback_port,
    ):
        """Initialize the flow.

        Args:
            config: Static client configuration
            browser: Launcher for the authorization URL
            token_exchanger: Exchanger for the token request; one is created
                and closed by the flow when omitted
            receiver_factory: Builds the loopback receiver for a redirect URI
            port_allocator: Returns a free loopback port
        """
        self.config = config
        self.browser = browser or SystemBrowserLauncher()
        self._token_exchanger = token_exchanger
        self._receiver_factory = receiver_factory or LoopbackCallbackReceiver
        self._port_allocator = port_allocator

        self.state = FlowState.IDLE
        self.session: AuthorizationSession | None = None
        self.authorization_url: str | None = None

    def _transition(self, new_state: FlowState) -> None:
        if self.state in TERMINAL_STATES:
            raise FlowStateError(
                f"Authorization flow already finished in state {self.state.value}"
            )
        if new_state is not FlowState.FAILED and new_state not in _TRANSITIONS[self.state]:
            raise FlowStateError(
                f"Cannot move authorization flow from {self.state.value} to "
                f"{new_state.value}"
            )
        logger.debug(f"Authorization flow: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def start(self) -> str:
        """Create the session and build the authorization URL.

        Returns:
            The URL the user must visit

        Raises:
            FlowStateError: If the flow has already been started
            PortAllocationError: If no loopback port is available
            EntropySourceError: If secure randomness is unavailable
        """
        if self.state is not FlowState.IDLE:
            raise FlowStateError("Authorization flow has already been started")

        try:
            redirect_uri = build_redirect_uri(self._port_allocator())
            self.session = AuthorizationSession.create(self.config, redirect_uri)
            logger.info(f"Redirect URI: {redirect_uri}")
            self._transition(FlowState.VERIFIER_GENERATED)

            self.authorization_url = (
                self.session.authorization_request().build_authorization_url()
            )
            self._transition(FlowState.URL_BUILT)
        except OAuth2Error:
            self._transition(FlowState.FAILED)
            raise

        logger.info(f"Authorization URL: {self.authorization_url}")
        return self.authorization_url

    async def run(
        self, callback_timeout: float | None = DEFAULT_CALLBACK_TIMEOUT
    ) -> FlowResult:
        """Run the whole flow and report its outcome.

        A flow already advanced by start() continues from its authorization
        URL. Every OAuth2Error is captured in the returned FlowResult. The
        loopback listener is always stopped before this returns.

        Raises:
            FlowStateError: If the flow has already been run
        """
        if self.state not in (FlowState.IDLE, FlowState.URL_BUILT):
            raise FlowStateError("Authorization flow has already been run")

        try:
            if self.state is FlowState.IDLE:
                self.start()
            result = await self._receive_callback(callback_timeout)
            self._transition(FlowState.CALLBACK_RECEIVED)

            code = validate_callback(result, self.session.state)
            self._transition(FlowState.VALIDATED)

            token_response = await self._exchange(code)
            self._transition(FlowState.SUCCEEDED)
        except OAuth2Error as e:
            if self.state not in TERMINAL_STATES:
                self._transition(FlowState.FAILED)
            logger.error(f"Authorization flow failed: {type(e).__name__}: {e}")
            return FlowResult(state=self.state, error=e)

        logger.info("Authorization flow succeeded")
        return FlowResult(state=self.state, token_response=token_response)

    async def _receive_callback(self, timeout: float | None) -> CallbackResult:
        async with self._receiver_factory(self.session.redirect_uri) as receiver:
            self._transition(FlowState.AWAITING_CALLBACK)
            self.browser.open(self.authorization_url)
            return await receiver.wait_for_callback(timeout)

    async def _exchange(self, code: str) -> TokenResponse:
        self._transition(FlowState.EXCHANGING)
        token_request = self.session.token_request(code)

        if self._token_exchanger is not None:
            return await self._token_exchanger.exchange_code_for_token(token_request)

        async with OAuth2TokenExchanger() as exchanger:
            return await exchanger.exchange_code_for_token(token_request)
