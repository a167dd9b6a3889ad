"""Validation of the captured authorization redirect.

Checks run in a fixed order and the first failure wins: provider error,
then state, then code presence.
"""

from __future__ import annotations

import logging
import secrets

from desktop_oauth.models.errors import (
    MissingCodeError,
    ProviderError,
    StateMismatchError,
)
from desktop_oauth.models.flow import CallbackResult

logger = logging.getLogger(__name__)


def states_match(expected: str, actual: str | None) -> bool:
    """Compare state values in constant time. Case-sensitive."""
    if not actual:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))


def validate_callback(result: CallbackResult, expected_state: str) -> str:
    """Validate a redirect and return its authorization code.

    Args:
        result: Parameters captured by the callback receiver
        expected_state: State sent with the authorization request

    Returns:
        The authorization code

    Raises:
        ProviderError: If the provider reported an error
        StateMismatchError: If state is missing or differs (possible CSRF)
        MissingCodeError: If no authorization code was returned
    """
    if result.is_error():
        logger.warning(
            f"Authorization callback contained error: {result.error} - "
            f"{result.error_description}"
        )
        raise ProviderError(result.error, result.error_description, result.error_uri)

    if not states_match(expected_state, result.state):
        logger.warning(
            "Authorization callback state missing or mismatched; "
            "refusing to exchange the code"
        )
        raise StateMismatchError("State parameter mismatch - possible CSRF attack")

    if not result.is_success():
        raise MissingCodeError("Authorization callback missing authorization code")

    logger.info("Authorization callback successful - received authorization code")
    return result.code
