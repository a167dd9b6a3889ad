"""Cryptographically secure random tokens encoded as base64url."""

from __future__ import annotations

import base64
import secrets

from desktop_oauth.models.errors import EntropySourceError


def base64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding (RFC 4648 Section 5)."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def random_url_safe_token(byte_length: int) -> str:
    """Draw ``byte_length`` bytes from the OS secure random source.

    Args:
        byte_length: Number of raw random bytes, must be positive

    Returns:
        The base64url encoding of the random bytes, without padding

    Raises:
        ValueError: If byte_length is not a positive integer
        EntropySourceError: If the secure random source is unavailable
    """
    if not isinstance(byte_length, int) or byte_length <= 0:
        raise ValueError(f"byte_length must be a positive integer, got {byte_length!r}")

    try:
        raw = secrets.token_bytes(byte_length)
    except (NotImplementedError, OSError) as e:
        raise EntropySourceError(f"Secure random source unavailable: {e}") from e

    return base64url_encode(raw)
