"""PKCE (Proof Key for Code Exchange) primitives.

Implements RFC 7636 parameter generation to prevent authorization code
interception attacks. Only the S256 challenge method is supported.
"""

from __future__ import annotations

import hashlib
import re

from desktop_oauth.models.errors import PKCEError
from desktop_oauth.models.security import PKCEParameters
from desktop_oauth.primitives.entropy import base64url_encode, random_url_safe_token

# 96 random bytes encode to exactly 128 characters, the RFC 7636 maximum
CODE_VERIFIER_BYTES = 96
STATE_BYTES = 32

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128

CODE_CHALLENGE_METHOD = "S256"

_UNRESERVED = re.compile(r"^[A-Za-z0-9\-._~]+$")


def generate_code_verifier() -> str:
    """Generate a cryptographically secure code verifier.

    RFC 7636 Section 4.1: code verifier must be 43-128 characters long
    and use only unreserved characters:
        [A-Z] / [a-z] / [0-9] / "-" / "." / "_" / "~"

    Returns:
        A 128-character code verifier

    Raises:
        EntropySourceError: If the secure random source is unavailable
        PKCEError: If the verifier falls outside the RFC 7636 bounds
    """
    verifier = random_url_safe_token(CODE_VERIFIER_BYTES)
    validate_code_verifier(verifier)
    return verifier


def validate_code_verifier(verifier: str) -> None:
    if not (MIN_VERIFIER_LENGTH <= len(verifier) <= MAX_VERIFIER_LENGTH):
        raise PKCEError(
            f"code_verifier must be {MIN_VERIFIER_LENGTH}-{MAX_VERIFIER_LENGTH} "
            f"characters, got {len(verifier)}"
        )
    if not _UNRESERVED.match(verifier):
        raise PKCEError("code_verifier contains characters outside the unreserved set")


def derive_code_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))
    """
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64url_encode(digest)


def generate_state() -> str:
    """Generate an unguessable state parameter for CSRF protection.

    Drawn independently of the code verifier, 256 bits of entropy.
    """
    return random_url_safe_token(STATE_BYTES)


def generate_pkce_parameters() -> PKCEParameters:
    """Generate a fresh verifier and its derived challenge."""
    code_verifier = generate_code_verifier()
    return PKCEParameters(
        code_verifier=code_verifier,
        code_challenge=derive_code_challenge(code_verifier),
        code_challenge_method=CODE_CHALLENGE_METHOD,
    )
