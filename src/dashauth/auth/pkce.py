"""PKCE verifier/challenge pairs and anti-CSRF state tokens.

Random material comes from :mod:`secrets`. Each random byte is mapped
onto the 66-character unreserved URI set of :rfc:`3986` (the set
:rfc:`7636#section-4.1` allows in a verifier).

The verifier is 96 mapped characters, base64url-encoded without padding.
96 is the largest input whose encoding stays within the 128-character
limit (96 bytes encode to exactly 128 characters; 32 would give the
43-character minimum).
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from dashauth.models import PKCECodes

PKCE_CHARSET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"

CODE_VERIFIER_BYTES = 96

STATE_LENGTH = 32
"""Recommended length for the anti-CSRF ``state`` value."""


def _base64url(data: bytes) -> str:
    """Base64url-encode (:rfc:`4648#section-5`) without ``=`` padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _random_charset_string(length: int) -> str:
    return "".join(
        PKCE_CHARSET[byte % len(PKCE_CHARSET)] for byte in secrets.token_bytes(length)
    )


def generate_pkce_codes() -> PKCECodes:
    """Generate a fresh PKCE pair using the ``S256`` method.

    Returns:
        A :class:`~dashauth.models.PKCECodes` with a 128-character
        verifier and its base64url(SHA-256) challenge.
    """
    code_verifier = _base64url(_random_charset_string(CODE_VERIFIER_BYTES).encode("ascii"))
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return PKCECodes(
        code_verifier=code_verifier,
        code_challenge=_base64url(digest),
        code_challenge_method="S256",
    )


def generate_state(length: int = STATE_LENGTH) -> str:
    """Generate an anti-CSRF ``state`` value of exactly *length* characters.

    Raises:
        ValueError: If *length* is not positive.
    """
    if length <= 0:
        raise ValueError(f"state length must be positive, got {length}")
    return _random_charset_string(length)
