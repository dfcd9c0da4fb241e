"""PKCE (Proof Key for Code Exchange, :rfc:`7636`) verifier and challenge helpers.

The authorization code strategy calls :func:`generate_code_verifier` once per
authorization request and sends :func:`derive_code_challenge` of it to the
authorization server. The verifier itself is only revealed in the token
exchange.

Verifier derivation: 32 bytes from the OS CSPRNG are base64url-encoded with
the standard padded encoder (44 characters, the last one being ``=``) and
cut to the first 43 characters. The cut removes exactly the padding
character, so the verifier equals the unpadded encoding of the 32 bytes.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from typing import Callable

PKCE_CODE_BYTES = 32
PKCE_CODE_LENGTH = 43
PKCE_CHALLENGE_METHOD = "S256"


def generate_code_verifier(
    token_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> str:
    """Generate a 43-character PKCE ``code_verifier``.

    Args:
        token_bytes: Randomness source taking a byte count. Defaults to
            :func:`secrets.token_bytes`; tests inject a fixed source.

    Returns:
        A string of exactly :data:`PKCE_CODE_LENGTH` characters from the
        base64url alphabet (``A-Z a-z 0-9 - _``).
    """
    encoded = base64.urlsafe_b64encode(token_bytes(PKCE_CODE_BYTES)).decode("ascii")
    return encoded[:PKCE_CODE_LENGTH]


def derive_code_challenge(code_verifier: str) -> str:
    """Derive the S256 ``code_challenge`` for *code_verifier*.

    RFC 7636 §4.2: ``BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))`` with
    the trailing ``=`` padding removed.
    """
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
