"""PKCE helpers (:rfc:`7636`) for the authorization code flow.

Every authentication attempt gets a fresh :class:`~termtune.models.PKCEParams`
from :func:`generate`: a random ``code_verifier``, its S256
``code_challenge``, and an anti-CSRF ``state`` token. Nothing here is ever
persisted or reused across attempts.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from termtune.models import PKCEParams


def compute_challenge(code_verifier: str) -> str:
    """Return the S256 challenge: ``base64url_nopad(sha256(verifier))``."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:128]
    return code_verifier, compute_challenge(code_verifier)


def generate_state() -> str:
    """Generate a one-time ``state`` value for the authorization request."""
    return secrets.token_urlsafe(24)


def generate() -> PKCEParams:
    """Generate the verifier, challenge, and state for one attempt."""
    verifier, challenge = generate_pkce_pair()
    return PKCEParams(verifier=verifier, challenge=challenge, state=generate_state())
