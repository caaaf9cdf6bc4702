"""PKCE (Proof Key for Code Exchange) utilities for the Umbraco leg of the flow."""

import base64
import hashlib
import secrets
from typing import Tuple


def compute_code_challenge(code_verifier: str) -> str:
    """Return base64url(SHA-256(code_verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_pkce_pair() -> Tuple[str, str]:
    """
    Generate PKCE code_verifier and code_challenge using S256.

    Per RFC 7636, the code_verifier uses unreserved characters only and is
    43-128 characters long. token_urlsafe(48) yields 64 characters.

    Returns:
        Tuple of (code_verifier, code_challenge)
    """
    code_verifier = secrets.token_urlsafe(48)
    return code_verifier, compute_code_challenge(code_verifier)


def verify_pkce(code_verifier: str, code_challenge: str) -> bool:
    """Check that a code_verifier produces the given code_challenge."""
    return secrets.compare_digest(compute_code_challenge(code_verifier), code_challenge)
