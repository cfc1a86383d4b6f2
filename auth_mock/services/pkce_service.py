from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

# PKCE (RFC 7636) helpers.  The token endpoint only ever calls
# verify_code_challenge; generate_code_verifier and compute_code_challenge
# exist for test clients that drive the flow against this server.


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier() -> str:
    # 32 random bytes → 43 base64url chars, the RFC minimum length
    return _b64url(secrets.token_bytes(32))


def compute_code_challenge(code_verifier: str) -> str:
    """S256: base64url(SHA-256(ascii(code_verifier))), unpadded."""
    return _b64url(hashlib.sha256(code_verifier.encode("utf-8")).digest())


def verify_code_challenge(code_verifier: str, expected_challenge: str) -> bool:
    """Compare challenge derived from verifier against the stored challenge.

    Uses constant-time comparison to avoid timing side-channels.
    """
    actual_challenge = compute_code_challenge(code_verifier)
    return hmac.compare_digest(
        actual_challenge.encode("ascii"), expected_challenge.encode("utf-8")
    )
