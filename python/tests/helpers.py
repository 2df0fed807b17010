"""Test helpers for authentication and common test operations.

Provides:
- Token minting for test authentication
- Header generation for test requests
- Owner id and timestamp helpers
"""

import time
from datetime import UTC, datetime
from uuid import uuid4

import jwt

from tests.support.mock_verifier import MockJwtVerifier

# Default test token settings
DEFAULT_ISSUER = "test-issuer"
DEFAULT_AUDIENCE = "test-audience"
DEFAULT_EXPIRES_IN = 3600  # 1 hour


def mint_test_token(
    owner_id: str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE,
    **extra_claims,
) -> str:
    """Mint a valid test JWT with owner_id as the `sub` claim."""
    now = int(time.time())
    payload = {
        "sub": owner_id,
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, MockJwtVerifier.get_private_key(), algorithm="RS256")


def mint_expired_token(owner_id: str) -> str:
    """Mint a token that expired 1 hour ago."""
    return mint_test_token(owner_id, expires_in=-3600)


def mint_token_with_bad_signature(owner_id: str) -> str:
    """Mint a token signed with a different key."""
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    other_key_bytes = other_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )

    now = int(time.time())
    payload = {
        "sub": owner_id,
        "iss": DEFAULT_ISSUER,
        "aud": DEFAULT_AUDIENCE,
        "iat": now,
        "exp": now + DEFAULT_EXPIRES_IN,
    }
    return jwt.encode(payload, other_key_bytes, algorithm="RS256")


def auth_headers(owner_id: str, **token_kwargs) -> dict[str, str]:
    """Return headers dict with valid Authorization for the given owner."""
    token = mint_test_token(owner_id, **token_kwargs)
    return {"Authorization": f"Bearer {token}"}


def create_test_owner_id() -> str:
    """Generate a random opaque owner id."""
    return f"owner-{uuid4()}"


def ts(seconds: int) -> datetime:
    """A fixed UTC instant `seconds` after 2024-01-01T00:00:00Z.

    Keeps timestamp-ordering tests readable: ts(100) < ts(101).
    """
    return datetime.fromtimestamp(1_704_067_200 + seconds, tz=UTC)


def iso(seconds: int) -> str:
    """ts(seconds) as the ISO-8601 string clients send."""
    return ts(seconds).isoformat().replace("+00:00", "Z")
