"""Authentication module.

This module provides:
- Token verification (JWKS verifier)
- Auth middleware for FastAPI
- Request state with the caller's owner id

Note: Test-only verifiers are in tests/support/mock_verifier.py
"""

from chatsync.auth.middleware import AuthMiddleware, Viewer, get_viewer
from chatsync.auth.verifier import JwksVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "JwksVerifier",
    "TokenVerifier",
]
