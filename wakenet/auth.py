"""
Authentication module for API access control.

Mutating endpoints are protected by a shared API key:
1. No auth (local development) - when AUTH_API_KEY is not configured
2. API key auth - when AUTH_API_KEY is set, sent as an X-API-Key header
   or as "Authorization: Bearer <key>"

The push-ingest endpoint never uses the API key; its path token is the
credential.
"""

import secrets

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from .config import config

# Header name for the API key
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)
BEARER = HTTPBearer(auto_error=False)


def verify_api_key(
    api_key: str | None = Security(API_KEY_HEADER),
    bearer: HTTPAuthorizationCredentials | None = Security(BEARER),
) -> str:
    """
    Verify the API key from request headers.

    If AUTH_API_KEY is not configured in the environment, authentication
    is disabled and all requests are allowed (for local development).

    Returns:
        The validated API key

    Raises:
        HTTPException: If authentication is enabled and the key is missing or invalid
    """
    configured_key = config.AUTH_API_KEY

    # If no auth key is configured, skip authentication (local dev mode)
    if not configured_key:
        return ""

    provided = api_key or (bearer.credentials if bearer else None)
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key or Authorization: Bearer header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(provided.encode("utf-8"), configured_key.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return provided


def generate_secret() -> str:
    """Generate a subscription signing secret (64 hex characters)."""
    return secrets.token_hex(32)
