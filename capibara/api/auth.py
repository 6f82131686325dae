"""
Access Gate for FastAPI

Supports two authentication methods (checked in order):
1. Authorization: Bearer <session token> → issued by POST /auth/token
2. X-API-Key header → static key, only when API_KEY is configured

When AUTH_ENABLED is false every request is let through.
"""
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from capibara.api.session_tokens import decode_session_token
from capibara.core.config import get_settings

logger = logging.getLogger(__name__)

API_KEY_NAME = "X-API-Key"

api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    """
    Authentication context for an admitted request.

    Attributes:
        subject: Token subject, "api-key", or "anonymous"
        auth_method: "token", "api_key" or "disabled"
    """
    subject: str
    auth_method: str


async def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    api_key: Optional[str] = Security(api_key_header),
) -> AuthContext:
    """
    Admit or reject the caller.

    This is the dependency for gated routes.

    Raises:
        HTTPException: 401 if no valid credentials were presented
    """
    settings = get_settings()
    if not settings.auth_enabled:
        return AuthContext(subject="anonymous", auth_method="disabled")

    if credentials is not None:
        payload = decode_session_token(credentials.credentials)
        return AuthContext(subject=payload["sub"], auth_method="token")

    if api_key:
        if settings.api_key and secrets.compare_digest(api_key.encode("utf-8"), settings.api_key.encode("utf-8")):
            return AuthContext(subject="api-key", auth_method="api_key")
        logger.warning(f"Invalid API key attempt from {request.client.host if request.client else 'unknown'}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing authentication (provide a Bearer token or X-API-Key)",
        headers={"WWW-Authenticate": "Bearer"},
    )
