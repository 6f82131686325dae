"""
Session Tokens

Credential check + short-lived JWT session tokens (HS256).
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from fastapi import HTTPException, status

from capibara.core.config import get_settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
TOKEN_TYPE = "session"


def authenticate_credentials(username: Optional[str], password: Optional[str]) -> bool:
    """
    Check username/password against the configured credentials.

    Always False when no credentials are configured.
    """
    settings = get_settings()
    if not settings.api_username or not settings.api_password:
        logger.warning("Token requested but API_USERNAME/API_PASSWORD are not configured")
        return False
    if not username or not password:
        return False

    # Evaluate both comparisons so timing does not reveal which one failed
    user_ok = secrets.compare_digest(username.encode("utf-8"), settings.api_username.encode("utf-8"))
    pass_ok = secrets.compare_digest(password.encode("utf-8"), settings.api_password.encode("utf-8"))
    return user_ok and pass_ok


def create_session_token(subject: str) -> Tuple[str, int]:
    """
    Create a session token for an authenticated caller.

    Returns:
        (token, lifetime in seconds)
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {
        "sub": subject,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": now + lifetime,
        "jti": secrets.token_urlsafe(16),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)
    return token, int(lifetime.total_seconds())


def decode_session_token(token: str) -> dict:
    """
    Decode and validate a session token.

    Validates signature, expiration, issuer, audience and algorithm.

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired"
        )
    except jwt.InvalidIssuerError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token issuer"
        )
    except jwt.InvalidAudienceError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token audience"
        )
    except jwt.InvalidSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token signature"
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    if payload.get("type") != TOKEN_TYPE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )
    return payload
