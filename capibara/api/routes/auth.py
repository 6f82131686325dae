"""
Session token issuance
"""
import logging

from fastapi import APIRouter, HTTPException, status

from capibara.api.schemas import TokenRequest, TokenResponse
from capibara.api.session_tokens import authenticate_credentials, create_session_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse)
async def issue_token(body: TokenRequest):
    """
    Exchange credentials for a short-lived session token.

    Send the token as `Authorization: Bearer <token>` on gated endpoints.
    """
    if not authenticate_credentials(body.username, body.password):
        logger.warning(f"Failed token request for user '{body.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token, expires_in = create_session_token(body.username)
    logger.info(f"Issued session token for '{body.username}' ({expires_in}s)")
    return TokenResponse(access_token=token, expires_in=expires_in)
