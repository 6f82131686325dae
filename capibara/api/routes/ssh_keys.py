"""
SSH key registration endpoint
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from capibara.api.auth import AuthContext, get_auth_context
from capibara.api.schemas import KeyRegistrationResponse
from capibara.core.keys import InvalidReason, RegistrationStatus, get_registrar

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ssh", tags=["ssh-keys"])

EXAMPLE_KEY = (
    "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIL7p14I6jkXQeRrB74dcGSG9evn+ItVpmxnhWI77CUc/ eddsa-key-test03"
)


@router.post(
    "/keys",
    status_code=status.HTTP_201_CREATED,
    response_model=KeyRegistrationResponse,
    summary="Register an SSH public key",
    description=(
        "Receives one SSH public key as plain text and appends it to the authorized_keys file. "
        "Returns 409 if the key already exists, either verbatim or with the same type and "
        "material under a different comment."
    ),
    responses={
        400: {"description": "Empty, multi-line, unrecognized or malformed key"},
        401: {"description": "Missing or invalid credentials"},
        409: {"description": "Key already registered"},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"text/plain": {"schema": {"type": "string"}, "example": EXAMPLE_KEY}},
        }
    },
)
async def register_key(request: Request, auth: AuthContext = Depends(get_auth_context)):
    """Append a single key line to authorized_keys."""
    body = await request.body()
    try:
        candidate = body.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"reason": InvalidReason.MALFORMED.value, "message": "Request body is not valid UTF-8."},
        )

    # The registrar lock is a threading lock; keep it off the event loop
    result = await run_in_threadpool(get_registrar().register, candidate)

    if result.status == RegistrationStatus.INVALID:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"reason": result.reason.value, "message": result.message},
        )

    if result.is_duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"status": result.status.value, "message": result.message},
        )

    logger.info(f"Key registered by {auth.subject} ({auth.auth_method})")
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=KeyRegistrationResponse(status=result.status.value, message=result.message).model_dump(),
        headers={"Location": "/ssh/keys"},
    )
