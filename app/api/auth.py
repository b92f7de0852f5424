"""Password-reset routes: request a reset link by email and consume it."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import get_settings
from app.core.database import get_db
from app.core.rate_limit import forgot_password_rate_limiter, reset_password_rate_limiter
from app.schemas.common import MessageResponse
from app.schemas.password_reset import ForgotPasswordRequest, ResetPasswordRequest
from app.services.mailer import send_password_reset_email
from app.services.password_reset import (
    FORGOT_PASSWORD_MESSAGE,
    RESET_SUCCESS_MESSAGE,
    consume_reset_token,
    issue_reset_token,
)

router = APIRouter()


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(forgot_password_rate_limiter)],
)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """
    Email a password reset link if an account uses this address.

    The response is identical whether or not the account exists.
    """
    settings = get_settings()
    # bcrypt and the DB session are blocking; keep them off the event loop.
    issued = await run_in_threadpool(issue_reset_token, db, body.email, settings)
    if issued is not None:
        to_email, plaintext_token = issued
        await send_password_reset_email(to_email, plaintext_token, settings)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(reset_password_rate_limiter)],
)
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Set a new password using the token from the reset email."""
    consume_reset_token(db, body.token, body.new_password)
    return MessageResponse(message=RESET_SUCCESS_MESSAGE)
