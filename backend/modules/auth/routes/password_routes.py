"""
Password Routes

Password change for signed-in users and the forgot/reset workflow.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool
import logging

from core.auth import Principal, get_current_user
from core.config import Settings
from core.deps import get_app_settings
from core.response_models import StandardResponse

from ..schemas.auth_schemas import (
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    PasswordChangeRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from ..services.auth_service import AuthService
from .auth_routes import get_auth_service, set_auth_cookie

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Password Security"])

FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a reset link has been sent"


@router.put("/password", response_model=StandardResponse[TokenResponse])
async def change_password(
    data: PasswordChangeRequest,
    response: Response,
    current_user: Principal = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Change the password of the signed-in user.

    Every token issued before the change is rejected afterwards; use the
    token in this response from now on.
    """
    user, token = await run_in_threadpool(
        auth_service.change_password,
        current_user.id,
        data.current_password,
        data.new_password,
    )
    set_auth_cookie(response, token, settings)
    return StandardResponse.ok(
        TokenResponse(
            access_token=token,
            expires_in=settings.access_token_lifetime_seconds,
            user=UserResponse.model_validate(user),
        ),
        message="Password updated successfully",
    )


@router.post("/forgot-password", response_model=StandardResponse[ForgotPasswordResponse])
def forgot_password(
    data: ForgotPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Start a password reset.

    The response is the same whether or not the email belongs to an account.
    """
    token = auth_service.forgot_password(data.email)
    # TODO: hand the token to an email sender once outbound mail is configured
    return StandardResponse.ok(
        ForgotPasswordResponse(reset_token=token if settings.expose_reset_tokens else None),
        message=FORGOT_PASSWORD_MESSAGE,
    )


@router.post("/reset-password", response_model=StandardResponse[UserResponse])
async def reset_password(
    data: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Finish a password reset with the emailed token"""
    user = await run_in_threadpool(auth_service.reset_password, data.token, data.new_password)
    return StandardResponse.ok(
        UserResponse.model_validate(user),
        message="Password has been reset, please log in",
    )
