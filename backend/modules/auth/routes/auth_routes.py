"""
Authentication routes.

Registration, login/logout, the current-user endpoint and email
verification. Login returns the access token in the body and also sets it
as an httpOnly cookie.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
import logging

from core.auth import FALLBACK_TOKEN_COOKIE, Principal, get_current_user
from core.config import Settings
from core.database import get_db
from core.deps import get_app_settings
from core.response_models import StandardResponse

from ..schemas.auth_schemas import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
    VerifyEmailRequest,
)
from ..services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    """Dependency to get auth service instance"""
    services = request.app.state.services
    return AuthService(db, services.hasher, services.token_service, services.settings)


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.access_token_lifetime_seconds,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    for name in (settings.auth_cookie_name, FALLBACK_TOKEN_COOKIE):
        response.delete_cookie(name, httponly=True, secure=settings.auth_cookie_secure, samesite="lax")


@router.post(
    "/register",
    response_model=StandardResponse[RegisterResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Create a new account.

    Only the `user` and `restaurant_owner` roles can be chosen at
    registration.

    ## Example
    ```bash
    curl -X POST "http://localhost:8000/api/v1/auth/register" \\
         -H "Content-Type: application/json" \\
         -d '{"name": "Ada", "email": "ada@example.com", "password": "s3cret!", "role": "restaurant_owner"}'
    ```
    """
    user, verification_token = await run_in_threadpool(auth_service.register, data)
    return StandardResponse.ok(
        RegisterResponse(
            user=UserResponse.model_validate(user),
            verification_token=verification_token if settings.expose_reset_tokens else None,
        ),
        message="Registration successful",
    )


@router.post("/login", response_model=StandardResponse[TokenResponse])
async def login(
    data: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Authenticate with email and password.

    ## Example
    ```bash
    curl -X POST "http://localhost:8000/api/v1/auth/login" \\
         -H "Content-Type: application/json" \\
         -d '{"email": "ada@example.com", "password": "s3cret!"}'
    ```
    """
    user, token = await run_in_threadpool(auth_service.login, data.email, data.password)
    set_auth_cookie(response, token, settings)
    return StandardResponse.ok(
        TokenResponse(
            access_token=token,
            expires_in=settings.access_token_lifetime_seconds,
            user=UserResponse.model_validate(user),
        )
    )


@router.post("/logout", response_model=StandardResponse[dict])
def logout(
    request: Request,
    response: Response,
    current_user: Principal = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    """Revoke the presented token (when revocation is enabled) and clear auth cookies"""
    revoked = auth_service.logout(request.state.token, request.state.token_claims)
    clear_auth_cookies(response, settings)
    logger.info(f"User {current_user.id} logged out")
    return StandardResponse.ok({"revoked": revoked}, message="Logged out")


@router.get("/me", response_model=StandardResponse[UserResponse])
def read_current_user(
    current_user: Principal = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Get the authenticated user.

    ## Example
    ```bash
    curl -X GET "http://localhost:8000/api/v1/auth/me" \\
         -H "Authorization: Bearer YOUR_JWT_TOKEN"
    ```
    """
    user = auth_service.get_user(current_user.id)
    return StandardResponse.ok(UserResponse.model_validate(user))


@router.post("/verify-email", response_model=StandardResponse[UserResponse])
def verify_email(
    data: VerifyEmailRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Confirm an email address with the token sent at registration"""
    user = auth_service.verify_email(data.token)
    return StandardResponse.ok(UserResponse.model_validate(user), message="Email verified")
