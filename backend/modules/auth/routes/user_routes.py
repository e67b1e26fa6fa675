"""
User account routes.

Self-service profile maintenance, including the profile picture, plus
the admin-only role and status switches.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from core.auth import Principal, get_current_user
from core.config import Settings
from core.deps import get_app_settings, get_blob_store
from core.file_service import BlobStore, read_upload
from core.permissions import require_roles
from core.response_models import StandardResponse
from core.user_models import UserRole

from ..schemas.auth_schemas import (
    ProfileUpdateRequest,
    RoleUpdateRequest,
    StatusUpdateRequest,
    UserResponse,
)
from ..services.auth_service import AuthService
from .auth_routes import clear_auth_cookies, get_auth_service

router = APIRouter(prefix="/users", tags=["Users"])

require_admin = require_roles(UserRole.ADMIN)


@router.put("/profile", response_model=StandardResponse[UserResponse])
def update_profile(
    data: ProfileUpdateRequest,
    current_user: Principal = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Update name, email, phone or address of the signed-in user"""
    user = auth_service.update_profile(current_user.id, data)
    return StandardResponse.ok(UserResponse.model_validate(user))


@router.put("/profile/picture", response_model=StandardResponse[UserResponse])
async def update_profile_picture(
    file: Optional[UploadFile] = File(None),
    current_user: Principal = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Upload a new profile picture. The previous picture is removed from storage.

    Example:
        curl -X PUT -H "Authorization: Bearer $TOKEN" \\
             -F "file=@me.png" http://localhost:8000/api/v1/users/profile/picture
    """
    upload = await read_upload(file, auth_service.settings.max_upload_size_bytes)
    user = await run_in_threadpool(
        auth_service.update_profile_picture, current_user.id, upload, blob_store
    )
    return StandardResponse.ok(UserResponse.model_validate(user), message="Profile picture updated")


@router.delete("/profile", response_model=StandardResponse[dict])
def delete_profile(
    response: Response,
    current_user: Principal = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Delete the signed-in user's account. Fails while they still own restaurants."""
    auth_service.delete_account(current_user.id, blob_store)
    clear_auth_cookies(response, settings)
    return StandardResponse.ok({"id": current_user.id}, message="Account deleted")


@router.patch("/{user_id}/role", response_model=StandardResponse[UserResponse])
def set_user_role(
    user_id: int,
    data: RoleUpdateRequest,
    admin: Principal = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Change a user's role (admin only)"""
    user = auth_service.set_role(user_id, data.role)
    return StandardResponse.ok(UserResponse.model_validate(user))


@router.patch("/{user_id}/status", response_model=StandardResponse[UserResponse])
def set_user_status(
    user_id: int,
    data: StatusUpdateRequest,
    admin: Principal = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Activate or deactivate a user (admin only)"""
    user = auth_service.set_active(user_id, data.is_active)
    return StandardResponse.ok(UserResponse.model_validate(user))
