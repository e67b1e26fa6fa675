"""
Account lifecycle service.

Registration, login, password change and reset, email verification,
profile maintenance and the admin-only role/status switches. Password
hashing is CPU-heavy, so routes call the hashing operations here from the
threadpool.
"""

from datetime import timedelta
from typing import Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.auth import TokenClaims, TokenService
from core.config import Settings
from core.database_utils import commit_or_conflict
from core.exceptions import (
    ConflictError, InternalError, NotFoundError, UnauthenticatedError, ValidationError,
)
from core.file_service import (
    BlobStore, ImageUpload, build_blob_key, discard_blob, store_blob, validate_image_upload,
)
from core.mixins import utcnow
from core.password_security import PasswordHasher, generate_one_time_token, hash_token
from core.user_models import SELF_ASSIGNABLE_ROLES, User, UserRole
from modules.restaurants.models.restaurant_models import Restaurant

from ..schemas.auth_schemas import ProfileUpdateRequest, RegisterRequest

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "Email is already registered"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


class AuthService:
    def __init__(
        self,
        db: Session,
        hasher: PasswordHasher,
        token_service: TokenService,
        settings: Settings,
    ):
        self.db = db
        self.hasher = hasher
        self.token_service = token_service
        self.settings = settings

    # Lookups
    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User not found with id of {user_id}")
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    # Registration and login
    def register(self, data: RegisterRequest) -> Tuple[User, str]:
        """
        Create an account.

        Returns:
            (user, raw email verification token)
        """
        if data.role not in SELF_ASSIGNABLE_ROLES:
            raise ValidationError(f"Role '{data.role.value}' cannot be self-assigned")
        self._validate_password(data.password)

        email = data.email.lower()
        if self.get_user_by_email(email) is not None:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        verification_token, verification_digest = generate_one_time_token()
        user = User(
            name=data.name,
            email=email,
            phone=data.phone,
            role=data.role,
            password_hash=self.hasher.hash_password(data.password),
            email_verification_token_hash=verification_digest,
        )
        self.db.add(user)
        commit_or_conflict(self.db, DUPLICATE_EMAIL_MESSAGE)
        self.db.refresh(user)

        logger.info(f"Registered user {user.id} with role {user.role.value}")
        return user, verification_token

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_user_by_email(email)
        if user is None or not self.hasher.verify_password(password, user.password_hash):
            logger.warning("Failed login attempt")
            raise UnauthenticatedError(INVALID_CREDENTIALS_MESSAGE)

        if not user.is_active:
            logger.warning(f"Login attempt for disabled user {user.id}")
            raise UnauthenticatedError("User account is disabled")

        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = self.hasher.hash_password(password)
            self.db.commit()
            logger.info(f"Upgraded password hash for user {user.id}")

        return user

    def login(self, email: str, password: str) -> Tuple[User, str]:
        user = self.authenticate(email, password)
        return user, self.issue_token(user)

    def issue_token(self, user: User) -> str:
        return self.token_service.issue(user.id, password_version=user.password_version or 0)

    def logout(self, token: str, claims: TokenClaims) -> bool:
        return self.token_service.revoke(token, claims)

    # Passwords
    def change_password(
        self, user_id: int, current_password: str, new_password: str
    ) -> Tuple[User, str]:
        """
        Change the caller's password.

        Tokens issued before the change stop working; the returned token
        replaces them.
        """
        user = self.get_user(user_id)
        if not self.hasher.verify_password(current_password, user.password_hash):
            raise UnauthenticatedError("Current password is incorrect")
        if new_password == current_password:
            raise ValidationError("New password must be different from the current password")
        self._validate_password(new_password)

        self._set_password(user, new_password)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Password changed for user {user.id}")
        return user, self.issue_token(user)

    def forgot_password(self, email: str) -> Optional[str]:
        """
        Start a password reset.

        Returns the raw reset token, or None when no active account uses the
        email. Callers must respond identically in both cases.
        """
        user = self.get_user_by_email(email)
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return None

        token, digest = generate_one_time_token()
        user.reset_token_hash = digest
        user.reset_token_expires_at = utcnow() + timedelta(
            minutes=self.settings.reset_token_expire_minutes
        )
        self.db.commit()

        logger.info(f"Password reset token issued for user {user.id}")
        return token

    def reset_password(self, token: str, new_password: str) -> User:
        user = self.db.query(User).filter(User.reset_token_hash == hash_token(token)).first()
        if user is None:
            raise ValidationError("Invalid or expired reset token")

        if user.reset_token_expires_at is None or user.reset_token_expires_at < utcnow():
            user.clear_reset_token()
            self.db.commit()
            logger.warning(f"Expired reset token presented for user {user.id}")
            raise ValidationError("Invalid or expired reset token")

        self._validate_password(new_password)
        self._set_password(user, new_password)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Password reset completed for user {user.id}")
        return user

    def verify_email(self, token: str) -> User:
        user = (
            self.db.query(User)
            .filter(User.email_verification_token_hash == hash_token(token))
            .first()
        )
        if user is None:
            raise ValidationError("Invalid verification token")

        user.email_verified = True
        user.email_verification_token_hash = None
        self.db.commit()
        self.db.refresh(user)
        return user

    # Profile
    def update_profile(self, user_id: int, data: ProfileUpdateRequest) -> User:
        user = self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True)

        for field in ("name", "email"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null")

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise ValidationError("name cannot be blank")

        if "email" in changes and changes["email"] != user.email:
            if self.get_user_by_email(changes["email"]) is not None:
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        if changes.get("address") is not None:
            # replace the whole address, unset parts become null
            changes["address"] = data.address.model_dump()

        for key, value in changes.items():
            setattr(user, key, value)

        commit_or_conflict(self.db, DUPLICATE_EMAIL_MESSAGE)
        self.db.refresh(user)
        return user

    def update_profile_picture(
        self, user_id: int, upload: ImageUpload, blob_store: BlobStore
    ) -> User:
        """Store a new profile picture and drop the previous one from the blob store"""
        validate_image_upload(upload, self.settings.max_upload_size_bytes)
        user = self.get_user(user_id)

        key = build_blob_key(f"users/{user.id}", upload)
        url = store_blob(blob_store, upload, key)

        previous_key = user.avatar_key
        user.avatar_url = url
        user.avatar_key = key
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save profile picture for user {user.id}: {e}")
            discard_blob(blob_store, key)
            raise InternalError("Failed to save uploaded image")

        if previous_key and previous_key != key:
            discard_blob(blob_store, previous_key)

        self.db.refresh(user)
        logger.info(f"Profile picture updated for user {user.id}")
        return user

    def delete_account(self, user_id: int, blob_store: Optional[BlobStore] = None) -> None:
        user = self.get_user(user_id)
        owned = self.db.query(Restaurant.id).filter(Restaurant.owner_id == user.id).count()
        if owned:
            raise ConflictError(
                f"Account still owns {owned} restaurant(s); delete or transfer them first"
            )

        avatar_key = user.avatar_key
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted account {user_id}")

        if blob_store is not None and avatar_key:
            discard_blob(blob_store, avatar_key)

    # Admin
    def set_role(self, user_id: int, role: UserRole) -> User:
        user = self.get_user(user_id)
        user.role = role
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Role of user {user.id} set to {role.value}")
        return user

    def set_active(self, user_id: int, is_active: bool) -> User:
        user = self.get_user(user_id)
        user.is_active = is_active
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.id} {'activated' if is_active else 'deactivated'}")
        return user

    # Helpers
    def _validate_password(self, password: str) -> None:
        minimum = self.settings.password_min_length
        if len(password) < minimum:
            raise ValidationError(f"Password must be at least {minimum} characters long")

    def _set_password(self, user: User, password: str) -> None:
        user.password_hash = self.hasher.hash_password(password)
        user.password_version = (user.password_version or 0) + 1
        user.password_changed_at = utcnow()
        user.clear_reset_token()
