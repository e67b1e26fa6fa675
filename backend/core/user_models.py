"""
User account model.

Holds credentials and the password/verification token lifecycle fields.
The password hash never leaves this model: API schemas built from it
(``Principal``, ``UserResponse``) have no hash field.
"""

import enum

from sqlalchemy import JSON, Column, Integer, String, Boolean, DateTime, Enum as SQLEnum

from core.database import Base
from core.mixins import TimestampMixin


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    RESTAURANT_OWNER = "restaurant_owner"
    EDITOR = "editor"


# Roles a caller may choose for themselves at registration
SELF_ASSIGNABLE_ROLES = frozenset({UserRole.USER, UserRole.RESTAURANT_OWNER})

# Roles allowed to create and change restaurants and menu items
RESTAURANT_MANAGER_ROLES = (UserRole.RESTAURANT_OWNER, UserRole.ADMIN)


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(30), nullable=True)
    address = Column(JSON, nullable=True)  # {"street", "city", "state", "zipcode", "country"}
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(UserRole, native_enum=False, values_callable=enum_values, length=32),
        nullable=False,
        default=UserRole.USER,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    # Profile picture; avatar_key is None until one is uploaded
    avatar_url = Column(String(500), nullable=True)
    avatar_key = Column(String(500), nullable=True)

    # Email verification (SHA-256 digest of the emailed token)
    email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token_hash = Column(String(64), nullable=True, index=True)

    # Password reset (SHA-256 digest of the emailed token)
    reset_token_hash = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime, nullable=True)

    # Bumped on every password change; tokens carry the version they were minted at
    password_version = Column(Integer, nullable=False, default=0)
    password_changed_at = Column(DateTime, nullable=True)

    def clear_reset_token(self) -> None:
        self.reset_token_hash = None
        self.reset_token_expires_at = None

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
