# backend/core/deps.py

"""
Common dependencies for the application.

Long-lived collaborators are built once per app by ``build_services`` and
kept on ``app.state.services``. Request handlers reach them through the
accessor dependencies below.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Optional

from fastapi import Request

from .auth import AuthGuard, TokenService, get_current_user
from .config import Settings
from .database import Database, get_db
from .file_service import BlobStore, create_blob_store
from .mixins import utcnow
from .password_security import PasswordHasher
from .permissions import ResourceLoader
from .token_blacklist import TokenBlacklist, build_token_blacklist


@dataclass
class ServiceContainer:
    settings: Settings
    database: Database
    hasher: PasswordHasher
    token_service: TokenService
    auth_guard: AuthGuard
    blob_store: BlobStore
    blacklist: Optional[TokenBlacklist] = None
    started_at: datetime = field(default_factory=utcnow)
    # Ownership loaders by resource type, supplied by the feature modules
    resource_loaders: Dict[str, ResourceLoader] = field(default_factory=dict)


def build_services(
    settings: Settings,
    database: Optional[Database] = None,
    blob_store: Optional[BlobStore] = None,
) -> ServiceContainer:
    database = database or Database(settings.database_url, echo=settings.log_sql_queries)

    blacklist = None
    if settings.token_blacklist_enabled:
        blacklist = build_token_blacklist(database, settings.redis_url)

    token_service = TokenService(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        lifetime=timedelta(seconds=settings.access_token_lifetime_seconds),
        issuer=settings.jwt_issuer,
        leeway_seconds=settings.jwt_leeway_seconds,
        blacklist=blacklist,
    )

    return ServiceContainer(
        settings=settings,
        database=database,
        hasher=PasswordHasher.from_settings(settings),
        token_service=token_service,
        auth_guard=AuthGuard(token_service, cookie_name=settings.auth_cookie_name),
        blob_store=blob_store or create_blob_store(settings),
        blacklist=blacklist,
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_app_settings(request: Request) -> Settings:
    return request.app.state.services.settings


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.services.blob_store


def get_token_service(request: Request) -> TokenService:
    return request.app.state.services.token_service


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.services.hasher


__all__ = [
    "ServiceContainer",
    "build_services",
    "get_services",
    "get_app_settings",
    "get_blob_store",
    "get_token_service",
    "get_hasher",
    "get_current_user",
    "get_db",
]
