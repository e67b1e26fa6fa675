# backend/core/permissions.py

"""
Role and ownership checks.

Both checks are FastAPI dependencies layered on ``get_current_user``:

    @router.post("/", dependencies=[Depends(require_roles(UserRole.ADMIN))])

    @router.put("/{restaurant_id}")
    def update(restaurant = Depends(check_ownership("restaurant", "restaurant_id",
                                                     *RESTAURANT_MANAGER_ROLES))):
        ...

Ownership loaders live on the app's ``ServiceContainer`` keyed by resource
type; the modules that own those resources supply them when the app is
built (see ``modules/restaurants/permissions.py``).
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional
import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .auth import Principal, get_current_user
from .database import get_db
from .exceptions import ForbiddenError, NotFoundError
from .user_models import UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceLoader:
    """How to fetch a resource by id and find out who owns it."""

    load: Callable[[Session, int], Optional[Any]]
    owner_id: Callable[[Any], Optional[int]]
    label: str


def get_resource_loader(
    loaders: Mapping[str, ResourceLoader], resource_type: str
) -> ResourceLoader:
    try:
        return loaders[resource_type]
    except KeyError:
        raise RuntimeError(f"No resource loader registered for '{resource_type}'")


def authorize(principal: Optional[Principal], allowed_roles: Iterable[UserRole]) -> Principal:
    """
    Check the principal holds one of the allowed roles.

    Raises:
        RuntimeError: called without an authenticated principal
        ForbiddenError: role not allowed
    """
    if principal is None:
        raise RuntimeError("authorize() called before authentication")

    allowed = {UserRole(role) for role in allowed_roles}
    if principal.role not in allowed:
        logger.info(
            f"User {principal.id} with role '{principal.role.value}' denied; "
            f"requires one of {sorted(r.value for r in allowed)}"
        )
        raise ForbiddenError(
            f"User role {principal.role.value} is not authorized to access this route"
        )
    return principal


class RoleRequirement:
    """Dependency that authenticates and then checks the caller's role."""

    def __init__(self, roles: Iterable[UserRole]):
        self.roles = tuple(roles)

    def __call__(self, principal: Principal = Depends(get_current_user)) -> Principal:
        return authorize(principal, self.roles)


def require_roles(*roles: UserRole) -> RoleRequirement:
    return RoleRequirement(roles)


class OwnershipRequirement:
    """
    Dependency that runs the role check, loads a resource from a path
    parameter, and lets through only its owner or an admin.

    The loaded resource is returned and cached on ``request.state.resource``.
    """

    def __init__(self, resource_type: str, id_param: str, roles: Iterable[UserRole]):
        self.resource_type = resource_type
        self.id_param = id_param
        self.roles = tuple(roles)

    def __call__(
        self,
        request: Request,
        principal: Principal = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> Any:
        authorize(principal, self.roles)

        loader = get_resource_loader(
            request.app.state.services.resource_loaders, self.resource_type
        )
        raw_id = request.path_params.get(self.id_param)
        try:
            resource_id = int(raw_id)
        except (TypeError, ValueError):
            raise NotFoundError(f"{loader.label} not found with id of {raw_id}")

        resource = loader.load(db, resource_id)
        if resource is None:
            raise NotFoundError(f"{loader.label} not found with id of {resource_id}")

        if principal.role != UserRole.ADMIN and loader.owner_id(resource) != principal.id:
            logger.info(
                f"User {principal.id} denied access to {self.resource_type} {resource_id}"
            )
            raise ForbiddenError(
                f"User {principal.id} is not authorized to modify this {loader.label.lower()}"
            )

        request.state.resource = resource
        return resource


def check_ownership(resource_type: str, id_param: str, *roles: UserRole) -> OwnershipRequirement:
    return OwnershipRequirement(resource_type, id_param, roles)
