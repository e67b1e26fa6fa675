"""
Health monitoring API endpoints.
"""

from fastapi import APIRouter, Depends, Response, status

from core.auth import Principal
from core.deps import ServiceContainer, get_services
from core.permissions import require_roles
from core.response_models import StandardResponse
from core.user_models import UserRole

from ..services.health_service import HealthService
from ..schemas.health_schemas import (
    DetailedHealthResponse,
    HealthCheckResponse,
    HealthStatus,
    LightHealthResponse,
)

router = APIRouter(prefix="/health", tags=["Health Monitoring"])


def get_health_service(services: ServiceContainer = Depends(get_services)) -> HealthService:
    return HealthService(services)


@router.get("", response_model=StandardResponse[HealthCheckResponse])
def health_check(
    response: Response,
    service: HealthService = Depends(get_health_service),
):
    """
    Basic health check endpoint.

    Publicly accessible. Answers 503 when a critical component (the database)
    is unreachable so load balancers can take the instance out of rotation.
    """
    health = service.check_health()
    healthy = health.status != HealthStatus.UNHEALTHY
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return StandardResponse(success=healthy, data=health)


@router.get("/light", response_model=StandardResponse[LightHealthResponse])
def light_health_check():
    """Minimal liveness check for high-frequency monitoring"""
    return StandardResponse.ok(HealthService.check_light_health())


@router.get("/detailed", response_model=StandardResponse[DetailedHealthResponse])
def detailed_health_check(
    response: Response,
    admin: Principal = Depends(require_roles(UserRole.ADMIN)),
    service: HealthService = Depends(get_health_service),
):
    """
    Detailed health check with component and host information.

    Requires the admin role.
    """
    health = service.check_detailed_health()
    healthy = health.status != HealthStatus.UNHEALTHY
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return StandardResponse(success=healthy, data=health)
