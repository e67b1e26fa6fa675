"""
Health monitoring schemas.
"""

from .health_schemas import (
    HealthStatus,
    ComponentStatus,
    HealthCheckResponse,
    LightHealthResponse,
    SystemMetrics,
    DetailedHealthResponse,
)

__all__ = [
    "HealthStatus",
    "ComponentStatus",
    "HealthCheckResponse",
    "LightHealthResponse",
    "SystemMetrics",
    "DetailedHealthResponse",
]
