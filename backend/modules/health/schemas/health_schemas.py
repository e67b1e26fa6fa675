"""
Pydantic schemas for health monitoring endpoints.
"""

from pydantic import BaseModel
from typing import Dict, List, Optional, Any
from datetime import datetime
from enum import Enum


class HealthStatus(str, Enum):
    """Health status values"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentStatus(BaseModel):
    """Status of a single component"""
    name: str
    status: HealthStatus
    response_time_ms: Optional[float] = None
    details: Optional[Dict[str, Any]] = None
    last_checked: datetime
    message: Optional[str] = None


class HealthCheckResponse(BaseModel):
    """Overall health check response"""
    status: HealthStatus
    timestamp: datetime
    version: str
    environment: str
    uptime_seconds: float
    components: List[ComponentStatus]
    checks_passed: int
    checks_failed: int


class LightHealthResponse(BaseModel):
    status: str = "ok"
    time: int


class SystemMetrics(BaseModel):
    """Host and process metrics"""
    platform: str
    python_version: str
    hostname: str
    cpu_count: int
    cpu_usage_percent: float
    load_average: Optional[List[float]] = None
    memory_total_mb: float
    memory_available_mb: float
    memory_usage_percent: float
    process_memory_mb: float


class DetailedHealthResponse(HealthCheckResponse):
    system: SystemMetrics
    tables: List[str]
