"""
Health monitoring service implementation.
"""

import os
import platform
import socket
import time
import logging
from typing import List, Optional

import psutil
from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from core.deps import ServiceContainer
from core.mixins import utcnow
from core.token_blacklist import RedisTokenBlacklist
from ..schemas.health_schemas import (
    ComponentStatus,
    DetailedHealthResponse,
    HealthCheckResponse,
    HealthStatus,
    LightHealthResponse,
    SystemMetrics,
)

logger = logging.getLogger(__name__)

SLOW_RESPONSE_MS = 500


class HealthService:
    """Service for health monitoring operations"""

    def __init__(self, services: ServiceContainer):
        self.services = services
        self.settings = services.settings
        self.database = services.database

    @property
    def redis_client(self) -> Optional[Redis]:
        """Redis connection of the token blacklist, when it is Redis-backed"""
        blacklist = self.services.blacklist
        if isinstance(blacklist, RedisTokenBlacklist):
            return blacklist.redis
        return None

    def check_health(self) -> HealthCheckResponse:
        """Run every component check and roll them up into one status"""
        components = [self.check_database_health()]

        redis_status = self.check_redis_health()
        if redis_status is not None:
            components.append(redis_status)

        unhealthy_count = sum(1 for c in components if c.status == HealthStatus.UNHEALTHY)
        degraded_count = sum(1 for c in components if c.status == HealthStatus.DEGRADED)

        if unhealthy_count > 0:
            overall_status = HealthStatus.UNHEALTHY
        elif degraded_count > 0:
            overall_status = HealthStatus.DEGRADED
        else:
            overall_status = HealthStatus.HEALTHY

        return HealthCheckResponse(
            status=overall_status,
            timestamp=utcnow(),
            version=self.settings.app_version,
            environment=self.settings.environment,
            uptime_seconds=self.uptime_seconds(),
            components=components,
            checks_passed=len(components) - unhealthy_count - degraded_count,
            checks_failed=unhealthy_count,
        )

    def check_detailed_health(self) -> DetailedHealthResponse:
        basic = self.check_health()
        return DetailedHealthResponse(
            **basic.model_dump(),
            system=self.get_system_metrics(),
            tables=self.list_tables(),
        )

    @staticmethod
    def check_light_health() -> LightHealthResponse:
        return LightHealthResponse(time=int(time.time() * 1000))

    def uptime_seconds(self) -> float:
        return (utcnow() - self.services.started_at).total_seconds()

    def check_database_health(self) -> ComponentStatus:
        """Check database connectivity and latency"""
        start_time = time.perf_counter()
        try:
            self.database.ping()
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return ComponentStatus(
                name="database",
                status=HealthStatus.UNHEALTHY,
                response_time_ms=self._elapsed_ms(start_time),
                details={"can_connect": False},
                last_checked=utcnow(),
                message="Database is unreachable",
            )

        response_time_ms = self._elapsed_ms(start_time)
        engine = self.database.engine
        return ComponentStatus(
            name="database",
            status=self._status_for_latency(response_time_ms),
            response_time_ms=response_time_ms,
            details={
                "can_connect": True,
                "dialect": engine.dialect.name,
                "pool": engine.pool.status(),
            },
            last_checked=utcnow(),
        )

    def check_redis_health(self) -> Optional[ComponentStatus]:
        """Check Redis when the blacklist uses it; None when Redis is not configured"""
        client = self.redis_client
        if client is None:
            return None

        start_time = time.perf_counter()
        try:
            client.ping()
            info = client.info()
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return ComponentStatus(
                name="redis",
                status=HealthStatus.UNHEALTHY,
                response_time_ms=self._elapsed_ms(start_time),
                details={"can_connect": False},
                last_checked=utcnow(),
                message="Redis is unreachable",
            )

        response_time_ms = self._elapsed_ms(start_time)
        return ComponentStatus(
            name="redis",
            status=self._status_for_latency(response_time_ms),
            response_time_ms=response_time_ms,
            details={
                "can_connect": True,
                "connected_clients": info.get("connected_clients", 0),
                "used_memory_mb": round(info.get("used_memory", 0) / 1024 / 1024, 2),
                "version": info.get("redis_version", "unknown"),
            },
            last_checked=utcnow(),
        )

    def get_system_metrics(self) -> SystemMetrics:
        """Collect host and process metrics with psutil"""
        memory = psutil.virtual_memory()
        process = psutil.Process(os.getpid())

        load_average = None
        if hasattr(os, "getloadavg"):
            load_average = [round(value, 2) for value in os.getloadavg()]

        return SystemMetrics(
            platform=platform.platform(),
            python_version=platform.python_version(),
            hostname=socket.gethostname(),
            cpu_count=psutil.cpu_count() or 1,
            cpu_usage_percent=psutil.cpu_percent(interval=None),
            load_average=load_average,
            memory_total_mb=round(memory.total / 1024 / 1024, 2),
            memory_available_mb=round(memory.available / 1024 / 1024, 2),
            memory_usage_percent=memory.percent,
            process_memory_mb=round(process.memory_info().rss / 1024 / 1024, 2),
        )

    def list_tables(self) -> List[str]:
        try:
            return sorted(inspect(self.database.engine).get_table_names())
        except SQLAlchemyError as e:
            logger.error(f"Could not list database tables: {e}")
            return []

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return round((time.perf_counter() - start_time) * 1000, 2)

    @staticmethod
    def _status_for_latency(response_time_ms: float) -> HealthStatus:
        if response_time_ms > SLOW_RESPONSE_MS:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY
