"""
Application startup validation and initialization.

This module performs startup checks so a misconfigured instance fails fast
in production and logs loudly everywhere else.
"""

import logging
from typing import List, Tuple

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from core.config import DEFAULT_JWT_SECRET
from core.deps import ServiceContainer
from core.response_middleware import RequestIDLogFilter
from core.token_blacklist import RedisTokenBlacklist

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the request id in every line"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIDLogFilter) for f in handler.filters):
            handler.addFilter(RequestIDLogFilter())


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self, services: ServiceContainer):
        self.services = services
        self.settings = services.settings
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_database_connection(self) -> bool:
        """Check database connectivity"""
        try:
            self.services.database.ping()
        except SQLAlchemyError as e:
            self.errors.append(f"Database connection failed: {e}")
            return False
        logger.info("Database connection successful")
        return True

    def check_jwt_secret(self) -> bool:
        if self.settings.jwt_secret_key == DEFAULT_JWT_SECRET:
            if self.settings.is_production:
                self.errors.append("JWT_SECRET_KEY is using the default value")
                return False
            self.warnings.append("Using development JWT_SECRET_KEY - change for production")
        return True

    def check_redis_connection(self) -> bool:
        """Check Redis connectivity (if configured)"""
        blacklist = self.services.blacklist
        if not isinstance(blacklist, RedisTokenBlacklist):
            if self.settings.token_blacklist_enabled:
                self.warnings.append("Redis not configured - token blacklist uses the database")
            return True

        try:
            blacklist.redis.ping()
        except RedisError as e:
            self.errors.append(f"Redis connection failed: {e}")
            return False
        logger.info("Redis connection successful")
        return True

    def purge_blacklist(self) -> bool:
        if self.services.blacklist is None:
            return True
        try:
            self.services.blacklist.purge_expired()
        except SQLAlchemyError as e:
            self.warnings.append(f"Could not purge expired blacklisted tokens: {e}")
        return True

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """Run all validation checks"""
        checks = [
            ("JWT Secret", self.check_jwt_secret),
            ("Database Connection", self.check_database_connection),
            ("Redis Connection", self.check_redis_connection),
            ("Token Blacklist Cleanup", self.purge_blacklist),
        ]

        all_passed = True
        for check_name, check_func in checks:
            logger.info(f"Running check: {check_name}")
            if not check_func():
                all_passed = False

        return all_passed, self.errors, self.warnings


def run_startup_checks(services: ServiceContainer) -> Tuple[bool, List[str]]:
    """
    Run all startup validation checks and log a summary.

    Raises:
        RuntimeError: when a check fails in production
    """
    settings = services.settings
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name} {settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info("=" * 60)

    validator = StartupValidator(services)
    passed, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Startup warning: {warning}")
    for error in errors:
        logger.error(f"Startup error: {error}")

    if not passed and settings.is_production:
        raise RuntimeError(f"Cannot start in production with errors: {'; '.join(errors)}")
    elif not passed:
        logger.warning("Starting in development mode despite errors")
    else:
        logger.info("All startup checks passed")

    return passed, warnings
