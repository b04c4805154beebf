# ============================================================================
# CLAUDE CONTEXT - HEALTH CHECK MODULE
# ============================================================================
# STATUS: Core Infrastructure - Health Monitoring
# PURPOSE: Health checks for gateway probes and monitoring
# LAST_REVIEWED: Current
# EXPORTS: get_public_health, get_detailed_health, get_app_identity, HealthStatus
# DEPENDENCIES: psycopg, config, util_logger, map_features
# PATTERNS: Two-tier health checks (public/detailed), critical vs degraded checks
# ============================================================================

"""
Health Check Module for the feeder map API

1. Public Health (/api/health):
   - Status and timestamp only, from the database check alone
   - Always returns 200 (status in body indicates health)

2. Detailed Health (/api/health/detailed):
   - database (critical): PostGIS reachable, with server and PostGIS versions
   - feature_cache: cache table present, feature counts per geometry type
   - api_modules: map_features importable and its routes built
   - Returns 503 if unhealthy

Usage:
    from health import get_detailed_health

    report = get_detailed_health()
    # {"status": "degraded", "app": "feeder-map-api", "checks": {...}, ...}
"""

import time
import uuid
import psycopg
from enum import Enum
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Callable, Optional, Dict, Any, List, Tuple

from config import get_postgres_connection_string, get_app_config
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "HealthService")

APP_NAME = "feeder-map-api"


class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"      # Non-critical checks failing
    UNHEALTHY = "unhealthy"    # Critical checks failing


@dataclass
class CheckResult:
    """Result of a single health check."""
    status: str              # "pass" or "fail"
    latency_ms: float
    message: str
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def passed(cls, started: float, message: str, **details) -> "CheckResult":
        return cls("pass", _elapsed_ms(started), message, details or None)

    @classmethod
    def failed(cls, started: float, message: str, **details) -> "CheckResult":
        return cls("fail", _elapsed_ms(started), message, details or None)

    @property
    def ok(self) -> bool:
        return self.status == "pass"

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "status": self.status,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message
        }
        if self.details:
            body["details"] = self.details
        return body


def get_app_identity() -> Dict[str, str]:
    """Name and description logged at startup and returned by detailed health."""
    return {
        "name": APP_NAME,
        "description": "Electrical network map features service"
    }


def _elapsed_ms(start_time: float) -> float:
    return (time.perf_counter() - start_time) * 1000


# ============================================================================
# Checks
# ============================================================================

def check_database_connectivity(timeout_seconds: float = 5.0) -> CheckResult:
    """
    Connect with a short timeout and ask PostGIS for its version.

    Every map feature read and write needs PostGIS, so a server without the
    extension fails this check too.
    """
    started = time.perf_counter()

    try:
        config = get_app_config()
        with psycopg.connect(
            get_postgres_connection_string(),
            connect_timeout=max(1, int(timeout_seconds))
        ) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT current_setting('server_version'), postgis_lib_version()")
                server_version, postgis_version = cur.fetchone()

        return CheckResult.passed(
            started,
            "PostGIS reachable",
            host=config.postgis_host,
            database=config.postgis_database,
            server_version=server_version,
            postgis_version=postgis_version,
            auth_mode="managed_identity" if config.use_managed_identity else "password"
        )

    except Exception as e:
        logger.error(f"Database check failed: {e}")
        return CheckResult.failed(started, f"Database unreachable: {type(e).__name__}", error=str(e))


def check_feature_cache() -> CheckResult:
    """
    Check the feature cache table.

    The table is created by the first regeneration, so a missing table only
    degrades the service.
    """
    started = time.perf_counter()

    try:
        from map_features.repository import FeatureCacheRepository

        repo = FeatureCacheRepository()
        table = f"{repo.schema_name}.{repo.table_name}"
        if not repo.table_exists():
            return CheckResult.failed(
                started,
                f"Feature cache table '{table}' does not exist (run a regeneration)",
                table=table,
                exists=False
            )

        counts = repo.count_by_geometry_kind()
        return CheckResult.passed(started, f"{sum(counts.values())} cached features", table=table, counts=counts)

    except Exception as e:
        logger.error(f"Feature cache check failed: {e}")
        return CheckResult.failed(started, f"Feature cache unavailable: {type(e).__name__}", error=str(e))


def check_api_modules() -> CheckResult:
    """map_features imports and builds its routes."""
    started = time.perf_counter()

    try:
        from map_features import get_map_triggers, get_map_config
        routes = [trigger['route'] for trigger in get_map_triggers()]
        return CheckResult.passed(
            started,
            f"{len(routes)} map routes registered",
            map_features={"available": True, "routes": routes, "schema": get_map_config().map_schema}
        )

    except Exception as e:
        return CheckResult.failed(
            started,
            "map_features module unavailable",
            map_features={"available": False, "error": str(e)}
        )


# ============================================================================
# Main Entry Points
# ============================================================================

def _overall_status(results: List[Tuple[str, CheckResult, bool]]) -> HealthStatus:
    if any(critical and not result.ok for _, result, critical in results):
        return HealthStatus.UNHEALTHY
    if any(not result.ok for _, result, _ in results):
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def get_public_health() -> Dict[str, Any]:
    """Status and timestamp only; decided by the database check."""
    started = time.perf_counter()
    db_result = check_database_connectivity(timeout_seconds=3.0)
    status = _overall_status([("database", db_result, True)])

    logger.info("Public health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(_elapsed_ms(started), 2),
            'check_type': 'public'
        }
    })

    return {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def get_detailed_health() -> Dict[str, Any]:
    """
    Full health report for probes and operations.

    SECURITY NOTE: Block this endpoint from external access at the gateway.
    """
    started = time.perf_counter()
    request_id = uuid.uuid4().hex[:8]

    registry: List[Tuple[str, Callable[[], CheckResult], bool]] = [
        ("database", check_database_connectivity, True),
        ("feature_cache", check_feature_cache, False),
        ("api_modules", check_api_modules, False),
    ]
    results = [(name, check(), critical) for name, check, critical in registry]
    status = _overall_status(results)
    failing = [name for name, result, _ in results if not result.ok]
    total_ms = round(_elapsed_ms(started), 2)
    identity = get_app_identity()

    logger.info("Detailed health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': total_ms,
            'check_type': 'detailed',
            'request_id': request_id,
            'failing_checks': failing
        }
    })

    return {
        "status": status.value,
        "app": identity["name"],
        "description": identity["description"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "checks": {name: result.to_dict() for name, result, _ in results},
        "total_duration_ms": total_ms
    }
