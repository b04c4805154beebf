# ============================================================================
# CLAUDE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the map features API
# LAST_REVIEWED: Current
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, map_features, health
# ============================================================================

"""
Azure Functions Entry Point for the feeder map API

Registers the HTTP triggers of the map features module and the health
checks.

Architecture:
    - Map features API: 7 endpoints (function-key auth)
        - GET   /api/map/features[/points|/lines|/polygons]?feederId=
        - GET   /api/map/feeders
        - GET   /api/map/missing-lines
        - PATCH /api/map/regenerate?timeout=
    - Health checks: 2 endpoints
        - /api/health - Public (minimal response for external callers)
        - /api/health/detailed - Internal (full metrics for gateway probes)

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import json
import logging

import azure.functions as func

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# Map Features API - 7 Endpoints
# ============================================================================

try:
    from map_features import get_map_triggers

    logger.info("Registering map features API endpoints...")

    # Order matches get_map_triggers()
    map_triggers = get_map_triggers()

    @app.route(route="map/features", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
    def map_all_features(req: func.HttpRequest) -> func.HttpResponse:
        return map_triggers[0]['handler'](req)

    @app.route(route="map/features/points", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
    def map_point_features(req: func.HttpRequest) -> func.HttpResponse:
        return map_triggers[1]['handler'](req)

    @app.route(route="map/features/lines", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
    def map_line_features(req: func.HttpRequest) -> func.HttpResponse:
        return map_triggers[2]['handler'](req)

    @app.route(route="map/features/polygons", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
    def map_polygon_features(req: func.HttpRequest) -> func.HttpResponse:
        return map_triggers[3]['handler'](req)

    @app.route(route="map/feeders", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
    def map_feeders(req: func.HttpRequest) -> func.HttpResponse:
        return map_triggers[4]['handler'](req)

    @app.route(route="map/missing-lines", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
    def map_missing_lines(req: func.HttpRequest) -> func.HttpResponse:
        return map_triggers[5]['handler'](req)

    @app.route(route="map/regenerate", methods=["PATCH"], auth_level=func.AuthLevel.FUNCTION)
    def map_regenerate(req: func.HttpRequest) -> func.HttpResponse:
        return map_triggers[6]['handler'](req)

    logger.info("✅ Map features API registered successfully (7 endpoints)")

except ImportError as e:
    logger.warning(f"⚠️ Map features module not available: {e}")
    logger.warning("Map features API will not be available")

# ============================================================================
# Health Check Endpoints - 2 Endpoints (Public + Detailed)
# ============================================================================

@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Public health check endpoint - minimal response for external callers.

    Always returns 200 - status in body indicates health.

    Returns:
        JSON: {"status": "healthy|unhealthy", "timestamp": "..."}
    """
    from health import get_public_health

    result = get_public_health()

    return func.HttpResponse(
        json.dumps(result, default=str),
        mimetype="application/json",
        status_code=200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )


@app.route(route="health/detailed", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def health_detailed(req: func.HttpRequest) -> func.HttpResponse:
    """
    Detailed health check endpoint - for gateway probes and operations.

    Returns 503 if unhealthy, 200 otherwise (healthy or degraded).
    """
    from health import get_detailed_health, HealthStatus

    result = get_detailed_health()

    status_code = 503 if result["status"] == HealthStatus.UNHEALTHY.value else 200

    return func.HttpResponse(
        json.dumps(result, default=str, indent=2),
        mimetype="application/json",
        status_code=status_code,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )

# ============================================================================
# Application Startup
# ============================================================================

from health import get_app_identity
_app_identity = get_app_identity()

logger.info("="*60)
logger.info(f"{_app_identity['name']} - {_app_identity['description']}")
logger.info("="*60)
logger.info("Function App initialized successfully")
logger.info("Available endpoints:")
logger.info("  - GET /api/health - Public health check (minimal)")
logger.info("  - GET /api/health/detailed - Detailed health (function key)")
logger.info("")
logger.info("Map features API (7 endpoints):")
logger.info("  - GET /api/map/features - All features bundle (?feederId=)")
logger.info("  - GET /api/map/features/points - Point features")
logger.info("  - GET /api/map/features/lines - Line features")
logger.info("  - GET /api/map/features/polygons - Polygon features")
logger.info("  - GET /api/map/feeders - Feeder list")
logger.info("  - GET /api/map/missing-lines - Missing line pairs")
logger.info("  - PATCH /api/map/regenerate - Rebuild the feature cache (?timeout=)")
logger.info("="*60)
