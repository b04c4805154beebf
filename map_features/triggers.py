# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES TRIGGERS
# ============================================================================
# STATUS: Standalone HTTP Triggers - map features endpoints
# PURPOSE: Azure Functions HTTP triggers for map feature reads and regeneration
# LAST_REVIEWED: Current
# EXPORTS: get_map_triggers (returns list of trigger configurations)
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# PYDANTIC_MODELS: RegenerationResult, FeatureBundle
# DEPENDENCIES: azure.functions, json, util_logger
# SOURCE: HTTP requests from the map UI
# SCOPE: HTTP endpoint handlers for the map features module
# VALIDATION: Query parameter parsing (feederId, timeout)
# PATTERNS: Trigger Pattern, Factory Pattern (get_map_triggers)
# ENTRY_POINTS: Function App route registration via get_map_triggers()
# ============================================================================

"""
Map Features HTTP Triggers - Azure Functions Handlers

Endpoints:
- GET   /api/map/features             - All features bundle (?feederId=)
- GET   /api/map/features/points      - Point features (?feederId=)
- GET   /api/map/features/lines       - Line features (?feederId=)
- GET   /api/map/features/polygons    - Polygon features (?feederId=)
- GET   /api/map/feeders              - Feeder list
- GET   /api/map/missing-lines        - Missing line pairs diagnostic
- PATCH /api/map/regenerate           - Rebuild the feature cache (?timeout=seconds)

Errors are JSON ``{"code": ..., "description": ...}``; regeneration
failures also carry ``"done": false``.

Integration:
    In function_app.py:

    from map_features import get_map_triggers

    for trigger in get_map_triggers():
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.FUNCTION
        )(trigger['handler'])
"""

import json
import math
from typing import Any, Callable, Dict, List, Optional

import azure.functions as func

from util_logger import ComponentType, LoggerFactory

from .errors import (
    ArtifactContractError,
    FeatureCacheError,
    RegenerationError,
    RegenerationTimeoutError,
)
from .service import MapFeaturesService

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "MapFeaturesTriggers")


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_map_triggers(service: Optional[MapFeaturesService] = None) -> List[Dict[str, Any]]:
    """
    Get list of map features trigger configurations for function_app.py.

    Args:
        service: Shared service instance (default: one built from env config)

    Returns:
        List of dicts with keys route, methods and handler
    """
    service = service or MapFeaturesService()
    return [
        {
            'route': 'map/features',
            'methods': ['GET'],
            'handler': AllFeaturesTrigger(service).handle
        },
        {
            'route': 'map/features/points',
            'methods': ['GET'],
            'handler': GeometryFeaturesTrigger(service, service.get_point_features).handle
        },
        {
            'route': 'map/features/lines',
            'methods': ['GET'],
            'handler': GeometryFeaturesTrigger(service, service.get_line_features).handle
        },
        {
            'route': 'map/features/polygons',
            'methods': ['GET'],
            'handler': GeometryFeaturesTrigger(service, service.get_polygon_features).handle
        },
        {
            'route': 'map/feeders',
            'methods': ['GET'],
            'handler': FeedersTrigger(service).handle
        },
        {
            'route': 'map/missing-lines',
            'methods': ['GET'],
            'handler': MissingLinesTrigger(service).handle
        },
        {
            'route': 'map/regenerate',
            'methods': ['PATCH'],
            'handler': RegenerateTrigger(service).handle
        }
    ]


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

class BaseMapTrigger:
    """
    Base class for map features triggers: response formatting and parameter parsing.
    """

    def __init__(self, service: MapFeaturesService):
        self.service = service

    def _json_response(self, data: Any, status_code: int = 200) -> func.HttpResponse:
        """
        Create JSON HTTP response.

        Args:
            data: Data to serialize (dict, list, Pydantic model)
            status_code: HTTP status code
        """
        if hasattr(data, 'model_dump'):
            data = data.model_dump(mode='json', exclude_none=True)

        return func.HttpResponse(
            body=json.dumps(data, default=str),
            status_code=status_code,
            mimetype="application/json"
        )

    def _error_response(
        self,
        message: str,
        status_code: int = 400,
        error_type: str = "BadRequest",
        extra: Optional[Dict[str, Any]] = None
    ) -> func.HttpResponse:
        """
        Create error response.

        Args:
            message: Error message
            status_code: HTTP status code
            error_type: Error type string
            extra: Additional body fields
        """
        error_body = {
            "code": error_type,
            "description": message
        }
        if extra:
            error_body.update(extra)
        return func.HttpResponse(
            body=json.dumps(error_body, indent=2),
            status_code=status_code,
            mimetype="application/json"
        )

    def _feeder_id(self, req: func.HttpRequest) -> Optional[int]:
        """
        ``feederId`` query parameter; absent or blank means no filter.

        Raises:
            ValueError: If the value is not an integer
        """
        raw = (req.params.get('feederId') or '').strip()
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"feederId must be an integer, got '{raw}'")

    def _internal_error(self, action: str, error: Exception) -> func.HttpResponse:
        logger.error(f"Error {action}: {error}", exc_info=True)
        return self._error_response(
            message=f"Internal server error: {str(error)}",
            status_code=500,
            error_type="InternalServerError"
        )


# ============================================================================
# ENDPOINT TRIGGERS
# ============================================================================

class AllFeaturesTrigger(BaseMapTrigger):
    """
    All features bundle.

    Endpoint: GET /api/map/features?feederId={id}
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            feeder_id = self._feeder_id(req)
        except ValueError as e:
            return self._error_response(str(e))

        try:
            bundle = self.service.get_all_features(feeder_id)
            logger.info(
                "All features requested",
                extra={'custom_dimensions': {'feeder_id': feeder_id}}
            )
            return self._json_response(bundle)

        except FeatureCacheError as e:
            return self._error_response(str(e), 500, "FeatureCacheError")
        except Exception as e:
            return self._internal_error("querying all features", e)


class GeometryFeaturesTrigger(BaseMapTrigger):
    """
    Features of one geometry kind.

    Endpoints: GET /api/map/features/{points|lines|polygons}?feederId={id}
    """

    def __init__(self, service: MapFeaturesService,
                 query: Callable[[Optional[int]], List[Dict[str, Any]]]):
        super().__init__(service)
        self.query = query

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            feeder_id = self._feeder_id(req)
        except ValueError as e:
            return self._error_response(str(e))

        try:
            return self._json_response(self.query(feeder_id))

        except FeatureCacheError as e:
            return self._error_response(str(e), 500, "FeatureCacheError")
        except Exception as e:
            return self._internal_error("querying features", e)


class FeedersTrigger(BaseMapTrigger):
    """
    Feeder list.

    Endpoint: GET /api/map/feeders
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            return self._json_response(self.service.list_feeders())
        except Exception as e:
            return self._internal_error("listing feeders", e)


class MissingLinesTrigger(BaseMapTrigger):
    """
    Adjacent node pairs with no line segment between them.

    Endpoint: GET /api/map/missing-lines
    """

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            return self._json_response(self.service.missing_line_pairs())
        except Exception as e:
            return self._internal_error("querying missing lines", e)


class RegenerateTrigger(BaseMapTrigger):
    """
    Rebuild the feature cache from the artifact feed.

    Endpoint: PATCH /api/map/regenerate?timeout={seconds}

    Returns:
        200 {done: true[, details][, counts]}
        504 RegenerationTimeout, 500 RegenerationFailed / ContractError
    """

    def _timeout(self, req: func.HttpRequest) -> Optional[float]:
        raw = (req.params.get('timeout') or '').strip()
        if not raw:
            return None
        try:
            timeout = float(raw)
        except ValueError:
            raise ValueError(f"timeout must be a number of seconds, got '{raw}'")
        if not math.isfinite(timeout) or timeout <= 0:
            raise ValueError(f"timeout must be positive, got '{raw}'")
        return timeout

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        try:
            timeout = self._timeout(req)
        except ValueError as e:
            return self._error_response(str(e))

        try:
            result = self.service.regenerate(timeout_seconds=timeout)
            return self._json_response(result)

        except RegenerationTimeoutError as e:
            return self._error_response(str(e), 504, "RegenerationTimeout", {"done": False})
        except RegenerationError as e:
            return self._error_response(str(e), 500, "RegenerationFailed", {"done": False})
        except ArtifactContractError as e:
            return self._error_response(str(e), 500, "ContractError", {"done": False})
        except Exception as e:
            logger.error(f"Unexpected regeneration failure: {e}", exc_info=True)
            return self._error_response(
                f"Internal server error: {str(e)}", 500, "InternalServerError", {"done": False}
            )
