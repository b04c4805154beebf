# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES MODULE
# ============================================================================
# STATUS: Standalone Module - electrical network map features
# PURPOSE: Generate, cache and serve GeoJSON features of the distribution network
# LAST_REVIEWED: Current
# EXPORTS: MapFeaturesService, MapFeaturesConfig, get_map_config, get_map_triggers
# DEPENDENCIES: psycopg, pydantic, pyproj, shapely, scikit-learn, azure-functions
# SOURCE: Environment variables, PostGIS network tables
# PATTERNS: Service Layer, Repository Pattern, Standalone Module
# ENTRY_POINTS: from map_features import get_map_triggers
# ============================================================================

"""
Map Features - Standalone Module

Turns the artifact feed of an electrical distribution network (feeders,
transformers, poles, line segments, equipment; UTM coordinates) into map
features (points, lines, per-feeder service-area polygons in WGS84) stored
in a PostGIS feature cache.

Architecture:
    map_features/
    ├── config.py       # Environment-based configuration
    ├── errors.py       # Exception taxonomy
    ├── models.py       # Records, enums, Pydantic DTOs
    ├── projection.py   # UTM -> WGS84 (pyproj)
    ├── classifier.py   # Feed partitioning
    ├── builders.py     # Line / point features
    ├── spatial_ops.py  # DBSCAN + concave hull backend
    ├── clustering.py   # Per-feeder clustering
    ├── hulls.py        # Per-feeder polygons
    ├── pipeline.py     # Stage orchestration
    ├── queries.py      # Network SQL
    ├── repository.py   # Feature cache + artifact feed (psycopg)
    ├── service.py      # Business logic layer
    └── triggers.py     # Azure Functions HTTP handlers

Integration:
    from map_features import get_map_triggers

    for trigger in get_map_triggers():
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.FUNCTION
        )(trigger['handler'])
"""

from .config import MapFeaturesConfig, get_map_config
from .service import MapFeaturesService
from .triggers import get_map_triggers

__version__ = "1.0.0"
__all__ = [
    "MapFeaturesConfig",
    "MapFeaturesService",
    "get_map_triggers",
    "get_map_config"
]
