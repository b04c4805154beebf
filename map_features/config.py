# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES CONFIGURATION
# ============================================================================
# STATUS: Standalone Configuration - Map Features module
# PURPOSE: Settings for feature generation, the feature cache and its queries
# LAST_REVIEWED: Current
# EXPORTS: MapFeaturesConfig, PlanarBounds, get_map_config
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: MapFeaturesConfig
# DEPENDENCIES: pydantic, os
# SOURCE: Environment variables
# SCOPE: Map features module configuration only
# VALIDATION: Pydantic v2 validation
# PATTERNS: Settings Pattern, Singleton via cached function
# ENTRY_POINTS: from map_features.config import get_map_config
# ============================================================================

"""
Map Features Configuration

Database credentials live in the root ``config`` module; this module only
covers the map feature pipeline and the feature cache.

Environment Variables (all optional):
    - MAP_SCHEMA: Schema holding the feature cache table (default: "public")
    - MAP_FEATURES_TABLE: Feature cache table (default: "features")
    - MAP_SOURCE_SCHEMA: Schema of the network tables read by the feed (default: "public")
    - MAP_UTM_EPSG: EPSG code of the feed's planar CRS (default: 32718, UTM 18S)
    - MAP_MIN_NORTHING / MAP_MAX_NORTHING: Valid northing range (default: 5000000-10000000)
    - MAP_MIN_EASTING / MAP_MAX_EASTING: Valid easting range (default: 600000-1000000)
    - MAP_CLUSTER_DISTANCE_M: Clustering neighbour distance in meters (default: 100)
    - MAP_CLUSTER_MIN_SAMPLES: DBSCAN min samples (default: 1)
    - MAP_HULL_MAX_EDGE_KM: Concave hull max edge length in km (default: 1.0)
    - MAP_HULL_WORKERS: Feeders clustered/hulled in parallel (default: 4)
    - MAP_REGENERATE_TIMEOUT: Default compute budget for one regeneration, seconds (default: 300)
    - MAP_QUERY_TIMEOUT: Statement timeout for feature reads, seconds (default: 30)
    - MAP_REPLACE_LOCK_KEY: Advisory lock key guarding cache replacement (default: 724001)
"""

import os
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field, model_validator


@dataclass(frozen=True)
class PlanarBounds:
    """Valid planar box of the network, in feed units (meters)."""
    min_northing: float
    max_northing: float
    min_easting: float
    max_easting: float

    def contains(self, easting: float, northing: float) -> bool:
        return (
            self.min_northing <= northing <= self.max_northing
            and self.min_easting <= easting <= self.max_easting
        )


class MapFeaturesConfig(BaseModel):
    """
    Configuration for the map features module.
    """

    # Storage
    map_schema: str = Field(
        default_factory=lambda: os.getenv("MAP_SCHEMA", "public"),
        description="Schema holding the feature cache table"
    )
    features_table: str = Field(
        default_factory=lambda: os.getenv("MAP_FEATURES_TABLE", "features"),
        description="Feature cache table name"
    )
    source_schema: str = Field(
        default_factory=lambda: os.getenv("MAP_SOURCE_SCHEMA", "public"),
        description="Schema of the network tables the artifact feed reads"
    )

    # Coordinates
    utm_epsg: int = Field(
        default_factory=lambda: int(os.getenv("MAP_UTM_EPSG", "32718")),
        description="EPSG code of the planar CRS used by the feed"
    )
    min_northing: float = Field(
        default_factory=lambda: float(os.getenv("MAP_MIN_NORTHING", "5000000"))
    )
    max_northing: float = Field(
        default_factory=lambda: float(os.getenv("MAP_MAX_NORTHING", "10000000"))
    )
    min_easting: float = Field(
        default_factory=lambda: float(os.getenv("MAP_MIN_EASTING", "600000"))
    )
    max_easting: float = Field(
        default_factory=lambda: float(os.getenv("MAP_MAX_EASTING", "1000000"))
    )

    # Clustering and hulls
    cluster_distance_m: float = Field(
        default_factory=lambda: float(os.getenv("MAP_CLUSTER_DISTANCE_M", "100")),
        gt=0,
        description="Max neighbour distance in meters for point clustering"
    )
    cluster_min_samples: int = Field(
        default_factory=lambda: int(os.getenv("MAP_CLUSTER_MIN_SAMPLES", "1")),
        ge=1,
        description="DBSCAN min samples; 1 means every point belongs to a cluster"
    )
    hull_max_edge_km: float = Field(
        default_factory=lambda: float(os.getenv("MAP_HULL_MAX_EDGE_KM", "1.0")),
        gt=0,
        description="Longest triangle edge kept by the concave hull, in kilometers"
    )
    hull_workers: int = Field(
        default_factory=lambda: int(os.getenv("MAP_HULL_WORKERS", "4")),
        ge=1,
        le=64,
        description="Feeders clustered and hulled in parallel"
    )

    # Timeouts and locking
    regenerate_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("MAP_REGENERATE_TIMEOUT", "300")),
        gt=0,
        description="Default compute budget of one regeneration"
    )
    query_timeout_seconds: int = Field(
        default_factory=lambda: int(os.getenv("MAP_QUERY_TIMEOUT", "30")),
        ge=1,
        le=300,
        description="Maximum read query execution time in seconds"
    )
    replace_lock_key: int = Field(
        default_factory=lambda: int(os.getenv("MAP_REPLACE_LOCK_KEY", "724001")),
        description="pg_advisory_xact_lock key serializing cache replacement"
    )

    @model_validator(mode="after")
    def validate_bounds(self) -> "MapFeaturesConfig":
        """Reject inverted planar bounds."""
        if self.min_northing >= self.max_northing or self.min_easting >= self.max_easting:
            raise ValueError("planar bounds are empty: check MAP_MIN_*/MAP_MAX_* settings")
        return self

    @property
    def planar_bounds(self) -> PlanarBounds:
        return PlanarBounds(
            min_northing=self.min_northing,
            max_northing=self.max_northing,
            min_easting=self.min_easting,
            max_easting=self.max_easting,
        )


_config_cache: Optional[MapFeaturesConfig] = None


def get_map_config() -> MapFeaturesConfig:
    """
    Get singleton map features configuration instance.

    Returns:
        Cached configuration instance
    """
    global _config_cache

    if _config_cache is None:
        _config_cache = MapFeaturesConfig()

    return _config_cache
