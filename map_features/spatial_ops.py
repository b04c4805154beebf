# ============================================================================
# CLAUDE CONTEXT - SPATIAL OPERATIONS
# ============================================================================
# STATUS: Pipeline Support - clustering and hull primitives
# PURPOSE: Swappable geometry backend behind the clustering and hull stages
# LAST_REVIEWED: Current
# EXPORTS: SpatialOps, GeodesicSpatialOps, haversine_m, EARTH_RADIUS_M
# DEPENDENCIES: numpy, scikit-learn, shapely
# PATTERNS: Abstract interface + default implementation
# ENTRY_POINTS: GeodesicSpatialOps().cluster(points, 100.0)
# ============================================================================

"""
Spatial Operations

``SpatialOps`` is the only place that knows which geometry libraries are in
use. The default ``GeodesicSpatialOps`` works on WGS84 longitude/latitude:

- cluster: DBSCAN over radians with the haversine metric, so the neighbour
  distance is great-circle meters rather than planar degrees
- hull: Delaunay triangulation, triangles with any edge longer than the
  max edge (haversine kilometers) dropped, remainder dissolved
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np
import shapely
from shapely.geometry import MultiPoint
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from sklearn.cluster import DBSCAN

from .models import GeographicPoint

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371008.8  # IUGG mean radius

# Relative slack on eps so a pair exactly at the threshold survives float rounding
EPS_TOLERANCE = 1e-9


def haversine_m(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Great-circle distance in meters between two (longitude, latitude) pairs."""
    lon1, lat1 = math.radians(a[0]), math.radians(a[1])
    lon2, lat2 = math.radians(b[0]), math.radians(b[1])
    h = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


class SpatialOps(ABC):
    """Clustering and hull primitives used by the feature pipeline."""

    @abstractmethod
    def cluster(self, points: Sequence[GeographicPoint], max_distance_m: float,
                min_samples: int = 1) -> np.ndarray:
        """
        Label points by density cluster.

        Returns:
            Integer label per point; -1 marks noise
        """

    @abstractmethod
    def hull(self, points: Sequence[GeographicPoint],
             max_edge_km: float) -> Optional[BaseGeometry]:
        """
        Concave hull of a point set.

        Returns:
            Polygon or MultiPolygon, or None when no closed ring can be built
        """


class GeodesicSpatialOps(SpatialOps):
    """scikit-learn DBSCAN and shapely Delaunay on WGS84 coordinates."""

    def cluster(self, points: Sequence[GeographicPoint], max_distance_m: float,
                min_samples: int = 1) -> np.ndarray:
        if len(points) == 0:
            return np.empty(0, dtype=int)

        # haversine metric expects [lat, lon] in radians
        coords = np.radians(np.array([[p[1], p[0]] for p in points], dtype=float))
        dbscan = DBSCAN(
            eps=max_distance_m / EARTH_RADIUS_M * (1 + EPS_TOLERANCE),
            min_samples=min_samples,
            metric="haversine",
            algorithm="ball_tree",
        )
        return dbscan.fit_predict(coords)

    def hull(self, points: Sequence[GeographicPoint],
             max_edge_km: float) -> Optional[BaseGeometry]:
        unique = list(dict.fromkeys((float(p[0]), float(p[1])) for p in points))
        if len(unique) < 3:
            return None

        triangles = shapely.get_parts(shapely.delaunay_triangles(MultiPoint(unique)))
        if len(triangles) == 0:
            # all points collinear
            return None

        max_edge_m = max_edge_km * 1000.0
        kept = []
        for triangle in triangles:
            corners = list(triangle.exterior.coords)[:3]
            edges = (
                haversine_m(corners[0], corners[1]),
                haversine_m(corners[1], corners[2]),
                haversine_m(corners[2], corners[0]),
            )
            if max(edges) <= max_edge_m:
                kept.append(triangle)

        logger.debug(f"Hull: kept {len(kept)} of {len(triangles)} triangles")
        if not kept:
            return None

        merged = unary_union(kept)
        if merged.is_empty or merged.geom_type not in ("Polygon", "MultiPolygon"):
            return None
        return merged
