"""
Concave Hull Builder

Derives the service-area polygon of a feeder from its clustered line
endpoints. Degenerate input (too few points, collinear points, or no
triangle surviving the max edge filter) yields no polygon, never an error.
"""

import logging
from typing import Optional

from shapely.geometry import mapping

from .clustering import PointClusters
from .models import MapFeature
from .spatial_ops import GeodesicSpatialOps, SpatialOps
from .styles import color_for_feeder

logger = logging.getLogger(__name__)


class ConcaveHullBuilder:
    """Zero or one Polygon/MultiPolygon feature per feeder."""

    def __init__(self, spatial_ops: Optional[SpatialOps] = None, max_edge_km: float = 1.0):
        self.spatial_ops = spatial_ops or GeodesicSpatialOps()
        self.max_edge_km = max_edge_km

    def build(self, feeder_id: int, clusters: PointClusters) -> Optional[MapFeature]:
        points = clusters.clustered_points()
        geometry = self.spatial_ops.hull(points, self.max_edge_km)
        if geometry is None:
            logger.info(f"Feeder {feeder_id}: no hull from {len(points)} points")
            return None

        return MapFeature(
            geometry=mapping(geometry),
            properties={
                "feederId": feeder_id,
                "color": color_for_feeder(feeder_id),
                "uniqueFeatureId": f"polygon-{feeder_id}",
            },
        )
