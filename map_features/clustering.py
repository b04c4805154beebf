"""
Spatial Clusterer

Groups one feeder's line endpoints into density clusters so shared and
near-duplicate vertices collapse before hull construction.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .models import GeographicPoint
from .spatial_ops import GeodesicSpatialOps, SpatialOps

logger = logging.getLogger(__name__)

NOISE_LABEL = -1


@dataclass(frozen=True)
class PointClusters:
    """Points of one feeder with their cluster labels (same order)."""
    points: Tuple[GeographicPoint, ...]
    labels: Tuple[int, ...]

    @property
    def clusters(self) -> Dict[int, Tuple[GeographicPoint, ...]]:
        grouped: Dict[int, list] = {}
        for point, label in zip(self.points, self.labels):
            if label != NOISE_LABEL:
                grouped.setdefault(label, []).append(point)
        return {label: tuple(members) for label, members in sorted(grouped.items())}

    @property
    def cluster_count(self) -> int:
        return len({label for label in self.labels if label != NOISE_LABEL})

    def clustered_points(self) -> Tuple[GeographicPoint, ...]:
        """Every point that belongs to a cluster, input order kept."""
        return tuple(p for p, label in zip(self.points, self.labels) if label != NOISE_LABEL)


class SpatialClusterer:
    """
    Chain-reachability clustering with a great-circle distance threshold.

    With ``min_samples=1`` two points share a cluster iff they are linked by
    hops of at most ``max_distance_m`` meters.
    """

    def __init__(self, spatial_ops: Optional[SpatialOps] = None,
                 max_distance_m: float = 100.0, min_samples: int = 1):
        self.spatial_ops = spatial_ops or GeodesicSpatialOps()
        self.max_distance_m = max_distance_m
        self.min_samples = min_samples

    def cluster(self, points: Sequence[GeographicPoint]) -> PointClusters:
        points = tuple(points)
        labels = self.spatial_ops.cluster(points, self.max_distance_m, self.min_samples)
        result = PointClusters(points=points, labels=tuple(int(label) for label in labels))
        logger.debug(f"Clustered {len(points)} points into {result.cluster_count} clusters")
        return result
