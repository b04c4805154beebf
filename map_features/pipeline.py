# ============================================================================
# CLAUDE CONTEXT - MAP FEATURE PIPELINE
# ============================================================================
# STATUS: Pipeline Orchestration - feed to features
# PURPOSE: Classify, build lines/points, cluster and hull per feeder
# LAST_REVIEWED: Current
# EXPORTS: MapFeaturePipeline, PipelineOutput
# DEPENDENCIES: concurrent.futures, map_features stages
# PATTERNS: Immutable stage outputs, per-feeder fan-out on a thread pool
# ENTRY_POINTS: MapFeaturePipeline().run(records)
# ============================================================================

"""
Map Feature Pipeline

Pure computation: no database access. The service fetches the feed, runs
the pipeline under its timeout and hands the output to the feature cache.

Stages:
    1. ArtifactClassifier -> ClassificationResult
    2. LineFeatureBuilder / PointFeatureBuilder -> line and point features
    3. SpatialClusterer + ConcaveHullBuilder per feeder -> polygon features

Feeders are independent, so stage 3 fans out over a thread pool; results
are sorted by feeder id so the output order does not depend on scheduling.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .builders import LineFeatureBuilder, PointFeatureBuilder
from .classifier import ArtifactClassifier, ClassificationResult
from .clustering import SpatialClusterer
from .config import MapFeaturesConfig, get_map_config
from .hulls import ConcaveHullBuilder
from .models import ArtifactRecord, GeographicPoint, MapFeature
from .projection import CoordinateReprojector
from .spatial_ops import GeodesicSpatialOps, SpatialOps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineOutput:
    """Features of one regeneration, grouped by geometry kind."""
    polygons: Tuple[MapFeature, ...]
    lines: Tuple[MapFeature, ...]
    points: Tuple[MapFeature, ...]
    skipped_records: int = 0
    skipped_descriptions: int = 0

    @property
    def features(self) -> Tuple[MapFeature, ...]:
        return self.polygons + self.lines + self.points

    @property
    def is_empty(self) -> bool:
        return not (self.polygons or self.lines or self.points)

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "polygons": len(self.polygons),
            "lines": len(self.lines),
            "points": len(self.points),
            "skippedRecords": self.skipped_records,
            "skippedDescriptions": self.skipped_descriptions,
        }


class MapFeaturePipeline:
    """
    Feed to feature set.

    Args:
        config: Map features configuration (default: get_map_config())
        reprojector: Coordinate reprojector (default: built from config.utm_epsg)
        spatial_ops: Clustering/hull backend (default: GeodesicSpatialOps)
    """

    def __init__(self, config: Optional[MapFeaturesConfig] = None,
                 reprojector: Optional[CoordinateReprojector] = None,
                 spatial_ops: Optional[SpatialOps] = None):
        self.config = config or get_map_config()
        self.reprojector = reprojector or CoordinateReprojector(self.config.utm_epsg)
        spatial_ops = spatial_ops or GeodesicSpatialOps()

        self.classifier = ArtifactClassifier(self.reprojector, self.config.planar_bounds)
        self.line_builder = LineFeatureBuilder()
        self.point_builder = PointFeatureBuilder()
        self.clusterer = SpatialClusterer(
            spatial_ops,
            max_distance_m=self.config.cluster_distance_m,
            min_samples=self.config.cluster_min_samples,
        )
        self.hull_builder = ConcaveHullBuilder(spatial_ops, max_edge_km=self.config.hull_max_edge_km)

    def run(self, records: Iterable[Union[ArtifactRecord, Mapping[str, Any]]]) -> PipelineOutput:
        """
        Run every stage over one feed.

        Raises:
            ArtifactContractError: If the feed is not made of artifact records
        """
        classification = self.classifier.classify(records)

        line_result = self.line_builder.build(classification.lines)
        point_result = self.point_builder.build(classification.point_records())
        polygons = self.build_polygons(classification)

        output = PipelineOutput(
            polygons=polygons,
            lines=line_result.features,
            points=point_result.features,
            skipped_records=classification.skipped_records,
            skipped_descriptions=line_result.skipped + point_result.skipped,
        )
        logger.info(f"Pipeline produced {output.counts}")
        return output

    def build_polygons(self, classification: ClassificationResult) -> Tuple[MapFeature, ...]:
        clouds = sorted(classification.point_clouds.items())
        if not clouds:
            return ()

        workers = min(self.config.hull_workers, len(clouds))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hull") as executor:
            results = list(executor.map(lambda item: self._hull_for_feeder(*item), clouds))

        return tuple(feature for feature in results if feature is not None)

    def _hull_for_feeder(self, feeder_id: int,
                         points: Tuple[GeographicPoint, ...]) -> Optional[MapFeature]:
        clusters = self.clusterer.cluster(points)
        return self.hull_builder.build(feeder_id, clusters)
