# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES SERVICE
# ============================================================================
# STATUS: Standalone Service - map features business logic
# PURPOSE: Regeneration (feed -> pipeline -> cache) and feature cache reads
# LAST_REVIEWED: Current
# EXPORTS: MapFeaturesService
# INTERFACES: None (standalone implementation)
# PYDANTIC_MODELS: RegenerationResult, FeatureBundle
# DEPENDENCIES: concurrent.futures, psycopg, util_logger
# SOURCE: Repository layer (FeatureCacheRepository, ArtifactFeedRepository)
# SCOPE: Business logic for map feature operations
# PATTERNS: Service Layer, Facade Pattern
# ENTRY_POINTS: service = MapFeaturesService(); service.regenerate(timeout_seconds=120)
# ============================================================================

"""
Map Features Service - Business Logic Layer

Coordinates the HTTP triggers with the pipeline and the repositories.

Regeneration outcomes:
- ``{done: true, counts: {...}}``: the cache now holds the new feature set
- ``{done: true, details: "features not found"}``: the feed produced no
  feature, nothing was replaced
- ``RegenerationError`` / ``RegenerationTimeoutError``: failed, the cache
  keeps its previous contents
"""

import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Dict, Iterable, List, Optional

import psycopg

from util_logger import ComponentType, LoggerFactory, log_exceptions

from .config import MapFeaturesConfig, get_map_config
from .errors import FeatureCacheError, RegenerationError, RegenerationTimeoutError
from .models import FeatureBundle, GeometryKind, RegenerationResult
from .pipeline import MapFeaturePipeline, PipelineOutput
from .repository import ArtifactFeedRepository, FeatureCacheRepository

NOT_FOUND_DETAILS = "features not found"

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "MapFeaturesService")


class MapFeaturesService:
    """
    Business logic service for map features.

    Args:
        config: Map features configuration (default: get_map_config())
        cache: Feature cache repository
        feed: Artifact feed repository
        pipeline: Feature pipeline
    """

    def __init__(self, config: Optional[MapFeaturesConfig] = None,
                 cache: Optional[FeatureCacheRepository] = None,
                 feed: Optional[ArtifactFeedRepository] = None,
                 pipeline: Optional[MapFeaturePipeline] = None):
        self.config = config or get_map_config()
        self.cache = cache or FeatureCacheRepository(self.config)
        self.feed = feed or ArtifactFeedRepository(self.config)
        self.pipeline = pipeline or MapFeaturePipeline(self.config)
        self._abandoned = 0
        self._abandoned_lock = threading.Lock()
        logger.info("MapFeaturesService initialized")

    # ========================================================================
    # REGENERATION
    # ========================================================================

    @log_exceptions(ComponentType.SERVICE, "MapFeaturesService")
    def regenerate(self, timeout_seconds: Optional[float] = None) -> RegenerationResult:
        """
        Rebuild every map feature from the artifact feed and replace the cache.

        Fetching and computing run under ``timeout_seconds`` (default
        ``MAP_REGENERATE_TIMEOUT``); the cache is only written afterwards.

        Raises:
            ArtifactContractError: If the feed rows are not artifact records
            RegenerationTimeoutError: If the compute phase exceeded its budget
            RegenerationError: If the feed could not be read or the cache not replaced
        """
        run_id = uuid.uuid4().hex[:12]
        run_logger = LoggerFactory.create_with_context(
            ComponentType.SERVICE, "MapFeaturesService", run_id=run_id, stage="regenerate"
        )
        timeout = timeout_seconds or self.config.regenerate_timeout_seconds
        run_logger.info(f"Regeneration started (timeout {timeout}s)")

        output = self._compute_with_timeout(timeout, run_logger)

        if output.is_empty:
            run_logger.info("Regeneration produced no features, cache left untouched")
            return RegenerationResult(done=True, details=NOT_FOUND_DETAILS)

        try:
            stored = self.cache.replace(output.features)
        except FeatureCacheError as e:
            raise RegenerationError(f"Feature cache replace failed: {e}") from e

        counts = dict(output.counts, stored=stored)
        run_logger.info("Regeneration finished", extra={'custom_dimensions': counts})
        return RegenerationResult(done=True, counts=counts)

    def _compute(self) -> PipelineOutput:
        records = self.feed.fetch_artifacts()
        return self.pipeline.run(records)

    def _compute_with_timeout(self, timeout: float, run_logger) -> PipelineOutput:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="regenerate")
        future = executor.submit(self._compute)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError as e:
            self._watch_abandoned(future, time.perf_counter(), run_logger)
            run_logger.error(
                f"Regeneration abandoned after {timeout}s "
                f"({self.abandoned_runs} abandoned run(s) still working)"
            )
            raise RegenerationTimeoutError(
                f"Feature generation exceeded {timeout}s; cache left untouched"
            ) from e
        except psycopg.Error as e:
            raise RegenerationError(f"Artifact feed query failed: {e}") from e
        finally:
            # the worker thread cannot be interrupted; _watch_abandoned reports when it ends
            executor.shutdown(wait=False, cancel_futures=True)

    @property
    def abandoned_runs(self) -> int:
        """Timed-out regenerations whose worker thread has not finished yet."""
        with self._abandoned_lock:
            return self._abandoned

    def _watch_abandoned(self, future: Future, abandoned_at: float, run_logger) -> None:
        with self._abandoned_lock:
            self._abandoned += 1

        def finished(done: Future) -> None:
            with self._abandoned_lock:
                self._abandoned -= 1
            outcome = "failed" if done.exception() is not None else "completed"
            run_logger.warning(
                f"Abandoned regeneration {outcome} "
                f"{time.perf_counter() - abandoned_at:.1f}s after its timeout; result discarded",
                extra={'custom_dimensions': {'outcome': outcome}}
            )

        future.add_done_callback(finished)

    # ========================================================================
    # READS
    # ========================================================================

    def query_features(self, geometry_kinds: Iterable[GeometryKind],
                       feeder_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.cache.query(geometry_kinds, feeder_id)

    def get_point_features(self, feeder_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.cache.query([GeometryKind.POINT], feeder_id)

    def get_line_features(self, feeder_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.cache.query([GeometryKind.LINESTRING], feeder_id)

    def get_polygon_features(self, feeder_id: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.cache.query([GeometryKind.POLYGON], feeder_id)

    def get_all_features(self, feeder_id: Optional[int] = None) -> FeatureBundle:
        """
        Polygons, lines and points of one feeder (or all) plus the feeder list.

        The three geometry kinds come from one cache snapshot.
        """
        snapshot = self.cache.query_snapshot(feeder_id)
        return FeatureBundle(
            polygonFeatures=snapshot[GeometryKind.POLYGON],
            lineFeatures=snapshot[GeometryKind.LINESTRING],
            pointFeatures=snapshot[GeometryKind.POINT],
            feeders=self.list_feeders(),
        )

    def list_feeders(self) -> List[Dict[str, Any]]:
        return self.feed.list_feeders()

    def missing_line_pairs(self) -> List[Dict[str, Any]]:
        """Diagnostic: adjacent node pairs that lack a line segment."""
        return self.feed.missing_line_pairs()
