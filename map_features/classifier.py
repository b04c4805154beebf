# ============================================================================
# CLAUDE CONTEXT - ARTIFACT CLASSIFIER
# ============================================================================
# STATUS: Pipeline Stage - feed partitioning
# PURPOSE: Partition the raw artifact feed into per-kind buckets and per-feeder point clouds
# LAST_REVIEWED: Current
# EXPORTS: ArtifactClassifier, ClassificationResult, PlacedArtifact, PlacedLine
# DEPENDENCIES: map_features.models, map_features.projection, map_features.config
# PATTERNS: Immutable result value, skip-and-count for malformed records
# ENTRY_POINTS: ArtifactClassifier(reprojector, bounds).classify(records)
# ============================================================================

"""
Artifact Classifier

Turns the flat feed into one ``ClassificationResult``:

- Feeder records keyed by id (summary records, never placed on the map)
- Line records with both endpoints reprojected
- One bucket per point kind (Transformer, Pole, Equipment) with the
  reprojected position attached
- Per-feeder point clouds made of the endpoints of every line that will
  become a feature (lines without a description are left out), the input
  of the clustering and hull stages

Records that cannot be placed (null, non-numeric, non-finite or
out-of-bounds coordinates) are skipped and counted. Only a record that is
not a record at all raises ``ArtifactContractError``.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .config import PlanarBounds
from .models import (
    POINT_ARTIFACT_KINDS,
    ArtifactKind,
    ArtifactRecord,
    GeographicPoint,
)
from .projection import CoordinateReprojector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacedArtifact:
    """A point artifact and its geographic position."""
    record: ArtifactRecord
    position: GeographicPoint


@dataclass(frozen=True)
class PlacedLine:
    """A line artifact and its two geographic endpoints."""
    record: ArtifactRecord
    start: GeographicPoint
    end: GeographicPoint

    @property
    def feeder_id(self) -> int:
        return self.record.feeder_id


@dataclass(frozen=True)
class ClassificationResult:
    """
    Immutable output of one classification run.

    ``points`` always holds one (possibly empty) tuple per point kind.
    """
    feeders: Mapping[Any, ArtifactRecord]
    lines: Tuple[PlacedLine, ...]
    points: Mapping[ArtifactKind, Tuple[PlacedArtifact, ...]]
    point_clouds: Mapping[int, Tuple[GeographicPoint, ...]]
    skipped_records: int = 0

    def bucket(self, kind: ArtifactKind) -> Tuple[Any, ...]:
        if kind is ArtifactKind.FEEDER:
            return tuple(self.feeders.values())
        if kind is ArtifactKind.LINE:
            return self.lines
        return self.points[kind]

    def point_records(self) -> Tuple[PlacedArtifact, ...]:
        """All point buckets concatenated in artifact kind order."""
        placed: List[PlacedArtifact] = []
        for kind in POINT_ARTIFACT_KINDS:
            placed.extend(self.points[kind])
        return tuple(placed)

    @property
    def placeable_count(self) -> int:
        return len(self.lines) + sum(len(bucket) for bucket in self.points.values())

    @property
    def is_empty(self) -> bool:
        return self.placeable_count == 0


def parse_coordinate(value: Any) -> Optional[float]:
    """Finite float of a raw coordinate, or None when it cannot be placed."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


class ArtifactClassifier:
    """
    Partitions feed records into the buckets used by the feature builders.
    """

    def __init__(self, reprojector: CoordinateReprojector, bounds: PlanarBounds):
        self.reprojector = reprojector
        self.bounds = bounds

    def classify(
        self,
        records: Iterable[Union[ArtifactRecord, Mapping[str, Any]]]
    ) -> ClassificationResult:
        """
        Classify a feed.

        Args:
            records: ArtifactRecord instances or raw feed rows

        Returns:
            ClassificationResult

        Raises:
            ArtifactContractError: If an item has no valid artifact kind
        """
        feeders: Dict[Any, ArtifactRecord] = {}
        lines: List[PlacedLine] = []
        points: Dict[ArtifactKind, List[PlacedArtifact]] = {kind: [] for kind in POINT_ARTIFACT_KINDS}
        clouds: Dict[int, List[GeographicPoint]] = {}
        skipped = 0

        for item in records:
            record = item if isinstance(item, ArtifactRecord) else ArtifactRecord.from_row(item)

            if record.artifact_kind is ArtifactKind.FEEDER:
                if record.id in feeders:
                    logger.debug(f"Duplicate feeder record {record.id!r}, keeping the last one")
                feeders[record.id] = record
                continue

            start = self._place(record.x, record.y)
            if start is None:
                skipped += 1
                logger.debug(
                    f"Skipping {record.artifact_kind.value} {record.id!r}: "
                    f"unplaceable coordinates x={record.x!r} y={record.y!r}"
                )
                continue

            if record.artifact_kind is ArtifactKind.LINE:
                end = self._place(record.x2, record.y2)
                if end is None:
                    skipped += 1
                    logger.debug(
                        f"Skipping Line {record.id!r}: "
                        f"unplaceable second endpoint x2={record.x2!r} y2={record.y2!r}"
                    )
                    continue
                lines.append(PlacedLine(record=record, start=start, end=end))
                if record.description:
                    clouds.setdefault(record.feeder_id, []).extend((start, end))
            else:
                points[record.artifact_kind].append(PlacedArtifact(record=record, position=start))

        result = ClassificationResult(
            feeders=MappingProxyType(feeders),
            lines=tuple(lines),
            points=MappingProxyType({kind: tuple(bucket) for kind, bucket in points.items()}),
            point_clouds=MappingProxyType({fid: tuple(cloud) for fid, cloud in clouds.items()}),
            skipped_records=skipped,
        )

        logger.info(
            f"Classified feed: {len(result.feeders)} feeders, {len(result.lines)} lines, "
            f"{len(result.point_records())} points, {len(result.point_clouds)} point clouds, "
            f"{skipped} skipped"
        )
        return result

    def _place(self, x: Any, y: Any) -> Optional[GeographicPoint]:
        # x carries the northing, y the easting
        northing = parse_coordinate(x)
        easting = parse_coordinate(y)
        if northing is None or easting is None:
            return None
        if not self.bounds.contains(easting=easting, northing=northing):
            return None
        return self.reprojector.to_geographic(easting, northing)
