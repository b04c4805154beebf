# ============================================================================
# CLAUDE CONTEXT - FEATURE BUILDERS
# ============================================================================
# STATUS: Pipeline Stage - GeoJSON feature synthesis
# PURPOSE: Build LineString and Point features from classified buckets
# LAST_REVIEWED: Current
# EXPORTS: LineFeatureBuilder, PointFeatureBuilder, FeatureBuildResult
# DEPENDENCIES: map_features.classifier, map_features.models, map_features.styles
# PATTERNS: Soft-fail on missing description (skip, warn, count)
# ENTRY_POINTS: LineFeatureBuilder().build(result.lines)
# ============================================================================

"""
Feature Builders

Both builders merge the record's description payload into the feature
properties first and then write the derived keys on top, so ``feederId``,
``color`` and ``uniqueFeatureId`` always win over payload keys.

Records without a description are skipped with one warning each: the
payload is what carries the feeder grouping and the marker rendering.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from .classifier import PlacedArtifact, PlacedLine
from .models import ArtifactRecord, MapFeature, resolve_feeder_id
from .styles import color_for_feeder, marker_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureBuildResult:
    """Features built from one bucket and the number of records skipped."""
    features: Tuple[MapFeature, ...]
    skipped: int = 0


def _base_properties(record: ArtifactRecord, prefix: str, position: int) -> Dict[str, Any]:
    feeder_id = resolve_feeder_id(record.description)
    properties = dict(record.description or {})
    properties.update({
        "feederId": feeder_id,
        "color": color_for_feeder(feeder_id),
        "uniqueFeatureId": f"{prefix}-{feeder_id}-{record.id}-{position}",
        "artifactKind": record.artifact_kind.value,
        "artifactId": record.id,
    })
    return properties


class LineFeatureBuilder:
    """One LineString feature per classified line."""

    def build(self, lines: Sequence[PlacedLine]) -> FeatureBuildResult:
        features = []
        skipped = 0

        for position, line in enumerate(lines):
            if not line.record.description:
                skipped += 1
                logger.warning(f"Line {line.record.id!r} has no description, skipping")
                continue

            properties = _base_properties(line.record, "line", position)
            properties["selected"] = False
            features.append(MapFeature(
                geometry={
                    "type": "LineString",
                    "coordinates": [list(line.start), list(line.end)],
                },
                properties=properties,
            ))

        logger.debug(f"Built {len(features)} line features ({skipped} skipped)")
        return FeatureBuildResult(features=tuple(features), skipped=skipped)


class PointFeatureBuilder:
    """One Point feature per classified Transformer, Pole or Equipment record."""

    def build(self, points: Sequence[PlacedArtifact]) -> FeatureBuildResult:
        features = []
        skipped = 0

        for position, placed in enumerate(points):
            record = placed.record
            if not record.description:
                skipped += 1
                logger.warning(
                    f"{record.artifact_kind.value} {record.id!r} has no description, skipping"
                )
                continue

            properties = _base_properties(record, "point", position)
            properties["markerName"] = marker_name(record.artifact_kind.value)
            features.append(MapFeature(
                geometry={"type": "Point", "coordinates": list(placed.position)},
                properties=properties,
            ))

        logger.debug(f"Built {len(features)} point features ({skipped} skipped)")
        return FeatureBuildResult(features=tuple(features), skipped=skipped)
