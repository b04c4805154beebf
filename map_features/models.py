# ============================================================================
# CLAUDE CONTEXT - MAP FEATURES MODELS
# ============================================================================
# STATUS: Standalone Models - artifact records, geometry kinds, feature DTOs
# PURPOSE: Types shared by the feature pipeline, the cache and the HTTP layer
# LAST_REVIEWED: Current
# EXPORTS: ArtifactKind, GeometryKind, GeographicPoint, ArtifactRecord,
#          MapFeature, RegenerationResult, resolve_feeder_id
# PYDANTIC_MODELS: MapFeature, RegenerationResult
# DEPENDENCIES: pydantic, dataclasses, enum, typing
# PATTERNS: Data Transfer Objects (DTOs), immutable pipeline records
# ENTRY_POINTS: from map_features.models import ArtifactRecord, GeometryKind
# ============================================================================

"""
Map Features Models

Pipeline records are frozen dataclasses: they are built once from the feed
and never mutated. Everything that crosses the HTTP boundary is a Pydantic
model shaped as GeoJSON (RFC 7946).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from .errors import ArtifactContractError

DEFAULT_FEEDER_ID = 1


class ArtifactKind(str, Enum):
    """Artifact taxonomy of the electrical network feed."""
    TRANSFORMER = "Transformer"
    LINE = "Line"
    POLE = "Pole"
    EQUIPMENT = "Equipment"
    FEEDER = "Feeder"

    @classmethod
    def parse(cls, value: Any) -> "ArtifactKind":
        """
        Parse a feed label, case-insensitive.

        Raises:
            ArtifactContractError: If the label is missing or unknown
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ArtifactContractError(f"artifact_kind missing or not a string: {value!r}")
        label = value.strip().lower()
        for kind in cls:
            if kind.value.lower() == label:
                return kind
        raise ArtifactContractError(f"Unknown artifact_kind: {value!r}")

    @property
    def is_point(self) -> bool:
        return self in POINT_ARTIFACT_KINDS


POINT_ARTIFACT_KINDS: Tuple[ArtifactKind, ...] = (
    ArtifactKind.TRANSFORMER,
    ArtifactKind.POLE,
    ArtifactKind.EQUIPMENT,
)


class GeometryKind(str, Enum):
    """Geometry kinds stored in the feature cache."""
    POINT = "Point"
    LINESTRING = "LineString"
    POLYGON = "Polygon"

    @property
    def postgis_types(self) -> Tuple[str, ...]:
        """ST_GeometryType() values matched by this kind."""
        if self is GeometryKind.POLYGON:
            return ("ST_Polygon", "ST_MultiPolygon")
        return (f"ST_{self.value}",)


class GeographicPoint(NamedTuple):
    """WGS84 position, always derived from a planar pair."""
    longitude: float
    latitude: float


@dataclass(frozen=True)
class ArtifactRecord:
    """
    One row of the raw artifact feed.

    The feed stores the UTM northing in ``x`` and the easting in ``y``;
    ``(x2, y2)`` is the far endpoint of a line. Coordinates are kept as
    received and validated by the classifier.
    """
    artifact_kind: ArtifactKind
    id: Any
    x: Any = None
    y: Any = None
    x2: Any = None
    y2: Any = None
    description: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ArtifactRecord":
        """
        Build a record from a feed row.

        Raises:
            ArtifactContractError: If the row is not a mapping or has no valid kind
        """
        if not isinstance(row, Mapping):
            raise ArtifactContractError(f"Feed row must be a mapping, got {type(row).__name__}")
        if "artifact_kind" not in row:
            raise ArtifactContractError(f"Feed row without artifact_kind: id={row.get('id')!r}")

        description = row.get("description")
        if description is not None and not isinstance(description, Mapping):
            description = None

        return cls(
            artifact_kind=ArtifactKind.parse(row["artifact_kind"]),
            id=row.get("id"),
            x=row.get("x"),
            y=row.get("y"),
            x2=row.get("x2"),
            y2=row.get("y2"),
            description=description,
        )

    @property
    def feeder_id(self) -> int:
        return resolve_feeder_id(self.description)


def resolve_feeder_id(description: Optional[Mapping[str, Any]]) -> int:
    """
    Feeder id of a description payload.

    Falls back to DEFAULT_FEEDER_ID when the id is absent or not an integer.
    NOTE: the fallback groups unrelated anonymous artifacts under feeder 1;
    kept as the map UI expects it until product decides otherwise.
    """
    if not description:
        return DEFAULT_FEEDER_ID
    value = description.get("feeder_id")
    if value is None or isinstance(value, bool):
        return DEFAULT_FEEDER_ID
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_FEEDER_ID
    if not number.is_integer():
        return DEFAULT_FEEDER_ID
    return int(number)


# ============================================================================
# GEOJSON DTOs
# ============================================================================

class MapFeature(BaseModel):
    """
    GeoJSON Feature produced by the pipeline.

    ``properties`` always carries ``feederId``, ``color`` and
    ``uniqueFeatureId``.
    """
    type: Literal["Feature"] = Field(default="Feature")
    geometry: Dict[str, Any] = Field(
        description="GeoJSON geometry (Point, LineString, Polygon or MultiPolygon)"
    )
    properties: Dict[str, Any] = Field(default_factory=dict)

    @property
    def feeder_id(self) -> int:
        return int(self.properties["feederId"])

    @property
    def geometry_type(self) -> str:
        return self.geometry["type"]

    def to_geojson(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class RegenerationResult(BaseModel):
    """
    Outcome of one regeneration.

    ``done`` is true both when the cache was replaced and when there was
    nothing to replace it with (``details == "features not found"``).
    """
    done: bool
    details: Optional[str] = None
    counts: Optional[Dict[str, int]] = Field(
        default=None,
        description="Stored features per geometry kind, plus skipped records"
    )


class FeatureBundle(BaseModel):
    """All map features of one feeder (or of every feeder) plus the feeder list."""
    polygonFeatures: List[Dict[str, Any]]
    lineFeatures: List[Dict[str, Any]]
    pointFeatures: List[Dict[str, Any]]
    feeders: List[Dict[str, Any]]
