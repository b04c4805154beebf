# ============================================================================
# CLAUDE CONTEXT - COORDINATE REPROJECTION
# ============================================================================
# STATUS: Pipeline Stage - planar UTM <-> WGS84
# PURPOSE: Reproject feed coordinates (UTM south) to longitude/latitude
# LAST_REVIEWED: Current
# EXPORTS: CoordinateReprojector, WGS84_EPSG
# DEPENDENCIES: pyproj
# PATTERNS: Transformers built once, pure conversion methods
# ENTRY_POINTS: CoordinateReprojector().to_geographic(easting, northing)
# ============================================================================

"""
Coordinate Reprojection

Thin wrapper around two pyproj transformers. Axis order is always
(x=easting/longitude, y=northing/latitude) thanks to ``always_xy=True``.
"""

from typing import Tuple

from pyproj import CRS, Transformer

from .models import GeographicPoint

WGS84_EPSG = 4326
DEFAULT_UTM_EPSG = 32718  # WGS 84 / UTM zone 18S


class CoordinateReprojector:
    """
    Planar UTM to geographic WGS84 transform, and its inverse.

    Inputs must be finite numbers; null and NaN checks belong to the caller.
    """

    def __init__(self, source_epsg: int = DEFAULT_UTM_EPSG):
        self.source_crs = CRS.from_epsg(source_epsg)
        self.target_crs = CRS.from_epsg(WGS84_EPSG)
        self._forward = Transformer.from_crs(self.source_crs, self.target_crs, always_xy=True)
        self._inverse = Transformer.from_crs(self.target_crs, self.source_crs, always_xy=True)

    def to_geographic(self, easting: float, northing: float) -> GeographicPoint:
        longitude, latitude = self._forward.transform(easting, northing)
        return GeographicPoint(longitude=float(longitude), latitude=float(latitude))

    def to_planar(self, longitude: float, latitude: float) -> Tuple[float, float]:
        """Inverse transform, returns ``(easting, northing)``."""
        easting, northing = self._inverse.transform(longitude, latitude)
        return float(easting), float(northing)
