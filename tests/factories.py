"""Feed row builders shared by the unit tests."""

from pyproj import Geod

GEOD = Geod(ellps="WGS84")

# In-network reference position (UTM 18S): x is the northing, y the easting
BASE_NORTHING = 6000000.0
BASE_EASTING = 700000.0

TEST_DSN = "postgresql://tester@localhost/network"


def line_row(record_id, feeder_id, start, end, description=True):
    """Line row; start/end are (northing, easting) pairs."""
    row = {
        "artifact_kind": "Line",
        "id": record_id,
        "x": start[0],
        "y": start[1],
        "x2": end[0],
        "y2": end[1],
        "description": None,
    }
    if description:
        row["description"] = {"artifact": "Line", "feeder_id": feeder_id, "segment_id": f"T-{record_id}"}
    return row


def point_row(kind, record_id, feeder_id, northing, easting, description=True):
    row = {
        "artifact_kind": kind,
        "id": record_id,
        "x": northing,
        "y": easting,
        "x2": None,
        "y2": None,
        "description": None,
    }
    if description:
        row["description"] = {"artifact": kind, "feeder_id": feeder_id}
    return row


def feeder_row(feeder_id, name="AL-1"):
    return {
        "artifact_kind": "Feeder",
        "id": feeder_id,
        "x": None,
        "y": None,
        "x2": None,
        "y2": None,
        "description": {"artifact": "Feeder", "feeder_id": feeder_id, "feeder_name": name},
    }


def grid_lines(feeder_id, origin=(BASE_NORTHING, BASE_EASTING), size=4, spacing=80.0, first_id=1):
    """Horizontal line segments over a size x size grid of planar vertices."""
    rows = []
    record_id = first_id
    for i in range(size):
        for j in range(size - 1):
            start = (origin[0] + i * spacing, origin[1] + j * spacing)
            end = (origin[0] + i * spacing, origin[1] + (j + 1) * spacing)
            rows.append(line_row(record_id, feeder_id, start, end))
            record_id += 1
    return rows


def offset(lon, lat, azimuth, distance_m):
    """Geodesic destination point as (lon, lat)."""
    lon2, lat2, _ = GEOD.fwd(lon, lat, azimuth, distance_m)
    return lon2, lat2
