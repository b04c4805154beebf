from shapely.geometry import Point, shape

from map_features.clustering import PointClusters, SpatialClusterer
from map_features.hulls import ConcaveHullBuilder
from map_features.models import GeographicPoint
from map_features.spatial_ops import GeodesicSpatialOps
from map_features.styles import color_for_feeder
from tests.factories import offset

ORIGIN = (-72.8, -36.1)


def _grid(origin=ORIGIN, size=5, spacing=60.0):
    points = []
    for i in range(size):
        row_start = offset(*origin, 0.0, i * spacing)
        for j in range(size):
            points.append(GeographicPoint(*offset(*row_start, 90.0, j * spacing)))
    return points


def _clusters(points):
    return SpatialClusterer(max_distance_m=100.0).cluster(points)


def test_hull_contains_every_input_point():
    points = _grid() + [GeographicPoint(*offset(*ORIGIN, 45.0, 100.0))]

    feature = ConcaveHullBuilder(max_edge_km=1.0).build(4, _clusters(points))

    assert feature is not None
    hull = shape(feature.geometry)
    assert feature.geometry["type"] == "Polygon"
    for point in points:
        assert hull.buffer(1e-9).covers(Point(point))


def test_hull_properties():
    feature = ConcaveHullBuilder().build(4, _clusters(_grid()))

    assert feature.properties == {
        "feederId": 4,
        "color": color_for_feeder(4),
        "uniqueFeatureId": "polygon-4",
    }


def test_too_few_points_give_no_polygon():
    points = [GeographicPoint(*ORIGIN), GeographicPoint(*offset(*ORIGIN, 90.0, 50.0))]

    assert ConcaveHullBuilder().build(1, _clusters(points)) is None


def test_duplicate_points_do_not_count_as_distinct():
    points = [GeographicPoint(*ORIGIN)] * 3 + [GeographicPoint(*offset(*ORIGIN, 90.0, 50.0))] * 2

    assert ConcaveHullBuilder().build(1, _clusters(points)) is None


def test_collinear_points_give_no_polygon():
    # same latitude: exactly collinear in lon/lat
    points = [GeographicPoint(ORIGIN[0] + i * 0.0004, ORIGIN[1]) for i in range(6)]

    assert ConcaveHullBuilder().build(1, _clusters(points)) is None


def test_points_farther_apart_than_max_edge_give_no_polygon():
    points = [
        GeographicPoint(*ORIGIN),
        GeographicPoint(*offset(*ORIGIN, 90.0, 3000.0)),
        GeographicPoint(*offset(*ORIGIN, 0.0, 3000.0)),
    ]

    assert ConcaveHullBuilder(max_edge_km=1.0).build(1, _clusters(points)) is None


def test_distant_groups_give_a_multipolygon():
    far_origin = offset(*ORIGIN, 90.0, 10000.0)
    points = _grid(size=3) + _grid(origin=far_origin, size=3)

    feature = ConcaveHullBuilder(max_edge_km=1.0).build(2, _clusters(points))

    assert feature is not None
    assert feature.geometry["type"] == "MultiPolygon"
    assert len(shape(feature.geometry).geoms) == 2


def test_noise_points_are_left_out_of_the_hull():
    points = tuple(_grid(size=3)) + (GeographicPoint(*offset(*ORIGIN, 200.0, 400.0)),)
    labels = tuple([0] * 9 + [-1])

    feature = ConcaveHullBuilder(GeodesicSpatialOps()).build(1, PointClusters(points=points, labels=labels))

    assert not shape(feature.geometry).buffer(1e-9).covers(Point(points[-1]))
