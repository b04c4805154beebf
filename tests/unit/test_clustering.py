import math

import pytest

from map_features.clustering import SpatialClusterer
from map_features.models import GeographicPoint
from map_features.pipeline import MapFeaturePipeline
from map_features.spatial_ops import EARTH_RADIUS_M, haversine_m
from tests.factories import line_row, offset

ORIGIN = (-72.8, -36.1)


def _point(lon_lat):
    return GeographicPoint(*lon_lat)


def test_five_meters_vs_five_hundred_meters_gives_two_clusters(map_config):
    # two short segments 5 m long, 500 m apart from each other
    rows = [
        line_row(1, 3, (6000000, 700000), (6000000, 700005)),
        line_row(2, 3, (6000500, 700000), (6000500, 700005)),
    ]
    pipeline = MapFeaturePipeline(map_config)
    cloud = pipeline.classifier.classify(rows).point_clouds[3]

    clusters = pipeline.clusterer.cluster(cloud)

    assert clusters.cluster_count == 2
    assert sorted(len(members) for members in clusters.clusters.values()) == [2, 2]


@pytest.mark.parametrize("distance,same_cluster", [
    (50.0, True),
    (90.0, True),
    (110.0, False),
    (250.0, False),
])
def test_threshold_decides_membership(distance, same_cluster):
    a = _point(ORIGIN)
    b = _point(offset(*ORIGIN, 90.0, distance))

    clusters = SpatialClusterer(max_distance_m=100.0).cluster([a, b])

    assert (clusters.cluster_count == 1) is same_cluster


def _meridian_pair(distance_m):
    # same longitude: the great-circle distance is R * dlat
    lon, lat = ORIGIN
    return _point((lon, lat)), _point((lon, lat + math.degrees(distance_m / EARTH_RADIUS_M)))


@pytest.mark.parametrize("distance,same_cluster", [
    (100.0, True),
    (100.01, False),
])
def test_pair_exactly_at_the_threshold_shares_a_cluster(distance, same_cluster):
    a, b = _meridian_pair(distance)
    assert haversine_m(a, b) == pytest.approx(distance, abs=1e-6)

    clusters = SpatialClusterer(max_distance_m=100.0).cluster([a, b])

    assert (clusters.cluster_count == 1) is same_cluster


def test_chain_reachable_points_share_a_cluster():
    # hops of 80 m, end to end 320 m
    points = [_point(ORIGIN)]
    for _ in range(4):
        points.append(_point(offset(*points[-1], 0.0, 80.0)))
    assert haversine_m(points[0], points[-1]) > 300

    clusters = SpatialClusterer(max_distance_m=100.0).cluster(points)

    assert clusters.cluster_count == 1
    assert clusters.clustered_points() == tuple(points)


def test_membership_is_order_independent():
    near = [_point(ORIGIN), _point(offset(*ORIGIN, 45.0, 30.0))]
    far = [_point(offset(*ORIGIN, 180.0, 2000.0))]

    forward = SpatialClusterer().cluster(near + far)
    backward = SpatialClusterer().cluster(list(reversed(near + far)))

    assert forward.cluster_count == backward.cluster_count == 2
    assert {frozenset(m) for m in forward.clusters.values()} == {frozenset(m) for m in backward.clusters.values()}


def test_empty_input():
    clusters = SpatialClusterer().cluster([])

    assert clusters.cluster_count == 0
    assert clusters.clustered_points() == ()


def test_noise_is_excluded_when_min_samples_is_raised():
    lonely = _point(offset(*ORIGIN, 90.0, 5000.0))
    dense = [_point(ORIGIN), _point(offset(*ORIGIN, 0.0, 10.0)), _point(offset(*ORIGIN, 90.0, 10.0))]

    clusters = SpatialClusterer(max_distance_m=100.0, min_samples=2).cluster(dense + [lonely])

    assert clusters.labels[-1] == -1
    assert lonely not in clusters.clustered_points()
    assert clusters.cluster_count == 1
