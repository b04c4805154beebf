import dataclasses

import pytest

from map_features.classifier import ArtifactClassifier, parse_coordinate
from map_features.config import PlanarBounds
from map_features.errors import ArtifactContractError
from map_features.models import ArtifactKind, ArtifactRecord
from tests.factories import BASE_EASTING, BASE_NORTHING, feeder_row, line_row, point_row

BOUNDS = PlanarBounds(min_northing=5000000, max_northing=10000000, min_easting=600000, max_easting=1000000)


@pytest.fixture
def classifier(reprojector):
    return ArtifactClassifier(reprojector, BOUNDS)


def test_feeders_are_keyed_by_id_last_one_wins(classifier):
    result = classifier.classify([feeder_row(3, "first"), feeder_row(4), feeder_row(3, "second")])

    assert set(result.feeders) == {3, 4}
    assert result.feeders[3].description["feeder_name"] == "second"
    assert result.placeable_count == 0
    assert result.is_empty


def test_points_land_in_their_kind_bucket(classifier):
    rows = [
        point_row("Pole", 1, 7, BASE_NORTHING, BASE_EASTING),
        point_row("Transformer", 2, 7, BASE_NORTHING + 10, BASE_EASTING),
        point_row("equipment", 3, 7, BASE_NORTHING + 20, BASE_EASTING),
    ]

    result = classifier.classify(rows)

    assert [p.record.id for p in result.bucket(ArtifactKind.POLE)] == [1]
    assert [p.record.id for p in result.bucket(ArtifactKind.TRANSFORMER)] == [2]
    assert [p.record.id for p in result.bucket(ArtifactKind.EQUIPMENT)] == [3]
    # concatenation follows artifact kind order
    assert [p.record.id for p in result.point_records()] == [2, 1, 3]
    assert result.placeable_count == 3


def test_line_endpoints_feed_the_point_cloud_of_their_feeder(classifier, reprojector):
    start = (BASE_NORTHING, BASE_EASTING)
    end = (BASE_NORTHING + 100, BASE_EASTING + 100)

    result = classifier.classify([
        line_row(10, 5, start, end),
        line_row(11, 6, end, start),
    ])

    assert len(result.lines) == 2
    line = result.lines[0]
    assert line.start == reprojector.to_geographic(start[1], start[0])
    assert line.end == reprojector.to_geographic(end[1], end[0])
    assert result.point_clouds[5] == (line.start, line.end)
    assert len(result.point_clouds[6]) == 2


def test_lines_without_description_stay_out_of_the_point_cloud(classifier):
    start = (BASE_NORTHING, BASE_EASTING)
    end = (BASE_NORTHING + 100, BASE_EASTING + 100)

    result = classifier.classify([
        line_row(10, 5, start, end),
        line_row(11, 5, end, start, description=False),
    ])

    # the line itself is kept; the builder skips and counts it
    assert len(result.lines) == 2
    assert len(result.point_clouds[5]) == 2
    assert 1 not in result.point_clouds


@pytest.mark.parametrize("x,y", [
    (None, BASE_EASTING),
    (BASE_NORTHING, None),
    ("not a number", BASE_EASTING),
    (float("nan"), BASE_EASTING),
    (float("inf"), BASE_EASTING),
    (100.0, BASE_EASTING),                 # northing below the box
    (BASE_NORTHING, 2000000.0),            # easting above the box
    (BASE_EASTING, BASE_NORTHING),         # swapped axes fall outside the box
])
def test_unplaceable_points_are_skipped_and_counted(classifier, x, y):
    result = classifier.classify([point_row("Pole", 1, 7, x, y)])

    assert result.point_records() == ()
    assert result.skipped_records == 1


def test_line_with_bad_second_endpoint_is_skipped(classifier):
    row = line_row(1, 5, (BASE_NORTHING, BASE_EASTING), (None, BASE_EASTING))

    result = classifier.classify([row])

    assert result.lines == ()
    assert result.point_clouds == {}
    assert result.skipped_records == 1


def test_numeric_strings_and_decimals_are_accepted(classifier):
    from decimal import Decimal

    rows = [
        point_row("Pole", 1, 7, str(BASE_NORTHING), str(BASE_EASTING)),
        point_row("Pole", 2, 7, Decimal("6000010.5"), Decimal("700000.25")),
    ]

    result = classifier.classify(rows)

    assert len(result.bucket(ArtifactKind.POLE)) == 2
    assert result.skipped_records == 0


def test_missing_artifact_kind_violates_the_feed_contract(classifier):
    row = point_row("Pole", 1, 7, BASE_NORTHING, BASE_EASTING)
    del row["artifact_kind"]

    with pytest.raises(ArtifactContractError):
        classifier.classify([row])


def test_unknown_artifact_kind_violates_the_feed_contract(classifier):
    with pytest.raises(ArtifactContractError):
        classifier.classify([point_row("Substation", 1, 7, BASE_NORTHING, BASE_EASTING)])


def test_non_mapping_row_violates_the_feed_contract(classifier):
    with pytest.raises(ArtifactContractError):
        classifier.classify([("Pole", 1)])


def test_accepts_records_as_well_as_rows(classifier):
    record = ArtifactRecord.from_row(point_row("Pole", 1, 7, BASE_NORTHING, BASE_EASTING))

    result = classifier.classify([record])

    assert result.point_records()[0].record is record


def test_result_is_immutable(classifier):
    result = classifier.classify([point_row("Pole", 1, 7, BASE_NORTHING, BASE_EASTING)])

    with pytest.raises(dataclasses.FrozenInstanceError):
        result.skipped_records = 5
    with pytest.raises(TypeError):
        result.points[ArtifactKind.POLE] = ()
    with pytest.raises(TypeError):
        result.point_clouds[1] = ()


def test_parse_coordinate_rejects_booleans():
    assert parse_coordinate(True) is None
    assert parse_coordinate(" 42.5 ") == 42.5
