import logging

import pytest

from map_features.builders import LineFeatureBuilder, PointFeatureBuilder
from map_features.classifier import ArtifactClassifier
from map_features.config import PlanarBounds
from map_features.styles import FEEDER_PALETTE, color_for_feeder
from tests.factories import BASE_EASTING, BASE_NORTHING, line_row, point_row

BOUNDS = PlanarBounds(min_northing=5000000, max_northing=10000000, min_easting=600000, max_easting=1000000)


@pytest.fixture
def classifier(reprojector):
    return ArtifactClassifier(reprojector, BOUNDS)


def test_single_line_of_feeder_five(classifier, reprojector):
    row = line_row(42, 5, (6000000, 700000), (6000100, 700100))

    result = LineFeatureBuilder().build(classifier.classify([row]).lines)

    assert len(result.features) == 1
    feature = result.features[0]
    assert feature.properties["feederId"] == 5
    assert feature.geometry["type"] == "LineString"
    coordinates = feature.geometry["coordinates"]
    assert len(coordinates) == 2
    assert tuple(coordinates[0]) == tuple(reprojector.to_geographic(700000, 6000000))
    assert tuple(coordinates[1]) == tuple(reprojector.to_geographic(700100, 6000100))


def test_line_properties_merge_description_then_derived_keys(classifier):
    row = line_row(42, 5, (6000000, 700000), (6000100, 700100))
    row["description"]["color"] = "#000000"

    feature = LineFeatureBuilder().build(classifier.classify([row]).lines).features[0]

    assert feature.properties["segment_id"] == "T-42"
    assert feature.properties["color"] == color_for_feeder(5)
    assert feature.properties["uniqueFeatureId"] == "line-5-42-0"
    assert feature.properties["selected"] is False
    assert feature.properties["artifactKind"] == "Line"


def test_three_poles_without_description_are_skipped_with_diagnostics(classifier, caplog):
    rows = [
        point_row("Pole", i, 7, BASE_NORTHING + i, BASE_EASTING, description=False)
        for i in range(3)
    ]
    caplog.set_level(logging.WARNING, logger="map_features.builders")

    result = PointFeatureBuilder().build(classifier.classify(rows).point_records())

    assert result.features == ()
    assert result.skipped == 3
    warnings = [r for r in caplog.records if r.name == "map_features.builders"]
    assert len(warnings) == 3
    assert all("no description" in r.getMessage() for r in warnings)


def test_point_feature_properties(classifier, reprojector):
    row = point_row("Transformer", 9, 12, BASE_NORTHING, BASE_EASTING)

    feature = PointFeatureBuilder().build(classifier.classify([row]).point_records()).features[0]

    assert feature.geometry == {
        "type": "Point",
        "coordinates": list(reprojector.to_geographic(BASE_EASTING, BASE_NORTHING)),
    }
    assert feature.properties["feederId"] == 12
    assert feature.properties["markerName"] == "marker-Transformer"
    assert feature.properties["uniqueFeatureId"] == "point-12-9-0"
    assert feature.properties["artifact"] == "Transformer"


@pytest.mark.parametrize("raw", [None, "abc", 2.5, True])
def test_unparseable_feeder_id_defaults_to_one(classifier, raw):
    row = point_row("Pole", 1, raw, BASE_NORTHING, BASE_EASTING)

    feature = PointFeatureBuilder().build(classifier.classify([row]).point_records()).features[0]

    assert feature.properties["feederId"] == 1


def test_numeric_string_feeder_id_is_parsed(classifier):
    row = point_row("Pole", 1, "15", BASE_NORTHING, BASE_EASTING)

    feature = PointFeatureBuilder().build(classifier.classify([row]).point_records()).features[0]

    assert feature.properties["feederId"] == 15


def test_completeness_of_points_and_lines(classifier):
    rows = [
        line_row(1, 5, (6000000, 700000), (6000050, 700050)),
        line_row(2, 5, (6000050, 700050), (6000100, 700100), description=False),
        line_row(3, 5, (None, 700050), (6000100, 700100)),
        point_row("Pole", 4, 5, BASE_NORTHING, BASE_EASTING),
        point_row("Pole", 5, 5, BASE_NORTHING, BASE_EASTING, description=False),
        point_row("Equipment", 6, 5, BASE_NORTHING + 5, BASE_EASTING),
        point_row("Transformer", 7, 5, None, None),
    ]
    classification = classifier.classify(rows)

    lines = LineFeatureBuilder().build(classification.lines)
    points = PointFeatureBuilder().build(classification.point_records())

    placeable = classification.placeable_count
    assert placeable == 5
    assert len(lines.features) + len(points.features) == placeable - (lines.skipped + points.skipped)
    assert lines.skipped + points.skipped == 2
    assert classification.skipped_records == 2


def test_color_is_deterministic_per_feeder():
    assert color_for_feeder(0) == FEEDER_PALETTE[0]
    assert color_for_feeder(7) == color_for_feeder(7 + len(FEEDER_PALETTE))
