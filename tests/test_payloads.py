import pytest

from phenomap.models import Circle, Polygon, Rectangle
from phenomap.payloads import (
    PayloadError, UnknownShapeError, clamp_count, parse_request, parse_shape,
)


@pytest.mark.parametrize("raw,expected", [
    (None, 100), ("", 100), ("abc", 100), ("nan", 100),
    ("0", 1), ("-5", 1), ("1", 1), ("250", 250), ("99999", 5000), ("12.7", 12),
])
def test_clamp_count(raw, expected):
    assert clamp_count(raw) == expected


def test_parse_rectangle():
    shape = parse_shape("rectangle", {"ne": [10, 20], "sw": ["5", 15]})
    assert shape == Rectangle(ne=(10.0, 20.0), sw=(5.0, 15.0))


def test_parse_circle():
    shape = parse_shape("circle", {"center": [1, 2], "radius": 500})
    assert shape == Circle(center=(1.0, 2.0), radius_m=500.0)


@pytest.mark.parametrize("body", [
    {"center": [1, 2]},
    {"center": [1, 2], "radius": -3},
    {"center": [1, 2], "radius": "wide"},
    {"radius": 10},
])
def test_parse_circle_rejects(body):
    with pytest.raises(PayloadError):
        parse_shape("circle", body)


def test_parse_polygon():
    shape = parse_shape("polygon", {"points": [[0, 0], [0, 1], [1, 1]]})
    assert isinstance(shape, Polygon)
    assert shape.vertices == ((0.0, 0.0), (0.0, 1.0), (1.0, 1.0))


@pytest.mark.parametrize("body", [
    {}, {"points": [[0, 0], [1, 1]]}, {"points": "nope"}, {"points": [[0, 0], [0, 1], "x"]},
])
def test_parse_polygon_rejects(body):
    with pytest.raises(PayloadError) as exc:
        parse_shape("polygon", body)
    assert exc.value.status == 400


def test_rectangle_rejects_missing_corner_and_non_dict_body():
    with pytest.raises(PayloadError):
        parse_shape("rectangle", {"ne": [1, 2]})
    with pytest.raises(PayloadError):
        parse_shape("rectangle", [1, 2, 3])


def test_unknown_shape_is_404():
    with pytest.raises(UnknownShapeError) as exc:
        parse_shape("hexagon", {})
    assert exc.value.status == 404


def test_parse_request_clamps():
    req = parse_request("rectangle", {"ne": [1, 1], "sw": [0, 0]}, "10000")
    assert req.count == 5000
