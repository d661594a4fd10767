# sampler.py - uniform random (lat, lng) points inside rectangles, geodesic
# circles and polygons, used to seed map markers.

# region Imports
from __future__ import annotations
import logging
from typing import List, Optional, Sequence
import numpy as np

from phenomap.config import EARTH_R, POLYGON_ATTEMPT_FACTOR
from phenomap.geometry import bounding_box, destination_point, great_circle_distance_m
from phenomap.models import Circle, Point, Polygon, Rectangle, ShapeSpec, as_points
# endregion

logger = logging.getLogger(__name__)

def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()

# region Point in Polygon
def points_in_polygon(lats, lngs, polygon: Sequence[Point]) -> np.ndarray:
    """
    Even-odd ray casting, vectorised over the query points. lng is x, lat is
    y; the ring is closed implicitly. Points exactly on an edge or vertex may
    land on either side.
    """
    y = np.asarray(lats, dtype=np.float64)
    x = np.asarray(lngs, dtype=np.float64)
    ring = np.asarray(polygon, dtype=np.float64)
    yi, xi = ring[:, 0], ring[:, 1]
    yj, xj = np.roll(yi, 1), np.roll(xi, 1)

    inside = np.zeros(np.broadcast(x, y).shape, dtype=bool)
    with np.errstate(divide="ignore", invalid="ignore"):
        for k in range(len(ring)):
            crosses = (yi[k] > y) != (yj[k] > y)
            x_cross = (xj[k] - xi[k]) * (y - yi[k]) / (yj[k] - yi[k]) + xi[k]
            inside ^= crosses & (x < x_cross)
    return inside


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    lat, lng = point
    return bool(points_in_polygon(lat, lng, polygon))
# endregion

# region Rectangle
def sample_rectangle(ne: Point, sw: Point, count: int, rng=None) -> List[Point]:
    lat_min, lat_max = min(ne[0], sw[0]), max(ne[0], sw[0])
    lng_min, lng_max = min(ne[1], sw[1]), max(ne[1], sw[1])
    # No antimeridian unwrapping: a box spanning ±180 is sampled the long way round.
    g = _rng(rng)
    lats = lat_min + g.random(count) * (lat_max - lat_min)
    lngs = lng_min + g.random(count) * (lng_max - lng_min)
    return as_points(zip(lats, lngs))
# endregion

# region Circle
def sample_circle(center: Point, radius_m: float, count: int, rng=None,
                  earth_radius: float = EARTH_R) -> List[Point]:
    """
    Uniform-by-area points within a great-circle radius of center.
    sqrt(u) on the radial draw gives density ∝ r in the tangent plane; the
    offset is then applied with the spherical direct formula rather than a
    flat-earth degree offset.
    """
    g = _rng(rng)
    u = g.random(count)
    v = g.random(count)
    w = radius_m * np.sqrt(u)
    t = 2.0 * np.pi * v
    lats, lngs = destination_point(center[0], center[1], w, t, radius=earth_radius)
    if count and logger.isEnabledFor(logging.DEBUG):
        d = great_circle_distance_m(np.full(count, center[0]), np.full(count, center[1]), lats, lngs)
        logger.debug("circle sample: farthest point %.1f m from center (radius %.1f m)",
                     float(np.max(d)), radius_m)
    return as_points(zip(lats, lngs))
# endregion

# region Polygon
def sample_polygon(vertices: Sequence[Point], count: int, rng=None,
                   attempt_factor: int = POLYGON_ATTEMPT_FACTOR) -> List[Point]:
    """
    Rejection sampling inside the vertex bounding box. Stops after count
    accepted points or count * attempt_factor draws, so slivers and
    zero-area rings return fewer than count points (possibly none).
    """
    g = _rng(rng)
    lat_min, lat_max, lng_min, lng_max = bounding_box(vertices)
    max_attempts = count * attempt_factor

    lat_parts, lng_parts = [], []
    accepted = 0
    attempts = 0
    while accepted < count and attempts < max_attempts:
        need = count - accepted
        n = min(max_attempts - attempts, max(1024, 4 * need))
        lats = lat_min + g.random(n) * (lat_max - lat_min)
        lngs = lng_min + g.random(n) * (lng_max - lng_min)
        hits = np.flatnonzero(points_in_polygon(lats, lngs, vertices))
        if hits.size >= need:
            hits = hits[:need]
            attempts += int(hits[-1]) + 1
        else:
            attempts += n
        lat_parts.append(lats[hits])
        lng_parts.append(lngs[hits])
        accepted += hits.size

    if accepted < count:
        logger.debug("polygon sampling under-filled: %d/%d after %d attempts",
                     accepted, count, attempts)
    if not lat_parts:
        return []
    return as_points(zip(np.concatenate(lat_parts), np.concatenate(lng_parts)))
# endregion

# region Dispatch
def sample_shape(shape: ShapeSpec, count: int, rng=None) -> List[Point]:
    if isinstance(shape, Rectangle):
        points = sample_rectangle(shape.ne, shape.sw, count, rng=rng)
    elif isinstance(shape, Circle):
        points = sample_circle(shape.center, shape.radius_m, count, rng=rng)
    elif isinstance(shape, Polygon):
        points = sample_polygon(shape.vertices, count, rng=rng)
    else:
        raise TypeError(f"Unsupported shape type: {type(shape).__name__}")
    logger.debug("sampled %d/%d points in %s", len(points), count, type(shape).__name__)
    return points
# endregion
