# payloads.py - JSON request bodies -> ShapeSpec, count clamping
from __future__ import annotations
import math
from typing import Any, Dict, Optional

from phenomap.config import DEFAULT_COUNT, MIN_COUNT, MAX_COUNT
from phenomap.models import Circle, Point, Polygon, Rectangle, SampleRequest, ShapeSpec

SHAPES = ("rectangle", "circle", "polygon")


class PayloadError(ValueError):
    """Malformed or missing shape fields (HTTP 400)."""
    status = 400


class UnknownShapeError(PayloadError):
    status = 404


def clamp_count(raw: Any, default: int = DEFAULT_COUNT) -> int:
    """Query-string count -> int in [MIN_COUNT, MAX_COUNT]; junk falls back to default."""
    if raw in (None, ""):
        return default
    try:
        n = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(n):
        return default
    return int(max(MIN_COUNT, min(MAX_COUNT, int(n))))


def _point(value: Any) -> Optional[Point]:
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return None
    try:
        lat, lng = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    return (lat, lng)


def parse_shape(shape: str, body: Optional[Dict[str, Any]]) -> ShapeSpec:
    body = body if isinstance(body, dict) else {}

    if shape == "rectangle":
        ne, sw = _point(body.get("ne")), _point(body.get("sw"))
        if ne is None or sw is None:
            raise PayloadError("Invalid rectangle payload: expected { ne:[lat,lng], sw:[lat,lng] }")
        return Rectangle(ne=ne, sw=sw)

    if shape == "circle":
        center = _point(body.get("center"))
        try:
            radius = float(body.get("radius") or 0)
        except (TypeError, ValueError):
            radius = float("nan")
        if center is None or not math.isfinite(radius) or radius <= 0:
            raise PayloadError("Invalid circle payload: expected { center:[lat,lng], radius:number }")
        return Circle(center=center, radius_m=radius)

    if shape == "polygon":
        raw = body.get("points")
        vertices = [_point(p) for p in raw] if isinstance(raw, list) else []
        if len(vertices) < 3 or any(v is None for v in vertices):
            raise PayloadError(
                "Invalid polygon payload: expected { points:[[lat,lng], ...] } with >= 3 vertices"
            )
        return Polygon(vertices=tuple(vertices))

    raise UnknownShapeError(f"Unsupported shape: {shape}")


def parse_request(shape: str, body: Optional[Dict[str, Any]], count: Any = None) -> SampleRequest:
    return SampleRequest(shape=parse_shape(shape, body), count=clamp_count(count))
