# models.py
from __future__ import annotations
import base64
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union
import numpy as np

Point = Tuple[float, float]  # (lat, lng) in degrees

@dataclass(frozen=True)
class Rectangle:
    ne: Point
    sw: Point

@dataclass(frozen=True)
class Circle:
    center: Point
    radius_m: float

@dataclass(frozen=True)
class Polygon:
    vertices: Tuple[Point, ...]

ShapeSpec = Union[Rectangle, Circle, Polygon]

@dataclass(frozen=True)
class SampleRequest:
    shape: ShapeSpec
    count: int

@dataclass(frozen=True)
class GeoBounds:
    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    def to_dict(self):
        return {"minLat": self.min_lat, "minLng": self.min_lng,
                "maxLat": self.max_lat, "maxLng": self.max_lng}

    @property
    def extent(self):
        """matplotlib imshow extent (left, right, bottom, top)."""
        return (self.min_lng, self.max_lng, self.min_lat, self.max_lat)

@dataclass
class RasterMeta:
    width: int
    height: int
    count: int
    dtype: str
    nodata: Optional[float]
    palette: bool
    out_width: int
    out_height: int

    @property
    def downsampled(self) -> bool:
        return (self.out_width, self.out_height) != (self.width, self.height)

@dataclass
class DecodedOverlay:
    pixels: Optional[np.ndarray]   # (H,W,4) uint8, None once released
    width: int
    height: int
    bounds: GeoBounds
    png: bytes = b""
    attached: bool = False
    meta: Optional[RasterMeta] = field(default=None, repr=False)

    @property
    def data_url(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.png).decode("ascii")

def as_points(rows) -> List[Point]:
    return [(float(lat), float(lng)) for lat, lng in rows]
