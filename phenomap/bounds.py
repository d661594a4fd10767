# bounds.py - geographic extent of a GeoTIFF
from __future__ import annotations
import io
import logging
from typing import Optional, Sequence, Tuple

from PIL import Image

from phenomap.models import GeoBounds

logger = logging.getLogger(__name__)

MODEL_PIXEL_SCALE_TAG = 33550
MODEL_TIEPOINT_TAG = 33922


def bounds_from_tiepoint(tiepoint: Sequence[float], pixel_scale: Sequence[float],
                         width: int, height: int) -> GeoBounds:
    """
    tiepoint = (I, J, K, X, Y, Z) ties raster pixel (I, J) to model (X, Y);
    pixel_scale = (sx, sy[, sz]). Rows grow southwards.
    """
    i, j = float(tiepoint[0]), float(tiepoint[1])
    x, y = float(tiepoint[3]), float(tiepoint[4])
    sx, sy = float(pixel_scale[0]), float(pixel_scale[1])

    min_x = x - i * sx
    max_y = y + j * sy
    max_x = min_x + width * sx
    min_y = max_y - height * sy
    return GeoBounds(min_lat=min_y, min_lng=min_x, max_lat=max_y, max_lng=max_x)


def read_geo_tags(data: bytes) -> Tuple[Optional[tuple], Optional[tuple]]:
    """Raw (tiepoint, pixel_scale) TIFF tags, or None for each missing/unreadable one."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            tags = getattr(img, "tag_v2", None) or {}
            tie = tags.get(MODEL_TIEPOINT_TAG)
            scale = tags.get(MODEL_PIXEL_SCALE_TAG)
    except (OSError, ValueError) as e:
        logger.debug("TIFF tag scan failed: %s", e)
        return None, None
    return (tuple(tie) if tie else None), (tuple(scale) if scale else None)


def has_geotransform(ds) -> bool:
    return not ds.transform.is_identity


def geo_bounds(ds, data: bytes) -> Optional[GeoBounds]:
    """
    Dataset bounding box when rasterio resolved a geotransform, else the
    manual tiepoint + pixel scale computation. None when neither exists.
    """
    if has_geotransform(ds):
        if ds.crs is not None and not ds.crs.is_geographic:
            logger.warning("raster CRS %s is not geographic; bounds used as lat/lng as-is", ds.crs)
        left, bottom, right, top = ds.bounds
        return GeoBounds(min_lat=min(bottom, top), min_lng=min(left, right),
                         max_lat=max(bottom, top), max_lng=max(left, right))

    tie, scale = read_geo_tags(data)
    if tie is None or scale is None or len(tie) < 6 or len(scale) < 2:
        return None
    return bounds_from_tiepoint(tie, scale, ds.width, ds.height)
