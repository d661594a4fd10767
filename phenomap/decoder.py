# decoder.py - GeoTIFF -> colour-mapped RGBA overlay + geographic bounds
#
# Pipeline: fetch -> metadata -> pooled (decimated) band reads -> value->byte
# scaling -> colour mapping in chunks -> bounds -> PNG.
# deps: numpy, rasterio, pillow

from __future__ import annotations
import asyncio
import io
import logging
import math
from typing import Iterator, Optional, Tuple

import numpy as np
from PIL import Image

from phenomap.bounds import geo_bounds
from phenomap.colormap import bands_to_rgba, categorical_to_rgba, palette_lut
from phenomap.config import CHUNK_DIVISOR, MAX_OVERLAY_DIM, MIN_CHUNK_PIXELS
from phenomap.models import DecodedOverlay
from phenomap.raster import (
    RasterDecodeError, Source, band_indexes, band_statistics, fetch_source,
    get_worker_pool, open_dataset, read_bands_async, read_meta,
)
from phenomap.scaling import ScaleParams, ScaleStrategy, calibrated_scale, infer_scale

logger = logging.getLogger(__name__)

__all__ = [
    "RasterDecodeError", "chunk_size", "iter_rgba_chunks", "render_rgba",
    "encode_png", "decode_overlay", "decode_overlay_sync", "load_overlay",
]


# region Chunked Colour Mapping
def chunk_size(total: int) -> int:
    return max(MIN_CHUNK_PIXELS, int(math.ceil(total / CHUNK_DIVISOR)))


def iter_rgba_chunks(
    bands: np.ndarray,
    out: np.ndarray,
    nodata: Optional[float] = None,
    scale: Optional[ScaleParams] = None,
) -> Iterator[Tuple[int, int]]:
    """
    Fill out (n,4) from bands (k,H,W) one chunk at a time, yielding the
    (start, stop) pixel range after each chunk. The caller decides what
    happens between chunks (nothing, or handing control back to a loop).
    k >= 3 is colour imagery, anything else is categorical band 1.
    """
    k = bands.shape[0]
    flat = bands.reshape(k, -1)
    total = flat.shape[1]
    step = chunk_size(total)
    scale = scale or ScaleParams()

    for start in range(0, total, step):
        stop = min(total, start + step)
        if k >= 3:
            bands_to_rgba(scale.apply(flat[:, start:stop]), out[start:stop])
        else:
            categorical_to_rgba(flat[0, start:stop], out[start:stop], nodata=nodata)
        yield start, stop


def render_rgba(bands: np.ndarray, nodata: Optional[float] = None,
                scale: Optional[ScaleParams] = None) -> np.ndarray:
    """Synchronous driver: (H,W,4) uint8."""
    _, h, w = bands.shape
    out = np.empty((h * w, 4), dtype=np.uint8)
    for _ in iter_rgba_chunks(bands, out, nodata=nodata, scale=scale):
        pass
    return out.reshape(h, w, 4)
# endregion


# region Encoding
def encode_png(pixels: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels)).save(buf, "PNG")
    return buf.getvalue()
# endregion


# region Decode
async def decode_overlay(
    source: Source,
    *,
    attach: bool = True,
    scale_strategy: Optional[ScaleStrategy] = None,
    max_dim: int = MAX_OVERLAY_DIM,
) -> DecodedOverlay:
    """
    Decode one GeoTIFF into a DecodedOverlay. Raises RasterDecodeError when
    the resource is unreadable, empty or carries no georeferencing.
    """
    loop = asyncio.get_running_loop()
    data = await loop.run_in_executor(get_worker_pool(), fetch_source, source)

    with open_dataset(data) as ds:
        meta = read_meta(ds, max_dim)
        if not (meta.count and meta.out_width and meta.out_height):
            raise RasterDecodeError(f"Raster is empty ({meta.width}x{meta.height}, {meta.count} bands)")
        bounds = geo_bounds(ds, data)
        if bounds is None:
            raise RasterDecodeError("Raster has neither a geotransform nor tiepoint/pixel-scale tags")
        indexes = [1] if meta.palette else band_indexes(ds)
        colormap = ds.colormap(1) if meta.palette else None
        stats = band_statistics(ds)

    if meta.downsampled:
        logger.info("downsampling %dx%d -> %dx%d", meta.width, meta.height,
                    meta.out_width, meta.out_height)

    bands = await read_bands_async(data, indexes, meta)
    del data

    if colormap is not None:
        # RGB conversion of palette images: index -> (r,g,b,a)
        lut = palette_lut(colormap, size=int(bands.max()) + 1)
        bands = lut[bands[0]].transpose(2, 0, 1)
        scale = ScaleParams()
    elif bands.shape[0] >= 3:
        strategy = scale_strategy or (calibrated_scale(*stats) if stats else infer_scale)
        scale = strategy(bands.dtype, bands)
    else:
        scale = None

    out = np.empty((meta.out_height * meta.out_width, 4), dtype=np.uint8)
    for _ in iter_rgba_chunks(bands, out, nodata=meta.nodata, scale=scale):
        await asyncio.sleep(0)
    del bands

    pixels = out.reshape(meta.out_height, meta.out_width, 4)
    png = await loop.run_in_executor(get_worker_pool(), encode_png, pixels)
    logger.info("decoded overlay %dx%d bounds=%s", meta.out_width, meta.out_height, bounds)
    return DecodedOverlay(pixels=pixels, width=meta.out_width, height=meta.out_height,
                          bounds=bounds, png=png, attached=attach, meta=meta)


def decode_overlay_sync(source: Source, **kwargs) -> DecodedOverlay:
    return asyncio.run(decode_overlay(source, **kwargs))


async def load_overlay(source: Source, **kwargs) -> Optional[DecodedOverlay]:
    """decode_overlay that logs failures and returns None ("no overlay available")."""
    try:
        return await decode_overlay(source, **kwargs)
    except Exception:
        label = "<bytes>" if isinstance(source, (bytes, bytearray, memoryview)) else source
        logger.exception("overlay decode failed for %s", label)
        return None
# endregion
