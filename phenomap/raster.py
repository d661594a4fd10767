# raster.py - GeoTIFF access: fetching, metadata, pooled decimated reads
# deps: rasterio, requests, numpy

from __future__ import annotations
import asyncio
import logging
import math
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
import requests
from rasterio.enums import ColorInterp, Resampling
from rasterio.errors import RasterioError
from rasterio.io import MemoryFile

from phenomap.config import FETCH_TIMEOUT, MAX_OVERLAY_DIM, MAX_WORKERS
from phenomap.models import RasterMeta

logger = logging.getLogger(__name__)

Source = Union[str, os.PathLike, bytes, bytearray, memoryview]

_NODATA_KEYS = ("GDAL_NODATA", "NODATA", "nodata", "_FillValue")


class RasterDecodeError(RuntimeError):
    """Raster could not be fetched, opened or georeferenced."""


# ======= fetching =======
def fetch_source(source: Source) -> bytes:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    location = os.fspath(source)
    if location.startswith(("http://", "https://")):
        try:
            r = requests.get(location, timeout=FETCH_TIMEOUT)
        except requests.RequestException as e:
            raise RasterDecodeError(f"Raster fetch failed: {e}") from e
        if r.status_code != 200:
            raise RasterDecodeError(f"Raster not reachable ({r.status_code}): {location}")
        return r.content

    try:
        return Path(location).read_bytes()
    except OSError as e:
        raise RasterDecodeError(f"Raster not readable: {e}") from e


# ======= metadata =======
def output_shape(width: int, height: int, max_dim: int = MAX_OVERLAY_DIM) -> Tuple[int, int]:
    """(out_width, out_height), shrunk so the longer side is at most max_dim."""
    longest = max(width, height)
    if longest <= max_dim:
        return width, height
    scale = max_dim / float(longest)
    return (max(1, int(math.floor(width * scale + 0.5))),
            max(1, int(math.floor(height * scale + 0.5))))


def _tag_float(tags: dict, keys) -> Optional[float]:
    for k in keys:
        if k in tags:
            try:
                return float(tags[k])
            except (TypeError, ValueError):
                continue
    return None


def nodata_value(ds) -> Optional[float]:
    if ds.nodata is not None:
        return float(ds.nodata)
    tags = dict(ds.tags())
    if ds.count:
        tags.update(ds.tags(1))
    return _tag_float(tags, _NODATA_KEYS)


def band_statistics(ds) -> Optional[Tuple[float, float]]:
    """GDAL STATISTICS_MINIMUM/MAXIMUM of band 1, when the file carries them."""
    tags = ds.tags(1)
    vmin = _tag_float(tags, ("STATISTICS_MINIMUM",))
    vmax = _tag_float(tags, ("STATISTICS_MAXIMUM",))
    if vmin is None or vmax is None or vmax <= vmin:
        return None
    return vmin, vmax


def is_palette(ds) -> bool:
    return ds.count == 1 and ds.colorinterp[0] == ColorInterp.palette


def band_indexes(ds) -> List[int]:
    """Bands worth reading: RGB(A) for colour imagery, band 1 otherwise."""
    if ds.count >= 4 and ds.colorinterp[3] == ColorInterp.alpha:
        return [1, 2, 3, 4]
    if ds.count >= 3:
        return [1, 2, 3]
    return [1]


def read_meta(ds, max_dim: int = MAX_OVERLAY_DIM) -> RasterMeta:
    out_w, out_h = output_shape(ds.width, ds.height, max_dim)
    return RasterMeta(
        width=ds.width, height=ds.height, count=ds.count, dtype=ds.dtypes[0],
        nodata=nodata_value(ds), palette=is_palette(ds),
        out_width=out_w, out_height=out_h,
    )


# ======= worker pool =======
_POOL: Optional[ThreadPoolExecutor] = None
_POOL_LOCK = threading.Lock()


def pool_size() -> int:
    return max(1, min(MAX_WORKERS, os.cpu_count() or 1))


def get_worker_pool() -> ThreadPoolExecutor:
    """Process-wide decode pool, created on first use and reused."""
    global _POOL
    with _POOL_LOCK:
        if _POOL is None:
            _POOL = ThreadPoolExecutor(max_workers=pool_size(), thread_name_prefix="phenomap-decode")
            logger.debug("decode pool started with %d workers", pool_size())
        return _POOL


# ======= reads =======
def read_band(data: bytes, index: int, out_height: int, out_width: int) -> np.ndarray:
    # Each worker opens its own handle; rasterio datasets are not thread-safe.
    with MemoryFile(data) as mem, mem.open() as ds:
        return ds.read(index, out_shape=(out_height, out_width), resampling=Resampling.nearest)


async def read_bands_async(data: bytes, indexes: List[int], meta: RasterMeta) -> np.ndarray:
    """(k, out_h, out_w) array, one pooled nearest-neighbour read per band."""
    loop = asyncio.get_running_loop()
    pool = get_worker_pool()
    jobs = [loop.run_in_executor(pool, read_band, data, i, meta.out_height, meta.out_width)
            for i in indexes]
    try:
        arrays = await asyncio.gather(*jobs)
    except RasterioError as e:
        raise RasterDecodeError(f"Band read failed: {e}") from e
    return np.stack(arrays)


@contextmanager
def open_dataset(data: bytes):
    """Dataset over in-memory GeoTIFF bytes; GDAL failures become RasterDecodeError."""
    try:
        with MemoryFile(data) as mem, mem.open() as ds:
            yield ds
    except RasterioError as e:
        raise RasterDecodeError(f"Not a readable GeoTIFF: {e}") from e
