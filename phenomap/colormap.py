# region Imports
import colorsys
from typing import Optional, Tuple
import numpy as np
from phenomap.config import (
    CATEGORY_HUE_STEP, CATEGORY_SATURATION, CATEGORY_LIGHTNESS, OVERLAY_ALPHA, WATER_RGBA,
)
# endregion

# region Category Colours
def category_color(category: int, hue_step: int = CATEGORY_HUE_STEP) -> Tuple[int, int, int]:
    """Stable, visually spread RGB for an integer class id (HSL hue rotation)."""
    hue = (int(category) * hue_step) % 360
    r, g, b = colorsys.hls_to_rgb(hue / 360.0, CATEGORY_LIGHTNESS, CATEGORY_SATURATION)
    return int(round(r * 255)), int(round(g * 255)), int(round(b * 255))


def category_lut(categories: np.ndarray) -> np.ndarray:
    return np.array([category_color(c) for c in categories], dtype=np.uint8).reshape(-1, 3)
# endregion

# region Water Mask
def water_mask(raw: np.ndarray, nodata: Optional[float]) -> np.ndarray:
    """NoData, non-finite and non-positive values are water."""
    values = raw.astype(np.float64, copy=False)
    with np.errstate(invalid="ignore"):
        mask = ~np.isfinite(values) | (values <= 0)
    if nodata is not None and np.isfinite(nodata):
        # Exact match in the sample type, so float32 sentinels compare as stored.
        if raw.dtype.kind == "f":
            mask |= raw == raw.dtype.type(nodata)
        else:
            mask |= values == nodata
    return mask
# endregion

# region Pixel Mapping
def categorical_to_rgba(raw: np.ndarray, out: np.ndarray, nodata: Optional[float] = None,
                        alpha: int = OVERLAY_ALPHA) -> None:
    """Fill out (n,4) uint8 from a flat run of single-band class values."""
    water = water_mask(raw, nodata)
    land = ~water
    out[water] = WATER_RGBA
    if not land.any():
        return
    cats = np.floor(raw[land].astype(np.float64) + 0.5).astype(np.int64)
    uniq, inverse = np.unique(cats, return_inverse=True)
    out[land, :3] = category_lut(uniq)[inverse.ravel()]
    out[land, 3] = alpha


def bands_to_rgba(bands: np.ndarray, out: np.ndarray, alpha: int = OVERLAY_ALPHA) -> None:
    """Fill out (n,4) from (k,n) already byte-scaled bands, k >= 3."""
    out[:, :3] = bands[:3].T
    if bands.shape[0] >= 4:
        out[:, 3] = bands[3]
    else:
        out[:, 3] = alpha
# endregion

# region Palette Expansion
def palette_lut(colormap: dict, size: int = 256) -> np.ndarray:
    """
    rasterio colormap {index: (r,g,b,a)} -> (n,4) uint8 lookup table, n large
    enough for every colormap index and at least `size`. 16-bit palettes
    carry more than 256 entries.
    """
    n = max([size] + [int(i) + 1 for i in colormap])
    lut = np.zeros((n, 4), dtype=np.uint8)
    for idx, rgba in colormap.items():
        if int(idx) >= 0:
            lut[int(idx), :len(rgba)] = rgba[:4]
            if len(rgba) < 4:
                lut[int(idx), 3] = 255
    return lut
# endregion
