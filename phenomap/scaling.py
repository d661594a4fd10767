# region Imports
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable
import numpy as np
from phenomap.config import FLOAT_SCALE_SAMPLES
# endregion

# region Scale Parameters
@dataclass(frozen=True)
class ScaleParams:
    """byte = clip((value - offset) * scale, 0, 255)"""
    scale: float = 1.0
    offset: float = 0.0

    @property
    def identity(self) -> bool:
        return self.scale == 1.0 and self.offset == 0.0

    def apply(self, values: np.ndarray) -> np.ndarray:
        if self.identity and values.dtype == np.uint8:
            return values
        v = values.astype(np.float32)
        if not self.identity:
            v = (v - self.offset) * self.scale
        v = np.nan_to_num(v, nan=0.0, posinf=255.0, neginf=0.0)
        return np.clip(np.rint(v), 0, 255).astype(np.uint8)


ScaleStrategy = Callable[[np.dtype, np.ndarray], ScaleParams]
# endregion

# region Helpers
def strided_sample(values: np.ndarray, target: int = FLOAT_SCALE_SAMPLES) -> np.ndarray:
    """Every Nth value so roughly `target` samples remain, non-finite dropped."""
    flat = values.ravel()
    step = max(1, flat.size // max(1, target))
    sample = flat[::step]
    return sample[np.isfinite(sample)]
# endregion

# region Default Strategy
def infer_scale(dtype, values: np.ndarray) -> ScaleParams:
    """
    Guess a value->byte mapping from the sample dtype alone:
      8-bit ints      pass through
      16/32-bit ints  rescale from the type's max to 255
      floats          look at ~20k samples: [0,1] -> x255, [0,255] -> as is,
                      otherwise rescale from the observed max
    """
    dt = np.dtype(dtype)
    if dt.kind in "ui":
        if dt.itemsize == 1:
            return ScaleParams()
        return ScaleParams(scale=255.0 / float(np.iinfo(dt).max))

    if dt.kind == "f":
        sample = strided_sample(values)
        if sample.size == 0:
            return ScaleParams()
        vmax = float(sample.max())
        if vmax <= 1.0:
            return ScaleParams(scale=255.0)
        if vmax <= 255.0:
            return ScaleParams()
        return ScaleParams(scale=255.0 / vmax)

    return ScaleParams()
# endregion

# region Calibrated Strategy
def calibrated_scale(vmin: float, vmax: float) -> ScaleStrategy:
    """Strategy for rasters whose metadata states the true value range."""
    span = float(vmax) - float(vmin)
    params = ScaleParams(scale=255.0 / span if span > 0 else 1.0, offset=float(vmin))

    def strategy(dtype, values):
        return params

    return strategy
# endregion
