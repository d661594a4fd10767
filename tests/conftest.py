import numpy as np
import pytest
from rasterio.io import MemoryFile


def geotiff_bytes(array, transform=None, crs="EPSG:4326", nodata=None,
                  colormap=None, colorinterp=None, band_tags=None, photometric=None):
    """Encode a (bands, H, W) array as GeoTIFF bytes."""
    array = np.asarray(array)
    if array.ndim == 2:
        array = array[np.newaxis]
    count, height, width = array.shape
    profile = {"driver": "GTiff", "width": width, "height": height,
               "count": count, "dtype": array.dtype.name}
    if transform is not None:
        profile.update(transform=transform, crs=crs)
    if nodata is not None:
        profile["nodata"] = nodata
    if photometric is not None:
        profile["photometric"] = photometric

    with MemoryFile() as mem:
        with mem.open(**profile) as ds:
            ds.write(array)
            if colorinterp is not None:
                ds.colorinterp = colorinterp
            if colormap is not None:
                ds.write_colormap(1, colormap)
            if band_tags:
                ds.update_tags(1, **band_tags)
        return mem.read()


@pytest.fixture
def make_geotiff():
    return geotiff_bytes
