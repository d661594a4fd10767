# region Imports
from typing import Sequence, Tuple
import numpy as np
from pyproj import Geod
from phenomap.config import EARTH_R
# endregion

_SPHERE = Geod(a=EARTH_R, b=EARTH_R)

# region Spherical Direct Problem
def destination_point(lat_deg, lon_deg, distance_m, bearing_rad, radius: float = EARTH_R):
    """
    Point reached from (lat, lon) after travelling distance_m along the great
    circle with initial bearing bearing_rad (0 = north, clockwise).
    Accepts scalars or numpy arrays; longitude is not wrapped.
    """
    lat1 = np.radians(lat_deg)
    lon1 = np.radians(lon_deg)
    delta = np.asarray(distance_m, dtype=np.float64) / radius

    sin_lat1, cos_lat1 = np.sin(lat1), np.cos(lat1)
    sin_d, cos_d = np.sin(delta), np.cos(delta)

    lat2 = np.arcsin(sin_lat1 * cos_d + cos_lat1 * sin_d * np.cos(bearing_rad))
    lon2 = lon1 + np.arctan2(
        np.sin(bearing_rad) * sin_d * cos_lat1,
        cos_d - sin_lat1 * np.sin(lat2),
    )
    return np.degrees(lat2), np.degrees(lon2)
# endregion

# region Distance
def great_circle_distance_m(lat1, lon1, lat2, lon2):
    """Great-circle distance on the EARTH_R sphere; vectorised like Geod.inv."""
    _, _, dist = _SPHERE.inv(lon1, lat1, lon2, lat2)
    return dist
# endregion

# region Bounding Box
def bounding_box(vertices: Sequence[Tuple[float, float]]):
    """(lat_min, lat_max, lng_min, lng_max) of a (lat, lng) vertex ring."""
    arr = np.asarray(vertices, dtype=np.float64)
    return (float(arr[:, 0].min()), float(arr[:, 0].max()),
            float(arr[:, 1].min()), float(arr[:, 1].max()))
# endregion
