# region Imports
from __future__ import annotations
import json
import logging
from typing import Sequence, Tuple
# endregion

logger = logging.getLogger(__name__)

# region Plain Points
def write_points_json(points: Sequence[Tuple[float, float]], out_path: str = "points.json") -> None:
    """Same document the random-points endpoint returns: {"points": [[lat, lng], ...]}."""
    with open(out_path, "w") as f:
        json.dump({"points": [[float(lat), float(lng)] for lat, lng in points]}, f, indent=2)
    logger.info("Wrote %d points to %s", len(points), out_path)
# endregion

# region GeoJSON
def points_feature_collection(points: Sequence[Tuple[float, float]], **properties) -> dict:
    """(lat, lng) pairs -> FeatureCollection of Points; GeoJSON wants (lng, lat)."""
    features = [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [float(lng), float(lat)]},
            "properties": {"index": i, **properties},
        }
        for i, (lat, lng) in enumerate(points)
    ]
    return {"type": "FeatureCollection", "features": features}


def write_points_geojson(
    points: Sequence[Tuple[float, float]],
    out_path: str = "points.geojson",
    **properties,
) -> None:
    with open(out_path, "w") as f:
        json.dump(points_feature_collection(points, **properties), f, indent=2)
    logger.info("Wrote %d points to %s", len(points), out_path)
# endregion
