import json

import matplotlib
matplotlib.use("Agg")

import numpy as np
from rasterio.transform import from_origin

from phenomap.decoder import decode_overlay_sync
from phenomap.export import points_feature_collection, write_points_geojson, write_points_json
from phenomap.models import DecodedOverlay
from phenomap.viz import show_overlay_preview

POINTS = [(10.0, 20.0), (-5.5, 100.25)]


def test_write_points_json(tmp_path):
    out = tmp_path / "points.json"
    write_points_json(POINTS, str(out))
    assert json.loads(out.read_text()) == {"points": [[10.0, 20.0], [-5.5, 100.25]]}


def test_feature_collection_uses_lng_lat_order(tmp_path):
    fc = points_feature_collection(POINTS, shape="circle")
    assert fc["type"] == "FeatureCollection"
    assert fc["features"][1]["geometry"]["coordinates"] == [100.25, -5.5]
    assert fc["features"][1]["properties"] == {"index": 1, "shape": "circle"}

    out = tmp_path / "points.geojson"
    write_points_geojson(POINTS, str(out))
    assert len(json.loads(out.read_text())["features"]) == 2


def test_preview_from_pixels_and_png(make_geotiff):
    data = make_geotiff(np.full((1, 4, 6), 2, dtype=np.uint8), transform=from_origin(0.0, 4.0, 1.0, 1.0))
    ov = decode_overlay_sync(data)
    fig = show_overlay_preview(ov, points=[(1.0, 1.0), (2.0, 3.0)], show=False)
    ax = fig.axes[0]
    assert ax.get_xlim() == (0.0, 6.0)
    assert ax.get_ylim() == (0.0, 4.0)

    released = DecodedOverlay(pixels=None, width=ov.width, height=ov.height, bounds=ov.bounds, png=ov.png)
    fig = show_overlay_preview(released, show=False)
    assert fig.axes[0].images[0].get_array().shape == (4, 6, 4)
