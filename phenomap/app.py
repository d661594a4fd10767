# app.py - Slim Flask API over the point sampler and raster overlay decoder
# deps: pip install flask numpy rasterio pillow pyproj requests

from __future__ import annotations
import asyncio
import logging

from flask import Flask, request, jsonify, make_response

from phenomap.config import HOST, LOG_LEVEL, PORT
from phenomap.overlay import OverlayRegistry, OverlayState
from phenomap.payloads import PayloadError, SHAPES, parse_request
from phenomap.sampler import sample_shape

logger = logging.getLogger(__name__)

app = Flask(__name__)
overlays = OverlayRegistry()

# ======= CORS =======
@app.after_request
def _cors(resp):
    resp.headers["Access-Control-Allow-Origin"]  = "*"
    resp.headers["Access-Control-Allow-Headers"] = "*"
    resp.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
    return resp

@app.route("/", methods=["GET"])
def root():
    return {
        "ok": True,
        "random_points": [f"/api/random-points/{s} (POST JSON)" for s in SHAPES],
        "overlays": overlays.names(),
    }

# ======= random points =======
@app.route("/api/random-points/<shape>", methods=["POST"])
def random_points(shape):
    """
    POST /api/random-points/<rectangle|circle|polygon>?count=100
      rectangle: {"ne":[lat,lng], "sw":[lat,lng]}
      circle:    {"center":[lat,lng], "radius": meters}
      polygon:   {"points":[[lat,lng], ...]}   // >= 3
    -> {"points": [[lat,lng], ...]}
    """
    body = request.get_json(force=True, silent=True) or {}
    try:
        req = parse_request(shape, body, request.args.get("count"))
        points = sample_shape(req.shape, req.count)
    except PayloadError as e:
        return jsonify({"error": str(e)}), e.status
    except Exception as e:
        logger.exception("random point sampling failed")
        return jsonify({"error": str(e) or "Internal error"}), 500
    return jsonify({"points": [[lat, lng] for lat, lng in points]})

# ======= overlays =======
def _overlay_doc(slot):
    doc = slot.snapshot()
    if slot.overlay is not None:
        doc["image"] = f"/api/overlays/{slot.name}/image.png"
    return doc

def _unavailable(slot):
    return jsonify({"error": "no overlay available", "state": slot.state.value}), 503

@app.route("/api/overlays/<name>", methods=["GET"])
def overlay_info(name):
    if name not in overlays:
        return jsonify({"error": f"Unknown overlay: {name}"}), 404
    slot = overlays[name]
    prewarm = request.args.get("prewarm", "").lower() in ("1", "true", "yes")
    overlay = asyncio.run(slot.load(attach=not prewarm, show_spinner=not prewarm))
    if overlay is None:
        return _unavailable(slot)
    return jsonify(_overlay_doc(slot))

@app.route("/api/overlays/<name>/toggle", methods=["POST"])
def overlay_toggle(name):
    if name not in overlays:
        return jsonify({"error": f"Unknown overlay: {name}"}), 404
    slot = overlays[name]
    if asyncio.run(slot.toggle()) is None:
        return _unavailable(slot)
    return jsonify(_overlay_doc(slot))

@app.route("/api/overlays/<name>/image.png", methods=["GET"])
def overlay_image(name):
    if name not in overlays or overlays[name].state is not OverlayState.LOADED:
        return jsonify({"error": f"Overlay not loaded: {name}"}), 404
    resp = make_response(overlays[name].overlay.png)
    resp.headers["Content-Type"] = "image/png"
    return resp


def configure_logging(level: str = LOG_LEVEL) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root_logger = logging.getLogger("phenomap")
    root_logger.setLevel(getattr(logging, level, logging.INFO))
    if not root_logger.handlers:
        root_logger.addHandler(handler)


def main():
    configure_logging()
    app.run(host=HOST, port=PORT, threaded=True)


if __name__ == "__main__":
    main()
