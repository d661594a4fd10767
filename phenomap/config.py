# config.py
import os

EARTH_R = 6_371_000.0  # mean Earth radius (m), spherical model

# Random point sampling
DEFAULT_COUNT = 100
MIN_COUNT = 1
MAX_COUNT = 5000
# Rejection sampling gives up after count * factor draws
POLYGON_ATTEMPT_FACTOR = 1000

# Overlay decoding
MAX_OVERLAY_DIM = 2048
OVERLAY_ALPHA = 230
WATER_RGBA = (255, 255, 255, 255)
CATEGORY_HUE_STEP = 47
CATEGORY_SATURATION = 0.80
CATEGORY_LIGHTNESS = 0.55
CHUNK_DIVISOR = 12
MIN_CHUNK_PIXELS = 50_000
FLOAT_SCALE_SAMPLES = 20_000
MAX_WORKERS = 4
FETCH_TIMEOUT = float(os.environ.get("PHENOMAP_FETCH_TIMEOUT", "30"))

OVERLAY_SOURCES = {
    "koppen": os.environ.get("PHENOMAP_KOPPEN_URL", "data/koppen_geiger.tif"),
}

LOG_LEVEL = os.environ.get("PHENOMAP_LOG_LEVEL", "INFO").upper()
HOST = os.environ.get("PHENOMAP_HOST", "0.0.0.0")
PORT = int(os.environ.get("PHENOMAP_PORT", "8081"))
