"""Map block configuration loaded from environment variables."""

import logging
import os
import sys

from pythonjsonlogger import jsonlogger

# ---------------------------------------------------------------------------
# Mapbox (geocoding + tiles)
# ---------------------------------------------------------------------------
MAPBOX_TOKEN = os.environ.get("MAPBOX_TOKEN", "")
MAPBOX_API_URL = os.environ.get("MAPBOX_API_URL", "https://api.mapbox.com")
# .format(style=..., token=...) leaves the {z}/{x}/{y} tile placeholders
MAPBOX_TILE_URL = (
    MAPBOX_API_URL
    + "/styles/v1/{style}/tiles/{{z}}/{{x}}/{{y}}?access_token={token}"
)
MAPBOX_ATTRIBUTION = (
    'Map data &copy; <a href="https://www.openstreetmap.org/copyright">'
    "OpenStreetMap</a> contributors, Imagery &copy; "
    '<a href="https://www.mapbox.com/">Mapbox</a>'
)
HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "30.0"))  # httpx timeout in seconds

# (name, mapbox style id); the first layer is the one checked on mount
BASE_LAYERS: list[tuple[str, str]] = [
    ("Streets", "mapbox/streets-v11"),
    ("Outdoors", "mapbox/outdoors-v11"),
    ("Light", "mapbox/light-v10"),
    ("Dark", "mapbox/dark-v10"),
    ("Satellite", "mapbox/satellite-v9"),
]

# ---------------------------------------------------------------------------
# Map defaults
# ---------------------------------------------------------------------------
DEFAULT_ZOOM = 13
DEFAULT_CENTER = (51.505, -0.09)
DEFAULT_HEIGHT = 400             # px, before the container has a width
HEIGHT_RATIO = 0.75              # height = width * 3/4

# ---------------------------------------------------------------------------
# Popups
# ---------------------------------------------------------------------------
POPUP_CLOSE_DELAY = float(os.environ.get("POPUP_CLOSE_DELAY", "0.1"))  # seconds

# ---------------------------------------------------------------------------
# Host document
# ---------------------------------------------------------------------------
HOST_BASE_URL = os.environ.get("HOST_BASE_URL", "https://roamresearch.com/#/app/graph")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def setup_logging() -> None:
    """Configure structured JSON logging."""
    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(LOG_LEVEL)

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("MARKDOWN").setLevel(logging.WARNING)
