"""
spatial_constants.py
--------------------
Shared parameters for the ward / crime walkthrough.
Import from here rather than hard-coding values in the functions.
"""

import os

# ── Coordinate reference systems ──────────────────────────────────
# Longitude/latitude, used by the crime CSV and by web maps.
WGS84 = "EPSG:4326"

# NAD83 / UTM zone 16N (metres), covers Chicago.
PROJECTED_CRS = "EPSG:26916"

# ── Analysis parameters ───────────────────────────────────────────
BUFFER_DISTANCE = 500  # metres
N_CLASSES = 5
CLASS_SCHEME = "pretty"
TOP_N_WARDS = 5
CRIME_TYPE = "THEFT"

# ── Column names ──────────────────────────────────────────────────
X_COLUMN = "Longitude"
Y_COLUMN = "Latitude"
CRIME_TYPE_COLUMN = "Primary Type"
WARD_ID = "ward"
COUNT_COLUMN = "n_crimes"
AREA_COLUMN = "area_km2"

# Ward file columns kept by the walkthrough {source: renamed}.
WARD_COLUMNS = {
    "ward": "ward",
    "shape_area": "shape_area_ft2",
}

# ── Rendering ─────────────────────────────────────────────────────
PALETTE = "YlOrRd"
TILE_URL = "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png"
TILE_ATTRIBUTION = (
    '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> '
    'contributors &copy; <a href="https://carto.com/attributions">CARTO</a>'
)
DEFAULT_ZOOM = 11
FIGURE_SIZE = (9, 9)
FIGURE_DPI = 200

# ── Vector output formats ─────────────────────────────────────────
VECTOR_DRIVERS = {
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
    ".gpkg": "GPKG",
    ".shp": "ESRI Shapefile",
}

# ── Paths ─────────────────────────────────────────────────────────
DATA_DIR = "data"
OUTPUT_DIR = "output"
WARDS_PATH = os.path.join(DATA_DIR, "wards.geojson")
CRIMES_PATH = os.path.join(DATA_DIR, "crimes.csv")
