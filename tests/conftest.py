"""
tests/conftest.py
-----------------
Synthetic ward squares and crime points shared by the test modules.

Wards are a 3 x 2 grid of 1 km squares in UTM 16N:

    4 5 6
    1 2 3

Crimes are placed strictly inside the squares following WARD_COUNTS,
alternating THEFT / BATTERY within each ward.
"""

import matplotlib
matplotlib.use("Agg")

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import Point, box

from spatial_constants import PROJECTED_CRS, WGS84

# ── Layout ────────────────────────────────────────────────────────
ORIGIN_X, ORIGIN_Y = 440_000, 4_635_000
SIZE = 1_000
NCOLS = 3

WARD_COUNTS = {1: 3, 2: 1, 3: 0, 4: 5, 5: 2, 6: 0}
THEFT_COUNTS = {1: 2, 2: 1, 4: 3, 5: 1}
N_CRIMES = sum(WARD_COUNTS.values())
N_THEFTS = sum(THEFT_COUNTS.values())


def ward_origin(ward):
    row, col = divmod(ward - 1, NCOLS)
    return ORIGIN_X + col * SIZE, ORIGIN_Y + row * SIZE


@pytest.fixture
def wards():
    rows = []
    for ward in WARD_COUNTS:
        x0, y0 = ward_origin(ward)
        rows.append({
            "ward": ward,
            "name": f"Ward {ward}",
            "shape_area": float(SIZE * SIZE),
            "geometry": box(x0, y0, x0 + SIZE, y0 + SIZE),
        })
    return gpd.GeoDataFrame(rows, geometry="geometry", crs=PROJECTED_CRS)


@pytest.fixture
def crimes():
    rows = []
    crime_id = 0
    for ward, n in WARD_COUNTS.items():
        x0, y0 = ward_origin(ward)
        for i in range(n):
            crime_id += 1
            rows.append({
                "ID": crime_id,
                "Primary Type": "THEFT" if i % 2 == 0 else "BATTERY",
                "geometry": Point(x0 + 100 + 150 * i, y0 + 200 + 100 * i),
            })
    return gpd.GeoDataFrame(rows, geometry="geometry", crs=PROJECTED_CRS)


@pytest.fixture
def wards_file(wards, tmp_path):
    path = tmp_path / "wards.geojson"
    wards.to_crs(WGS84).to_file(path, driver="GeoJSON")
    return str(path)


@pytest.fixture
def crimes_csv(crimes, tmp_path):
    geographic = crimes.to_crs(WGS84)
    df = pd.DataFrame({
        "ID": geographic["ID"],
        "Primary Type": geographic["Primary Type"],
        "Longitude": geographic.geometry.x,
        "Latitude": geographic.geometry.y,
    })
    path = tmp_path / "crimes.csv"
    df.to_csv(path, index=False)
    return str(path)
