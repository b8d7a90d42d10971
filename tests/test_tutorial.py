"""
tests/test_tutorial.py
----------------------
End-to-end run of the walkthrough on synthetic files.

Run with:
    pytest tests/test_tutorial.py -v
"""

import os

import pytest

from ward_crime_tutorial import run_tutorial

from conftest import N_CRIMES, N_THEFTS, WARD_COUNTS


EXPECTED_ARTIFACTS = [
    "layers", "points", "panels", "choropleth", "ggplot", "map", "wards",
]


@pytest.fixture
def result(wards_file, crimes_csv, tmp_path):
    return run_tutorial(wards_file, crimes_csv, str(tmp_path / "output"))


@pytest.mark.parametrize("name", EXPECTED_ARTIFACTS)
def test_artifact_written(result, name):
    path = result["artifacts"][name]
    assert os.path.exists(path), f"{name} not written to {path}"
    assert os.path.getsize(path) > 0


class TestTutorialTables:

    def test_tables_projected(self, result):
        for key in ["wards", "crimes", "selected", "counts", "near_largest"]:
            assert result[key].crs.to_epsg() == 26916, key

    def test_ward_columns_renamed(self, result):
        assert "shape_area_ft2" in result["wards"].columns
        assert "shape_area" not in result["wards"].columns

    def test_selected_crime_type(self, result):
        assert len(result["crimes"]) == N_CRIMES
        assert len(result["selected"]) == N_THEFTS
        assert result["crime_counts_by_type"].iloc[0]["Primary Type"] == "THEFT"

    def test_counts_per_ward(self, result):
        counts = result["counts"]
        assert dict(zip(counts["ward"], counts["n_crimes"])) == {
            w: n for w, n in WARD_COUNTS.items() if n
        }

    def test_breaks_cover_counts(self, result):
        breaks = result["breaks"]
        counts = result["counts"]["n_crimes"]
        assert breaks[0] <= counts.min()
        assert breaks[-1] >= counts.max()
        assert result["counts"]["n_crimes_class"].notna().all()

    def test_largest_wards(self, result):
        largest = result["largest"]
        assert len(largest) == 5
        assert largest["area_km2"].is_monotonic_decreasing

    def test_buffer_reaches_neighbours(self, result):
        near = result["near_largest"]
        assert len(near) > 1
        assert near["buffered_ward"].nunique() == 1
