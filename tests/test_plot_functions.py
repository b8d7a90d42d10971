"""
tests/test_plot_functions.py
----------------------------
Static and grammar-of-graphics renderers.
"""

import os

import matplotlib.pyplot as plt
import plotnine as pn
import pytest

import classify_functions as cf
import plot_functions as pf
import spatial_functions as sf
from spatial_constants import WGS84


@pytest.fixture
def counts(wards, crimes):
    counts = sf.count_points_per_polygon(wards, crimes, "ward", keep_empty=True)
    return cf.classify_column(counts, "n_crimes")


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


class TestStaticPlots:

    def test_plot_layers(self, wards, crimes):
        ax = pf.plot_layers([wards, crimes], title="Wards and crimes")
        assert isinstance(ax, plt.Axes)
        assert ax.get_title() == "Wards and crimes"
        assert len(ax.collections) == 2

    def test_plot_layers_with_style(self, wards, crimes):
        ax = pf.plot_layers([(wards, {"color": "orange"}), crimes])
        assert len(ax.collections) == 2

    def test_plot_layers_crs_mismatch(self, wards, crimes):
        with pytest.raises(ValueError, match="CRS mismatch"):
            pf.plot_layers([wards, crimes.to_crs(WGS84)])

    def test_attribute_panels(self, counts):
        fig = pf.plot_attribute_panels(counts, ["n_crimes", "shape_area", "name"], ncols=2)
        assert len(fig.axes) >= 4
        titles = [ax.get_title() for ax in fig.axes if ax.get_visible()]
        assert {"n_crimes", "shape_area", "name"} <= set(titles)

    def test_attribute_panels_unknown_column(self, counts):
        with pytest.raises(ValueError):
            pf.plot_attribute_panels(counts, ["precinct"])

    def test_choropleth_has_legend(self, counts):
        ax = pf.plot_choropleth(counts, "n_crimes", breaks=[0, 2, 4, 6], title="Crimes")
        assert ax.get_legend() is not None
        assert ax.get_title() == "Crimes"

    def test_choropleth_does_not_mutate(self, counts):
        before = counts.copy()
        pf.plot_choropleth(counts, "n_crimes")
        assert list(counts.columns) == list(before.columns)
        assert counts["n_crimes"].tolist() == before["n_crimes"].tolist()

    def test_save_figure(self, wards, tmp_path):
        ax = pf.plot_layers([wards])
        path = pf.save_figure(ax, str(tmp_path / "wards.png"))
        assert os.path.getsize(path) > 0


class TestGgplot:

    def test_returns_ggplot(self, counts):
        plot = pf.ggplot_choropleth(counts, "n_crimes_class", title="Crimes")
        assert isinstance(plot, pn.ggplot)

    def test_with_points_saved(self, counts, crimes, tmp_path):
        plot = pf.ggplot_choropleth(counts, "n_crimes_class", points=crimes)
        path = pf.save_ggplot(plot, str(tmp_path / "gg.png"), width=4, height=3, dpi=50)
        assert os.path.getsize(path) > 0

    def test_points_crs_mismatch(self, counts, crimes):
        with pytest.raises(ValueError, match="CRS mismatch"):
            pf.ggplot_choropleth(counts, "n_crimes_class", points=crimes.to_crs(WGS84))

    def test_missing_class_column(self, counts):
        with pytest.raises(ValueError):
            pf.ggplot_choropleth(counts, "crime_class")
