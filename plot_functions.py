# Load logging to report written figures.
import logging

# Load math to lay out multi-panel figures.
import math

# Load geopandas to type-check layers.
import geopandas as gpd

# Load matplotlib library for static maps.
import matplotlib.pyplot as plt

# Load plotnine for grammar-of-graphics maps.
import plotnine as pn

from classify_functions import class_breaks
from spatial_constants import PALETTE, FIGURE_SIZE, FIGURE_DPI, N_CLASSES, CLASS_SCHEME
from spatial_functions import require_columns, require_same_crs

logger = logging.getLogger(__name__)

# Default styles for layers drawn by plot_layers(), keyed on geometry type.
_POLYGON_STYLE = {"color": "lightgray", "edgecolor": "black", "linewidth": 0.5}
_POINT_STYLE = {"color": "blue", "markersize": 2, "alpha": 0.5}

#______________________________________________________________________________

def plot_layers(layers, ax = None, title = None, figsize = FIGURE_SIZE):
    """
    Draw several spatial tables on one set of axes, in the given order.
    Args:
        layers: list of GeoDataFrames or (GeoDataFrame, style dict) pairs.
            Without a style, polygons are drawn light gray with black
            edges and points small and blue.
        ax: matplotlib Axes to draw on (default = new figure)
        title: Axes title (string, default = None)
        figsize: Figure size when a new figure is created (tuple)
    Returns:
        matplotlib Axes
    Raises:
        ValueError: If the layers are not all in the same CRS
    """
    pairs = [
        layer if isinstance(layer, tuple) else (layer, None)
        for layer in layers
    ]
    require_same_crs(*[gdf for gdf, _ in pairs])

    if ax is None:
        _, ax = plt.subplots(figsize = figsize)

    for gdf, style in pairs:
        if style is None:
            is_points = gdf.geom_type.isin(["Point", "MultiPoint"]).all()
            style = _POINT_STYLE if is_points else _POLYGON_STYLE
        gdf.plot(ax = ax, **style)

    if title:
        ax.set_title(title)
    ax.set_axis_off()
    return ax

#______________________________________________________________________________

def plot_attribute_panels(gdf, columns, ncols = 3, cmap = PALETTE, panel_size = 4):
    """
    Multi-panel figure with one small map per attribute column, the way
    a spatial table's attributes are browsed at a glance. Numeric columns
    get a colour bar, other columns a categorical legend.
    """
    require_columns(gdf, columns)

    ncols = max(1, min(ncols, len(columns)))
    nrows = math.ceil(len(columns) / ncols)
    fig, axes = plt.subplots(
        nrows, ncols,
        figsize = (panel_size * ncols, panel_size * nrows),
        squeeze = False
    )

    flat_axes = axes.ravel()
    for ax, col in zip(flat_axes, columns):
        gdf.plot(column = col, ax = ax, cmap = cmap, legend = True,
                 edgecolor = "black", linewidth = 0.2)
        ax.set_title(col)
        ax.set_axis_off()

    # Hide panels left over in the last row.
    for ax in flat_axes[len(columns):]:
        ax.set_visible(False)

    fig.tight_layout()
    return fig

#______________________________________________________________________________

def plot_choropleth(
    gdf,
    column,
    breaks = None,
    scheme = CLASS_SCHEME,
    k = N_CLASSES,
    cmap = PALETTE,
    ax = None,
    title = None,
    figsize = FIGURE_SIZE):
    """
    Static choropleth of a numeric column binned at the given breaks.

    Args:
        gdf: Polygons to colour (GeoDataFrame)
        column: Numeric column to classify (string)
        breaks: Break values (array-like, default = computed with scheme/k)
        scheme: Classification scheme used when breaks is None (string)
        k: Number of classes used when breaks is None (int)
        cmap: matplotlib colormap name (string)
        ax: matplotlib Axes to draw on (default = new figure)
        title: Axes title (string)
        figsize: Figure size when a new figure is created (tuple)

    Returns:
        matplotlib Axes
    """
    require_columns(gdf, [column])
    if breaks is None:
        breaks = class_breaks(gdf[column], scheme = scheme, k = k)

    if ax is None:
        _, ax = plt.subplots(figsize = figsize)

    # UserDefined bins are upper bounds; the first break is the lower edge.
    gdf.plot(
        column = column,
        ax = ax,
        cmap = cmap,
        scheme = "UserDefined",
        classification_kwds = {"bins": [float(b) for b in breaks[1:]]},
        legend = True,
        legend_kwds = {"title": column},
        edgecolor = "black",
        linewidth = 0.5
    )

    if title:
        ax.set_title(title)
    ax.set_axis_off()
    return ax

#______________________________________________________________________________

def ggplot_choropleth(gdf, class_col, points = None, palette = PALETTE, title = None):
    """
    Layered grammar-of-graphics map of a classified column, with an
    optional point layer drawn on top.

    Args:
        gdf: Polygons with a categorical class column (GeoDataFrame)
        class_col: Class column mapped to fill colour (string)
        points: Point layer in the same CRS (GeoDataFrame, optional)
        palette: ColorBrewer palette name (string)
        title: Plot title (string)

    Returns:
        plotnine.ggplot
    """
    require_columns(gdf, [class_col])

    plot = (
        pn.ggplot()
        + pn.geom_map(
            data = gdf,
            mapping = pn.aes(fill = class_col),
            color = "black",
            size = 0.2
        )
        + pn.scale_fill_brewer(type = "seq", palette = palette)
        + pn.coord_fixed()
        + pn.theme_void()
        + pn.labs(title = title, fill = class_col)
    )

    if points is not None:
        if not isinstance(points, gpd.GeoDataFrame):
            raise ValueError("points must be a GeoDataFrame")
        require_same_crs(gdf, points)
        plot = plot + pn.geom_map(data = points, size = 0.5, alpha = 0.3, color = "#333333")

    return plot

#______________________________________________________________________________

#______________________________________________________________________________

def save_figure(fig, path, dpi = FIGURE_DPI):
    """Save a matplotlib figure (or the figure of an Axes) and close it."""
    if isinstance(fig, plt.Axes):
        fig = fig.figure
    fig.savefig(path, dpi = dpi, bbox_inches = "tight")
    plt.close(fig)
    logger.info(f"Saved figure to {path}")
    return path

#______________________________________________________________________________

def save_ggplot(plot, path, width = 6, height = 6, dpi = FIGURE_DPI):
    """Save a plotnine plot."""
    plot.save(
        filename = path,
        width = width,
        height = height,
        units = "in",
        dpi = dpi,
        verbose = False
    )
    logger.info(f"Saved plot to {path}")
    return path
