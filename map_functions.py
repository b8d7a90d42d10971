# Load logging to report written maps.
import logging

# Load folium to visualize geospatial data on a web map.
import folium

# Load matplotlib colors to convert colormap values to hex strings.
import matplotlib.colors as mcolors

# Load cmocean for colormaps.
import cmocean.cm as cmo

# for the fixed title block
from branca.element import MacroElement

# for the fixed title block
from jinja2 import Template

from spatial_constants import (
    WGS84, PALETTE, TILE_URL, TILE_ATTRIBUTION, DEFAULT_ZOOM,
)
from classify_functions import pad_breaks
from spatial_functions import require_columns

logger = logging.getLogger(__name__)

# ColorBrewer sequential palettes start at 3 colours.
MIN_BREWER_CLASSES = 3

#______________________________________________________________________________

def _to_web(gdf):
    """
    Copy of gdf in WGS84 with datetime columns converted to strings for
    JSON serialization.
    """
    if gdf.crs is None:
        raise ValueError("Cannot map a table without a CRS. Use assign_crs() first.")

    gdf = gdf.to_crs(WGS84)
    datetime_cols = gdf.select_dtypes(
        include = ['datetime64', 'datetime', 'datetimetz']
        ).columns
    for col in datetime_cols:
        gdf[col] = gdf[col].astype(str)
    return gdf

#______________________________________________________________________________

def map_center(gdf):
    """
    Center of a spatial table as (lat, lon).
    Centroids are taken in a projected CRS (the table's own, or its
    estimated UTM zone when geographic) and converted to WGS84.
    """
    if gdf.crs is None:
        raise ValueError("Cannot locate a table without a CRS. Use assign_crs() first.")

    projected = gdf.to_crs(gdf.estimate_utm_crs()) if gdf.crs.is_geographic else gdf
    center = projected.geometry.centroid.to_crs(WGS84)
    return center.y.mean(), center.x.mean()

#______________________________________________________________________________

def _base_map(gdf, zoom_start, tiles, attr):
    lat, lon = map_center(gdf)
    return folium.Map(
        location = [lat, lon],
        zoom_start = zoom_start,
        tiles = tiles,
        attr = attr
    )

#______________________________________________________________________________

def add_title(m, title, subtitle = None):
    """
    Add a fixed title block (and optional subtitle) to the top-left corner
    of a folium map. The text is HTML-escaped when the map is rendered.
    """
    template = """
    {% macro html(this, kwargs) %}
    <div style="
        position: fixed;
        top: 10px;
        left: 50px;
        z-index: 9999;
        background-color: rgba(255,255,255,0.85);
        padding: 5px 10px;
        border-radius: 5px;
        font-family: sans-serif;
    ">
        <h4 style='margin:0'>{{ this.title|e }}</h4>
        {% if this.subtitle %}
        <p style='margin:0'>{{ this.subtitle|e }}</p>
        {% endif %}
    </div>
    {% endmacro %}
    """
    macro = MacroElement()
    macro._template = Template(template)
    macro.title = title
    macro.subtitle = subtitle
    m.get_root().add_child(macro)
    return m

#______________________________________________________________________________

def create_map(
    gdf,
    fields = None,
    title = None,
    color_code = None,
    zoom_start = DEFAULT_ZOOM,
    tiles = TILE_URL,
    attr = TILE_ATTRIBUTION):
    """
    Create an interactive folium map from a GeoDataFrame.
    Centers the map on the GeoDataFrame's centroid and uses a muted
    cmocean color scheme for categories.
    Args:
        gdf: geopandas.GeoDataFrame to visualize
        fields: Field names to display in tooltip (list, default = None)
        title: Name of the map layer (string, default = None)
        color_code: column name for color coding features
        (string, default = None)
        zoom_start: Initial zoom level (int)
        tiles: Tile URL template (string)
        attr: Tile attribution (string)
    Returns:
        folium.Map object with the GeoDataFrame layer added
    """
    if fields:
        require_columns(gdf, fields)

    m = _base_map(gdf, zoom_start, tiles, attr)
    gdf = _to_web(gdf)

    # Configure styling based on color_code parameter
    if color_code:
        require_columns(gdf, [color_code])
        unique_values = gdf[color_code].dropna().unique()
        num_colors = len(unique_values)

        # Generate colors for discrete categories.
        cmap = cmo.phase
        colors = [mcolors.rgb2hex(
            cmap(i / max(num_colors - 1, 1))
            )
            for i in range(num_colors)
            ]
        color_map = {val: colors[i] for i, val in enumerate(unique_values)}

        style_function = lambda x: {
            "fillColor": color_map.get(x['properties'][color_code], 'gray'),
            "color": "gray",
            "weight": 0.5,
            "fillOpacity": 0.35
        }

    else:
        style_function = lambda x: {
            "fillColor": "blue",
            "color": "black",
            "weight": 0.5,
            "fillOpacity": 0.35
        }

    folium.GeoJson(
        gdf,
        name = title,
        style_function = style_function,
        tooltip = folium.GeoJsonTooltip(fields = fields) if fields else None
    ).add_to(m)

    return m

#______________________________________________________________________________

def choropleth_map(
    gdf,
    value_col,
    id_col,
    breaks,
    palette = PALETTE,
    tooltip_fields = None,
    tooltip_aliases = None,
    legend_name = None,
    title = None,
    subtitle = None,
    zoom_start = DEFAULT_ZOOM,
    tiles = TILE_URL,
    attr = TILE_ATTRIBUTION):
    """
    Interactive choropleth: polygons shaded by value_col binned at breaks,
    on a tile base layer, with a legend and hover tooltips.

    Args:
        gdf: Polygons with a unique id column and a numeric column (GeoDataFrame)
        value_col: Numeric column to shade by (string)
        id_col: Unique id column linking data to features (string)
        breaks: Bin edges covering the value range (array-like). Fewer
            than 3 intervals are extended upwards at the same step.
        palette: ColorBrewer palette name (string)
        tooltip_fields: Columns shown on hover (list, default = [id_col, value_col])
        tooltip_aliases: Labels for the tooltip fields (list)
        legend_name: Legend caption (string, default = value_col)
        title: Optional fixed title (string)
        subtitle: Optional fixed subtitle (string)
        zoom_start: Initial zoom level (int)
        tiles: Tile URL template (string)
        attr: Tile attribution (string)

    Returns:
        folium.Map
    """
    tooltip_fields = tooltip_fields or [id_col, value_col]
    require_columns(gdf, [id_col, value_col] + list(tooltip_fields))

    m = _base_map(gdf, zoom_start, tiles, attr)
    gdf = _to_web(gdf)

    folium.Choropleth(
        geo_data = gdf,
        name = legend_name or value_col,
        data = gdf,
        columns = [id_col, value_col],
        key_on = f"feature.properties.{id_col}",
        bins = [float(b) for b in pad_breaks(breaks, MIN_BREWER_CLASSES)],
        fill_color = palette,
        fill_opacity = 0.7,
        line_opacity = 0.4,
        nan_fill_color = "white",
        legend_name = legend_name or value_col,
    ).add_to(m)

    # Transparent overlay carrying the hover tooltips.
    folium.GeoJson(
        gdf,
        name = "Details",
        style_function = lambda x: {"fillOpacity": 0, "weight": 0},
        tooltip = folium.GeoJsonTooltip(
            fields = list(tooltip_fields),
            aliases = tooltip_aliases,
            localize = True,
            sticky = True,
        ),
        control = False,
    ).add_to(m)

    if title:
        add_title(m, title, subtitle)

    folium.LayerControl().add_to(m)
    return m

#______________________________________________________________________________

def add_point_layer(
    m,
    points,
    name = "Points",
    tooltip_col = None,
    color = "blue",
    radius = 2,
    opacity = 0.6):
    """
    Overlay a point layer of CircleMarkers grouped in one FeatureGroup.

    Args:
        m: folium.Map to add to
        points: Point locations (GeoDataFrame)
        name: Layer name shown in the layer control (string)
        tooltip_col: Column shown on hover (string, optional)
        color: Marker color (string)
        radius: Marker radius in pixels (int)
        opacity: Marker fill opacity (0-1) (float)

    Returns:
        folium.Map
    """
    if tooltip_col:
        require_columns(points, [tooltip_col])

    points = _to_web(points)
    group = folium.FeatureGroup(name = name)

    for _, row in points.iterrows():
        folium.CircleMarker(
            location = [row.geometry.y, row.geometry.x],
            radius = radius,
            color = color,
            weight = 0,
            fill = True,
            fill_color = color,
            fill_opacity = opacity,
            tooltip = f"{tooltip_col}: {row[tooltip_col]}" if tooltip_col else None,
        ).add_to(group)

    group.add_to(m)
    return m

#______________________________________________________________________________

def save_map(m, path):
    """Write a folium map to a self-contained HTML file."""
    m.save(path)
    logger.info(f"Saved map to {path}")
    return path
