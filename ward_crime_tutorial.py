# Load logging to report each step of the walkthrough.
import logging

# Load os to build output paths.
import os

# Load matplotlib and select a non-interactive backend for saved figures.
import matplotlib
matplotlib.use("Agg")

import classify_functions as cf
import map_functions as mf
import plot_functions as pf
import spatial_functions as sf
from spatial_constants import (
    WGS84, PROJECTED_CRS, BUFFER_DISTANCE, N_CLASSES, CLASS_SCHEME, TOP_N_WARDS,
    CRIME_TYPE, CRIME_TYPE_COLUMN, X_COLUMN, Y_COLUMN, WARD_ID, WARD_COLUMNS,
    COUNT_COLUMN, AREA_COLUMN, PALETTE, WARDS_PATH, CRIMES_PATH, OUTPUT_DIR,
)

logger = logging.getLogger(__name__)

#______________________________________________________________________________

def run_tutorial(
    wards_path = WARDS_PATH,
    crimes_path = CRIMES_PATH,
    out_dir = OUTPUT_DIR,
    crime_type = CRIME_TYPE,
    ward_columns = None):
    """
    Walk through reading, transforming, joining, classifying and mapping
    ward boundaries and crime incidents. Each step feeds the next.

    Args:
        wards_path: Ward polygon file (string)
        crimes_path: Crime CSV with longitude/latitude columns (string)
        out_dir: Directory for figures, the web map and the vector file (string)
        crime_type: Value of the crime type column to single out (string)
        ward_columns: Ward columns to keep {source: renamed}
            (dict, default = WARD_COLUMNS)

    Returns:
        dict with the intermediate tables, the class breaks and
        "artifacts" mapping each output to its path
    """
    os.makedirs(out_dir, exist_ok = True)
    ward_columns = ward_columns or WARD_COLUMNS

    def out(name):
        return os.path.join(out_dir, name)

    # ---- Read ----
    wards = sf.read_boundaries(wards_path)
    crimes = sf.read_points_csv(crimes_path, X_COLUMN, Y_COLUMN)

    # The CSV carries no CRS; its coordinates are longitude/latitude.
    crimes = sf.assign_crs(crimes, WGS84)

    logger.info(f"Wards crs: {sf.describe_crs(wards)}")
    logger.info(f"Ward summary:\n{sf.summarize_table(wards.drop(columns = wards.geometry.name))}")
    logger.info(f"Crime summary:\n{sf.summarize_table(crimes.drop(columns = crimes.geometry.name))}")

    # ---- Attribute transforms ----
    wards = sf.select_columns(wards, ward_columns)
    crime_counts_by_type = sf.count_by(crimes, CRIME_TYPE_COLUMN)
    logger.info(f"Most common crime types:\n{crime_counts_by_type.head(10)}")

    selected = sf.filter_rows(crimes, lambda df: df[CRIME_TYPE_COLUMN] == crime_type)

    # ---- Reproject to a metric CRS ----
    wards_m = sf.reproject(wards, PROJECTED_CRS)
    crimes_m = sf.reproject(crimes, PROJECTED_CRS)
    selected_m = sf.reproject(selected, PROJECTED_CRS)

    largest = sf.largest_by_area(wards_m, n = TOP_N_WARDS)
    logger.info(f"Largest wards:\n{largest[[WARD_ID, AREA_COLUMN]]}")

    # ---- Geometric transforms ----
    largest_buffer = sf.buffer_geometries(
        largest.head(1)[[WARD_ID, largest.geometry.name]],
        BUFFER_DISTANCE
    )
    largest_buffer = largest_buffer.rename(columns = {WARD_ID: "buffered_ward"})
    near_largest = sf.intersect(largest_buffer, wards_m)

    ward_crimes = sf.join_points_to_polygons(wards_m, selected_m, polygon_cols = [WARD_ID])

    # ---- Aggregate and classify ----
    counts = sf.count_points_per_polygon(wards_m, crimes_m, WARD_ID, count_col = COUNT_COLUMN)
    counts = sf.density_per_polygon(counts)
    breaks = cf.class_breaks(counts[COUNT_COLUMN], scheme = CLASS_SCHEME, k = N_CLASSES)
    counts = cf.classify_column(counts, COUNT_COLUMN, breaks = breaks)
    class_col = f"{COUNT_COLUMN}_class"

    # ---- Render ----
    artifacts = {}

    ax = pf.plot_layers(
        [
            wards_m,
            (largest, {"color": "orange", "edgecolor": "black"}),
            (largest_buffer, {"facecolor": "none", "edgecolor": "red"}),
            (near_largest, {"color": "gold", "alpha": 0.5}),
        ],
        title = f"{TOP_N_WARDS} largest wards and a {BUFFER_DISTANCE} m buffer"
    )
    artifacts["layers"] = pf.save_figure(ax, out("layers.png"))

    ax = pf.plot_layers([wards_m, selected_m], title = f"{crime_type.title()} incidents")
    artifacts["points"] = pf.save_figure(ax, out("points.png"))

    fig = pf.plot_attribute_panels(counts, [COUNT_COLUMN, AREA_COLUMN, "per_km2"])
    artifacts["panels"] = pf.save_figure(fig, out("panels.png"))

    ax = pf.plot_choropleth(counts, COUNT_COLUMN, breaks = breaks, title = "Crimes per ward")
    artifacts["choropleth"] = pf.save_figure(ax, out("choropleth.png"))

    plot = pf.ggplot_choropleth(counts, class_col, title = "Crimes per ward", palette = PALETTE)
    artifacts["ggplot"] = pf.save_ggplot(plot, out("choropleth_ggplot.png"))

    m = mf.choropleth_map(
        counts,
        COUNT_COLUMN,
        WARD_ID,
        breaks,
        tooltip_fields = [WARD_ID, COUNT_COLUMN, "per_km2"],
        tooltip_aliases = ["Ward:", "Crimes:", "Crimes per km²:"],
        legend_name = "Crimes per ward",
        title = "Crimes per ward",
        subtitle = f"{len(crimes)} incidents, {N_CLASSES} {CLASS_SCHEME} classes"
    )
    mf.add_point_layer(
        m,
        selected,
        name = f"{crime_type.title()} incidents",
        tooltip_col = CRIME_TYPE_COLUMN,
        color = "black"
    )
    artifacts["map"] = mf.save_map(m, out("crime_map.html"))

    # ---- Write ----
    artifacts["wards"] = sf.write_spatial(counts, out("ward_crime_counts.gpkg"))

    return {
        "wards": wards_m,
        "crimes": crimes_m,
        "selected": selected_m,
        "crime_counts_by_type": crime_counts_by_type,
        "largest": largest,
        "largest_buffer": largest_buffer,
        "near_largest": near_largest,
        "ward_crimes": ward_crimes,
        "counts": counts,
        "breaks": breaks,
        "artifacts": artifacts,
    }

#______________________________________________________________________________

def main():
    logging.basicConfig(
        level = logging.INFO,
        format = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    result = run_tutorial()
    for name, path in result["artifacts"].items():
        print(f"{name:12s} {path}")


if __name__ == "__main__":
    main()
