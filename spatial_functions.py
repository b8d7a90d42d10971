# Load os to resolve output file suffixes.
import os

# Load logging to report stage results.
import logging

# Load geopandas library to work with vector files and spatial tables.
import geopandas as gpd

# Load pandas library for data manipulation and analysis.
import pandas as pd

from spatial_constants import COUNT_COLUMN, AREA_COLUMN, VECTOR_DRIVERS

logger = logging.getLogger(__name__)

#______________________________________________________________________________

def require_columns(df, columns):
    """
    Check that every name in columns exists in df.
    Args:
        df: a pandas DataFrame or geopandas GeoDataFrame
        columns: column names that must be present (list[str])
    Raises:
        ValueError: If any column is missing. The message lists the
        available columns.
    """
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(
            f"Column(s) {missing} not found in DataFrame. "
            f"Available columns: {df.columns.tolist()}"
        )

#______________________________________________________________________________

def require_same_crs(*tables):
    """
    Check that all spatial tables carry the same, known CRS.
    Geometric operations between tables are only meaningful when the
    coordinates are expressed in one system, so a mismatch must be resolved
    with reproject() before the operation.
    Args:
        *tables: GeoDataFrames to compare
    Raises:
        ValueError: If a table has no CRS or the CRSs differ.
    """
    for gdf in tables:
        if gdf.crs is None:
            raise ValueError(
                "Spatial table has no CRS. Use assign_crs() first."
            )
    first = tables[0].crs
    for gdf in tables[1:]:
        if gdf.crs != first:
            raise ValueError(
                f"CRS mismatch: {first.to_string()} vs {gdf.crs.to_string()}. "
                "Reproject one table with reproject() first."
            )

#______________________________________________________________________________

#______________________________________________________________________________

def read_boundaries(path):
    """
    Read a geometry-bearing vector file (GeoJSON, GeoPackage, Shapefile).
    Args:
        path: File path or URL (string)
    Returns:
        geopandas.GeoDataFrame in the file's declared CRS
    """
    gdf = gpd.read_file(path)
    logger.info(
        f"Read {len(gdf)} features from {path} "
        f"(crs={gdf.crs.to_string() if gdf.crs else None})"
    )
    return gdf

#______________________________________________________________________________

def df_to_geodataframe(df, x_col, y_col, crs = None):
    """
    Convert a pandas DataFrame with x/y columns into a GeoDataFrame.
    Coerces the coordinate columns to numeric values, drops rows with
    missing coordinates, and creates Point geometry objects.
    Args:
        df: pandas DataFrame
        x_col: Longitude / easting column name (string)
        y_col: Latitude / northing column name (string)
        crs: Coordinate reference system (string, default: None, meaning
        the table has no CRS until assign_crs() is called)
    Returns:
        geopandas.GeoDataFrame with Points
    Raises:
        ValueError: If x_col or y_col is not a column of df
    """
    require_columns(df, [x_col, y_col])

    df = df.copy()

    # Ensure coordinate columns are numeric.
    df[x_col] = pd.to_numeric(df[x_col], errors = "coerce")
    df[y_col] = pd.to_numeric(df[y_col], errors = "coerce")

    # Drop rows with missing coordinates.
    n_before = len(df)
    df = df.dropna(subset = [x_col, y_col])
    if len(df) < n_before:
        logger.warning(
            f"Dropped {n_before - len(df)} rows with missing coordinates"
        )

    return gpd.GeoDataFrame(
        df,
        geometry = gpd.points_from_xy(df[x_col], df[y_col]),
        crs = crs
    )

#______________________________________________________________________________

def read_points_csv(path, x_col, y_col, crs = None):
    """
    Read a CSV of point records and attach point geometry from two
    coordinate columns. The result has no CRS unless crs is given.
    """
    df = pd.read_csv(path, low_memory = False)
    gdf = df_to_geodataframe(df, x_col, y_col, crs = crs)
    logger.info(f"Read {len(gdf)} point records from {path}")
    return gdf

#______________________________________________________________________________

#______________________________________________________________________________

def assign_crs(gdf, crs):
    """
    Attach a CRS to a table that lacks one. Coordinates are not changed.
    Args:
        gdf: GeoDataFrame
        crs: CRS identifier (e.g. "EPSG:4326")
    Returns:
        new GeoDataFrame with the CRS set
    Raises:
        ValueError: If gdf already has a different CRS (use reproject())
    """
    out = gdf.set_crs(crs)
    logger.info(f"Assigned crs {out.crs.to_string()}")
    return out

#______________________________________________________________________________

def reproject(gdf, crs):
    """
    Transform a table's geometries into another CRS.
    Args:
        gdf: GeoDataFrame with a known CRS
        crs: target CRS identifier
    Returns:
        new GeoDataFrame in the target CRS
    Raises:
        ValueError: If gdf has no CRS
    """
    out = gdf.to_crs(crs)
    logger.info(f"Reprojected {len(out)} rows to {out.crs.to_string()}")
    return out

#______________________________________________________________________________

def describe_crs(gdf):
    """Short description of a table's CRS as a dict."""
    crs = gdf.crs
    if crs is None:
        return {"name": None, "epsg": None, "is_geographic": None, "units": None}
    return {
        "name": crs.name,
        "epsg": crs.to_epsg(),
        "is_geographic": crs.is_geographic,
        "units": crs.axis_info[0].unit_name if crs.axis_info else None,
    }

#______________________________________________________________________________

#______________________________________________________________________________

def summarize_table(df):
    """
    Summarizes a DataFrame/GeoDataFrame with column-level statistics.
    Args:
        df: a pandas DataFrame or geopandas GeoDataFrame to summarize
    Returns:
        DataFrame with summary statistics for each column:
            Type: column data type
            Missing: count of missing values
            Missing %: percent of missing values
            Unique: count of unique values
            min, max, mean: minimum, maximum, and mean (numeric columns only)
    """
    n_rows = max(len(df), 1)
    summary = {
        col: {
            'Type': df[col].dtype,
            'Missing': df[col].isnull().sum(),
            'Missing %': round(df[col].isnull().sum() / n_rows * 100, 2),
            'Unique': df[col].nunique()
        }
        for col in df.columns
    }

    # Transpose summary so each row represents one column from df.
    summary_df = pd.DataFrame(summary).T

    # Grab numeric columns only (geometry is excluded automatically).
    numeric_cols = df.select_dtypes(include='number')

    if not numeric_cols.empty:
        summary_stats = numeric_cols.agg(['min', 'max', 'mean']).T.round(2)
        summary_df = summary_df.join(summary_stats)

    return summary_df

#______________________________________________________________________________

#______________________________________________________________________________

def select_columns(gdf, columns):
    """
    Select attribute columns, optionally renaming them.
    The active geometry column is always kept.
    Args:
        gdf: GeoDataFrame
        columns: names to keep (list[str]) or {old_name: new_name} (dict)
    Returns:
        new GeoDataFrame
    Raises:
        ValueError: If a requested column does not exist
    """
    names = list(columns)
    require_columns(gdf, names)

    geom_col = gdf.geometry.name
    keep = names if geom_col in names else names + [geom_col]
    out = gdf[keep]
    if isinstance(columns, dict):
        out = out.rename(columns = columns)
    return out

#______________________________________________________________________________

def filter_rows(gdf, predicate):
    """
    Keep rows matching a predicate.
    Args:
        gdf: GeoDataFrame
        predicate: a pandas query string (names with spaces in backticks)
            or a callable taking the table and returning a boolean mask
    Returns:
        new GeoDataFrame, possibly empty
    """
    if callable(predicate):
        out = gdf[predicate(gdf)].copy()
    else:
        out = gdf.query(predicate)

    if out.empty:
        logger.warning(f"Filter {predicate!r} matched no rows")
    else:
        logger.info(f"Filter kept {len(out)} of {len(gdf)} rows")
    return out

#______________________________________________________________________________

def count_by(df, column, name = "n"):
    """
    Groups a DataFrame/GeoDataFrame by a column and counts the rows.
    Args:
        df: a pandas DataFrame or geopandas GeoDataFrame
        column: Column name to group by (string)
        name: Name of the count column (string, default = "n")
    Returns:
        pandas DataFrame [column, name] sorted by count descending
    """
    require_columns(df, [column])
    counts = (
        pd.DataFrame(df.drop(columns = df.geometry.name)
                     if isinstance(df, gpd.GeoDataFrame) else df)
        .groupby(column)
        .size()
        .rename(name)
        .reset_index()
    )
    return counts.sort_values(
        [name, column],
        ascending = [False, True]
    ).reset_index(drop = True)

#______________________________________________________________________________

def add_area(gdf, column = AREA_COLUMN):
    """
    Add the area of each geometry in square kilometres.
    Geographic tables are measured in their estimated UTM zone; projected
    tables in their own linear unit, converted to metres.
    Args:
        gdf: GeoDataFrame with a known CRS
        column: Name of the area column (string)
    Returns:
        new GeoDataFrame with the area column
    Raises:
        ValueError: If gdf has no CRS
    """
    if gdf.crs is None:
        raise ValueError("Cannot measure area without a CRS. Use assign_crs() first.")

    measured = gdf
    if gdf.crs.is_geographic:
        measured = gdf.to_crs(gdf.estimate_utm_crs())

    # Metres per CRS unit (1.0 for metric systems, 0.3048... for feet).
    to_metres = measured.crs.axis_info[0].unit_conversion_factor

    out = gdf.copy()
    out[column] = measured.geometry.area.to_numpy() * to_metres ** 2 / 1_000_000
    return out

#______________________________________________________________________________

def largest_by_area(gdf, n = 5, column = AREA_COLUMN):
    """Return the n largest geometries by area, largest first."""
    if column not in gdf.columns:
        gdf = add_area(gdf, column = column)
    return gdf.sort_values(column, ascending = False).head(n)

#______________________________________________________________________________

#______________________________________________________________________________

def buffer_geometries(gdf, distance):
    """
    Replace each geometry with the region within distance of it.
    Args:
        gdf: GeoDataFrame in a projected CRS
        distance: Buffer distance in the CRS unit (float)
    Returns:
        new GeoDataFrame with polygon geometries
    Raises:
        ValueError: If gdf has no CRS or a geographic CRS, where a
        distance in degrees has no fixed length
    """
    if gdf.crs is None:
        raise ValueError("Cannot buffer without a CRS. Use assign_crs() first.")
    if gdf.crs.is_geographic:
        raise ValueError(
            f"Cannot buffer in geographic CRS {gdf.crs.to_string()}. "
            "Reproject to a projected CRS first."
        )

    out = gdf.copy()
    out[out.geometry.name] = gdf.geometry.buffer(distance)
    logger.info(f"Buffered {len(out)} geometries by {distance}")
    return out

#______________________________________________________________________________

def intersect(left, right):
    """
    Intersect two spatial tables. Only overlapping portions are kept and
    each output row combines the attributes of both inputs.
    Args:
        left: GeoDataFrame
        right: GeoDataFrame in the same CRS
    Returns:
        new GeoDataFrame, possibly empty
    Raises:
        ValueError: If the CRSs differ
    """
    require_same_crs(left, right)
    out = gpd.overlay(left, right, how = "intersection")
    if out.empty:
        logger.warning("Intersection is empty")
    else:
        logger.info(f"Intersection produced {len(out)} pieces")
    return out

#______________________________________________________________________________

def join_points_to_polygons(polygons, points, polygon_cols = None):
    """
    Performs a spatial join attaching the attributes of each contained
    point to its enclosing polygon. Inner join: a polygon appears once per
    point it contains and polygons without points are dropped.

    Args:
        polygons: Polygon layer (GeoDataFrame)
        points: Point layer in the same CRS (GeoDataFrame)
        polygon_cols: Polygon columns to keep (list[str], default = all)

    Returns:
        GeoDataFrame with polygon geometry and point attributes
    """
    require_same_crs(polygons, points)

    if polygon_cols is not None:
        polygons = select_columns(polygons, polygon_cols)

    joined = gpd.sjoin(
        polygons,
        points,
        how = 'inner',
        predicate = 'contains'
    )

    # drop spatial join helper column
    joined = joined.drop(columns = 'index_right')

    logger.info(
        f"Spatial join matched {len(joined)} points to "
        f"{joined.index.nunique()} of {len(polygons)} polygons"
    )
    return joined

#______________________________________________________________________________

def assign_points_to_polygons(points_gdf, polygons_gdf, polygon_cols):
    """
    Performs a spatial join to determine which polygon each point falls
    into, then attaches that polygon's information to each point.

    Args:
        points_gdf: Point locations (GeoDataFrame)
        polygons_gdf: Polygons in the same CRS (GeoDataFrame)
        polygon_cols: Columns from polygons_gdf to attach (list[str])

    Returns:
        GeoDataFrame: a copy of points_gdf with additional columns from
        polygon_cols. Retains all original points (left join).
    """
    require_same_crs(points_gdf, polygons_gdf)
    require_columns(polygons_gdf, polygon_cols)

    joined = gpd.sjoin(
        points_gdf,
        polygons_gdf[polygon_cols + [polygons_gdf.geometry.name]],
        how = 'left',
        predicate = 'within'
    )
    return joined.drop(columns = 'index_right')

#______________________________________________________________________________

#______________________________________________________________________________

def count_points_per_polygon(
    polygons,
    points,
    id_col,
    count_col = COUNT_COLUMN,
    keep_empty = False):
    """
    Count the points falling within each polygon.

    Args:
        polygons: Polygon layer with a unique id column (GeoDataFrame)
        points: Point layer in the same CRS (GeoDataFrame)
        id_col: Polygon id column (string)
        count_col: Name of the count column (string)
        keep_empty: Keep polygons with no points, with a count of 0
            (bool, default = False drops them as an inner join does)

    Returns:
        GeoDataFrame of polygons with the count column
    """
    require_same_crs(polygons, points)
    require_columns(polygons, [id_col])

    joined = gpd.sjoin(
        points[[points.geometry.name]],
        polygons[[id_col, polygons.geometry.name]],
        how = "inner",
        predicate = "within"
    )
    counts = joined.groupby(id_col).size().rename(count_col).reset_index()

    out = polygons.merge(counts, on = id_col, how = "left" if keep_empty else "inner")
    out[count_col] = out[count_col].fillna(0).astype(int)

    logger.info(
        f"Counted {int(out[count_col].sum())} points in {len(out)} polygons"
    )
    return out

#______________________________________________________________________________

def density_per_polygon(counts, count_col = COUNT_COLUMN, area_col = AREA_COLUMN,
                        name = "per_km2"):
    """
    Points per square kilometre, rounded to the nearest tenth.
    The area column is added with add_area() when counts lacks it.
    """
    if area_col not in counts.columns:
        counts = add_area(counts, column = area_col)
    out = counts.copy()
    out[name] = (out[count_col] / out[area_col]).round(1)
    return out

#______________________________________________________________________________

#______________________________________________________________________________

def write_spatial(gdf, path, driver = None):
    """
    Write a spatial table to a vector file, replacing any existing file.
    Args:
        gdf: GeoDataFrame
        path: Output path (string)
        driver: OGR driver name (string, default = inferred from suffix)
    Returns:
        path
    Raises:
        ValueError: If no driver is given and the suffix is not known
    """
    if driver is None:
        suffix = os.path.splitext(path)[1].lower()
        driver = VECTOR_DRIVERS.get(suffix)
        if driver is None:
            raise ValueError(
                f"Cannot infer vector format from '{suffix}'. "
                f"Known suffixes: {sorted(VECTOR_DRIVERS)}"
            )

    # Vector formats have no categorical field type.
    categorical_cols = gdf.select_dtypes(include = 'category').columns
    if len(categorical_cols):
        gdf = gdf.copy()
        for col in categorical_cols:
            gdf[col] = gdf[col].astype(str).where(gdf[col].notna(), None)

    gdf.to_file(path, driver = driver)
    logger.info(f"Wrote {len(gdf)} features to {path} ({driver})")
    return path
