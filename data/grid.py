"""Regular lat/lon sampling grid over a bounding box.

Cell spacing is given in metres and converted to degrees with a flat
metres-per-degree model evaluated at the box's mid-latitude.

Public API
----------
build_grid(min_lat, max_lat, min_lon, max_lon, spacing_m) -> list[Coordinate]
estimate_cell_count(...)   -> int    – cell estimate for a selection
fit_box_to_limit(...)      -> tuple  – box shrunk about its centre to a cell cap
cell_polygon(coord, spacing_m)       – four tile corners around a cell centre
"""

import math

import numpy as np

from config import METERS_PER_DEGREE_LAT, LON_SCALE_EPSILON
from data.synthetic_records import Coordinate


def meters_per_degree_lon(lat: float) -> float:
    return max(METERS_PER_DEGREE_LAT * math.cos(math.radians(lat)), LON_SCALE_EPSILON)


def normalize_box(min_lat, max_lat, min_lon, max_lon):
    """Return (bottom, top, left, right) regardless of corner order."""
    return (min(min_lat, max_lat), max(min_lat, max_lat),
            min(min_lon, max_lon), max(min_lon, max_lon))


def _check_spacing(spacing_m):
    if not spacing_m > 0:
        raise ValueError(f"spacing_m must be positive, got {spacing_m!r}")


# ── Grid construction ───────────────────────────────────────────────────

def grid_axes(min_lat, max_lat, min_lon, max_lon, spacing_m):
    """Cell-centre axes (lat_centers, lon_centers) as 1-D arrays."""
    _check_spacing(spacing_m)
    bottom, top, left, right = normalize_box(min_lat, max_lat, min_lon, max_lon)

    mid_lat = (top + bottom) / 2.0
    lat_step = spacing_m / METERS_PER_DEGREE_LAT
    lon_step = spacing_m / meters_per_degree_lon(mid_lat)

    lat_count = max(1, math.ceil((top - bottom) / lat_step))
    lon_count = max(1, math.ceil((right - left) / lon_step))

    lat_centers = bottom + (np.arange(lat_count) + 0.5) * ((top - bottom) / lat_count)
    lon_centers = left + (np.arange(lon_count) + 0.5) * ((right - left) / lon_count)
    return lat_centers, lon_centers


def build_grid(min_lat, max_lat, min_lon, max_lon, spacing_m):
    """Ordered cell centres covering the box, latitude outer / longitude inner.

    A zero-area box still yields a single cell.
    """
    lat_centers, lon_centers = grid_axes(min_lat, max_lat, min_lon, max_lon, spacing_m)
    LON, LAT = np.meshgrid(lon_centers, lat_centers)
    return [Coordinate(lat=float(la), lon=float(lo))
            for la, lo in zip(LAT.ravel(), LON.ravel())]


# ── Selection helpers ───────────────────────────────────────────────────

def estimate_cell_count(min_lat, max_lat, min_lon, max_lon, spacing_m) -> int:
    _check_spacing(spacing_m)
    bottom, top, left, right = normalize_box(min_lat, max_lat, min_lon, max_lon)
    height_m = (top - bottom) * METERS_PER_DEGREE_LAT
    width_m = (right - left) * meters_per_degree_lon((top + bottom) / 2.0)
    return math.ceil(height_m / spacing_m) * math.ceil(width_m / spacing_m)


def fit_box_to_limit(min_lat, max_lat, min_lon, max_lon, spacing_m, max_cells):
    """Shrink the box about its centre so roughly `max_cells` cells fit.

    Returns (min_lat, max_lat, min_lon, max_lon); the box is returned
    normalized but otherwise unchanged when it is already within the limit.
    """
    bottom, top, left, right = normalize_box(min_lat, max_lat, min_lon, max_lon)
    estimate = estimate_cell_count(bottom, top, left, right, spacing_m)
    if estimate <= max_cells:
        return bottom, top, left, right

    scale = math.sqrt(max_cells / estimate)
    center_lat = (top + bottom) / 2
    center_lon = (left + right) / 2
    half_lat = (top - bottom) * scale / 2
    half_lon = (right - left) * scale / 2
    return (center_lat - half_lat, center_lat + half_lat,
            center_lon - half_lon, center_lon + half_lon)


def cell_polygon(coord: Coordinate, spacing_m):
    """Corners of the tile centred on `coord`: top-left, top-right, bottom-right, bottom-left."""
    _check_spacing(spacing_m)
    half_lat = spacing_m / METERS_PER_DEGREE_LAT / 2.0
    half_lon = spacing_m / meters_per_degree_lon(coord.lat) / 2.0
    return [
        Coordinate(lat=coord.lat + half_lat, lon=coord.lon - half_lon),
        Coordinate(lat=coord.lat + half_lat, lon=coord.lon + half_lon),
        Coordinate(lat=coord.lat - half_lat, lon=coord.lon + half_lon),
        Coordinate(lat=coord.lat - half_lat, lon=coord.lon - half_lon),
    ]
