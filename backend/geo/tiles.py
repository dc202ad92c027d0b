from __future__ import annotations

import math

from geo.aoi import BBox


_MAX_MERCATOR_LAT = 85.05112878
_TILE_SIZE = 256.0


def clamp_lat(lat: float) -> float:
    return max(-_MAX_MERCATOR_LAT, min(_MAX_MERCATOR_LAT, float(lat)))


def lonlat_to_tile(zoom: int, lon: float, lat: float) -> tuple[int, int]:
    """
    Convert lon/lat in EPSG:4326 to slippy tile (x, y) at zoom.
    """
    z = int(zoom)
    n = 2**z

    lat = clamp_lat(lat)

    lon = float(lon)
    lat_rad = math.radians(lat)

    x = int(math.floor((lon + 180.0) / 360.0 * n))
    y = int(
        math.floor(
            (1.0 - math.log(math.tan(lat_rad) + (1.0 / math.cos(lat_rad))) / math.pi)
            / 2.0
            * n
        )
    )
    # Clamp indices to valid tile range.
    x = max(0, min(n - 1, x))
    y = max(0, min(n - 1, y))
    return x, y


def _lonlat_to_world_px(lon: float, lat: float, zoom: float) -> tuple[float, float]:
    scale = _TILE_SIZE * (2.0 ** float(zoom))
    s = math.sin(math.radians(clamp_lat(lat)))
    x = (float(lon) + 180.0) / 360.0 * scale
    y = (0.5 - math.log((1 + s) / (1 - s)) / (4.0 * math.pi)) * scale
    return x, y


def _world_px_to_lonlat(x: float, y: float, zoom: float) -> tuple[float, float]:
    scale = _TILE_SIZE * (2.0 ** float(zoom))
    lon = x / scale * 360.0 - 180.0
    t = math.pi * (1.0 - 2.0 * y / scale)
    lat = math.degrees(math.atan(math.sinh(t)))
    return lon, clamp_lat(lat)


def view_bounds(
    center_lat: float,
    center_lng: float,
    zoom: float,
    *,
    width: int,
    height: int,
) -> BBox:
    """
    WGS84 bbox visible in a `width`x`height` px WebMercator viewport.

    Longitudes are clamped to [-180, 180]; we never wrap the antimeridian.
    """
    cx, cy = _lonlat_to_world_px(center_lng, center_lat, zoom)
    half_w = float(width) / 2.0
    half_h = float(height) / 2.0
    west, north = _world_px_to_lonlat(cx - half_w, cy - half_h, zoom)
    east, south = _world_px_to_lonlat(cx + half_w, cy + half_h, zoom)
    return BBox(
        min_lon=max(-180.0, west),
        min_lat=south,
        max_lon=min(180.0, east),
        max_lat=north,
    ).normalized()
