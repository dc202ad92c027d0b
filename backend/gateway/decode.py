from __future__ import annotations

from shapely.geometry import box, mapping
from shapely.wkb import loads as wkb_loads

from features.types import PointFeature, PolygonFeature
from geo.aoi import BBox


def _text(v) -> str | None:
    return str(v) if v else None


def decode_point_rows(rows: list[tuple]) -> list[PointFeature]:
    return [
        PointFeature(lat=float(lat), lng=float(lon), label=_text(name))
        for lat, lon, name in rows
    ]


def decode_polygon_rows(rows: list[tuple], *, bbox: BBox) -> list[PolygonFeature]:
    """
    Decode WKB rows and keep only shapes that truly intersect the bbox.

    The SQL filter works on per-row bbox columns, so it over-selects near corners.
    """
    b = bbox.normalized()
    window = box(b.min_lon, b.min_lat, b.max_lon, b.max_lat)
    feats: list[PolygonFeature] = []
    for geom_wkb, name, category in rows:
        try:
            geom = wkb_loads(bytes(geom_wkb)) if geom_wkb is not None else None
        except Exception:
            geom = None
        if geom is None or geom.is_empty:
            continue
        if geom.geom_type not in {"Polygon", "MultiPolygon"}:
            continue
        if not geom.intersects(window):
            continue
        feats.append(
            PolygonFeature(
                geometry=mapping(geom),
                label=_text(name),
                category=_text(category),
            )
        )
    return feats
