from __future__ import annotations

from typing import Any, Sequence

from features.types import PointFeature, PolygonFeature


def _outer_rings(geometry: dict[str, Any]) -> list[list[list[float]]]:
    gtype = geometry.get("type")
    coords = geometry.get("coordinates") or []
    if gtype == "Polygon":
        return [coords[0]] if coords else []
    if gtype == "MultiPolygon":
        return [poly[0] for poly in coords if poly]
    return []


def trace_points(
    points: Sequence[PointFeature], *, title: str, style: dict[str, Any] | None = None
) -> dict[str, Any]:
    style = style or {}
    marker = style.get("marker") or {}
    return {
        "type": "scattermapbox",
        "name": title,
        "lon": [p.lng for p in points],
        "lat": [p.lat for p in points],
        "mode": "markers",
        "text": [p.label or "" for p in points],
        "marker": {
            "size": int((marker.get("size") if isinstance(marker, dict) else 6) or 6),
            "color": (marker.get("color") if isinstance(marker, dict) else None)
            or "rgba(39, 174, 96, 0.8)",
        },
        "hovertemplate": "%{text}<extra></extra>",
    }


def trace_polygons(
    polygons: Sequence[PolygonFeature], *, title: str, style: dict[str, Any] | None = None
) -> dict[str, Any]:
    lons: list[float | None] = []
    lats: list[float | None] = []
    text: list[str | None] = []
    for f in polygons:
        for ring in _outer_rings(f.geometry):
            if not ring:
                continue
            if ring[0] != ring[-1]:
                ring = [*ring, ring[0]]
            label = " / ".join(x for x in (f.label, f.category) if x)
            for lon, lat, *_ in ring:
                lons.append(float(lon))
                lats.append(float(lat))
                text.append(label)
            lons.append(None)
            lats.append(None)
            text.append(None)

    style = style or {}
    line = style.get("line") or {}
    return {
        "type": "scattermapbox",
        "name": title,
        "lon": lons,
        "lat": lats,
        "text": text,
        "mode": "lines",
        "fill": "toself",
        "fillcolor": style.get("fillcolor") or "rgba(231, 76, 60, 0.25)",
        "line": {
            "color": (line.get("color") if isinstance(line, dict) else None)
            or "rgba(231, 76, 60, 0.8)",
            "width": int((line.get("width") if isinstance(line, dict) else 1) or 1),
        },
        "hoverinfo": "text",
    }
