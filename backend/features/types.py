from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias, Union


FeatureKind = Literal["points", "polygons"]


@dataclass(frozen=True)
class PointFeature:
    lat: float
    lng: float
    label: str | None = None


@dataclass(frozen=True)
class PolygonFeature:
    # GeoJSON geometry dict (Polygon or MultiPolygon), lon/lat order.
    geometry: dict[str, Any]
    label: str | None = None
    category: str | None = None


Feature: TypeAlias = Union[PointFeature, PolygonFeature]


def _text(v) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def point_from_row(row: dict[str, Any]) -> PointFeature:
    """
    Decode one point row as returned by the bbox RPC.

    Accepts `lng` or `lon`, and `label` or `name`.
    """
    lng = row.get("lng")
    if lng is None:
        lng = row.get("lon")
    if lng is None or row.get("lat") is None:
        raise ValueError(f"Point row is missing lat/lng: {row!r}")
    return PointFeature(
        lat=float(row["lat"]),
        lng=float(lng),
        label=_text(row.get("label") or row.get("name")),
    )


def polygon_from_row(row: dict[str, Any]) -> PolygonFeature:
    geometry = row.get("geometry")
    if isinstance(geometry, str):
        geometry = json.loads(geometry)
    if not isinstance(geometry, dict) or "type" not in geometry:
        raise ValueError(f"Polygon row is missing a GeoJSON geometry: {row!r}")
    return PolygonFeature(
        geometry=geometry,
        label=_text(row.get("label") or row.get("name")),
        category=_text(row.get("category")),
    )


def features_from_rows(rows: list[dict[str, Any]], *, kind: FeatureKind) -> tuple[Feature, ...]:
    if kind == "polygons":
        return tuple(polygon_from_row(r) for r in rows)
    return tuple(point_from_row(r) for r in rows)
