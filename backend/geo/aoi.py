from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BBox:
    """
    WGS84 bounding box in lon/lat degrees.

    Convention used throughout this repo:
    - minLon, minLat, maxLon, maxLat
    """

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def normalized(self) -> "BBox":
        min_lon = min(self.min_lon, self.max_lon)
        max_lon = max(self.min_lon, self.max_lon)
        min_lat = min(self.min_lat, self.max_lat)
        max_lat = max(self.min_lat, self.max_lat)
        return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)

    def as_dict(self) -> dict[str, float]:
        b = self.normalized()
        return {
            "minLon": b.min_lon,
            "minLat": b.min_lat,
            "maxLon": b.max_lon,
            "maxLat": b.max_lat,
        }


@dataclass(frozen=True)
class Viewport:
    """
    Snapshot of the visible map rectangle plus its zoom level.

    Taken once per comparison run; both arms query the same snapshot.
    """

    south_west_lat: float
    south_west_lng: float
    north_east_lat: float
    north_east_lng: float
    zoom_level: float

    @classmethod
    def from_bbox(cls, bbox: BBox, *, zoom_level: float) -> "Viewport":
        b = bbox.normalized()
        return cls(
            south_west_lat=b.min_lat,
            south_west_lng=b.min_lon,
            north_east_lat=b.max_lat,
            north_east_lng=b.max_lon,
            zoom_level=float(zoom_level),
        )

    def bbox(self) -> BBox:
        return BBox(
            min_lon=self.south_west_lng,
            min_lat=self.south_west_lat,
            max_lon=self.north_east_lng,
            max_lat=self.north_east_lat,
        ).normalized()

    def as_dict(self) -> dict[str, float]:
        return {
            "southWestLat": self.south_west_lat,
            "southWestLng": self.south_west_lng,
            "northEastLat": self.north_east_lat,
            "northEastLng": self.north_east_lng,
            "zoomLevel": self.zoom_level,
        }
