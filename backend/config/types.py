from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from benchmark.types import SideIdentity

ArmKind = Literal["points", "polygons"]


class MapCenter(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class MapDefaults(BaseModel):
    center: MapCenter
    zoom: float = Field(ge=0.0, le=22.0)
    # Pixel size of each (headless) map view; determines the queried bbox.
    width: int = Field(default=900, ge=64)
    height: int = Field(default=600, ge=64)
    tileLayer: str = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    tileAttribution: str = "&copy; OpenStreetMap contributors"


class ArmConfig(BaseModel):
    """
    One side of the comparison: which dataset it reads and how it is drawn.
    """

    side: SideIdentity
    title: str
    table: str = Field(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    kind: ArmKind = "points"
    # Plot styling hints (free-form, interpreted by the renderer).
    style: dict[str, Any] = Field(default_factory=dict)


class BenchmarkConfig(BaseModel):
    id: str
    title: str
    map: MapDefaults
    # Below this zoom the bbox is large enough to time out the non-indexed query.
    minZoomForRun: float = Field(default=6.0, ge=0.0, le=22.0)
    queryTimeoutS: float = Field(default=8.0, gt=0.0)
    arms: list[ArmConfig]

    @model_validator(mode="after")
    def _one_arm_per_side(self) -> "BenchmarkConfig":
        sides = [a.side for a in self.arms]
        if sorted(s.value for s in sides) != sorted(s.value for s in SideIdentity):
            raise ValueError(
                "benchmark config must define exactly one arm per side "
                f"({', '.join(s.value for s in SideIdentity)})"
            )
        return self

    def arm(self, side: SideIdentity) -> ArmConfig:
        for a in self.arms:
            if a.side is side:
                return a
        raise KeyError(side)
