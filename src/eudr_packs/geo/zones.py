"""Fixed risk-zone reference data.

Zones are immutable and loaded once per process. Classification only reads
them, so they are shared across concurrent calls without locking.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from .geometry import BoundaryPoint


class ZoneClass(str, Enum):
    FOREST = "forest"
    PROTECTED = "protected"
    AGRICULTURAL = "agricultural"
    WATER = "water"


class ZoneShape(str, Enum):
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"


@dataclass(frozen=True)
class RiskZone:
    """Axis-aligned rectangle or the ellipse inscribed in it.

    Containment is strict (points on the edge are outside).
    """

    name: str
    classification: ZoneClass
    shape: ZoneShape
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def __post_init__(self) -> None:
        if self.min_lat >= self.max_lat or self.min_lon >= self.max_lon:
            raise ValueError(f"zone {self.name!r} has empty bounds")

    @classmethod
    def rectangle(
        cls,
        name: str,
        classification: ZoneClass,
        *,
        min_lat: float,
        max_lat: float,
        min_lon: float,
        max_lon: float,
    ) -> "RiskZone":
        return cls(name, classification, ZoneShape.RECTANGLE, min_lat, max_lat, min_lon, max_lon)

    @classmethod
    def ellipse(
        cls,
        name: str,
        classification: ZoneClass,
        *,
        center_lat: float,
        center_lon: float,
        radius_lat: float,
        radius_lon: float,
    ) -> "RiskZone":
        return cls(
            name,
            classification,
            ZoneShape.ELLIPSE,
            center_lat - radius_lat,
            center_lat + radius_lat,
            center_lon - radius_lon,
            center_lon + radius_lon,
        )

    def in_bbox(self, point: BoundaryPoint) -> bool:
        return (
            self.min_lat < point.latitude < self.max_lat
            and self.min_lon < point.longitude < self.max_lon
        )

    def contains(self, point: BoundaryPoint) -> bool:
        if not self.in_bbox(point):
            return False
        if self.shape is ZoneShape.RECTANGLE:
            return True
        center_lat = (self.min_lat + self.max_lat) / 2.0
        center_lon = (self.min_lon + self.max_lon) / 2.0
        radius_lat = (self.max_lat - self.min_lat) / 2.0
        radius_lon = (self.max_lon - self.min_lon) / 2.0
        dy = (point.latitude - center_lat) / radius_lat
        dx = (point.longitude - center_lon) / radius_lon
        return dx * dx + dy * dy < 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "classification": self.classification.value,
            "shape": self.shape.value,
            "min_lat": self.min_lat,
            "max_lat": self.max_lat,
            "min_lon": self.min_lon,
            "max_lon": self.max_lon,
        }

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "RiskZone":
        shape = ZoneShape(obj.get("shape", ZoneShape.RECTANGLE.value))
        classification = ZoneClass(obj["classification"])
        if shape is ZoneShape.ELLIPSE and "center_lat" in obj:
            name = str(obj["name"])
            radius = obj.get("radius")
            radius_lat = obj.get("radius_lat", radius)
            radius_lon = obj.get("radius_lon", radius)
            if radius_lat is None or radius_lon is None or obj.get("center_lon") is None:
                raise ValueError(
                    f"zone {name!r} needs center_lon and either radius or radius_lat/radius_lon"
                )
            return cls.ellipse(
                name,
                classification,
                center_lat=float(obj["center_lat"]),
                center_lon=float(obj["center_lon"]),
                radius_lat=float(radius_lat),
                radius_lon=float(radius_lon),
            )
        return cls(
            str(obj["name"]),
            classification,
            shape,
            float(obj["min_lat"]),
            float(obj["max_lat"]),
            float(obj["min_lon"]),
            float(obj["max_lon"]),
        )


@dataclass(frozen=True)
class ZoneTable:
    zones: tuple[RiskZone, ...]

    def of_class(self, classification: ZoneClass) -> tuple[RiskZone, ...]:
        return tuple(z for z in self.zones if z.classification is classification)

    @property
    def high_risk_forest(self) -> tuple[RiskZone, ...]:
        return self.of_class(ZoneClass.FOREST)

    @property
    def protected(self) -> tuple[RiskZone, ...]:
        return self.of_class(ZoneClass.PROTECTED)


# Known high-risk forest blocks around the Monrovia test area.
DEFAULT_ZONES: tuple[RiskZone, ...] = (
    RiskZone.rectangle(
        "high-risk-forest-1",
        ZoneClass.FOREST,
        min_lat=6.425,
        max_lat=6.44,
        min_lon=-9.39,
        max_lon=-9.375,
    ),
    RiskZone.rectangle(
        "high-risk-forest-2",
        ZoneClass.FOREST,
        min_lat=6.415,
        max_lat=6.435,
        min_lon=-9.375,
        max_lon=-9.35,
    ),
    RiskZone.ellipse(
        "Sapo National Park",
        ZoneClass.PROTECTED,
        center_lat=5.5,
        center_lon=-8.5,
        radius_lat=0.5,
        radius_lon=0.5,
    ),
    RiskZone.ellipse(
        "East Nimba Nature Reserve",
        ZoneClass.PROTECTED,
        center_lat=7.6,
        center_lon=-8.5,
        radius_lat=0.3,
        radius_lon=0.3,
    ),
    RiskZone.ellipse(
        "Grebo National Forest",
        ZoneClass.PROTECTED,
        center_lat=4.5,
        center_lon=-7.8,
        radius_lat=0.4,
        radius_lon=0.4,
    ),
)


def zone_table_from_json(obj: Any) -> ZoneTable:
    items: Iterable[Any] = obj.get("zones", []) if isinstance(obj, dict) else obj
    zones = tuple(RiskZone.from_dict(item) for item in items)
    if not zones:
        raise ValueError("zone table contains no zones")
    return ZoneTable(zones=zones)


@lru_cache(maxsize=None)
def load_zone_table(path: Path | None = None) -> ZoneTable:
    """Load the zone table once; `None` selects the built-in table."""

    if path is None:
        return ZoneTable(zones=DEFAULT_ZONES)
    return zone_table_from_json(json.loads(Path(path).read_text(encoding="utf-8")))
