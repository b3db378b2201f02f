from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from pyproj import Geod
from shapely.geometry import Polygon

if TYPE_CHECKING:
    from .zones import RiskZone


# Fixed planar conversion used for boundary areas (metres per degree, both axes).
METERS_PER_DEGREE = 111_320.0
SQUARE_METERS_PER_HECTARE = 10_000.0

_GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class BoundaryPoint:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    @classmethod
    def from_mapping(cls, obj: Any) -> "BoundaryPoint":
        """Accept {"latitude": .., "longitude": ..}, {"lat": .., "lng": ..} or a (lat, lon) pair."""

        if isinstance(obj, BoundaryPoint):
            return obj
        if isinstance(obj, dict):
            lat = obj.get("latitude", obj.get("lat"))
            lon = obj.get("longitude", obj.get("lng", obj.get("lon")))
            if lat is None or lon is None:
                raise ValueError(f"boundary point is missing latitude/longitude: {obj!r}")
            return cls(latitude=float(lat), longitude=float(lon))
        if isinstance(obj, (list, tuple)) and len(obj) == 2:
            return cls(latitude=float(obj[0]), longitude=float(obj[1]))
        raise ValueError(f"unsupported boundary point: {obj!r}")

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


def coerce_points(raw: Iterable[Any]) -> tuple[BoundaryPoint, ...]:
    return tuple(BoundaryPoint.from_mapping(p) for p in raw)


def polygon_area_ha(points: Sequence[BoundaryPoint]) -> float:
    """Planar Shoelace area of the boundary, in hectares.

    Works in (longitude, latitude) degree space and converts square degrees
    with a fixed 111,320 m/degree on both axes. Fewer than 3 points gives 0.
    Self-intersecting rings are not rejected.
    """

    if len(points) < 3:
        return 0.0

    twice_area = 0.0
    n = len(points)
    for i in range(n):
        j = (i + 1) % n
        twice_area += (points[j].longitude - points[i].longitude) * (
            points[j].latitude + points[i].latitude
        )

    square_degrees = abs(twice_area) / 2.0
    return square_degrees * METERS_PER_DEGREE * METERS_PER_DEGREE / SQUARE_METERS_PER_HECTARE


def _shapely_ring(points: Sequence[BoundaryPoint]) -> Polygon:
    return Polygon([(p.longitude, p.latitude) for p in points])


def geodesic_area_ha(points: Sequence[BoundaryPoint]) -> float:
    """WGS84 geodesic area of the boundary ring, in hectares."""

    if len(points) < 3:
        return 0.0
    area_m2, _ = _GEOD.geometry_area_perimeter(_shapely_ring(points))
    return abs(float(area_m2)) / SQUARE_METERS_PER_HECTARE


def is_simple_boundary(points: Sequence[BoundaryPoint]) -> bool:
    """True when the ring forms a valid, non self-intersecting polygon."""

    if len(points) < 3:
        return False
    return bool(_shapely_ring(points).is_valid)


def centroid(points: Sequence[BoundaryPoint]) -> BoundaryPoint | None:
    """Vertex-average centroid (matches how plot centroids are reported)."""

    if not points:
        return None
    lat = sum(p.latitude for p in points) / len(points)
    lon = sum(p.longitude for p in points) / len(points)
    return BoundaryPoint(latitude=lat, longitude=lon)


def format_coordinates(points: Sequence[BoundaryPoint]) -> str:
    return "; ".join(f"{p.latitude:.6f}, {p.longitude:.6f}" for p in points)


def boundary_geojson(points: Sequence[BoundaryPoint]) -> dict[str, Any]:
    ring = [[p.longitude, p.latitude] for p in points]
    if ring and ring[0] != ring[-1]:
        ring.append(list(ring[0]))
    return {"type": "Polygon", "coordinates": [ring]}


def point_in_any_zone(point: BoundaryPoint, zones: Iterable["RiskZone"]) -> "RiskZone | None":
    """Return the first zone containing the point, or None."""

    for zone in zones:
        if zone.contains(point):
            return zone
    return None
