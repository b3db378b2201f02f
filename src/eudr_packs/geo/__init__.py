from .geometry import (
    BoundaryPoint,
    coerce_points,
    geodesic_area_ha,
    is_simple_boundary,
    point_in_any_zone,
    polygon_area_ha,
)
from .zones import RiskZone, ZoneClass, ZoneShape, ZoneTable, load_zone_table

__all__ = [
    "BoundaryPoint",
    "RiskZone",
    "ZoneClass",
    "ZoneShape",
    "ZoneTable",
    "coerce_points",
    "geodesic_area_ha",
    "is_simple_boundary",
    "load_zone_table",
    "point_in_any_zone",
    "polygon_area_ha",
]
