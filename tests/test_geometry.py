from __future__ import annotations

import pytest

from eudr_packs.geo.geometry import (
    BoundaryPoint,
    boundary_geojson,
    centroid,
    coerce_points,
    geodesic_area_ha,
    is_simple_boundary,
    point_in_any_zone,
    polygon_area_ha,
)
from eudr_packs.geo.zones import DEFAULT_ZONES, RiskZone, ZoneClass, load_zone_table, zone_table_from_json


UNIT_SQUARE = [
    BoundaryPoint(0.0, 0.0),
    BoundaryPoint(0.0, 1.0),
    BoundaryPoint(1.0, 1.0),
    BoundaryPoint(1.0, 0.0),
]


def test_unit_square_area_in_hectares() -> None:
    assert polygon_area_ha(UNIT_SQUARE) == pytest.approx(1_239_214.24, rel=1e-9)


def test_area_independent_of_winding() -> None:
    assert polygon_area_ha(list(reversed(UNIT_SQUARE))) == pytest.approx(polygon_area_ha(UNIT_SQUARE))


@pytest.mark.parametrize("n", [0, 1, 2])
def test_fewer_than_three_points_is_zero(n: int) -> None:
    assert polygon_area_ha(UNIT_SQUARE[:n]) == 0


def test_self_intersecting_ring_is_accepted_but_not_simple() -> None:
    bowtie = [
        BoundaryPoint(0.0, 0.0),
        BoundaryPoint(1.0, 1.0),
        BoundaryPoint(1.0, 0.0),
        BoundaryPoint(0.0, 1.0),
    ]
    assert polygon_area_ha(bowtie) >= 0.0
    assert is_simple_boundary(bowtie) is False
    assert is_simple_boundary(UNIT_SQUARE) is True


def test_geodesic_area_close_to_planar_near_equator() -> None:
    small = [
        BoundaryPoint(0.0, 0.0),
        BoundaryPoint(0.0, 0.01),
        BoundaryPoint(0.01, 0.01),
        BoundaryPoint(0.01, 0.0),
    ]
    assert geodesic_area_ha(small) == pytest.approx(polygon_area_ha(small), rel=0.02)


def test_point_parsing_accepts_common_shapes() -> None:
    pts = coerce_points([{"latitude": 6.43, "longitude": -9.38}, {"lat": 6.431, "lng": -9.379}, (6.432, -9.381)])
    assert pts == (
        BoundaryPoint(6.43, -9.38),
        BoundaryPoint(6.431, -9.379),
        BoundaryPoint(6.432, -9.381),
    )


def test_point_rejects_out_of_range() -> None:
    with pytest.raises(ValueError):
        BoundaryPoint(91.0, 0.0)
    with pytest.raises(ValueError):
        BoundaryPoint.from_mapping({"latitude": 1.0})


def test_centroid_and_geojson() -> None:
    c = centroid(UNIT_SQUARE)
    assert c == BoundaryPoint(0.5, 0.5)
    gj = boundary_geojson(UNIT_SQUARE)
    assert gj["type"] == "Polygon"
    ring = gj["coordinates"][0]
    assert ring[0] == ring[-1]
    assert len(ring) == 5


def test_point_in_any_zone_returns_first_match() -> None:
    forest = load_zone_table().high_risk_forest
    hit = point_in_any_zone(BoundaryPoint(6.430, -9.38), forest)
    assert hit is not None and hit.name == "high-risk-forest-1"
    assert point_in_any_zone(BoundaryPoint(6.0, -10.0), forest) is None


def test_rectangle_containment_is_strict() -> None:
    zone = RiskZone.rectangle("z", ZoneClass.FOREST, min_lat=0.0, max_lat=1.0, min_lon=0.0, max_lon=1.0)
    assert zone.contains(BoundaryPoint(0.5, 0.5))
    assert not zone.contains(BoundaryPoint(0.0, 0.5))
    assert not zone.contains(BoundaryPoint(0.5, 1.0))


def test_ellipse_excludes_bbox_corners() -> None:
    sapo = next(z for z in DEFAULT_ZONES if z.name == "Sapo National Park")
    assert sapo.contains(BoundaryPoint(5.5, -8.5))
    assert sapo.in_bbox(BoundaryPoint(5.95, -8.05))
    assert not sapo.contains(BoundaryPoint(5.95, -8.05))


def test_zone_table_from_json_round_trip() -> None:
    table = zone_table_from_json(
        {
            "zones": [
                {"name": "a", "classification": "forest", "min_lat": 1, "max_lat": 2, "min_lon": 3, "max_lon": 4},
                {"name": "b", "classification": "protected", "shape": "ellipse", "center_lat": 0, "center_lon": 0, "radius": 1},
            ]
        }
    )
    assert [z.name for z in table.high_risk_forest] == ["a"]
    assert [z.name for z in table.protected] == ["b"]
    with pytest.raises(ValueError):
        zone_table_from_json({"zones": []})


def test_ellipse_zone_without_radius_names_the_zone() -> None:
    entry = {"name": "Gola Forest", "classification": "forest", "shape": "ellipse", "center_lat": 7.4, "center_lon": -10.8}
    with pytest.raises(ValueError, match="Gola Forest"):
        RiskZone.from_dict(entry)
    zone = RiskZone.from_dict({**entry, "radius_lat": 0.2, "radius_lon": 0.3})
    assert zone.contains(BoundaryPoint(7.4, -10.8))
