from __future__ import annotations

from datetime import date

import pytest

from eudr_packs.analysis.risk import (
    BiodiversityImpact,
    RiskDetermination,
    RiskLevel,
    classify,
    screen_protected_areas,
)
from eudr_packs.geo.geometry import BoundaryPoint


def test_high_risk_profile(high_risk_points: list[BoundaryPoint]) -> None:
    det = classify(high_risk_points)
    assert det.risk_level is RiskLevel.HIGH
    assert det.compliance_score == 45
    assert det.deforestation_risk == 85
    assert det.forest_loss_detected is True
    assert det.forest_loss_date == date(2021, 3, 15)
    assert det.biodiversity_impact is BiodiversityImpact.SIGNIFICANT
    assert det.carbon_stock_loss == 2.4
    assert det.forest_cover_change_pct == -15.3
    assert det.mitigation_required is True
    assert det.overlapping_zone == "high-risk-forest-1"


def test_low_risk_profile(low_risk_points: list[BoundaryPoint]) -> None:
    det = classify(low_risk_points)
    assert det.risk_level is RiskLevel.LOW
    assert det.compliance_score == 92
    assert det.deforestation_risk == 12
    assert det.forest_loss_detected is False
    assert det.forest_loss_date is None
    assert det.biodiversity_impact is BiodiversityImpact.MINIMAL
    assert det.carbon_stock_loss == 0
    assert det.forest_cover_change_pct == 2.1
    assert det.forest_protection_score == 88


def test_classification_is_deterministic(high_risk_points: list[BoundaryPoint]) -> None:
    assert classify(high_risk_points) == classify(list(high_risk_points))
    assert classify(high_risk_points).to_dict() == classify(high_risk_points).to_dict()


def test_single_overlapping_point_flags_boundary(low_risk_points: list[BoundaryPoint]) -> None:
    mixed = low_risk_points[:2] + [BoundaryPoint(6.420, -9.36)]
    det = classify(mixed)
    assert det.risk_level is RiskLevel.HIGH
    assert det.overlapping_zone == "high-risk-forest-2"


def test_standard_tier_never_produced(high_risk_points, low_risk_points) -> None:
    levels = {classify(high_risk_points).risk_level, classify(low_risk_points).risk_level}
    assert RiskLevel.STANDARD not in levels


def test_loss_date_invariant() -> None:
    with pytest.raises(ValueError):
        RiskDetermination(
            risk_level=RiskLevel.LOW,
            compliance_score=90,
            deforestation_risk=10,
            forest_loss_detected=True,
            forest_loss_date=None,
            biodiversity_impact=BiodiversityImpact.MINIMAL,
            carbon_stock_loss=0.0,
            recommendations=(),
        )
    with pytest.raises(ValueError):
        RiskDetermination(
            risk_level=RiskLevel.LOW,
            compliance_score=101,
            deforestation_risk=10,
            forest_loss_detected=False,
            forest_loss_date=None,
            biodiversity_impact=BiodiversityImpact.MINIMAL,
            carbon_stock_loss=0.0,
            recommendations=(),
        )


def test_determination_dict_round_trip(high_risk_points: list[BoundaryPoint]) -> None:
    det = classify(high_risk_points)
    assert RiskDetermination.from_dict(det.to_dict()) == det


def test_protected_area_screening() -> None:
    inside_sapo = [BoundaryPoint(5.5, -8.5), BoundaryPoint(5.51, -8.5), BoundaryPoint(5.51, -8.49)]
    assert screen_protected_areas(inside_sapo) == ("Sapo National Park",)
    assert classify(inside_sapo).risk_level is RiskLevel.LOW
    assert screen_protected_areas([BoundaryPoint(6.0, -10.0)]) == ()
