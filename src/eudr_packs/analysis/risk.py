"""Deterministic deforestation risk classification.

The classifier stands in for satellite analysis with a fixed heuristic: a
boundary is high risk when any of its points falls inside a known high-risk
forest zone, and low risk otherwise. The `standard` tier exists in the output
type but this heuristic never produces it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Sequence

from eudr_packs.geo.geometry import BoundaryPoint, point_in_any_zone
from eudr_packs.geo.zones import ZoneTable, load_zone_table

LOGGER = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    LOW = "low"
    STANDARD = "standard"
    HIGH = "high"


class BiodiversityImpact(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"
    SEVERE = "severe"


# Reference dates used by the heuristic profiles.
FOREST_LOSS_REFERENCE_DATE = date(2021, 3, 15)
LAST_FOREST_DATE = date(2019, 12, 31)

DOCUMENTATION_REQUIRED: tuple[str, ...] = (
    "Due diligence statement",
    "Geolocation coordinates",
    "Supply chain traceability",
    "Risk assessment report",
)

DEFORESTATION_ACTIONS: tuple[str, ...] = (
    "Implement reforestation program",
    "Monitor with satellite imagery",
    "Establish buffer zones",
    "Community engagement initiatives",
)

HIGH_RISK_RECOMMENDATIONS: tuple[str, ...] = (
    "Enhanced due diligence required",
    "Third-party verification needed",
    "Implement forest monitoring system",
    "Develop conservation plan",
)

LOW_RISK_RECOMMENDATIONS: tuple[str, ...] = (
    "Standard due diligence applies",
    "Annual monitoring recommended",
    "Maintain current practices",
)


@dataclass(frozen=True)
class RiskDetermination:
    risk_level: RiskLevel
    compliance_score: int
    deforestation_risk: int
    forest_loss_detected: bool
    forest_loss_date: date | None
    biodiversity_impact: BiodiversityImpact
    carbon_stock_loss: float
    recommendations: tuple[str, ...]
    forest_cover_change_pct: float = 0.0
    last_forest_date: date = LAST_FOREST_DATE
    overlapping_zone: str | None = None
    documentation_required: tuple[str, ...] = field(default=DOCUMENTATION_REQUIRED)
    deforestation_actions: tuple[str, ...] = field(default=DEFORESTATION_ACTIONS)

    def __post_init__(self) -> None:
        if self.forest_loss_detected != (self.forest_loss_date is not None):
            raise ValueError("forest_loss_date must be set exactly when forest loss is detected")
        for name in ("compliance_score", "deforestation_risk"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be within [0, 100], got {value}")

    @property
    def mitigation_required(self) -> bool:
        return self.forest_loss_detected

    @property
    def forest_protection_score(self) -> int:
        return 100 - self.deforestation_risk

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_level": self.risk_level.value,
            "compliance_score": self.compliance_score,
            "deforestation_risk": self.deforestation_risk,
            "forest_loss_detected": self.forest_loss_detected,
            "forest_loss_date": self.forest_loss_date.isoformat() if self.forest_loss_date else None,
            "biodiversity_impact": self.biodiversity_impact.value,
            "carbon_stock_loss": self.carbon_stock_loss,
            "recommendations": list(self.recommendations),
            "forest_cover_change_pct": self.forest_cover_change_pct,
            "last_forest_date": self.last_forest_date.isoformat(),
            "overlapping_zone": self.overlapping_zone,
            "documentation_required": list(self.documentation_required),
            "deforestation_actions": list(self.deforestation_actions),
        }

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "RiskDetermination":
        loss_date = obj.get("forest_loss_date")
        return cls(
            risk_level=RiskLevel(obj["risk_level"]),
            compliance_score=int(obj["compliance_score"]),
            deforestation_risk=int(obj["deforestation_risk"]),
            forest_loss_detected=bool(obj["forest_loss_detected"]),
            forest_loss_date=date.fromisoformat(loss_date) if loss_date else None,
            biodiversity_impact=BiodiversityImpact(obj["biodiversity_impact"]),
            carbon_stock_loss=float(obj["carbon_stock_loss"]),
            recommendations=tuple(obj.get("recommendations") or ()),
            forest_cover_change_pct=float(obj.get("forest_cover_change_pct", 0.0)),
            last_forest_date=date.fromisoformat(obj.get("last_forest_date") or LAST_FOREST_DATE.isoformat()),
            overlapping_zone=obj.get("overlapping_zone"),
            documentation_required=tuple(obj.get("documentation_required") or DOCUMENTATION_REQUIRED),
            deforestation_actions=tuple(obj.get("deforestation_actions") or DEFORESTATION_ACTIONS),
        )


def _high_risk(zone_name: str) -> RiskDetermination:
    return RiskDetermination(
        risk_level=RiskLevel.HIGH,
        compliance_score=45,
        deforestation_risk=85,
        forest_loss_detected=True,
        forest_loss_date=FOREST_LOSS_REFERENCE_DATE,
        biodiversity_impact=BiodiversityImpact.SIGNIFICANT,
        carbon_stock_loss=2.4,
        recommendations=HIGH_RISK_RECOMMENDATIONS,
        forest_cover_change_pct=-15.3,
        overlapping_zone=zone_name,
    )


def _low_risk() -> RiskDetermination:
    return RiskDetermination(
        risk_level=RiskLevel.LOW,
        compliance_score=92,
        deforestation_risk=12,
        forest_loss_detected=False,
        forest_loss_date=None,
        biodiversity_impact=BiodiversityImpact.MINIMAL,
        carbon_stock_loss=0.0,
        recommendations=LOW_RISK_RECOMMENDATIONS,
        forest_cover_change_pct=2.1,
    )


def classify(
    points: Sequence[BoundaryPoint],
    *,
    zone_table: ZoneTable | None = None,
) -> RiskDetermination:
    """Classify a boundary against the high-risk forest zones.

    A single point inside any high-risk zone is enough to flag the whole
    boundary; full polygon/zone intersection is not computed.
    """

    table = zone_table if zone_table is not None else load_zone_table()
    forest_zones = table.high_risk_forest

    for point in points:
        zone = point_in_any_zone(point, forest_zones)
        if zone is not None:
            LOGGER.debug("Boundary point %s overlaps zone %s", point, zone.name)
            return _high_risk(zone.name)
    return _low_risk()


def screen_protected_areas(
    points: Sequence[BoundaryPoint],
    *,
    zone_table: ZoneTable | None = None,
) -> tuple[str, ...]:
    """Names of protected areas touched by any boundary point, in table order."""

    table = zone_table if zone_table is not None else load_zone_table()
    hits: list[str] = []
    for zone in table.protected:
        if any(zone.contains(p) for p in points):
            hits.append(zone.name)
    return tuple(hits)
