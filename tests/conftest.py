from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

_SRC = (Path(__file__).resolve().parents[1] / "src").as_posix()
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from eudr_packs.geo.geometry import BoundaryPoint  # noqa: E402
from eudr_packs.packs.types import ExporterMetadata, ProducerRecord  # noqa: E402
from eudr_packs.producers import ProducerDirectory  # noqa: E402
from eudr_packs.service import CompliancePipeline  # noqa: E402
from eudr_packs.store.memory import InMemoryPackStore  # noqa: E402

FIXED_NOW = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def high_risk_points() -> list[BoundaryPoint]:
    return [
        BoundaryPoint(6.430, -9.38),
        BoundaryPoint(6.431, -9.379),
        BoundaryPoint(6.432, -9.381),
    ]


@pytest.fixture
def low_risk_points() -> list[BoundaryPoint]:
    return [
        BoundaryPoint(6.300, -10.500),
        BoundaryPoint(6.300, -10.490),
        BoundaryPoint(6.310, -10.490),
        BoundaryPoint(6.310, -10.500),
    ]


@pytest.fixture
def producer() -> ProducerRecord:
    return ProducerRecord(
        producer_id="LR-FARM-001",
        name="Musu Kollie",
        county="Montserrado",
        district="Careysburg",
        gps_reference="6.431000, -9.380000",
        farm_ids=("FARM-001", "FARM-002"),
        farm_size_ha=4.5,
        commodities=("cocoa",),
    )


@pytest.fixture
def second_producer() -> ProducerRecord:
    return ProducerRecord(
        producer_id="LR-FARM-002",
        name="Joseph Flomo",
        county="Bong",
        district="Gbarnga",
        farm_ids=("FARM-010",),
        commodities=("coffee",),
    )


@pytest.fixture
def exporter() -> ExporterMetadata:
    return ExporterMetadata(
        exporter_id="EXP-001",
        exporter_name="Liberia Cocoa Exporters Ltd",
        exporter_registration="LR-EXP-2024-0042",
        shipment_id="SHIP-2024-001",
        commodity="Cocoa beans",
        hs_code="1801.00",
        total_weight="25,000 kg",
        harvest_period="2023/24 main crop",
    )


@pytest.fixture
def store() -> InMemoryPackStore:
    return InMemoryPackStore()


@pytest.fixture
def producers(producer: ProducerRecord, second_producer: ProducerRecord) -> ProducerDirectory:
    return ProducerDirectory([producer, second_producer])


@pytest.fixture
def pipeline(store: InMemoryPackStore, producers: ProducerDirectory) -> CompliancePipeline:
    return CompliancePipeline(store, producers, clock=lambda: FIXED_NOW)
