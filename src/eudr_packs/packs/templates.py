"""Fixed section templates, one per document type.

Templates only read the descriptor and the pack context. Determination fields
are printed as stored; nothing is recomputed here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Mapping

from eudr_packs.analysis.risk import RiskDetermination
from eudr_packs.geo.geometry import BoundaryPoint

from .types import (
    DOCUMENT_TYPES,
    ComplianceAssessment,
    CoverSheet,
    DeforestationReport,
    DocumentDescriptor,
    DocumentType,
    DueDiligenceStatement,
    ExportCertificate,
    ExporterMetadata,
    ProducerRecord,
    RenderedSection,
    TraceabilityReport,
)

CROSS_REFERENCE_TITLE = "Cross References"
RISK_TITLE = "Risk Determination"
PRODUCER_TITLE = "Producer"


@dataclass(frozen=True)
class RenderContext:
    pack_id: str
    producer: ProducerRecord
    exporter: ExporterMetadata
    determination: RiskDetermination
    references: Mapping[DocumentType, str]
    gps_reference: str
    generated_utc: datetime
    verify_base_url: str
    boundary: tuple[BoundaryPoint, ...] = ()

    @property
    def generated_date(self) -> str:
        return self.generated_utc.strftime("%Y-%m-%d")


def _fmt_bool(value: bool) -> str:
    return "Yes" if value else "No"


def _header(descriptor: DocumentDescriptor, ctx: RenderContext) -> RenderedSection:
    dt = descriptor.document_type
    return RenderedSection(
        title=dt.label,
        lines=(
            f"Reference: {descriptor.reference_number}",
            f"Pack ID: {ctx.pack_id}",
            f"Issued by: {descriptor.issued_by}",
            f"Generated: {ctx.generated_date}",
        ),
    )


def _producer(ctx: RenderContext) -> RenderedSection:
    p = ctx.producer
    lines = [
        f"Producer: {p.name} ({p.producer_id})",
        f"Location: {p.district}, {p.county}".strip(", "),
        f"GPS: {ctx.gps_reference}",
    ]
    if p.farm_size_ha is not None:
        lines.append(f"Farm size: {p.farm_size_ha} ha")
    return RenderedSection(title=PRODUCER_TITLE, lines=tuple(lines))


def _risk(det: RiskDetermination) -> RenderedSection:
    lines = [
        f"Risk level: {det.risk_level.value}",
        f"Compliance score: {det.compliance_score}",
        f"Deforestation risk: {det.deforestation_risk}",
        f"Forest loss detected: {_fmt_bool(det.forest_loss_detected)}",
        f"Forest loss date: {det.forest_loss_date.isoformat() if det.forest_loss_date else 'None'}",
        f"Forest cover change: {det.forest_cover_change_pct:+.1f}%",
        f"Biodiversity impact: {det.biodiversity_impact.value}",
        f"Carbon stock loss: {det.carbon_stock_loss}",
        f"Last forest date: {det.last_forest_date.isoformat()}",
    ]
    if det.overlapping_zone:
        lines.append(f"Overlapping zone: {det.overlapping_zone}")
    lines.extend(f"Recommendation: {r}" for r in det.recommendations)
    return RenderedSection(title=RISK_TITLE, lines=tuple(lines))


def _cross_references(ctx: RenderContext) -> RenderedSection:
    rows = [("Document", "Reference")]
    rows.extend((dt.label, ctx.references[dt]) for dt in DOCUMENT_TYPES)
    return RenderedSection(title=CROSS_REFERENCE_TITLE, table=tuple(rows))


def _cover_sheet(d: CoverSheet, ctx: RenderContext) -> list[RenderedSection]:
    ex = ctx.exporter
    return [
        RenderedSection(
            title="Pack Summary",
            lines=(
                f"Exporter: {ex.exporter_name} ({ex.exporter_id})",
                f"Shipment: {ex.shipment_id}",
                f"Commodity: {ex.commodity} (HS {ex.hs_code})",
                f"Total weight: {ex.total_weight}",
                f"Destination: {ex.destination}",
                f"Compliance status: {d.compliance_status}",
            ),
        ),
        RenderedSection(title="Compliance Chain", lines=d.compliance_chain),
    ]


def _export_certificate(d: ExportCertificate, ctx: RenderContext) -> list[RenderedSection]:
    return [
        RenderedSection(
            title="Certification",
            lines=(
                f"Exporter: {ctx.exporter.exporter_name}",
                f"Registration: {d.exporter_registration}",
                f"Valid until: {d.valid_until}",
                "The commodities below are certified eligible for export to the EU market.",
            ),
        ),
        RenderedSection(title="Certified Commodities", table=d.commodity_rows),
    ]


def _compliance_assessment(d: ComplianceAssessment, ctx: RenderContext) -> list[RenderedSection]:
    rows = [("Metric", "Score")]
    rows.extend((label, f"{value}/100") for label, value in d.scores)
    protected = d.protected_areas or ("No protected area overlap detected",)
    return [
        RenderedSection(title="Assessment Scores", table=tuple(rows)),
        RenderedSection(title="Protected Areas", lines=protected),
        RenderedSection(title="Assessment Result", lines=(d.assessment_result,)),
    ]


def _deforestation_report(d: DeforestationReport, ctx: RenderContext) -> list[RenderedSection]:
    det = ctx.determination
    return [
        RenderedSection(
            title="Satellite Analysis",
            lines=(
                f"Data source: {ctx.exporter.satellite_data_source}",
                f"Analysis period: {d.analysis_period}",
                f"GPS reference: {d.gps_reference}",
                f"Boundary: {d.boundary_coordinates}",
                f"Plot area: {d.area_ha:.2f} ha",
            ),
        ),
        RenderedSection(
            title="Deforestation Actions",
            lines=det.deforestation_actions if det.mitigation_required else ("No action required",),
        ),
    ]


def _due_diligence_statement(d: DueDiligenceStatement, ctx: RenderContext) -> list[RenderedSection]:
    return [
        RenderedSection(
            title="Declaration",
            lines=(
                f"{d.declarant} declares that due diligence was exercised for shipment "
                f"{ctx.exporter.shipment_id} under Regulation (EU) 2023/1115.",
            ),
        ),
        RenderedSection(title="Mitigation Measures", lines=d.mitigation_measures),
        RenderedSection(title="Documentation Required", lines=ctx.determination.documentation_required),
    ]


def _traceability_report(d: TraceabilityReport, ctx: RenderContext) -> list[RenderedSection]:
    return [
        RenderedSection(title="Farms", lines=tuple(f"Farm ID: {f}" for f in d.farm_ids)),
        RenderedSection(title="Supply Chain", table=d.supply_chain),
    ]


_BODY: dict[DocumentType, Callable[..., list[RenderedSection]]] = {
    DocumentType.COVER_SHEET: _cover_sheet,
    DocumentType.EXPORT_CERTIFICATE: _export_certificate,
    DocumentType.COMPLIANCE_ASSESSMENT: _compliance_assessment,
    DocumentType.DEFORESTATION_REPORT: _deforestation_report,
    DocumentType.DUE_DILIGENCE_STATEMENT: _due_diligence_statement,
    DocumentType.TRACEABILITY_REPORT: _traceability_report,
}


def build_sections(descriptor: DocumentDescriptor, ctx: RenderContext) -> list[RenderedSection]:
    body = _BODY[descriptor.document_type]
    return [
        _header(descriptor, ctx),
        *body(descriptor, ctx),
        _producer(ctx),
        _risk(ctx.determination),
        _cross_references(ctx),
    ]
