"""Compliance-pack assembly.

Assembly is all-or-nothing: the pack is built as a candidate, every one of the
six documents is described and rendered, and only then is it stored in
PendingApproval with its `generated` audit entry. Any document that cannot be
produced raises `PackIncompleteError` and nothing is persisted.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Sequence

from eudr_packs.analysis.risk import RiskDetermination, RiskLevel
from eudr_packs.config import RETENTION_YEARS, PipelineSettings
from eudr_packs.errors import PackIncompleteError, PackPipelineError
from eudr_packs.geo.geometry import BoundaryPoint, centroid, format_coordinates, polygon_area_ha
from eudr_packs.store.base import PackRepository

from .determinism import add_years, utc_now
from .references import document_id_for, new_pack_id, pack_reference_numbers
from .render import render_document
from .templates import RenderContext
from .types import (
    DOCUMENT_TYPES,
    SYSTEM_ACTOR,
    AuditDecision,
    AuditEntry,
    CompliancePack,
    ComplianceAssessment,
    CoverSheet,
    DeforestationReport,
    DocumentDescriptor,
    DocumentRecord,
    DocumentSet,
    DocumentType,
    DueDiligenceStatement,
    ExportCertificate,
    ExporterMetadata,
    PackStatus,
    ProducerRecord,
    TraceabilityReport,
)

LOGGER = logging.getLogger(__name__)

LACRA = "Liberia Agriculture Commodity Regulatory Authority (LACRA)"
LACRA_COMPLIANCE = "LACRA Compliance Department"
MONITORING = "AgriTrace360 Satellite Monitoring"

EUDR_CUTOFF = "2020-12-31"
DOCUMENTATION_SCORE = 98
CERTIFICATE_VALIDITY_YEARS = 1

COMPLIANCE_CHAIN: tuple[str, ...] = (
    "Farm registration verified",
    "GPS boundary mapped",
    "Satellite deforestation screening completed",
    "Due diligence statement issued",
    "Export eligibility certified",
    "Supply chain traceability recorded",
)

_MAX_ID_ATTEMPTS = 5


def _unique_pack_id(store: PackRepository, now: datetime, token: Callable[[], str] | None) -> str:
    for _ in range(_MAX_ID_ATTEMPTS):
        pack_id = new_pack_id(now=now, token=token)
        if not store.has_pack(pack_id):
            return pack_id
    raise RuntimeError("could not allocate a unique pack id")


def gps_reference_for(producer: ProducerRecord, boundary: Sequence[BoundaryPoint]) -> str | None:
    """Producer GPS reference, or the boundary centroid when none was recorded."""

    if producer.gps_reference:
        return producer.gps_reference
    center = centroid(boundary)
    if center is None:
        return None
    return f"{center.latitude:.6f}, {center.longitude:.6f}"


def _cover_sheet(ref: str, det: RiskDetermination, **_: object) -> CoverSheet:
    status = "COMPLIANT" if det.risk_level is RiskLevel.LOW else "REQUIRES ENHANCED DUE DILIGENCE"
    return CoverSheet(
        reference_number=ref,
        issued_by=LACRA_COMPLIANCE,
        compliance_status=status,
        compliance_chain=COMPLIANCE_CHAIN,
    )


def _export_certificate(
    ref: str, exporter: ExporterMetadata, now: datetime, **_: object
) -> ExportCertificate:
    if not exporter.exporter_registration.strip():
        raise PackIncompleteError(DocumentType.EXPORT_CERTIFICATE.value, "exporter registration missing")
    if not exporter.hs_code.strip():
        raise PackIncompleteError(DocumentType.EXPORT_CERTIFICATE.value, "HS code missing")
    return ExportCertificate(
        reference_number=ref,
        issued_by=LACRA,
        exporter_registration=exporter.exporter_registration,
        valid_until=add_years(now.date(), CERTIFICATE_VALIDITY_YEARS).isoformat(),
        commodity_rows=(
            ("Commodity", "HS Code", "Quantity", "Destination"),
            (exporter.commodity, exporter.hs_code, exporter.total_weight, exporter.destination),
        ),
    )


def _compliance_assessment(
    ref: str, det: RiskDetermination, protected_areas: tuple[str, ...], **_: object
) -> ComplianceAssessment:
    if det.risk_level is RiskLevel.LOW:
        result = "COMPLIANT: low deforestation risk, standard due diligence applies"
    else:
        result = "CONDITIONAL: high deforestation risk, enhanced due diligence required"
    return ComplianceAssessment(
        reference_number=ref,
        issued_by=LACRA_COMPLIANCE,
        assessment_result=result,
        scores=(
            ("Compliance score", det.compliance_score),
            ("Forest protection score", det.forest_protection_score),
            ("Documentation score", DOCUMENTATION_SCORE),
            ("Overall risk score", det.deforestation_risk),
        ),
        protected_areas=protected_areas,
    )


def _deforestation_report(
    ref: str,
    gps: str | None,
    boundary: tuple[BoundaryPoint, ...],
    area_ha: float | None,
    now: datetime,
    **_: object,
) -> DeforestationReport:
    if gps is None:
        raise PackIncompleteError(
            DocumentType.DEFORESTATION_REPORT.value, "no GPS reference or boundary for producer"
        )
    return DeforestationReport(
        reference_number=ref,
        issued_by=MONITORING,
        gps_reference=gps,
        boundary_coordinates=format_coordinates(boundary) if boundary else gps,
        area_ha=area_ha if area_ha is not None else polygon_area_ha(boundary),
        analysis_period=f"{EUDR_CUTOFF} to {now.date().isoformat()}",
    )


def _due_diligence_statement(
    ref: str, exporter: ExporterMetadata, det: RiskDetermination, **_: object
) -> DueDiligenceStatement:
    if not exporter.exporter_name.strip():
        raise PackIncompleteError(DocumentType.DUE_DILIGENCE_STATEMENT.value, "exporter name missing")
    measures = det.recommendations
    if det.mitigation_required:
        measures = measures + det.deforestation_actions
    return DueDiligenceStatement(
        reference_number=ref,
        issued_by=LACRA_COMPLIANCE,
        declarant=exporter.exporter_name,
        mitigation_measures=measures,
    )


def _traceability_report(
    ref: str, producer: ProducerRecord, exporter: ExporterMetadata, **_: object
) -> TraceabilityReport:
    if not producer.farm_ids:
        raise PackIncompleteError(DocumentType.TRACEABILITY_REPORT.value, "producer has no farm plots")
    origin = ", ".join(x for x in (producer.district, producer.county) if x) or "Liberia"
    return TraceabilityReport(
        reference_number=ref,
        issued_by=LACRA_COMPLIANCE,
        farm_ids=producer.farm_ids,
        supply_chain=(
            ("Stage", "Actor", "Location"),
            ("Production", producer.name, origin),
            ("Export", exporter.exporter_name, "Liberia"),
            ("Import", "EU operator", exporter.destination),
        ),
    )


_BUILDERS: dict[DocumentType, Callable[..., DocumentDescriptor]] = {
    DocumentType.COVER_SHEET: _cover_sheet,
    DocumentType.EXPORT_CERTIFICATE: _export_certificate,
    DocumentType.COMPLIANCE_ASSESSMENT: _compliance_assessment,
    DocumentType.DEFORESTATION_REPORT: _deforestation_report,
    DocumentType.DUE_DILIGENCE_STATEMENT: _due_diligence_statement,
    DocumentType.TRACEABILITY_REPORT: _traceability_report,
}


def build_descriptors(
    pack: CompliancePack,
    references: dict[DocumentType, str],
    *,
    gps: str | None,
    area_ha: float | None = None,
    protected_areas: tuple[str, ...] = (),
) -> list[DocumentDescriptor]:
    """One descriptor per document type, in pack order."""

    return [
        _BUILDERS[dt](
            ref=references[dt],
            producer=pack.producer,
            exporter=pack.exporter,
            det=pack.determination,
            gps=gps,
            boundary=pack.boundary,
            area_ha=area_ha,
            protected_areas=protected_areas,
            now=pack.created_utc,
        )
        for dt in DOCUMENT_TYPES
    ]


def _render_all(
    pack: CompliancePack,
    descriptors: list[DocumentDescriptor],
    ctx: RenderContext,
) -> DocumentSet:
    records: list[DocumentRecord] = []
    for descriptor in descriptors:
        try:
            artifact = render_document(descriptor, ctx)
        except PackPipelineError:
            raise
        except Exception as exc:
            raise PackIncompleteError(descriptor.document_type.value, f"rendering failed: {exc}") from exc
        records.append(
            DocumentRecord(
                document_id=document_id_for(descriptor.reference_number),
                pack_id=pack.pack_id,
                descriptor=descriptor,
                artifact=artifact,
            )
        )
    return DocumentSet.from_records(records)


def assemble(
    producer: ProducerRecord,
    exporter: ExporterMetadata,
    determination: RiskDetermination,
    *,
    store: PackRepository,
    boundary: Sequence[BoundaryPoint] = (),
    area_ha: float | None = None,
    protected_areas: tuple[str, ...] = (),
    submission_id: str | None = None,
    settings: PipelineSettings | None = None,
    now: datetime | None = None,
    token: Callable[[], str] | None = None,
) -> CompliancePack:
    """Build, render and persist a full six-document pack in PendingApproval."""

    settings = settings or PipelineSettings()
    created = now or utc_now()
    pack_id = _unique_pack_id(store, created, token)

    candidate = CompliancePack(
        pack_id=pack_id,
        producer=producer,
        exporter=exporter,
        determination=determination,
        status=PackStatus.CANDIDATE,
        created_utc=created,
        storage_expiry_date=add_years(created.date(), RETENTION_YEARS),
        boundary=tuple(boundary),
        submission_id=submission_id,
    )

    references = pack_reference_numbers(pack_id)
    gps = gps_reference_for(producer, candidate.boundary)
    descriptors = build_descriptors(
        candidate,
        references,
        gps=gps,
        area_ha=area_ha,
        protected_areas=protected_areas,
    )
    ctx = RenderContext(
        pack_id=pack_id,
        producer=producer,
        exporter=exporter,
        determination=determination,
        references=references,
        gps_reference=gps or "",
        generated_utc=created,
        verify_base_url=settings.verify_base_url,
        boundary=candidate.boundary,
    )
    documents = _render_all(candidate, descriptors, ctx)

    entry = AuditEntry(
        actor=SYSTEM_ACTOR,
        decision=AuditDecision.GENERATED,
        timestamp=created,
        notes=f"Auto-generated {len(documents)} documents",
    )
    pack = replace(candidate, documents=documents).with_status(PackStatus.PENDING_APPROVAL, entry)
    store.save_pack(pack)

    LOGGER.info(
        "Generated pack %s for producer %s (%s risk, %d documents)",
        pack_id,
        producer.producer_id,
        determination.risk_level.value,
        len(documents),
    )
    return pack
