from __future__ import annotations

from dataclasses import MISSING, asdict, dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Iterator, Mapping, Union

from eudr_packs.analysis.risk import RiskDetermination
from eudr_packs.errors import PackIncompleteError
from eudr_packs.geo.geometry import BoundaryPoint


class DocumentType(str, Enum):
    """The six documents of a full EUDR pack, in pack order."""

    COVER_SHEET = "cover_sheet"
    EXPORT_CERTIFICATE = "export_certificate"
    COMPLIANCE_ASSESSMENT = "compliance_assessment"
    DEFORESTATION_REPORT = "deforestation_report"
    DUE_DILIGENCE_STATEMENT = "due_diligence_statement"
    TRACEABILITY_REPORT = "traceability_report"

    @property
    def code(self) -> str:
        return _DOCUMENT_CODES[self]

    @property
    def label(self) -> str:
        return _DOCUMENT_TITLES[self]

    @classmethod
    def from_code(cls, code: str) -> "DocumentType":
        for dt, c in _DOCUMENT_CODES.items():
            if c == code:
                return dt
        raise ValueError(f"unknown document code: {code}")


_DOCUMENT_CODES = {
    DocumentType.COVER_SHEET: "COVER",
    DocumentType.EXPORT_CERTIFICATE: "CERT",
    DocumentType.COMPLIANCE_ASSESSMENT: "ASSESS",
    DocumentType.DEFORESTATION_REPORT: "DEFOREST",
    DocumentType.DUE_DILIGENCE_STATEMENT: "DDS",
    DocumentType.TRACEABILITY_REPORT: "TRACE",
}

_DOCUMENT_TITLES = {
    DocumentType.COVER_SHEET: "EUDR Compliance Pack Cover Sheet",
    DocumentType.EXPORT_CERTIFICATE: "LACRA Export Eligibility Certificate",
    DocumentType.COMPLIANCE_ASSESSMENT: "EUDR Compliance Assessment",
    DocumentType.DEFORESTATION_REPORT: "Deforestation Analysis Report",
    DocumentType.DUE_DILIGENCE_STATEMENT: "Due Diligence Statement",
    DocumentType.TRACEABILITY_REPORT: "Supply Chain Traceability Report",
}

DOCUMENT_TYPES: tuple[DocumentType, ...] = tuple(DocumentType)


class PackStatus(str, Enum):
    CANDIDATE = "candidate"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"


class AuditDecision(str, Enum):
    GENERATED = "generated"
    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"
    REQUESTED = "requested"
    DELETED = "deleted"


SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class AuditEntry:
    actor: str
    decision: AuditDecision
    timestamp: datetime
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor": self.actor,
            "decision": self.decision.value,
            "timestamp": self.timestamp.isoformat(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "AuditEntry":
        return cls(
            actor=str(obj["actor"]),
            decision=AuditDecision(obj["decision"]),
            timestamp=datetime.fromisoformat(str(obj["timestamp"])),
            notes=str(obj.get("notes") or ""),
        )


@dataclass(frozen=True)
class ProducerRecord:
    """Producer identity as exported by the onboarding system (read-only here)."""

    producer_id: str
    name: str
    county: str = ""
    district: str = ""
    gps_reference: str | None = None
    farm_ids: tuple[str, ...] = ()
    farm_size_ha: float | None = None
    commodities: tuple[str, ...] = ()

    @property
    def onboarding_complete(self) -> bool:
        return bool(self.farm_ids) and bool(self.commodities)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["farm_ids"] = list(self.farm_ids)
        d["commodities"] = list(self.commodities)
        return d

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "ProducerRecord":
        farm_size = obj.get("farm_size_ha")
        return cls(
            producer_id=str(obj["producer_id"]),
            name=str(obj.get("name") or ""),
            county=str(obj.get("county") or ""),
            district=str(obj.get("district") or ""),
            gps_reference=obj.get("gps_reference") or None,
            farm_ids=tuple(str(f) for f in obj.get("farm_ids") or ()),
            farm_size_ha=float(farm_size) if farm_size is not None else None,
            commodities=tuple(str(c) for c in obj.get("commodities") or ()),
        )


@dataclass(frozen=True)
class ExporterMetadata:
    exporter_id: str
    exporter_name: str
    exporter_registration: str
    shipment_id: str
    commodity: str
    hs_code: str
    total_weight: str = ""
    harvest_period: str = "Current harvest period"
    destination: str = "European Union"
    satellite_data_source: str = "Sentinel-2/Landsat-8 - AgriTrace360 Real-time Monitoring"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "ExporterMetadata":
        """Missing required keys become empty strings; the document builders reject them."""

        values: dict[str, str] = {}
        for f in fields(cls):
            value = obj.get(f.name)
            if value is not None:
                values[f.name] = str(value)
            elif f.default is MISSING:
                values[f.name] = ""
        return cls(**values)


@dataclass(frozen=True)
class BoundarySubmission:
    """One boundary submission and the determination computed for it."""

    submission_id: str
    producer_id: str
    points: tuple[BoundaryPoint, ...]
    determination: RiskDetermination
    area_ha: float
    geodesic_area_ha: float
    is_simple: bool
    protected_areas: tuple[str, ...]
    submitted_utc: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "producer_id": self.producer_id,
            "points": [p.to_dict() for p in self.points],
            "determination": self.determination.to_dict(),
            "area_ha": self.area_ha,
            "geodesic_area_ha": self.geodesic_area_ha,
            "is_simple": self.is_simple,
            "protected_areas": list(self.protected_areas),
            "submitted_utc": self.submitted_utc.isoformat(),
        }

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "BoundarySubmission":
        return cls(
            submission_id=str(obj["submission_id"]),
            producer_id=str(obj["producer_id"]),
            points=tuple(BoundaryPoint.from_mapping(p) for p in obj["points"]),
            determination=RiskDetermination.from_dict(obj["determination"]),
            area_ha=float(obj["area_ha"]),
            geodesic_area_ha=float(obj["geodesic_area_ha"]),
            is_simple=bool(obj["is_simple"]),
            protected_areas=tuple(obj.get("protected_areas") or ()),
            submitted_utc=datetime.fromisoformat(str(obj["submitted_utc"])),
        )


# ---------------------------------------------------------------------------
# Document descriptors: one closed variant per document type.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CoverSheet:
    document_type: ClassVar[DocumentType] = DocumentType.COVER_SHEET
    reference_number: str
    issued_by: str
    compliance_status: str
    compliance_chain: tuple[str, ...]


@dataclass(frozen=True)
class ExportCertificate:
    document_type: ClassVar[DocumentType] = DocumentType.EXPORT_CERTIFICATE
    reference_number: str
    issued_by: str
    exporter_registration: str
    valid_until: str  # YYYY-MM-DD
    commodity_rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class ComplianceAssessment:
    document_type: ClassVar[DocumentType] = DocumentType.COMPLIANCE_ASSESSMENT
    reference_number: str
    issued_by: str
    assessment_result: str
    scores: tuple[tuple[str, int], ...]
    protected_areas: tuple[str, ...]


@dataclass(frozen=True)
class DeforestationReport:
    document_type: ClassVar[DocumentType] = DocumentType.DEFORESTATION_REPORT
    reference_number: str
    issued_by: str
    gps_reference: str
    boundary_coordinates: str
    area_ha: float
    analysis_period: str


@dataclass(frozen=True)
class DueDiligenceStatement:
    document_type: ClassVar[DocumentType] = DocumentType.DUE_DILIGENCE_STATEMENT
    reference_number: str
    issued_by: str
    declarant: str
    mitigation_measures: tuple[str, ...]


@dataclass(frozen=True)
class TraceabilityReport:
    document_type: ClassVar[DocumentType] = DocumentType.TRACEABILITY_REPORT
    reference_number: str
    issued_by: str
    farm_ids: tuple[str, ...]
    supply_chain: tuple[tuple[str, ...], ...]


DocumentDescriptor = Union[
    CoverSheet,
    ExportCertificate,
    ComplianceAssessment,
    DeforestationReport,
    DueDiligenceStatement,
    TraceabilityReport,
]

DESCRIPTOR_TYPES: dict[DocumentType, type] = {
    CoverSheet.document_type: CoverSheet,
    ExportCertificate.document_type: ExportCertificate,
    ComplianceAssessment.document_type: ComplianceAssessment,
    DeforestationReport.document_type: DeforestationReport,
    DueDiligenceStatement.document_type: DueDiligenceStatement,
    TraceabilityReport.document_type: TraceabilityReport,
}


def _tupleize(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_tupleize(v) for v in value)
    return value


def descriptor_to_dict(descriptor: DocumentDescriptor) -> dict[str, Any]:
    return {"document_type": descriptor.document_type.value, **asdict(descriptor)}


def descriptor_from_dict(obj: Mapping[str, Any]) -> DocumentDescriptor:
    cls = DESCRIPTOR_TYPES[DocumentType(obj["document_type"])]
    kwargs = {f.name: _tupleize(obj[f.name]) for f in fields(cls)}
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Rendered artifacts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RenderedSection:
    title: str
    lines: tuple[str, ...] = ()
    table: tuple[tuple[str, ...], ...] = ()

    def row_count(self) -> int:
        return 1 + len(self.lines) + len(self.table)


@dataclass(frozen=True)
class RenderedPage:
    number: int
    sections: tuple[RenderedSection, ...]


@dataclass(frozen=True)
class RenderedArtifact:
    """Durable output of the renderer: PDF bytes plus the layout they were drawn from."""

    document_type: DocumentType
    reference_number: str
    title: str
    filename: str
    content_type: str
    content: bytes
    sha256: str
    pages: tuple[RenderedPage, ...]
    # Read-only copy; its content is already bound into `content` through the QR payload.
    verification: Mapping[str, Any] = field(compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "verification", MappingProxyType(dict(self.verification)))

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    def sections(self) -> Iterator[RenderedSection]:
        for page in self.pages:
            yield from page.sections

    def section(self, title: str) -> RenderedSection | None:
        for s in self.sections():
            if s.title == title:
                return s
        return None

    def text(self) -> str:
        out: list[str] = []
        for s in self.sections():
            out.append(s.title)
            out.extend(s.lines)
            out.extend(" | ".join(row) for row in s.table)
        return "\n".join(out)

    def layout_to_dict(self) -> list[dict[str, Any]]:
        return [
            {
                "number": p.number,
                "sections": [
                    {"title": s.title, "lines": list(s.lines), "table": [list(r) for r in s.table]}
                    for s in p.sections
                ],
            }
            for p in self.pages
        ]

    @staticmethod
    def layout_from_dict(pages: list[Mapping[str, Any]]) -> tuple[RenderedPage, ...]:
        return tuple(
            RenderedPage(
                number=int(p["number"]),
                sections=tuple(
                    RenderedSection(
                        title=str(s["title"]),
                        lines=tuple(s.get("lines") or ()),
                        table=tuple(tuple(r) for r in s.get("table") or ()),
                    )
                    for s in p["sections"]
                ),
            )
            for p in pages
        )


@dataclass(frozen=True)
class DocumentRecord:
    document_id: str
    pack_id: str  # lookup-only back reference
    descriptor: DocumentDescriptor
    artifact: RenderedArtifact

    @property
    def document_type(self) -> DocumentType:
        return self.descriptor.document_type

    @property
    def reference_number(self) -> str:
        return self.descriptor.reference_number


@dataclass(frozen=True)
class DocumentSet:
    """Exactly one document per type; construction fails otherwise."""

    cover_sheet: DocumentRecord
    export_certificate: DocumentRecord
    compliance_assessment: DocumentRecord
    deforestation_report: DocumentRecord
    due_diligence_statement: DocumentRecord
    traceability_report: DocumentRecord

    def __post_init__(self) -> None:
        refs: set[str] = set()
        pack_ids: set[str] = set()
        for dt in DOCUMENT_TYPES:
            record = getattr(self, dt.value)
            if record.document_type is not dt:
                raise PackIncompleteError(dt.value, f"slot holds a {record.document_type.value}")
            refs.add(record.reference_number)
            pack_ids.add(record.pack_id)
        if len(refs) != len(DOCUMENT_TYPES):
            raise PackIncompleteError("document_set", "reference numbers are not unique")
        if len(pack_ids) != 1:
            raise PackIncompleteError("document_set", "documents belong to different packs")

    @classmethod
    def from_records(cls, records: list[DocumentRecord] | tuple[DocumentRecord, ...]) -> "DocumentSet":
        by_type: dict[DocumentType, DocumentRecord] = {}
        for record in records:
            if record.document_type in by_type:
                raise PackIncompleteError(record.document_type.value, "duplicate document")
            by_type[record.document_type] = record
        for dt in DOCUMENT_TYPES:
            if dt not in by_type:
                raise PackIncompleteError(dt.value, "document missing from pack")
        return cls(**{dt.value: by_type[dt] for dt in DOCUMENT_TYPES})

    def __iter__(self) -> Iterator[DocumentRecord]:
        for dt in DOCUMENT_TYPES:
            yield getattr(self, dt.value)

    def __len__(self) -> int:
        return len(DOCUMENT_TYPES)

    def by_type(self, document_type: DocumentType) -> DocumentRecord:
        return getattr(self, document_type.value)

    def reference_numbers(self) -> dict[DocumentType, str]:
        return {r.document_type: r.reference_number for r in self}


@dataclass(frozen=True)
class CompliancePack:
    """Aggregate root. Instances are immutable; transitions return new packs."""

    pack_id: str
    producer: ProducerRecord
    exporter: ExporterMetadata
    determination: RiskDetermination
    status: PackStatus
    created_utc: datetime
    storage_expiry_date: date
    documents: DocumentSet | None = None
    audit_trail: tuple[AuditEntry, ...] = ()
    boundary: tuple[BoundaryPoint, ...] = ()
    submission_id: str | None = None
    version: int = 0

    @property
    def producer_ref(self) -> str:
        return self.producer.producer_id

    @property
    def is_decided(self) -> bool:
        return self.status in (PackStatus.APPROVED, PackStatus.REJECTED, PackStatus.PUBLISHED)

    @property
    def is_public(self) -> bool:
        return self.status in (PackStatus.APPROVED, PackStatus.PUBLISHED)

    def last_entry(self, decision: AuditDecision) -> AuditEntry | None:
        for entry in reversed(self.audit_trail):
            if entry.decision is decision:
                return entry
        return None

    def with_status(self, status: PackStatus, entry: AuditEntry) -> "CompliancePack":
        return replace(
            self,
            status=status,
            audit_trail=self.audit_trail + (entry,),
            version=self.version + 1,
        )

    def with_audit(self, entry: AuditEntry) -> "CompliancePack":
        # Audit appends do not move the status version.
        return replace(self, audit_trail=self.audit_trail + (entry,))

    def summary(self) -> dict[str, Any]:
        generated = self.last_entry(AuditDecision.GENERATED)
        decided = self.last_entry(AuditDecision.APPROVED) or self.last_entry(AuditDecision.REJECTED)
        return {
            "pack_id": self.pack_id,
            "producer_id": self.producer.producer_id,
            "producer_name": self.producer.name,
            "exporter_name": self.exporter.exporter_name,
            "shipment_id": self.exporter.shipment_id,
            "commodity": self.exporter.commodity,
            "status": self.status.value,
            "risk_level": self.determination.risk_level.value,
            "compliance_score": self.determination.compliance_score,
            "generated_utc": generated.timestamp.isoformat() if generated else None,
            "decided_by": decided.actor if decided else None,
            "decided_utc": decided.timestamp.isoformat() if decided else None,
            "storage_expiry_date": self.storage_expiry_date.isoformat(),
        }

    def header_to_dict(self) -> dict[str, Any]:
        """Serializable pack fields, excluding documents and the audit trail."""

        return {
            "pack_id": self.pack_id,
            "producer": self.producer.to_dict(),
            "exporter": self.exporter.to_dict(),
            "determination": self.determination.to_dict(),
            "status": self.status.value,
            "created_utc": self.created_utc.isoformat(),
            "storage_expiry_date": self.storage_expiry_date.isoformat(),
            "boundary": [p.to_dict() for p in self.boundary],
            "submission_id": self.submission_id,
            "version": self.version,
        }

    @classmethod
    def from_header_dict(
        cls,
        obj: Mapping[str, Any],
        *,
        documents: DocumentSet | None,
        audit_trail: tuple[AuditEntry, ...],
    ) -> "CompliancePack":
        return cls(
            pack_id=str(obj["pack_id"]),
            producer=ProducerRecord.from_dict(obj["producer"]),
            exporter=ExporterMetadata.from_dict(obj["exporter"]),
            determination=RiskDetermination.from_dict(obj["determination"]),
            status=PackStatus(obj["status"]),
            created_utc=datetime.fromisoformat(str(obj["created_utc"])),
            storage_expiry_date=date.fromisoformat(str(obj["storage_expiry_date"])),
            documents=documents,
            audit_trail=audit_trail,
            boundary=tuple(BoundaryPoint.from_mapping(p) for p in obj.get("boundary") or ()),
            submission_id=obj.get("submission_id"),
            version=int(obj.get("version", 0)),
        )


@dataclass(frozen=True)
class DocumentDownload:
    content: bytes
    content_type: str
    filename: str
    document_type: DocumentType
    reference_number: str
    pack_id: str
    sha256: str = field(default="")
