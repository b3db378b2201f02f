"""Public read side for packs and documents.

Only Approved and Published packs are externally retrievable. Reviewers see
PendingApproval documents through `workflow.review_document` instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from eudr_packs.errors import NotAvailableError, NotFoundError
from eudr_packs.producers import ProducerDirectory
from eudr_packs.store.base import PackRepository

from . import workflow
from .determinism import utc_now
from .manifest import build_manifest, export_zip_bytes
from .references import parse_reference_number
from .types import (
    AuditDecision,
    AuditEntry,
    BoundarySubmission,
    CompliancePack,
    DocumentDownload,
    DocumentRecord,
    PackStatus,
    ProducerRecord,
    RenderedArtifact,
)
from .validate import validate_pack_manifest_v1

LOGGER = logging.getLogger(__name__)

_ACTIVE = (PackStatus.PENDING_APPROVAL, PackStatus.APPROVED, PackStatus.PUBLISHED)
_PUBLIC = (PackStatus.APPROVED, PackStatus.PUBLISHED)


@dataclass(frozen=True)
class ReadyProducer:
    producer: ProducerRecord
    submission: BoundarySubmission

    def to_dict(self) -> dict[str, Any]:
        det = self.submission.determination
        return {
            "producer_id": self.producer.producer_id,
            "name": self.producer.name,
            "county": self.producer.county,
            "commodities": list(self.producer.commodities),
            "submission_id": self.submission.submission_id,
            "risk_level": det.risk_level.value,
            "compliance_score": det.compliance_score,
            "area_ha": round(self.submission.area_ha, 4),
        }


class RetrievalGateway:
    def __init__(self, store: PackRepository, producers: ProducerDirectory) -> None:
        self.store = store
        self.producers = producers

    # -- listings ----------------------------------------------------------

    def list_ready(self) -> list[ReadyProducer]:
        """Eligible producers: onboarded, mapped, assessed, and without an active pack."""

        busy = {p.producer_ref for p in self.store.list_packs(_ACTIVE)}
        ready: list[ReadyProducer] = []
        for producer in self.producers:
            if not producer.onboarding_complete or producer.producer_id in busy:
                continue
            submission = self.store.latest_submission(producer.producer_id)
            if submission is None:
                continue
            if not producer.gps_reference and not submission.points:
                continue
            ready.append(ReadyProducer(producer=producer, submission=submission))
        return ready

    def list_pending(self) -> list[dict[str, Any]]:
        return [p.summary() for p in self.store.list_packs([PackStatus.PENDING_APPROVAL])]

    def list_approved(self) -> list[dict[str, Any]]:
        return [p.summary() for p in self.store.list_packs(_PUBLIC)]

    # -- documents ---------------------------------------------------------

    def _public_pack(self, pack_id: str) -> CompliancePack:
        pack = self.store.get_pack(pack_id)
        if pack is None:
            raise NotFoundError(f"Unknown pack: {pack_id}")
        if not pack.is_public:
            raise NotAvailableError(
                f"Pack {pack_id} is {pack.status.value}; only approved packs are retrievable"
            )
        return pack

    def _public_record(self, document_id: str) -> DocumentRecord:
        record = self.store.get_document(document_id)
        if record is None:
            raise NotFoundError(f"Unknown document: {document_id}")
        self._public_pack(record.pack_id)
        return record

    def get_document(self, document_id: str) -> RenderedArtifact:
        return self._public_record(document_id).artifact

    def download_document(self, document_id: str) -> DocumentDownload:
        record = self._public_record(document_id)
        a = record.artifact
        return DocumentDownload(
            content=a.content,
            content_type=a.content_type,
            filename=a.filename,
            document_type=record.document_type,
            reference_number=record.reference_number,
            pack_id=record.pack_id,
            sha256=a.sha256,
        )

    def documents(self, pack_id: str) -> list[dict[str, Any]]:
        pack = self._public_pack(pack_id)
        return [
            {
                "document_id": r.document_id,
                "document_type": r.document_type.value,
                "reference_number": r.reference_number,
                "filename": r.artifact.filename,
            }
            for r in pack.documents or ()
        ]

    # -- pack-level actions ------------------------------------------------

    def publish(self, pack_id: str, actor: str) -> CompliancePack:
        return workflow.publish(self.store, pack_id, actor)

    def export_pack(self, pack_id: str) -> bytes:
        """Deterministic zip of the six PDFs plus a validated manifest.json."""

        pack = self._public_pack(pack_id)
        manifest = build_manifest(pack)
        validate_pack_manifest_v1(manifest)
        return export_zip_bytes(pack, manifest)

    def request_pack(
        self,
        pack_id: str,
        requester: str,
        notes: str = "",
        *,
        now: datetime | None = None,
    ) -> CompliancePack:
        self._public_pack(pack_id)
        entry = AuditEntry(
            actor=requester,
            decision=AuditDecision.REQUESTED,
            timestamp=now or utc_now(),
            notes=notes,
        )
        self.store.append_audit(pack_id, entry)
        LOGGER.info("Pack %s requested by %s", pack_id, requester)
        return self._public_pack(pack_id)

    def verify_reference(self, reference_number: str) -> dict[str, Any]:
        """Resolve a reference number to its approved pack and document."""

        pack_id, document_type = parse_reference_number(reference_number)
        stored = self.store.find_reference(reference_number)
        if stored is None:
            raise NotFoundError(f"No document carries reference {reference_number}")
        pack = self._public_pack(stored)
        record = pack.documents.by_type(document_type) if pack.documents else None
        if stored != pack_id or record is None or record.reference_number != reference_number:
            raise NotFoundError(f"Reference {reference_number} does not resolve to pack {pack_id}")
        return {
            "reference_number": reference_number,
            "pack_id": pack_id,
            "document_type": document_type.value,
            "document_id": record.document_id,
            "status": pack.status.value,
            "producer_id": pack.producer_ref,
            "sha256": record.artifact.sha256,
        }
