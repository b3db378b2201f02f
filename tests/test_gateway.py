from __future__ import annotations

import io
import json
from zipfile import ZipFile

import pytest

from eudr_packs.errors import InvalidReferenceError, NotAvailableError, NotFoundError
from eudr_packs.packs.types import AuditDecision, DocumentType


@pytest.fixture
def pending_pack_id(pipeline, producer, exporter, high_risk_points) -> str:
    pipeline.submit_boundary(producer.producer_id, high_risk_points)
    return pipeline.generate_pack(producer.producer_id, exporter)["pack_id"]


def _first_document(pipeline, pack_id: str) -> str:
    return pipeline.review_pack(pack_id).documents.cover_sheet.document_id


def test_pending_documents_are_not_public(pipeline, pending_pack_id) -> None:
    doc_id = _first_document(pipeline, pending_pack_id)
    with pytest.raises(NotAvailableError):
        pipeline.gateway.get_document(doc_id)
    pipeline.decide_pack(pending_pack_id, "approve", "reviewer")
    assert pipeline.gateway.get_document(doc_id).content.startswith(b"%PDF")


def test_rejected_documents_are_not_public(pipeline, pending_pack_id) -> None:
    doc_id = _first_document(pipeline, pending_pack_id)
    pipeline.decide_pack(pending_pack_id, "reject", "reviewer", "GPS mismatch")
    with pytest.raises(NotAvailableError):
        pipeline.gateway.download_document(doc_id)
    with pytest.raises(NotAvailableError):
        pipeline.gateway.export_pack(pending_pack_id)


def test_unknown_document(pipeline) -> None:
    with pytest.raises(NotFoundError):
        pipeline.gateway.get_document("DOC-0000000000000000")


def test_listings_follow_lifecycle(pipeline, producer, second_producer, pending_pack_id, low_risk_points) -> None:
    gw = pipeline.gateway
    assert [p["pack_id"] for p in gw.list_pending()] == [pending_pack_id]
    assert gw.list_approved() == []
    # Producer with an active pack is no longer ready; the other one becomes ready once assessed.
    assert gw.list_ready() == []
    pipeline.submit_boundary(second_producer.producer_id, low_risk_points)
    assert [r.producer.producer_id for r in gw.list_ready()] == [second_producer.producer_id]

    pipeline.decide_pack(pending_pack_id, "approve", "reviewer")
    assert gw.list_pending() == []
    approved = gw.list_approved()
    assert [p["pack_id"] for p in approved] == [pending_pack_id]
    assert approved[0]["decided_by"] == "reviewer"

    gw.publish(pending_pack_id, "reviewer")
    assert [p["status"] for p in gw.list_approved()] == ["published"]


def test_rejected_producer_is_ready_again(pipeline, producer, pending_pack_id) -> None:
    pipeline.decide_pack(pending_pack_id, "reject", "reviewer")
    assert [r.producer.producer_id for r in pipeline.gateway.list_ready()] == [producer.producer_id]


def test_export_zip_contains_manifest_and_pdfs(pipeline, pending_pack_id) -> None:
    pipeline.decide_pack(pending_pack_id, "approve", "reviewer")
    first = pipeline.gateway.export_pack(pending_pack_id)
    assert first == pipeline.gateway.export_pack(pending_pack_id)

    with ZipFile(io.BytesIO(first)) as zf:
        names = zf.namelist()
        manifest = json.loads(zf.read("manifest.json"))
    assert names == sorted(names)
    assert len([n for n in names if n.endswith(".pdf")]) == 6
    assert manifest["pack_id"] == pending_pack_id
    assert {d["filename"] for d in manifest["documents"]} <= set(names)


def test_request_pack_appends_audit(pipeline, pending_pack_id) -> None:
    with pytest.raises(NotAvailableError):
        pipeline.gateway.request_pack(pending_pack_id, "EXP-001")
    pipeline.decide_pack(pending_pack_id, "approve", "reviewer")
    pack = pipeline.gateway.request_pack(pending_pack_id, "EXP-001", "shipment 42")
    assert pack.audit_trail[-1].decision is AuditDecision.REQUESTED
    assert pack.status.value == "approved"
    # Requests do not consume the status version; publishing still works.
    assert pipeline.publish_pack(pending_pack_id, "reviewer")["status"] == "published"


def test_verify_reference(pipeline, pending_pack_id) -> None:
    pack = pipeline.review_pack(pending_pack_id)
    ref = pack.documents.by_type(DocumentType.TRACEABILITY_REPORT).reference_number
    with pytest.raises(NotAvailableError):
        pipeline.gateway.verify_reference(ref)
    pipeline.decide_pack(pending_pack_id, "approve", "reviewer")
    info = pipeline.gateway.verify_reference(ref)
    assert info["pack_id"] == pending_pack_id
    assert info["document_type"] == "traceability_report"
    with pytest.raises(InvalidReferenceError):
        pipeline.gateway.verify_reference(ref[:-4] + "ZZZZ")
