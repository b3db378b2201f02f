from __future__ import annotations

from eudr_packs.packs.references import parse_reference_number
from eudr_packs.packs.templates import CROSS_REFERENCE_TITLE
from eudr_packs.packs.types import DOCUMENT_TYPES


def test_high_risk_boundary_to_approved_downloads(pipeline, producer, exporter) -> None:
    det = pipeline.submit_boundary(producer.producer_id, [(6.430, -9.38), (6.431, -9.379), (6.432, -9.381)])
    assert det.risk_level.value == "high"
    assert det.compliance_score == 45

    generated = pipeline.generate_pack(producer.producer_id, exporter)
    assert generated["status"] == "pending_approval"
    assert len(generated["document_ids"]) == 6

    assert pipeline.decide_pack(generated["pack_id"], "approve", "reviewer@lacra")["status"] == "approved"

    pack = pipeline.review_pack(generated["pack_id"])
    all_refs = {r.reference_number for r in pack.documents}
    assert len(all_refs) == 6

    seen_types = []
    for document_id in generated["document_ids"]:
        download = pipeline.download_document(document_id)
        assert download.content.startswith(b"%PDF")
        assert download.content_type == "application/pdf"
        assert download.filename.startswith(f"EUDR_{download.document_type.value}_{producer.producer_id}_")
        assert parse_reference_number(download.reference_number) == (generated["pack_id"], download.document_type)

        artifact = pipeline.gateway.get_document(document_id)
        xref = artifact.section(CROSS_REFERENCE_TITLE)
        assert xref is not None
        assert {row[1] for row in xref.table[1:]} == all_refs
        seen_types.append(download.document_type)

    assert seen_types == list(DOCUMENT_TYPES)
