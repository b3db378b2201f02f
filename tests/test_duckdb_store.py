from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from pathlib import Path

import pytest

from eudr_packs.errors import AlreadyDecidedError
from eudr_packs.packs import workflow
from eudr_packs.packs.types import AuditDecision, PackStatus
from eudr_packs.service import CompliancePipeline
from eudr_packs.store.duckdb_store import DuckDBPackStore


@pytest.fixture
def db_pipeline(tmp_path: Path, producers, fixed_now):
    store = DuckDBPackStore(tmp_path / "packs" / "packs.duckdb")
    yield CompliancePipeline(store, producers, clock=lambda: fixed_now)
    store.close()


def test_pack_survives_reopen(tmp_path: Path, producers, producer, exporter, high_risk_points, fixed_now) -> None:
    db_path = tmp_path / "packs.duckdb"
    with DuckDBPackStore(db_path) as store:
        pipeline = CompliancePipeline(store, producers, clock=lambda: fixed_now)
        pipeline.submit_boundary(producer.producer_id, high_risk_points)
        out = pipeline.generate_pack(producer.producer_id, exporter)
        original = pipeline.review_pack(out["pack_id"])

    with DuckDBPackStore(db_path) as store:
        loaded = store.get_pack(out["pack_id"])
        assert loaded is not None
        assert loaded.status is PackStatus.PENDING_APPROVAL
        assert loaded.determination == original.determination
        assert loaded.producer == original.producer
        assert loaded.storage_expiry_date == date(2029, 1, 15)
        assert [r.artifact.content for r in loaded.documents] == [r.artifact.content for r in original.documents]
        assert [r.descriptor for r in loaded.documents] == [r.descriptor for r in original.documents]
        assert loaded.documents.cover_sheet.artifact.pages == original.documents.cover_sheet.artifact.pages
        assert store.latest_submission(producer.producer_id).determination == original.determination


def test_cas_and_audit(db_pipeline, producer, exporter, high_risk_points) -> None:
    db_pipeline.submit_boundary(producer.producer_id, high_risk_points)
    pack_id = db_pipeline.generate_pack(producer.producer_id, exporter)["pack_id"]
    store = db_pipeline.store

    db_pipeline.decide_pack(pack_id, "approve", "reviewer")
    with pytest.raises(AlreadyDecidedError):
        db_pipeline.decide_pack(pack_id, "approve", "reviewer")

    decisions = [e.decision for e in store.audit_log(pack_id)]
    assert decisions == [AuditDecision.GENERATED, AuditDecision.APPROVED]
    assert [p.pack_id for p in store.list_packs([PackStatus.APPROVED])] == [pack_id]


def test_concurrent_decide_single_winner(db_pipeline, producer, exporter, high_risk_points) -> None:
    db_pipeline.submit_boundary(producer.producer_id, high_risk_points)
    pack_id = db_pipeline.generate_pack(producer.producer_id, exporter)["pack_id"]

    def attempt(i: int) -> bool:
        try:
            workflow.decide(db_pipeline.store, pack_id, "approve", f"r{i}")
            return True
        except AlreadyDecidedError:
            return False

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(attempt, range(8)))
    assert results.count(True) == 1


def test_delete_keeps_audit_log(db_pipeline, producer, exporter, high_risk_points) -> None:
    db_pipeline.submit_boundary(producer.producer_id, high_risk_points)
    out = db_pipeline.generate_pack(producer.producer_id, exporter)
    store = db_pipeline.store
    ref = store.get_document(out["document_ids"][0]).reference_number

    db_pipeline.delete_pack(out["pack_id"], "admin")
    assert store.get_pack(out["pack_id"]) is None
    assert store.get_document(out["document_ids"][0]) is None
    assert store.find_reference(ref) is None
    assert store.audit_log(out["pack_id"])[-1].decision is AuditDecision.DELETED


def test_expiring_before(db_pipeline, producer, exporter, high_risk_points) -> None:
    db_pipeline.submit_boundary(producer.producer_id, high_risk_points)
    pack_id = db_pipeline.generate_pack(producer.producer_id, exporter)["pack_id"]
    assert db_pipeline.store.expiring_before(date(2029, 1, 15)) == []
    assert db_pipeline.store.expiring_before(date(2029, 1, 16)) == [pack_id]
