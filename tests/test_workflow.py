from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import pytest

from eudr_packs.analysis.risk import classify
from eudr_packs.errors import AlreadyDecidedError, InvalidTransitionError, NotFoundError
from eudr_packs.packs import workflow
from eudr_packs.packs.assembler import assemble
from eudr_packs.packs.types import AuditDecision, CompliancePack, PackStatus


@pytest.fixture
def pending(store, producer, exporter, high_risk_points, fixed_now) -> CompliancePack:
    return assemble(producer, exporter, classify(high_risk_points), store=store, now=fixed_now)


@pytest.mark.parametrize(
    "action, status, decision",
    [
        ("approve", PackStatus.APPROVED, AuditDecision.APPROVED),
        ("reject", PackStatus.REJECTED, AuditDecision.REJECTED),
    ],
)
def test_decide_from_pending(store, pending, action, status, decision) -> None:
    decided = workflow.decide(store, pending.pack_id, action, "reviewer@lacra", "looks fine")
    assert decided.status is status
    last = decided.audit_trail[-1]
    assert (last.actor, last.decision, last.notes) == ("reviewer@lacra", decision, "looks fine")
    assert [e.decision for e in decided.audit_trail] == [AuditDecision.GENERATED, decision]


@pytest.mark.parametrize("first", ["approve", "reject"])
@pytest.mark.parametrize("second", ["approve", "reject"])
def test_second_decision_is_rejected(store, pending, first, second) -> None:
    workflow.decide(store, pending.pack_id, first, "a")
    with pytest.raises(AlreadyDecidedError):
        workflow.decide(store, pending.pack_id, second, "b")
    # AlreadyDecided is a kind of invalid transition.
    with pytest.raises(InvalidTransitionError):
        workflow.decide(store, pending.pack_id, second, "b")


def test_decide_from_candidate_is_invalid(store, pending) -> None:
    candidate = replace(pending, pack_id=pending.pack_id[:-6] + "000000", status=PackStatus.CANDIDATE, documents=None)
    store.save_pack(candidate)
    with pytest.raises(InvalidTransitionError) as excinfo:
        workflow.decide(store, candidate.pack_id, "approve", "a")
    assert not isinstance(excinfo.value, AlreadyDecidedError)


def test_decide_from_published_is_already_decided(store, pending) -> None:
    workflow.decide(store, pending.pack_id, "approve", "a")
    workflow.publish(store, pending.pack_id, "a")
    with pytest.raises(AlreadyDecidedError):
        workflow.decide(store, pending.pack_id, "reject", "b")


def test_publish_requires_approval(store, pending) -> None:
    with pytest.raises(InvalidTransitionError):
        workflow.publish(store, pending.pack_id, "a")
    workflow.decide(store, pending.pack_id, "reject", "a")
    with pytest.raises(InvalidTransitionError):
        workflow.publish(store, pending.pack_id, "a")


def test_publish_once(store, pending) -> None:
    workflow.decide(store, pending.pack_id, "approve", "a")
    published = workflow.publish(store, pending.pack_id, "a")
    assert published.status is PackStatus.PUBLISHED
    with pytest.raises(InvalidTransitionError):
        workflow.publish(store, pending.pack_id, "a")


def test_transition_table_is_closed() -> None:
    assert workflow.VALID_TRANSITIONS[PackStatus.REJECTED] == frozenset()
    assert workflow.VALID_TRANSITIONS[PackStatus.PUBLISHED] == frozenset()
    assert workflow.can_transition(PackStatus.PENDING_APPROVAL, PackStatus.APPROVED)
    assert not workflow.can_transition(PackStatus.REJECTED, PackStatus.PENDING_APPROVAL)


def test_concurrent_decisions_have_one_winner(store, pending) -> None:
    def attempt(i: int) -> str:
        try:
            workflow.decide(store, pending.pack_id, "approve" if i % 2 else "reject", f"r{i}")
            return "won"
        except AlreadyDecidedError:
            return "lost"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(16)))

    assert outcomes.count("won") == 1
    decisions = [e for e in store.audit_log(pending.pack_id) if e.decision is not AuditDecision.GENERATED]
    assert len(decisions) == 1


def test_delete_is_audited_before_removal(store, pending) -> None:
    workflow.delete_pack(store, pending.pack_id, "admin@lacra", "duplicate")
    assert store.get_pack(pending.pack_id) is None
    for record in pending.documents:
        assert store.get_document(record.document_id) is None
    log = store.audit_log(pending.pack_id)
    assert log[-1].decision is AuditDecision.DELETED
    assert log[-1].actor == "admin@lacra"
    with pytest.raises(NotFoundError):
        workflow.delete_pack(store, pending.pack_id, "admin@lacra")
    with pytest.raises(ValueError):
        workflow.delete_pack(store, "whatever", " ")


def test_unknown_pack(store) -> None:
    with pytest.raises(NotFoundError):
        workflow.decide(store, "EUDR-20240101T000000000000Z-000000", "approve", "a")


def test_reviewer_sees_pending_documents(store, pending) -> None:
    record = pending.documents.cover_sheet
    dl = workflow.review_document(store, record.document_id)
    assert dl.content.startswith(b"%PDF")
    assert workflow.review(store, pending.pack_id).status is PackStatus.PENDING_APPROVAL
