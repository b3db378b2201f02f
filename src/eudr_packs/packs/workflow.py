"""Approval state machine for compliance packs.

Candidate -> PendingApproval -> {Approved, Rejected}; Approved -> Published.
Decisions are one-shot: the first decider wins the version check and every
later call on the same pack raises `AlreadyDecidedError`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from eudr_packs.errors import AlreadyDecidedError, InvalidTransitionError, NotFoundError
from eudr_packs.store.base import PackRepository

from .determinism import utc_now
from .types import AuditDecision, AuditEntry, CompliancePack, DocumentDownload, PackStatus

LOGGER = logging.getLogger(__name__)


VALID_TRANSITIONS: dict[PackStatus, frozenset[PackStatus]] = {
    PackStatus.CANDIDATE: frozenset({PackStatus.PENDING_APPROVAL}),
    PackStatus.PENDING_APPROVAL: frozenset({PackStatus.APPROVED, PackStatus.REJECTED}),
    PackStatus.APPROVED: frozenset({PackStatus.PUBLISHED}),
    PackStatus.REJECTED: frozenset(),
    PackStatus.PUBLISHED: frozenset(),
}


class DecisionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target(self) -> PackStatus:
        return PackStatus.APPROVED if self is DecisionAction.APPROVE else PackStatus.REJECTED

    @property
    def audit_decision(self) -> AuditDecision:
        return AuditDecision.APPROVED if self is DecisionAction.APPROVE else AuditDecision.REJECTED


def can_transition(current: PackStatus, target: PackStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


def check_transition(pack: CompliancePack, target: PackStatus) -> None:
    if can_transition(pack.status, target):
        return
    if target in (PackStatus.APPROVED, PackStatus.REJECTED) and pack.is_decided:
        raise AlreadyDecidedError(
            f"Pack {pack.pack_id} was already decided (status {pack.status.value})"
        )
    raise InvalidTransitionError(
        f"Pack {pack.pack_id} cannot move from {pack.status.value} to {target.value}"
    )


def _require(store: PackRepository, pack_id: str) -> CompliancePack:
    pack = store.get_pack(pack_id)
    if pack is None:
        raise NotFoundError(f"Unknown pack: {pack_id}")
    return pack


def decide(
    store: PackRepository,
    pack_id: str,
    action: DecisionAction | str,
    actor: str,
    notes: str = "",
    *,
    now: datetime | None = None,
) -> CompliancePack:
    action = DecisionAction(action)
    pack = _require(store, pack_id)
    check_transition(pack, action.target)

    entry = AuditEntry(actor=actor, decision=action.audit_decision, timestamp=now or utc_now(), notes=notes)
    if not store.compare_and_set_status(pack_id, pack.version, action.target, entry):
        raise AlreadyDecidedError(f"Pack {pack_id} was decided concurrently")

    LOGGER.info("Pack %s %s by %s", pack_id, action.target.value, actor)
    return _require(store, pack_id)


def publish(
    store: PackRepository,
    pack_id: str,
    actor: str,
    *,
    now: datetime | None = None,
) -> CompliancePack:
    pack = _require(store, pack_id)
    check_transition(pack, PackStatus.PUBLISHED)

    entry = AuditEntry(actor=actor, decision=AuditDecision.PUBLISHED, timestamp=now or utc_now())
    if not store.compare_and_set_status(pack_id, pack.version, PackStatus.PUBLISHED, entry):
        raise InvalidTransitionError(f"Pack {pack_id} changed state while publishing")

    LOGGER.info("Pack %s published by %s", pack_id, actor)
    return _require(store, pack_id)


def delete_pack(
    store: PackRepository,
    pack_id: str,
    actor: str,
    notes: str = "",
    *,
    now: datetime | None = None,
) -> None:
    """Remove a pack and its documents; the deletion is audited first."""

    if not actor.strip():
        raise ValueError("delete_pack requires an actor")
    entry = AuditEntry(actor=actor, decision=AuditDecision.DELETED, timestamp=now or utc_now(), notes=notes)
    if not store.delete_pack(pack_id, entry):
        raise NotFoundError(f"Unknown pack: {pack_id}")
    LOGGER.info("Pack %s deleted by %s", pack_id, actor)


def review(store: PackRepository, pack_id: str) -> CompliancePack:
    """Reviewer view: full pack regardless of status."""

    return _require(store, pack_id)


def review_document(store: PackRepository, document_id: str) -> DocumentDownload:
    """Reviewer download; unlike the public gateway, PendingApproval documents are visible."""

    record = store.get_document(document_id)
    if record is None:
        raise NotFoundError(f"Unknown document: {document_id}")
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
