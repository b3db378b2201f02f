from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from typing import Iterable

from eudr_packs.packs.types import (
    AuditEntry,
    BoundarySubmission,
    CompliancePack,
    DocumentRecord,
    PackStatus,
)


class InMemoryPackStore:
    """Lock-guarded dict store; suitable for tests and single-process use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._packs: dict[str, CompliancePack] = {}
        self._documents: dict[str, DocumentRecord] = {}
        self._references: dict[str, str] = {}
        self._audit: dict[str, list[AuditEntry]] = {}
        self._submissions: dict[str, list[BoundarySubmission]] = {}

    def _with_audit(self, pack: CompliancePack) -> CompliancePack:
        return replace(pack, audit_trail=tuple(self._audit.get(pack.pack_id, ())))

    def save_pack(self, pack: CompliancePack) -> None:
        with self._lock:
            if pack.pack_id in self._packs:
                raise ValueError(f"pack already stored: {pack.pack_id}")
            records = list(pack.documents) if pack.documents is not None else []
            for record in records:
                if record.reference_number in self._references:
                    raise ValueError(f"reference number already stored: {record.reference_number}")
            for record in records:
                self._documents[record.document_id] = record
                self._references[record.reference_number] = pack.pack_id
            self._audit.setdefault(pack.pack_id, []).extend(pack.audit_trail)
            self._packs[pack.pack_id] = pack

    def get_pack(self, pack_id: str) -> CompliancePack | None:
        with self._lock:
            pack = self._packs.get(pack_id)
            return self._with_audit(pack) if pack is not None else None

    def has_pack(self, pack_id: str) -> bool:
        with self._lock:
            return pack_id in self._packs

    def list_packs(self, statuses: Iterable[PackStatus] | None = None) -> list[CompliancePack]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            packs = [
                self._with_audit(p)
                for p in self._packs.values()
                if wanted is None or p.status in wanted
            ]
        return sorted(packs, key=lambda p: p.pack_id)

    def compare_and_set_status(
        self,
        pack_id: str,
        expected_version: int,
        new_status: PackStatus,
        entry: AuditEntry,
    ) -> bool:
        with self._lock:
            pack = self._packs.get(pack_id)
            if pack is None or pack.version != expected_version:
                return False
            self._packs[pack_id] = replace(pack, status=new_status, version=pack.version + 1)
            self._audit.setdefault(pack_id, []).append(entry)
            return True

    def append_audit(self, pack_id: str, entry: AuditEntry) -> None:
        with self._lock:
            self._audit.setdefault(pack_id, []).append(entry)

    def audit_log(self, pack_id: str) -> tuple[AuditEntry, ...]:
        with self._lock:
            return tuple(self._audit.get(pack_id, ()))

    def get_document(self, document_id: str) -> DocumentRecord | None:
        with self._lock:
            return self._documents.get(document_id)

    def find_reference(self, reference_number: str) -> str | None:
        with self._lock:
            return self._references.get(reference_number)

    def delete_pack(self, pack_id: str, entry: AuditEntry) -> bool:
        with self._lock:
            pack = self._packs.get(pack_id)
            if pack is None:
                return False
            self._audit.setdefault(pack_id, []).append(entry)
            if pack.documents is not None:
                for record in pack.documents:
                    self._documents.pop(record.document_id, None)
                    self._references.pop(record.reference_number, None)
            del self._packs[pack_id]
            return True

    def expiring_before(self, day: date) -> list[str]:
        with self._lock:
            return sorted(p.pack_id for p in self._packs.values() if p.storage_expiry_date < day)

    def save_submission(self, submission: BoundarySubmission) -> None:
        with self._lock:
            self._submissions.setdefault(submission.producer_id, []).append(submission)

    def latest_submission(self, producer_id: str) -> BoundarySubmission | None:
        with self._lock:
            items = self._submissions.get(producer_id)
            return items[-1] if items else None

    def submissions(self, producer_id: str) -> list[BoundarySubmission]:
        with self._lock:
            return list(self._submissions.get(producer_id, ()))
