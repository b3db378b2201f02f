from __future__ import annotations

from datetime import date
from typing import Iterable, Protocol

from eudr_packs.packs.types import (
    AuditEntry,
    BoundarySubmission,
    CompliancePack,
    DocumentRecord,
    PackStatus,
)


class PackRepository(Protocol):
    """Persistence contract shared by the in-memory and DuckDB stores.

    Status changes only go through `compare_and_set_status`, which succeeds for
    exactly one caller per version. The audit log is append-only and outlives
    pack deletion.
    """

    def save_pack(self, pack: CompliancePack) -> None: ...

    def get_pack(self, pack_id: str) -> CompliancePack | None: ...

    def has_pack(self, pack_id: str) -> bool: ...

    def list_packs(self, statuses: Iterable[PackStatus] | None = None) -> list[CompliancePack]: ...

    def compare_and_set_status(
        self,
        pack_id: str,
        expected_version: int,
        new_status: PackStatus,
        entry: AuditEntry,
    ) -> bool: ...

    def append_audit(self, pack_id: str, entry: AuditEntry) -> None: ...

    def audit_log(self, pack_id: str) -> tuple[AuditEntry, ...]: ...

    def get_document(self, document_id: str) -> DocumentRecord | None: ...

    def find_reference(self, reference_number: str) -> str | None: ...

    def delete_pack(self, pack_id: str, entry: AuditEntry) -> bool: ...

    def expiring_before(self, day: date) -> list[str]: ...

    def save_submission(self, submission: BoundarySubmission) -> None: ...

    def latest_submission(self, producer_id: str) -> BoundarySubmission | None: ...

    def submissions(self, producer_id: str) -> list[BoundarySubmission]: ...
