"""DuckDB-backed pack store.

One connection per store, serialized through a re-entrant lock. Status
changes run as a version-checked UPDATE inside a transaction, so concurrent
deciders on the same pack cannot both win.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date
from pathlib import Path
from typing import Any, Iterable

import duckdb

from eudr_packs.packs.types import (
    AuditEntry,
    BoundarySubmission,
    CompliancePack,
    DocumentRecord,
    DocumentSet,
    DocumentType,
    PackStatus,
    RenderedArtifact,
    descriptor_from_dict,
    descriptor_to_dict,
)

LOGGER = logging.getLogger(__name__)

_SCHEMA = (
    "CREATE SEQUENCE IF NOT EXISTS audit_seq",
    "CREATE SEQUENCE IF NOT EXISTS submission_seq",
    """
    CREATE TABLE IF NOT EXISTS packs (
        pack_id VARCHAR PRIMARY KEY,
        producer_id VARCHAR NOT NULL,
        status VARCHAR NOT NULL,
        version INTEGER NOT NULL,
        created_utc VARCHAR NOT NULL,
        storage_expiry_date DATE NOT NULL,
        payload VARCHAR NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS documents (
        document_id VARCHAR PRIMARY KEY,
        pack_id VARCHAR NOT NULL,
        document_type VARCHAR NOT NULL,
        reference_number VARCHAR NOT NULL UNIQUE,
        descriptor VARCHAR NOT NULL,
        title VARCHAR NOT NULL,
        filename VARCHAR NOT NULL,
        content_type VARCHAR NOT NULL,
        content BLOB NOT NULL,
        sha256 VARCHAR NOT NULL,
        layout VARCHAR NOT NULL,
        verification VARCHAR NOT NULL,
        storage_expiry_date DATE NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS documents_pack_idx ON documents (pack_id)",
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        seq BIGINT DEFAULT nextval('audit_seq'),
        pack_id VARCHAR NOT NULL,
        actor VARCHAR NOT NULL,
        decision VARCHAR NOT NULL,
        timestamp VARCHAR NOT NULL,
        notes VARCHAR NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS boundary_submissions (
        seq BIGINT DEFAULT nextval('submission_seq'),
        submission_id VARCHAR PRIMARY KEY,
        producer_id VARCHAR NOT NULL,
        submitted_utc VARCHAR NOT NULL,
        payload VARCHAR NOT NULL
    )
    """,
)

_DOCUMENT_COLUMNS = (
    "document_id, pack_id, document_type, reference_number, descriptor, title, filename, "
    "content_type, content, sha256, layout, verification"
)


class DuckDBPackStore:
    def __init__(self, path: str | Path = ":memory:") -> None:
        target = str(path)
        if target != ":memory:":
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        self.path = target
        self._lock = threading.RLock()
        self._con = duckdb.connect(target)
        for stmt in _SCHEMA:
            self._con.execute(stmt)

    def close(self) -> None:
        with self._lock:
            self._con.close()

    def __enter__(self) -> "DuckDBPackStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _rows(self, sql: str, params: Iterable[Any] = ()) -> list[tuple[Any, ...]]:
        return self._con.execute(sql, list(params)).fetchall()

    # -- packs -------------------------------------------------------------

    def save_pack(self, pack: CompliancePack) -> None:
        with self._lock:
            if self.has_pack(pack.pack_id):
                raise ValueError(f"pack already stored: {pack.pack_id}")
            self._con.begin()
            try:
                self._con.execute(
                    "INSERT INTO packs VALUES (?, ?, ?, ?, ?, ?, ?)",
                    [
                        pack.pack_id,
                        pack.producer_ref,
                        pack.status.value,
                        pack.version,
                        pack.created_utc.isoformat(),
                        pack.storage_expiry_date,
                        json.dumps(pack.header_to_dict(), sort_keys=True),
                    ],
                )
                for record in pack.documents or ():
                    self._insert_document(record, pack.storage_expiry_date)
                for entry in pack.audit_trail:
                    self._insert_audit(pack.pack_id, entry)
                self._con.commit()
            except duckdb.Error:
                self._con.rollback()
                raise

    def _insert_document(self, record: DocumentRecord, expiry: date) -> None:
        a = record.artifact
        self._con.execute(
            f"INSERT INTO documents ({_DOCUMENT_COLUMNS}, storage_expiry_date) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                record.document_id,
                record.pack_id,
                record.document_type.value,
                record.reference_number,
                json.dumps(descriptor_to_dict(record.descriptor), sort_keys=True),
                a.title,
                a.filename,
                a.content_type,
                a.content,
                a.sha256,
                json.dumps(a.layout_to_dict(), sort_keys=True),
                json.dumps(dict(a.verification), sort_keys=True),
                expiry,
            ],
        )

    def _insert_audit(self, pack_id: str, entry: AuditEntry) -> None:
        self._con.execute(
            "INSERT INTO audit_log (pack_id, actor, decision, timestamp, notes) VALUES (?, ?, ?, ?, ?)",
            [pack_id, entry.actor, entry.decision.value, entry.timestamp.isoformat(), entry.notes],
        )

    def _document_from_row(self, row: tuple[Any, ...]) -> DocumentRecord:
        (
            document_id,
            pack_id,
            document_type,
            reference,
            descriptor,
            title,
            filename,
            content_type,
            content,
            sha256,
            layout,
            verification,
        ) = row
        artifact = RenderedArtifact(
            document_type=DocumentType(document_type),
            reference_number=reference,
            title=title,
            filename=filename,
            content_type=content_type,
            content=bytes(content),
            sha256=sha256,
            pages=RenderedArtifact.layout_from_dict(json.loads(layout)),
            verification=json.loads(verification),
        )
        return DocumentRecord(
            document_id=document_id,
            pack_id=pack_id,
            descriptor=descriptor_from_dict(json.loads(descriptor)),
            artifact=artifact,
        )

    def _load(self, pack_id: str, status: str, version: int, payload: str) -> CompliancePack:
        docs = [
            self._document_from_row(r)
            for r in self._rows(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE pack_id = ? ORDER BY document_type",
                [pack_id],
            )
        ]
        header = json.loads(payload)
        header["status"] = status
        header["version"] = version
        return CompliancePack.from_header_dict(
            header,
            documents=DocumentSet.from_records(docs) if docs else None,
            audit_trail=self.audit_log(pack_id),
        )

    def get_pack(self, pack_id: str) -> CompliancePack | None:
        with self._lock:
            rows = self._rows(
                "SELECT pack_id, status, version, payload FROM packs WHERE pack_id = ?", [pack_id]
            )
            return self._load(*rows[0]) if rows else None

    def has_pack(self, pack_id: str) -> bool:
        with self._lock:
            return bool(self._rows("SELECT 1 FROM packs WHERE pack_id = ?", [pack_id]))

    def list_packs(self, statuses: Iterable[PackStatus] | None = None) -> list[CompliancePack]:
        with self._lock:
            rows = self._rows("SELECT pack_id, status, version, payload FROM packs ORDER BY pack_id")
            wanted = {s.value for s in statuses} if statuses is not None else None
            return [self._load(*r) for r in rows if wanted is None or r[1] in wanted]

    def compare_and_set_status(
        self,
        pack_id: str,
        expected_version: int,
        new_status: PackStatus,
        entry: AuditEntry,
    ) -> bool:
        with self._lock:
            self._con.begin()
            try:
                updated = self._con.execute(
                    "UPDATE packs SET status = ?, version = version + 1 WHERE pack_id = ? AND version = ?",
                    [new_status.value, pack_id, expected_version],
                ).fetchone()
                if not updated or updated[0] != 1:
                    self._con.rollback()
                    return False
                self._insert_audit(pack_id, entry)
                self._con.commit()
                return True
            except duckdb.Error:
                self._con.rollback()
                raise

    def append_audit(self, pack_id: str, entry: AuditEntry) -> None:
        with self._lock:
            self._insert_audit(pack_id, entry)

    def audit_log(self, pack_id: str) -> tuple[AuditEntry, ...]:
        with self._lock:
            rows = self._rows(
                "SELECT actor, decision, timestamp, notes FROM audit_log WHERE pack_id = ? ORDER BY seq",
                [pack_id],
            )
        return tuple(
            AuditEntry.from_dict({"actor": a, "decision": d, "timestamp": t, "notes": n})
            for a, d, t, n in rows
        )

    # -- documents ---------------------------------------------------------

    def get_document(self, document_id: str) -> DocumentRecord | None:
        with self._lock:
            rows = self._rows(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE document_id = ?", [document_id]
            )
            return self._document_from_row(rows[0]) if rows else None

    def find_reference(self, reference_number: str) -> str | None:
        with self._lock:
            rows = self._rows(
                "SELECT pack_id FROM documents WHERE reference_number = ?", [reference_number]
            )
            return rows[0][0] if rows else None

    def delete_pack(self, pack_id: str, entry: AuditEntry) -> bool:
        with self._lock:
            if not self.has_pack(pack_id):
                return False
            self._con.begin()
            try:
                self._insert_audit(pack_id, entry)
                self._con.execute("DELETE FROM documents WHERE pack_id = ?", [pack_id])
                self._con.execute("DELETE FROM packs WHERE pack_id = ?", [pack_id])
                self._con.commit()
            except duckdb.Error:
                self._con.rollback()
                raise
            LOGGER.debug("Removed pack %s and its documents", pack_id)
            return True

    def expiring_before(self, day: date) -> list[str]:
        with self._lock:
            rows = self._rows(
                "SELECT pack_id FROM packs WHERE storage_expiry_date < ? ORDER BY pack_id", [day]
            )
        return [r[0] for r in rows]

    # -- boundary submissions ---------------------------------------------

    def save_submission(self, submission: BoundarySubmission) -> None:
        with self._lock:
            self._con.execute(
                "INSERT INTO boundary_submissions (submission_id, producer_id, submitted_utc, payload) "
                "VALUES (?, ?, ?, ?)",
                [
                    submission.submission_id,
                    submission.producer_id,
                    submission.submitted_utc.isoformat(),
                    json.dumps(submission.to_dict(), sort_keys=True),
                ],
            )

    def submissions(self, producer_id: str) -> list[BoundarySubmission]:
        with self._lock:
            rows = self._rows(
                "SELECT payload FROM boundary_submissions WHERE producer_id = ? ORDER BY seq",
                [producer_id],
            )
        return [BoundarySubmission.from_dict(json.loads(r[0])) for r in rows]

    def latest_submission(self, producer_id: str) -> BoundarySubmission | None:
        items = self.submissions(producer_id)
        return items[-1] if items else None
