from __future__ import annotations

from typing import Any

from .determinism import canonical_json_bytes, deterministic_zip_bytes
from .types import AuditDecision, CompliancePack

MANIFEST_VERSION = "pack_manifest_v1"
MANIFEST_NAME = "manifest.json"


def build_manifest(pack: CompliancePack) -> dict[str, Any]:
    """Manifest for an exported pack: documents in pack order with digests and sizes."""

    if pack.documents is None:
        raise ValueError(f"pack {pack.pack_id} has no documents")

    generated = pack.last_entry(AuditDecision.GENERATED)
    approved = pack.last_entry(AuditDecision.APPROVED)
    return {
        "manifest_version": MANIFEST_VERSION,
        "pack_id": pack.pack_id,
        "producer_id": pack.producer_ref,
        "status": pack.status.value,
        "risk_level": pack.determination.risk_level.value,
        "compliance_score": pack.determination.compliance_score,
        "generated_utc": (generated.timestamp if generated else pack.created_utc).isoformat(),
        "storage_expiry_date": pack.storage_expiry_date.isoformat(),
        "decided_by": approved.actor if approved else None,
        "documents": [
            {
                "document_id": r.document_id,
                "document_type": r.document_type.value,
                "reference_number": r.reference_number,
                "filename": r.artifact.filename,
                "content_type": r.artifact.content_type,
                "sha256": r.artifact.sha256,
                "size_bytes": r.artifact.size_bytes,
            }
            for r in pack.documents
        ],
    }


def export_zip_bytes(pack: CompliancePack, manifest: dict[str, Any]) -> bytes:
    files = {MANIFEST_NAME: canonical_json_bytes(manifest) + b"\n"}
    for record in pack.documents or ():
        files[record.artifact.filename] = record.artifact.content
    return deterministic_zip_bytes(files)
