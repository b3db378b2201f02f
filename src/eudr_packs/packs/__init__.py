"""Compliance-pack assembly, rendering, approval and retrieval.

A pack is one risk determination plus six cross-referenced documents. Packs
are assembled all-or-nothing, reviewed by a human, and only then exposed
through the retrieval gateway.
"""

from .types import (
    DOCUMENT_TYPES,
    AuditDecision,
    AuditEntry,
    CompliancePack,
    DocumentDownload,
    DocumentRecord,
    DocumentSet,
    DocumentType,
    ExporterMetadata,
    PackStatus,
    ProducerRecord,
    RenderedArtifact,
)

__all__ = [
    "DOCUMENT_TYPES",
    "AuditDecision",
    "AuditEntry",
    "CompliancePack",
    "DocumentDownload",
    "DocumentRecord",
    "DocumentSet",
    "DocumentType",
    "ExporterMetadata",
    "PackStatus",
    "ProducerRecord",
    "RenderedArtifact",
]
