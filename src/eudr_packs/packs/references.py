"""Pack identifiers and document reference numbers.

Pack IDs look like ``EUDR-20240115T093000123456Z-3F9A1C``: a fixed prefix, a
UTC timestamp with microseconds (so IDs sort chronologically) and a random
suffix. A reference number embeds its pack ID, the document code and a short
checksum, e.g. ``EUDR-20240115T093000123456Z-3F9A1C-DDS-7B2E``, so it can be
verified and resolved back to its pack without a lookup.
"""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone
from typing import Callable

from eudr_packs.errors import InvalidReferenceError

from .determinism import sha256_bytes, utc_now
from .types import DocumentType

PACK_ID_PREFIX = "EUDR"

_PACK_ID_RE = re.compile(r"^EUDR-\d{8}T\d{12}Z-[0-9A-F]{6}$")
_REFERENCE_RE = re.compile(
    r"^(?P<pack_id>EUDR-\d{8}T\d{12}Z-[0-9A-F]{6})-(?P<code>[A-Z]+)-(?P<check>[0-9A-F]{4})$"
)


def new_pack_id(
    *,
    now: datetime | None = None,
    token: Callable[[], str] | None = None,
) -> str:
    moment = (now or utc_now()).astimezone(timezone.utc)
    suffix = (token or (lambda: secrets.token_hex(3)))().upper()
    return f"{PACK_ID_PREFIX}-{moment.strftime('%Y%m%dT%H%M%S%f')}Z-{suffix}"


def is_pack_id(value: str) -> bool:
    return bool(_PACK_ID_RE.match(value))


def _checksum(pack_id: str, document_type: DocumentType) -> str:
    return sha256_bytes(f"{pack_id}|{document_type.value}".encode("utf-8"))[:4].upper()


def reference_number(pack_id: str, document_type: DocumentType) -> str:
    if not is_pack_id(pack_id):
        raise ValueError(f"not a pack id: {pack_id!r}")
    return f"{pack_id}-{document_type.code}-{_checksum(pack_id, document_type)}"


def parse_reference_number(value: str) -> tuple[str, DocumentType]:
    """Verify a reference number and return ``(pack_id, document_type)``."""

    m = _REFERENCE_RE.match(value.strip())
    if not m:
        raise InvalidReferenceError(f"Malformed reference number: {value!r}")
    pack_id = m.group("pack_id")
    try:
        document_type = DocumentType.from_code(m.group("code"))
    except ValueError as exc:
        raise InvalidReferenceError(f"Unknown document code in {value!r}") from exc
    if m.group("check") != _checksum(pack_id, document_type):
        raise InvalidReferenceError(f"Checksum mismatch for reference number {value!r}")
    return pack_id, document_type


def document_id_for(reference: str) -> str:
    return "DOC-" + sha256_bytes(reference.encode("utf-8"))[:16].upper()


def pack_reference_numbers(pack_id: str) -> dict[DocumentType, str]:
    return {dt: reference_number(pack_id, dt) for dt in DocumentType}
