from __future__ import annotations

from datetime import datetime, timezone

import pytest

from eudr_packs.errors import InvalidReferenceError, NotFoundError
from eudr_packs.packs.references import (
    document_id_for,
    is_pack_id,
    new_pack_id,
    pack_reference_numbers,
    parse_reference_number,
    reference_number,
)
from eudr_packs.packs.types import DocumentType


def test_pack_id_format_and_chronological_sort() -> None:
    early = new_pack_id(now=datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc), token=lambda: "ffffff")
    late = new_pack_id(now=datetime(2024, 1, 15, 9, 30, 0, 1, tzinfo=timezone.utc), token=lambda: "000000")
    assert early == "EUDR-20240115T093000000000Z-FFFFFF"
    assert is_pack_id(early) and is_pack_id(late)
    assert sorted([late, early]) == [early, late]


def test_reference_numbers_resolve_to_pack_and_type() -> None:
    pack_id = new_pack_id()
    refs = pack_reference_numbers(pack_id)
    assert len(set(refs.values())) == 6
    for dt, ref in refs.items():
        assert ref.startswith(pack_id + "-" + dt.code + "-")
        assert parse_reference_number(ref) == (pack_id, dt)


def test_tampered_reference_is_rejected() -> None:
    pack_id = new_pack_id()
    ref = reference_number(pack_id, DocumentType.DUE_DILIGENCE_STATEMENT)
    swapped = ref.replace("-DDS-", "-TRACE-")
    with pytest.raises(InvalidReferenceError):
        parse_reference_number(swapped)
    with pytest.raises(InvalidReferenceError):
        parse_reference_number("not-a-reference")
    with pytest.raises(NotFoundError):
        parse_reference_number(pack_id + "-NOPE-0000")


def test_reference_requires_pack_id() -> None:
    with pytest.raises(ValueError):
        reference_number("PACK-1", DocumentType.COVER_SHEET)


def test_document_id_is_stable() -> None:
    ref = reference_number(new_pack_id(), DocumentType.COVER_SHEET)
    assert document_id_for(ref) == document_id_for(ref)
    assert document_id_for(ref).startswith("DOC-")
    assert len(document_id_for(ref)) == 20
