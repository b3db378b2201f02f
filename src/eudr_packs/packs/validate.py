from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import jsonschema
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from eudr_packs.errors import InvalidReferenceError

from .references import document_id_for, parse_reference_number
from .types import DOCUMENT_TYPES


def _default_schema_path() -> Path:
    return Path(__file__).resolve().parent.parent / "schemas" / "pack_manifest_v1.schema.json"


def load_schema(schema_path: str | Path | None = None) -> dict[str, Any]:
    path = Path(schema_path) if schema_path is not None else _default_schema_path()
    return json.loads(path.read_text(encoding="utf-8"))


def validate_pack_manifest_v1(
    manifest: Mapping[str, Any],
    *,
    schema_path: str | Path | None = None,
) -> None:
    """Validate an export manifest against the pack manifest v1 schema.

    Raises:
      jsonschema.exceptions.ValidationError if invalid.
    """

    schema = load_schema(schema_path)
    validator = Draft202012Validator(schema, format_checker=jsonschema.FormatChecker())
    validator.validate(dict(manifest))

    _validate_cross_references(dict(manifest))


def _validate_cross_references(manifest: Mapping[str, Any]) -> None:
    pack_id = manifest.get("pack_id")
    seen_types: set[str] = set()
    seen_refs: set[str] = set()

    for doc in manifest.get("documents", []):
        if not isinstance(doc, Mapping):
            continue
        doc_type = doc.get("document_type")
        ref = doc.get("reference_number")

        if doc_type in seen_types:
            raise ValidationError(f"Duplicate document_type in manifest: {doc_type}")
        seen_types.add(doc_type)

        if ref in seen_refs:
            raise ValidationError(f"Duplicate reference_number in manifest: {ref}")
        seen_refs.add(ref)

        try:
            ref_pack, ref_type = parse_reference_number(str(ref))
        except InvalidReferenceError as exc:
            raise ValidationError(exc.message) from exc
        if ref_pack != pack_id:
            raise ValidationError(f"Reference {ref} resolves to pack {ref_pack}, not {pack_id}")
        if ref_type.value != doc_type:
            raise ValidationError(f"Reference {ref} is a {ref_type.value}, listed as {doc_type}")
        if doc.get("document_id") != document_id_for(str(ref)):
            raise ValidationError(f"document_id does not match reference {ref}")

    missing = sorted(dt.value for dt in DOCUMENT_TYPES if dt.value not in seen_types)
    if missing:
        raise ValidationError(f"Manifest is missing document types: {missing}")
