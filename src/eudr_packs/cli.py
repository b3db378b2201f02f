from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Any

from eudr_packs.config import LOG_LEVEL_ENV, PipelineSettings, resolve_store_path
from eudr_packs.errors import InvalidInputError, PackPipelineError
from eudr_packs.geo.geometry import boundary_geojson
from eudr_packs.packs.determinism import write_bytes
from eudr_packs.producers import ProducerDirectory
from eudr_packs.service import CompliancePipeline
from eudr_packs.store.duckdb_store import DuckDBPackStore

LOGGER = logging.getLogger(__name__)


def _load_json_arg(value: str) -> Any:
    """Inline JSON, or `@path` to read JSON from a file."""

    try:
        if value.startswith("@"):
            return json.loads(Path(value[1:]).read_text(encoding="utf-8"))
        return json.loads(value)
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidInputError(f"Cannot read JSON argument {value!r}: {exc}") from exc


def _emit(obj: Any) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="eudr-packs",
        description="Generate, approve and retrieve EUDR compliance packs.",
    )
    p.add_argument(
        "--store",
        default=None,
        help="DuckDB store file (default: $EUDR_PACKS_STORE_PATH or audit/packs/packs.duckdb).",
    )
    p.add_argument(
        "--producers",
        default=None,
        help="JSON file with producer records exported by onboarding.",
    )
    p.add_argument(
        "--log-level",
        default=os.environ.get(LOG_LEVEL_ENV, "WARNING"),
        help="Logging level (default: $EUDR_PACKS_LOG_LEVEL or WARNING).",
    )

    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("submit-boundary", help="Classify a producer boundary.")
    s.add_argument("producer_id")
    s.add_argument(
        "--points",
        required=True,
        help='Boundary as JSON, e.g. \'[[6.43,-9.38],[6.431,-9.379],[6.432,-9.381]]\', or @file.json.',
    )

    s = sub.add_parser("generate-pack", help="Assemble the six-document pack for a producer.")
    s.add_argument("producer_id")
    s.add_argument("--exporter", required=True, help="Exporter metadata JSON or @file.json.")

    sub.add_parser("list-ready", help="Producers eligible for a pack.")
    sub.add_parser("list-pending", help="Packs awaiting a decision.")
    sub.add_parser("list-approved", help="Approved and published packs.")

    s = sub.add_parser("decide", help="Approve or reject a pending pack.")
    s.add_argument("pack_id")
    s.add_argument("action", choices=["approve", "reject"])
    s.add_argument("--actor", required=True)
    s.add_argument("--notes", default="")

    s = sub.add_parser("publish", help="Publish an approved pack.")
    s.add_argument("pack_id")
    s.add_argument("--actor", required=True)

    s = sub.add_parser("review", help="Reviewer view of a pack.")
    s.add_argument("pack_id")

    s = sub.add_parser("documents", help="List documents of an approved pack.")
    s.add_argument("pack_id")

    s = sub.add_parser("download", help="Write an approved document to a directory.")
    s.add_argument("document_id")
    s.add_argument("--out-dir", default=".")

    s = sub.add_parser("export", help="Write an approved pack as a zip with manifest.")
    s.add_argument("pack_id")
    s.add_argument("--out", required=True)

    s = sub.add_parser("request", help="Record an exporter request for an approved pack.")
    s.add_argument("pack_id")
    s.add_argument("--requester", required=True)
    s.add_argument("--notes", default="")

    s = sub.add_parser("verify", help="Resolve a document reference number.")
    s.add_argument("reference_number")

    s = sub.add_parser("delete", help="Permanently delete a pack (audited).")
    s.add_argument("pack_id")
    s.add_argument("--actor", required=True)
    s.add_argument("--notes", default="")

    s = sub.add_parser("expiring", help="Packs whose retention window ends before a date.")
    s.add_argument("--before", required=True, help="YYYY-MM-DD")

    return p


def _run(args: argparse.Namespace, pipeline: CompliancePipeline) -> int:
    gateway = pipeline.gateway
    cmd = args.command

    if cmd == "submit-boundary":
        det = pipeline.submit_boundary(args.producer_id, _load_json_arg(args.points))
        _emit(det.to_dict())
    elif cmd == "generate-pack":
        _emit(pipeline.generate_pack(args.producer_id, _load_json_arg(args.exporter)))
    elif cmd == "list-ready":
        _emit([r.to_dict() for r in gateway.list_ready()])
    elif cmd == "list-pending":
        _emit(gateway.list_pending())
    elif cmd == "list-approved":
        _emit(gateway.list_approved())
    elif cmd == "decide":
        _emit(pipeline.decide_pack(args.pack_id, args.action, args.actor, args.notes))
    elif cmd == "publish":
        _emit(pipeline.publish_pack(args.pack_id, args.actor))
    elif cmd == "review":
        pack = pipeline.review_pack(args.pack_id)
        out = pack.summary()
        out["audit_trail"] = [e.to_dict() for e in pack.audit_trail]
        out["boundary"] = boundary_geojson(pack.boundary) if pack.boundary else None
        out["documents"] = [
            {"document_id": r.document_id, "document_type": r.document_type.value, "reference_number": r.reference_number}
            for r in pack.documents or ()
        ]
        _emit(out)
    elif cmd == "documents":
        _emit(gateway.documents(args.pack_id))
    elif cmd == "download":
        dl = pipeline.download_document(args.document_id)
        target = Path(args.out_dir) / dl.filename
        write_bytes(target, dl.content)
        _emit({"path": str(target), "content_type": dl.content_type, "sha256": dl.sha256})
    elif cmd == "export":
        target = Path(args.out)
        write_bytes(target, gateway.export_pack(args.pack_id))
        _emit({"path": str(target)})
    elif cmd == "request":
        pack = gateway.request_pack(args.pack_id, args.requester, args.notes)
        _emit({"pack_id": pack.pack_id, "status": pack.status.value})
    elif cmd == "verify":
        _emit(gateway.verify_reference(args.reference_number))
    elif cmd == "delete":
        pipeline.delete_pack(args.pack_id, args.actor, args.notes)
        _emit({"pack_id": args.pack_id, "deleted": True})
    elif cmd == "expiring":
        _emit(pipeline.store.expiring_before(date.fromisoformat(args.before)))
    else:  # pragma: no cover - argparse enforces the choices
        raise ValueError(f"unknown command: {cmd}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    producers = ProducerDirectory.load(args.producers) if args.producers else ProducerDirectory()
    store_path = resolve_store_path(args.store)
    LOGGER.debug("Using pack store %s (%d producers)", store_path, len(producers))
    store = DuckDBPackStore(store_path)
    try:
        pipeline = CompliancePipeline(store, producers, settings=PipelineSettings.from_env())
        return _run(args, pipeline)
    except PackPipelineError as exc:
        print(f"{exc.kind}: {exc.message}", file=sys.stderr)
        return 2
    except ValueError as exc:
        print(f"{InvalidInputError.kind}: {exc}", file=sys.stderr)
        return 2
    finally:
        store.close()


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
