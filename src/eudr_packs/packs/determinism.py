from __future__ import annotations

import hashlib
import io
import json
from datetime import date, datetime, timezone
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipInfo, ZipFile


EPOCH_ZIP_DT = (1980, 1, 1, 0, 0, 0)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def add_years(day: date, years: int) -> date:
    """Same calendar day `years` later; Feb 29 falls back to Feb 28."""

    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def canonical_json_bytes(obj: object) -> bytes:
    """Encode JSON deterministically.

    - UTF-8
    - stable key ordering
    - no insignificant whitespace
    """

    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def deterministic_zip_bytes(files: dict[str, bytes]) -> bytes:
    """Zip `files` with stable ordering and fixed timestamps."""

    buf = io.BytesIO()
    with ZipFile(buf, mode="w", compression=ZIP_DEFLATED) as zf:
        for relpath, content in sorted(files.items(), key=lambda kv: kv[0]):
            info = ZipInfo(relpath)
            info.date_time = EPOCH_ZIP_DT
            info.compress_type = ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, content)
    return buf.getvalue()
