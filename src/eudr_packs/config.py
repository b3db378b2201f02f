from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


STORE_PATH_ENV = "EUDR_PACKS_STORE_PATH"
DEFAULT_STORE_PATH = Path("audit") / "packs" / "packs.duckdb"

MIN_POINTS_ENV = "EUDR_PACKS_MIN_BOUNDARY_POINTS"
DEFAULT_MIN_POINTS = 3

ZONE_TABLE_ENV = "EUDR_PACKS_ZONE_TABLE"

VERIFY_BASE_URL_ENV = "EUDR_PACKS_VERIFY_BASE_URL"
DEFAULT_VERIFY_BASE_URL = "https://www.lacra.gov.lr/eudr/verify"

LOG_LEVEL_ENV = "EUDR_PACKS_LOG_LEVEL"

# Fixed retention policy; packs and documents stay retrievable for audit this long.
RETENTION_YEARS = 5


def resolve_store_path(explicit: str | os.PathLike[str] | None = None) -> Path:
    """Resolve the DuckDB store file.

    Conventions:
    - explicit argument wins
    - then `EUDR_PACKS_STORE_PATH`
    - default is repo-relative `audit/packs/packs.duckdb` (gitignored)
    """

    if explicit is not None:
        return Path(explicit)

    env_value = os.environ.get(STORE_PATH_ENV)
    if env_value:
        return Path(env_value)

    return DEFAULT_STORE_PATH


def resolve_zone_table_path(explicit: str | os.PathLike[str] | None = None) -> Path | None:
    if explicit is not None:
        return Path(explicit)
    env_value = os.environ.get(ZONE_TABLE_ENV, "").strip()
    return Path(env_value) if env_value else None


def _env_int(name: str) -> int | None:
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class PipelineSettings:
    min_points: int = DEFAULT_MIN_POINTS
    verify_base_url: str = DEFAULT_VERIFY_BASE_URL
    zone_table_path: Path | None = None

    def __post_init__(self) -> None:
        if self.min_points < 3:
            raise ValueError(f"min_points must be >= 3, got {self.min_points}")

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        min_points = _env_int(MIN_POINTS_ENV)
        verify_base_url = os.environ.get(VERIFY_BASE_URL_ENV, "").strip()
        return cls(
            min_points=min_points if min_points is not None else DEFAULT_MIN_POINTS,
            verify_base_url=verify_base_url or DEFAULT_VERIFY_BASE_URL,
            zone_table_path=resolve_zone_table_path(),
        )
