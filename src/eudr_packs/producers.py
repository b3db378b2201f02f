from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from eudr_packs.errors import NotFoundError
from eudr_packs.packs.types import ProducerRecord


class ProducerDirectory:
    """Read-only view of producer records exported by the onboarding system."""

    def __init__(self, producers: Iterable[ProducerRecord] = ()) -> None:
        self._by_id: dict[str, ProducerRecord] = {}
        for producer in producers:
            if producer.producer_id in self._by_id:
                raise ValueError(f"duplicate producer_id: {producer.producer_id}")
            self._by_id[producer.producer_id] = producer

    @classmethod
    def from_json(cls, obj: Any) -> "ProducerDirectory":
        items = obj.get("producers", []) if isinstance(obj, dict) else obj
        return cls(ProducerRecord.from_dict(item) for item in items)

    @classmethod
    def load(cls, path: str | Path) -> "ProducerDirectory":
        return cls.from_json(json.loads(Path(path).read_text(encoding="utf-8")))

    def get(self, producer_id: str) -> ProducerRecord:
        try:
            return self._by_id[producer_id]
        except KeyError:
            raise NotFoundError(f"Unknown producer: {producer_id}") from None

    def __contains__(self, producer_id: object) -> bool:
        return producer_id in self._by_id

    def __iter__(self):
        return iter(sorted(self._by_id.values(), key=lambda p: p.producer_id))

    def __len__(self) -> int:
        return len(self._by_id)
