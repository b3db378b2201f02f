"""Operation façade wiring classification, assembly, approval and retrieval."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping

from eudr_packs.analysis.risk import RiskDetermination, classify, screen_protected_areas
from eudr_packs.config import PipelineSettings
from eudr_packs.errors import (
    InsufficientPointsError,
    InvalidBoundaryError,
    InvalidInputError,
    MissingAssessmentError,
)
from eudr_packs.geo.geometry import coerce_points, geodesic_area_ha, is_simple_boundary, polygon_area_ha
from eudr_packs.geo.zones import ZoneTable, load_zone_table
from eudr_packs.packs import workflow
from eudr_packs.packs.assembler import assemble
from eudr_packs.packs.determinism import utc_now
from eudr_packs.packs.gateway import RetrievalGateway
from eudr_packs.packs.types import BoundarySubmission, CompliancePack, DocumentDownload, ExporterMetadata
from eudr_packs.producers import ProducerDirectory
from eudr_packs.store.base import PackRepository

LOGGER = logging.getLogger(__name__)


class CompliancePipeline:
    def __init__(
        self,
        store: PackRepository,
        producers: ProducerDirectory,
        *,
        settings: PipelineSettings | None = None,
        zone_table: ZoneTable | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.producers = producers
        self.settings = settings or PipelineSettings()
        self.zone_table = zone_table or load_zone_table(self.settings.zone_table_path)
        self.clock = clock
        self.gateway = RetrievalGateway(store, producers)

    def submit_boundary(self, producer_id: str, points: Iterable[Any]) -> RiskDetermination:
        producer = self.producers.get(producer_id)
        try:
            boundary = coerce_points(points)
        except (TypeError, ValueError) as exc:
            raise InvalidBoundaryError(f"Invalid boundary for producer {producer_id}: {exc}") from exc
        if len(boundary) < self.settings.min_points:
            raise InsufficientPointsError(len(boundary), self.settings.min_points)

        determination = classify(boundary, zone_table=self.zone_table)
        submission = BoundarySubmission(
            submission_id=f"BND-{secrets.token_hex(6).upper()}",
            producer_id=producer.producer_id,
            points=boundary,
            determination=determination,
            area_ha=polygon_area_ha(boundary),
            geodesic_area_ha=geodesic_area_ha(boundary),
            is_simple=is_simple_boundary(boundary),
            protected_areas=screen_protected_areas(boundary, zone_table=self.zone_table),
            submitted_utc=self.clock(),
        )
        self.store.save_submission(submission)

        LOGGER.info(
            "Classified boundary for producer %s: %s risk (score %d)",
            producer_id,
            determination.risk_level.value,
            determination.compliance_score,
        )
        if not submission.is_simple:
            LOGGER.warning("Boundary %s for producer %s is not a simple polygon", submission.submission_id, producer_id)
        return determination

    def generate_pack(
        self,
        producer_id: str,
        exporter: ExporterMetadata | Mapping[str, Any],
    ) -> dict[str, Any]:
        producer = self.producers.get(producer_id)
        submission = self.store.latest_submission(producer_id)
        if submission is None:
            raise MissingAssessmentError(f"No risk determination on record for producer {producer_id}")
        if not isinstance(exporter, ExporterMetadata):
            if not isinstance(exporter, Mapping):
                raise InvalidInputError("Exporter metadata must be an object")
            exporter = ExporterMetadata.from_dict(exporter)

        pack = assemble(
            producer,
            exporter,
            submission.determination,
            store=self.store,
            boundary=submission.points,
            area_ha=submission.area_ha,
            protected_areas=submission.protected_areas,
            submission_id=submission.submission_id,
            settings=self.settings,
            now=self.clock(),
        )
        return {
            "pack_id": pack.pack_id,
            "status": pack.status.value,
            "document_ids": [r.document_id for r in pack.documents or ()],
        }

    def decide_pack(self, pack_id: str, action: str, actor: str, notes: str = "") -> dict[str, Any]:
        pack = workflow.decide(self.store, pack_id, action, actor, notes, now=self.clock())
        return {"pack_id": pack.pack_id, "status": pack.status.value}

    def publish_pack(self, pack_id: str, actor: str) -> dict[str, Any]:
        pack = workflow.publish(self.store, pack_id, actor, now=self.clock())
        return {"pack_id": pack.pack_id, "status": pack.status.value}

    def review_pack(self, pack_id: str) -> CompliancePack:
        return workflow.review(self.store, pack_id)

    def download_document(self, document_id: str) -> DocumentDownload:
        return self.gateway.download_document(document_id)

    def delete_pack(self, pack_id: str, actor: str, notes: str = "") -> None:
        workflow.delete_pack(self.store, pack_id, actor, notes, now=self.clock())
