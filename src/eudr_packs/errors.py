"""Error taxonomy for the compliance-pack pipeline.

Every error is terminal and user-facing: nothing in the pipeline retries them.
Each class carries a stable machine-readable ``kind`` so transport layers can
map errors without parsing messages.
"""

from __future__ import annotations

from typing import Any


class PackPipelineError(Exception):
    kind = "pack_pipeline_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InsufficientPointsError(PackPipelineError):
    kind = "insufficient_points"

    def __init__(self, received: int, required: int) -> None:
        super().__init__(
            f"Boundary has {received} point(s); at least {required} are required"
        )
        self.received = received
        self.required = required


class InvalidBoundaryError(PackPipelineError):
    """A boundary point is malformed or outside WGS84 coordinate ranges."""

    kind = "invalid_boundary"


class InvalidInputError(PackPipelineError):
    kind = "invalid_input"


class MissingAssessmentError(PackPipelineError):
    kind = "missing_assessment"


class PackIncompleteError(PackPipelineError):
    kind = "pack_incomplete"

    def __init__(self, document_type: str, reason: str) -> None:
        super().__init__(f"Cannot produce {document_type}: {reason}")
        self.document_type = document_type
        self.reason = reason


class InvalidTransitionError(PackPipelineError):
    kind = "invalid_transition"


class AlreadyDecidedError(InvalidTransitionError):
    """A decision was already recorded for the pack (decisions are one-shot)."""

    kind = "already_decided"


class NotAvailableError(PackPipelineError):
    kind = "not_available"


class NotFoundError(PackPipelineError):
    kind = "not_found"


class InvalidReferenceError(NotFoundError):
    kind = "invalid_reference"
