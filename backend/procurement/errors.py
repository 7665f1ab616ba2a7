# errors.py
# Error taxonomy shared by the service layer and the HTTP handlers

from datetime import datetime, timezone
from typing import Any, List, Optional


class ProcurementError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    stage = "internal"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra


class NotFound(ProcurementError):
    status_code = 404
    stage = "lookup"


class PreconditionFailed(ProcurementError):
    status_code = 400
    stage = "precondition"

    def __init__(self, message: str, proposals: Optional[List[Any]] = None):
        super().__init__(message, proposals=proposals or [])
        self.proposals = proposals or []


class ValidationError(ProcurementError):
    status_code = 400
    stage = "validation"


class Conflict(ProcurementError):
    status_code = 409
    stage = "validation"


class GenerationFailure(ProcurementError):
    """The text-generation call itself failed (transport, quota, timeout)."""

    status_code = 502
    stage = "generation"


class MalformedGenerationOutput(ProcurementError):
    """Generation succeeded but the output is not the JSON we asked for."""

    status_code = 502
    stage = "parse"

    def __init__(self, message: str, raw: str):
        super().__init__(message, raw=raw)
        self.raw = raw


def make_error_payload(stage: str, err: Exception | str, extra: dict | None = None) -> dict:
    base = {
        "status": "error",
        "error": str(err),
        "stage": stage,
        "timestamp": datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z"),
    }
    if extra:
        base.update(extra)
    return base


class StorageError(ProcurementError):
    """A store file could not be read back; writes to it are refused."""

    status_code = 500
    stage = "storage"
