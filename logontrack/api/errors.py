"""Maps ingest failures to the JSON error bodies the workstation clients expect."""
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from logontrack.core.errors import CorrelationError, LogonTrackError
from logontrack.metrics import INGEST_REJECTED, STORAGE_ERRORS
from logontrack.security.auth import IngestRejected

log = structlog.get_logger(__name__)


def _validation_details(exc: RequestValidationError) -> list:
    details = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        details.append({"field": ".".join(loc) or "body", "message": err.get("msg", "")})
    return details


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(IngestRejected)
    async def _ingest_rejected(request: Request, exc: IngestRejected):
        return JSONResponse(status_code=exc.status_code, content=exc.body, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _invalid_structure(request: Request, exc: RequestValidationError):
        details = _validation_details(exc)
        INGEST_REJECTED.labels(reason="validation").inc()
        log.warning("ingest.rejected", reason="validation", path=request.url.path, details=details)
        return JSONResponse(status_code=400, content={"error": "Invalid JSON structure", "details": details})

    @app.exception_handler(LogonTrackError)
    async def _storage_failure(request: Request, exc: LogonTrackError):
        STORAGE_ERRORS.inc()
        log.error(
            "storage.error",
            path=request.url.path,
            stage="correlation" if isinstance(exc, CorrelationError) else "write",
            error=str(exc),
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
        return JSONResponse(status_code=500, content={"error": "Database error"})
