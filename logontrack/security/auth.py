"""Client checks for the ingest API: User-Agent prefix, static shared secret, content type."""
import hmac
from typing import Optional

import structlog
from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from logontrack.core.settings import get_settings
from logontrack.metrics import INGEST_REJECTED

log = structlog.get_logger(__name__)

INGEST_KEY_HEADER = "X-Ingest-Key"

ingest_key_header = APIKeyHeader(name=INGEST_KEY_HEADER, auto_error=False)


class IngestRejected(HTTPException):
    """HTTPException whose body is sent as-is (``{"error": ...}``) instead of ``{"detail": ...}``."""

    def __init__(self, status_code: int, body: dict, headers: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=body.get("error", ""), headers=headers)
        self.body = body


def _reject(reason: str, status_code: int, body: dict, headers: Optional[dict] = None) -> IngestRejected:
    INGEST_REJECTED.labels(reason=reason).inc()
    return IngestRejected(status_code, body, headers)


async def verify_ingest_key(api_key: Optional[str] = Security(ingest_key_header)) -> str:
    """
    Dependency enforcing the static shared secret.

    With INGEST_SHARED_SECRET empty the check is skipped.
    """
    secret = get_settings().INGEST_SHARED_SECRET
    if not secret:
        return "anonymous"

    if not api_key:
        log.warning("auth.failed", reason="missing_key")
        raise _reject(
            "auth", 401,
            {"error": f"Missing API key. Provide {INGEST_KEY_HEADER} header."},
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not hmac.compare_digest(api_key.encode("utf-8"), secret.encode("utf-8")):
        log.warning("auth.failed", reason="invalid_key")
        raise _reject("auth", 403, {"error": "Invalid API key"}, headers={"WWW-Authenticate": "ApiKey"})

    return api_key


async def require_ingest_client(
    request: Request, api_key: Optional[str] = Security(ingest_key_header)
) -> None:
    """User-Agent, shared secret, then Content-Type; all before the body is looked at."""
    settings = get_settings()
    user_agent = request.headers.get("user-agent", "")
    if not user_agent.startswith(settings.EXPECTED_USER_AGENT):
        log.warning("ingest.rejected", reason="user_agent", user_agent=user_agent)
        raise _reject("user_agent", 403, {"error": "Invalid User-Agent"})

    await verify_ingest_key(api_key)

    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("application/json"):
        log.warning("ingest.rejected", reason="content_type", content_type=content_type)
        raise _reject(
            "content_type", 400,
            {"error": "Invalid Content-Type", "expected": "application/json"},
        )
