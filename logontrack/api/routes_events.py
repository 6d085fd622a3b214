# logontrack/api/routes_events.py
from __future__ import annotations

from contextlib import nullcontext
from datetime import datetime, timezone
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from logontrack.api.schemas import CurrentSession, EventAck, EventIn
from logontrack.core.settings import get_settings
from logontrack.db.session import get_session
from logontrack.metrics import EVENTS_INGESTED, ORPHAN_DISCONNECTS, SESSIONS_AUTO_CLOSED
from logontrack.repositories.events import EventStore
from logontrack.security.auth import require_ingest_client, verify_ingest_key
from logontrack.security.ip_utils import get_client_ip
from logontrack.sessions import EventRecord, SessionCorrelator

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["events"])


def _pair_guard(request: Request, record: EventRecord):
    """Per (username, hostname) lock around read-decide-write, when enabled."""
    locks = getattr(request.app.state, "session_locks", None)
    if locks is None or not get_settings().SESSION_LOCKING:
        return nullcontext()
    return locks.hold(record.pair)


@router.post("/events", response_model=EventAck, dependencies=[Depends(require_ingest_client)])
async def collect_event(payload: EventIn, request: Request, session: AsyncSession = Depends(get_session)):
    """
    Store one workstation event.

    Connects may close a same-day session left open (a synthetic disconnect is
    written first), disconnects join the newest open session of the pair, and
    hardware reports get their own id. Everything for one request commits in
    a single transaction.
    """
    record = payload.to_record(source_ip=get_client_ip(request), received_at=datetime.now(timezone.utc))
    log.info(
        "event.received",
        username=record.username,
        action=record.action.value,
        hostname=record.hostname,
        source_ip=record.source_ip,
    )

    if get_settings().EVENT_BACKEND == "jsonl":
        await request.app.state.event_sink.append(record)
        EVENTS_INGESTED.labels(action=record.action.value).inc()
        return EventAck(
            message="Data appended to event log",
            action=record.action.value,
            username=record.username,
        )

    store = EventStore(session)
    correlator = SessionCorrelator(store, id_factory=request.app.state.session_ids)
    async with _pair_guard(request, record):
        async with store.transaction():
            correlation = await correlator.correlate(record)
            ids = await store.apply(correlation.records(record))

    if correlation.auto_close is not None:
        SESSIONS_AUTO_CLOSED.inc()
        EVENTS_INGESTED.labels(action=correlation.auto_close.action.value).inc()
    if correlation.orphan:
        ORPHAN_DISCONNECTS.inc()
    EVENTS_INGESTED.labels(action=record.action.value).inc()

    log.info(
        "event.stored",
        event_id=ids[-1],
        username=record.username,
        action=record.action.value,
        session_id=correlation.session_id,
        source_ip=record.source_ip,
    )
    return EventAck(
        event_id=ids[-1],
        session_uuid=correlation.session_id,
        action=record.action.value,
        username=record.username,
        auto_closed_session=correlation.auto_close.session_id if correlation.auto_close else None,
    )


@router.get("/sessions/current", response_model=List[CurrentSession], dependencies=[Depends(verify_ingest_key)])
async def current_sessions(session: AsyncSession = Depends(get_session)):
    """Connects with no matching disconnect, by hostname then connect time."""
    if get_settings().EVENT_BACKEND == "jsonl":
        raise HTTPException(status_code=404, detail="no queryable event store configured")
    return await EventStore(session).list_open_sessions()
