from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

import structlog

from logontrack.core.errors import CorrelationError, StorageError
from logontrack.sessions.identifiers import (
    SessionIdFactory,
    generate_session_id,
    hardware_id,
    orphan_id,
)
from logontrack.sessions.records import Action, EventRecord, OpenSession

log = structlog.get_logger(__name__)


class SessionLookup(Protocol):
    """Read side of the event store used for correlation."""

    async def find_open_session_today(
        self, username: str, hostname: str, reference_ts: datetime
    ) -> Optional[OpenSession]: ...

    async def find_latest_open_session(self, username: str, hostname: str) -> Optional[str]: ...


@dataclass(frozen=True)
class Correlation:
    session_id: str
    auto_close: Optional[EventRecord] = None
    orphan: bool = False

    def records(self, event: EventRecord) -> List[EventRecord]:
        """Rows to persist, in insertion order: the auto-close first."""
        out: List[EventRecord] = []
        if self.auto_close is not None:
            out.append(self.auto_close)
        out.append(event.with_session(self.session_id))
        return out


class SessionCorrelator:
    """
    Maps one validated event to its session id.

    - Connect: close any session still open for the pair on the same day
      (synthetic disconnect one second earlier) and start a new session.
    - Disconnect: join the newest open session of the pair, or take an
      ``orphan_`` id when there is none.
    - Hardware: ``hardware_`` id, no lookup.

    Reads only; the caller writes ``Correlation.records()`` atomically.
    """

    def __init__(self, lookup: SessionLookup, id_factory: SessionIdFactory = generate_session_id):
        self.lookup = lookup
        self.id_factory = id_factory

    async def correlate(self, event: EventRecord) -> Correlation:
        try:
            if event.action is Action.CONNECT:
                return await self._on_connect(event)
            if event.action is Action.DISCONNECT:
                return await self._on_disconnect(event)
        except StorageError as exc:
            log.error(
                "session.lookup_failed",
                username=event.username,
                hostname=event.hostname,
                action=event.action.value,
                error=str(exc),
            )
            raise CorrelationError(f"session lookup failed for {event.username}@{event.hostname}") from exc
        return Correlation(session_id=hardware_id(self.id_factory, event.username, event.hostname, event.day))

    async def _on_connect(self, event: EventRecord) -> Correlation:
        stale = await self.lookup.find_open_session_today(event.username, event.hostname, event.ts)
        auto_close = None
        if stale is not None:
            auto_close = event.auto_close(stale.session_id)
            log.warning(
                "session.auto_closed",
                username=event.username,
                hostname=event.hostname,
                closed_session=stale.session_id,
                opened_at=stale.ts.isoformat(),
                closed_at=auto_close.ts.isoformat(),
            )
        session_id = self.id_factory(event.username, event.hostname, event.day)
        return Correlation(session_id=session_id, auto_close=auto_close)

    async def _on_disconnect(self, event: EventRecord) -> Correlation:
        session_id = await self.lookup.find_latest_open_session(event.username, event.hostname)
        if session_id:
            return Correlation(session_id=session_id)
        log.warning("session.orphan_disconnect", username=event.username, hostname=event.hostname)
        return Correlation(
            session_id=orphan_id(self.id_factory, event.username, event.hostname, event.day),
            orphan=True,
        )
