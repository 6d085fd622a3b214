# logontrack/repositories/events.py
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from logontrack.core.errors import StorageError
from logontrack.db.models import Event
from logontrack.sessions.records import Action, EventRecord, OpenSession, calendar_day


def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _open_connects():
    """Connect rows with no Disconnect sharing their session_id (anti-join)."""
    closing = aliased(Event)
    closed = (
        select(closing.id)
        .where(closing.session_id == Event.session_id)
        .where(closing.action == Action.DISCONNECT.value)
        .exists()
    )
    return select(Event).where(Event.action == Action.CONNECT.value).where(~closed)


def _to_row(record: EventRecord) -> Event:
    if not record.session_id:
        raise StorageError("refusing to store an event without session_id")
    ts = _as_utc(record.ts)
    return Event(
        username=record.username,
        action=record.action.value,
        ts=ts,
        event_date=calendar_day(ts),
        hostname=record.hostname or "",
        source_ip=record.source_ip,
        received_at=_as_utc(record.received_at),
        os_name=record.os_name,
        os_version=record.os_version,
        kernel_version=record.kernel_version,
        hardware_info=record.hardware_info,
        session_id=record.session_id,
    )


class EventStore:
    """
    Append-only event log on top of one AsyncSession.

    Reads back the two open-session lookups the correlator needs and writes
    through ``apply`` (all-or-nothing). SQLAlchemy failures surface as
    StorageError.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._depth = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["EventStore"]:
        """
        Commit on success, roll back on any error.

        Nested calls join the outermost one, which alone commits. A transaction
        the session autobegan on an earlier read is adopted and committed here.
        """
        if self._depth:
            yield self
            return
        self._depth += 1
        try:
            if self.session.in_transaction():
                try:
                    yield self
                except BaseException:
                    await self.session.rollback()
                    raise
                await self.session.commit()
            else:
                async with self.session.begin():
                    yield self
        except SQLAlchemyError as exc:
            raise StorageError(f"transaction failed: {exc}") from exc
        finally:
            self._depth -= 1

    async def find_open_session_today(
        self, username: str, hostname: str, reference_ts: datetime
    ) -> Optional[OpenSession]:
        stmt = (
            _open_connects()
            .where(Event.username == username, Event.hostname == hostname)
            .where(Event.event_date == calendar_day(reference_ts))
            .order_by(Event.ts.desc(), Event.id.desc())
            .limit(1)
        )
        try:
            row = (await self.session.execute(stmt)).scalars().first()
        except SQLAlchemyError as exc:
            raise StorageError(f"open-session lookup failed: {exc}") from exc
        if row is None:
            return None
        return OpenSession(session_id=row.session_id, ts=_as_utc(row.ts))

    async def find_latest_open_session(self, username: str, hostname: str) -> Optional[str]:
        stmt = (
            _open_connects()
            .with_only_columns(Event.session_id)
            .where(Event.username == username, Event.hostname == hostname)
            .order_by(Event.ts.desc(), Event.id.desc())
            .limit(1)
        )
        try:
            return (await self.session.execute(stmt)).scalars().first()
        except SQLAlchemyError as exc:
            raise StorageError(f"latest-open-session lookup failed: {exc}") from exc

    async def insert(self, record: EventRecord) -> int:
        ids = await self.apply([record])
        return ids[0]

    async def apply(self, records: Sequence[EventRecord]) -> List[int]:
        """Insert ``records`` in order inside one transaction; returns their ids."""
        rows = [_to_row(r) for r in records]
        async with self.transaction():
            try:
                # one flush per row keeps ids in insertion order
                for row in rows:
                    self.session.add(row)
                    await self.session.flush()
            except SQLAlchemyError as exc:
                raise StorageError(f"insert failed: {exc}") from exc
        return [row.id for row in rows]

    async def list_open_sessions(self) -> List[Dict[str, object]]:
        stmt = _open_connects().order_by(Event.hostname.asc(), Event.ts.asc(), Event.id.asc())
        try:
            rows = (await self.session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"open-session listing failed: {exc}") from exc
        return [
            dict(
                username=r.username,
                hostname=r.hostname,
                connected_at=_as_utc(r.ts),
                session_uuid=r.session_id,
                source_ip=r.source_ip,
                os_name=r.os_name,
                os_version=r.os_version,
            )
            for r in rows
        ]

    async def events_for_session(self, session_id: str) -> Sequence[Event]:
        """Every row carrying ``session_id``, oldest first: the connect, then its disconnect if any."""
        stmt = select(Event).where(Event.session_id == session_id).order_by(Event.ts.asc(), Event.id.asc())
        try:
            return (await self.session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"session read failed: {exc}") from exc

    async def count_by_action(self) -> Dict[str, int]:
        stmt = select(Event.action, func.count(Event.id)).group_by(Event.action).order_by(Event.action)
        try:
            res = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(f"count failed: {exc}") from exc
        return {action: count for action, count in res.all()}

    async def purge(self) -> int:
        """Delete every event, keep the schema. Returns the number of rows removed."""
        async with self.transaction():
            try:
                res = await self.session.execute(delete(Event))
            except SQLAlchemyError as exc:
                raise StorageError(f"purge failed: {exc}") from exc
        return getattr(res, "rowcount", 0) or 0
