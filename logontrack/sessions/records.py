from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Optional


class Action(str, Enum):
    CONNECT = "C"
    DISCONNECT = "D"
    HARDWARE = "M"


# YYYY-MM-DDTHH:MM:SS is mandatory; fraction and zone are optional, free text after is ignored
_TS_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(\.\d+)?"
    r"(Z|z|[+-]\d{2}(?::?\d{2})?)?"
)
# a leftover that still looks like part of the offset
_UNREAD_ZONE = re.compile(r"^[+\-:\d]")


def parse_client_timestamp(raw: str) -> datetime:
    """
    Parse a client-reported timestamp into an aware datetime.

    Accepts any string starting with ``YYYY-MM-DDTHH:MM:SS``. A trailing
    fraction and ``Z`` / ``+HH:MM`` / ``+HHMM`` / ``+HH`` offset are honoured;
    a missing offset means UTC. Raises ValueError when the prefix is absent,
    not a real date-time, carries an offset that cannot be read, or sits so
    close to the datetime range limits that the UTC day or the one-second
    auto-close step would not be representable.
    """
    text = (raw or "").strip()
    m = _TS_RE.match(text)
    if not m:
        raise ValueError(f"timestamp must start with YYYY-MM-DDTHH:MM:SS: {raw!r}")
    if _UNREAD_ZONE.match(text[m.end():]):
        raise ValueError(f"unreadable UTC offset in timestamp: {raw!r}")
    base = datetime.strptime(m.group(1), "%Y-%m-%dT%H:%M:%S")
    if m.group(2):
        digits = (m.group(2)[1:] + "000000")[:6]
        base = base.replace(microsecond=int(digits))
    zone = m.group(3)
    if not zone or zone in ("Z", "z"):
        ts = base.replace(tzinfo=timezone.utc)
    else:
        sign = -1 if zone[0] == "-" else 1
        hh = int(zone[1:3])
        mm = int(zone[-2:]) if len(zone) > 3 else 0
        if hh > 23 or mm > 59:
            raise ValueError(f"invalid UTC offset in timestamp: {raw!r}")
        ts = base.replace(tzinfo=timezone(sign * timedelta(hours=hh, minutes=mm)))
    try:
        ts.astimezone(timezone.utc)
        ts - timedelta(seconds=1)
    except OverflowError as exc:
        raise ValueError(f"timestamp out of range: {raw!r}") from exc
    return ts


def calendar_day(ts: datetime) -> date:
    """Calendar date used for same-day correlation: the UTC date of ``ts``."""
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(timezone.utc).date()


@dataclass(frozen=True)
class EventRecord:
    """One workstation event, as handed to the correlator and the store."""

    username: str
    action: Action
    ts: datetime
    hostname: str
    source_ip: Optional[str]
    received_at: datetime
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    kernel_version: Optional[str] = None
    hardware_info: Optional[str] = None  # serialized JSON, opaque
    session_id: Optional[str] = None

    @property
    def pair(self) -> tuple[str, str]:
        return self.username, self.hostname

    @property
    def day(self) -> date:
        return calendar_day(self.ts)

    def with_session(self, session_id: str) -> "EventRecord":
        return replace(self, session_id=session_id)

    def auto_close(self, session_id: str) -> "EventRecord":
        """Synthetic disconnect closing ``session_id`` one second before this event."""
        return replace(
            self,
            action=Action.DISCONNECT,
            ts=self.ts - timedelta(seconds=1),
            hardware_info=None,
            session_id=session_id,
        )


@dataclass(frozen=True)
class OpenSession:
    session_id: str
    ts: datetime
