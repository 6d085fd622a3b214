from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, constr, field_validator

from logontrack.sessions.records import Action, EventRecord, parse_client_timestamp

_Username = constr(strip_whitespace=True, min_length=1, max_length=50)
_Hostname = constr(strip_whitespace=True, max_length=100)
_Str50 = constr(max_length=50)
_Str100 = constr(max_length=100)


class OsInfo(BaseModel):
    os_name: Optional[_Str50] = None
    os_version: Optional[_Str100] = None
    kernel_version: Optional[_Str50] = None


class EventIn(BaseModel):
    """Payload posted by the workstation clients."""

    username: _Username
    action: Literal["C", "D", "M"]
    timestamp: str
    hostname: Optional[_Hostname] = None
    os_info: Optional[OsInfo] = None
    hardware_info: Optional[Any] = None

    @field_validator("timestamp")
    @classmethod
    def _timestamp_has_seconds(cls, v: str) -> str:
        parse_client_timestamp(v)
        return v

    def to_record(self, *, source_ip: Optional[str], received_at: datetime) -> EventRecord:
        os_info = self.os_info or OsInfo()
        hardware = None
        if self.hardware_info is not None:
            hardware = json.dumps(self.hardware_info, ensure_ascii=False)
        return EventRecord(
            username=self.username,
            action=Action(self.action),
            ts=parse_client_timestamp(self.timestamp),
            hostname=self.hostname or "",
            source_ip=source_ip,
            received_at=received_at,
            os_name=os_info.os_name,
            os_version=os_info.os_version,
            kernel_version=os_info.kernel_version,
            hardware_info=hardware,
        )


class EventAck(BaseModel):
    status: str = "success"
    message: str = "Data stored in database"
    event_id: Optional[int] = None
    session_uuid: Optional[str] = None
    action: str
    username: str
    auto_closed_session: Optional[str] = None


class CurrentSession(BaseModel):
    username: str
    hostname: str
    connected_at: datetime
    session_uuid: str
    source_ip: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
