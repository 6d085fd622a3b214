import asyncio
import json
import os
from typing import Any, Dict

from logontrack.core.errors import StorageError
from logontrack.sessions.records import EventRecord


def record_to_line(record: EventRecord) -> str:
    body: Dict[str, Any] = {
        "username": record.username,
        "action": record.action.value,
        "timestamp": record.ts.isoformat(),
        "hostname": record.hostname,
        "source_ip": record.source_ip,
        "server_timestamp": record.received_at.isoformat(),
        "os_name": record.os_name,
        "os_version": record.os_version,
        "kernel_version": record.kernel_version,
        # kept as the raw payload, not re-encoded text
        "hardware_info": json.loads(record.hardware_info) if record.hardware_info else None,
    }
    return json.dumps(body, ensure_ascii=False)


class JsonlEventSink:
    """
    Append-only JSON-lines event log. No reads, hence no session correlation:
    events are written exactly as received, without a session id.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = asyncio.Lock()
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)

    def _write(self, line: str) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def append(self, record: EventRecord) -> None:
        line = record_to_line(record)
        # whole lines only: one writer at a time, file IO off the loop
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, line)
            except OSError as exc:
                raise StorageError(f"event log write failed: {exc}") from exc
