"""
Session correlation: pairs connect/disconnect events of a user on a host.

Re-exports the pieces the API layer and tests import.
"""
from .engine import Correlation, SessionCorrelator, SessionLookup
from .identifiers import (
    HARDWARE_PREFIX,
    ORPHAN_PREFIX,
    generate_session_id,
    is_hardware,
    is_orphan,
)
from .locks import KeyedLock
from .records import Action, EventRecord, OpenSession, calendar_day, parse_client_timestamp

__all__ = [
    "Action",
    "Correlation",
    "EventRecord",
    "HARDWARE_PREFIX",
    "KeyedLock",
    "ORPHAN_PREFIX",
    "OpenSession",
    "SessionCorrelator",
    "SessionLookup",
    "calendar_day",
    "generate_session_id",
    "is_hardware",
    "is_orphan",
    "parse_client_timestamp",
]
