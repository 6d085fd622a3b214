from __future__ import annotations

import hashlib
import time
from datetime import date
from typing import Callable, Protocol

ORPHAN_PREFIX = "orphan_"
HARDWARE_PREFIX = "hardware_"
HASH_LENGTH = 6


class SessionIdFactory(Protocol):
    def __call__(self, username: str, hostname: str, day: date) -> str: ...


def generate_session_id(
    username: str,
    hostname: str,
    day: date,
    clock: Callable[[], int] = time.time_ns,
) -> str:
    """
    Build ``username@hostname@xxxxxx``.

    The short hash is seeded with the user, host, calendar day and a
    nanosecond clock reading, so two calls never agree and the id cannot be
    recomputed from stored fields. Treat it as an opaque token.
    """
    seed = f"{username}{hostname}{day.isoformat()}{clock()}"
    short_hash = hashlib.md5(seed.encode("utf-8")).hexdigest()[:HASH_LENGTH]
    return f"{username}@{hostname}@{short_hash}"


def orphan_id(factory: SessionIdFactory, username: str, hostname: str, day: date) -> str:
    return ORPHAN_PREFIX + factory(username, hostname, day)


def hardware_id(factory: SessionIdFactory, username: str, hostname: str, day: date) -> str:
    return HARDWARE_PREFIX + factory(username, hostname, day)


def is_orphan(session_id: str) -> bool:
    return session_id.startswith(ORPHAN_PREFIX)


def is_hardware(session_id: str) -> bool:
    return session_id.startswith(HARDWARE_PREFIX)
