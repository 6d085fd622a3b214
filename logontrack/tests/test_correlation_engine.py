from datetime import datetime, timedelta, timezone

import pytest

from logontrack.core.errors import CorrelationError, StorageError
from logontrack.sessions import (
    Action,
    EventRecord,
    OpenSession,
    SessionCorrelator,
    generate_session_id,
    is_hardware,
    is_orphan,
    parse_client_timestamp,
)

RECEIVED = datetime(2024, 1, 10, 16, 0, 3, tzinfo=timezone.utc)


class FakeLookup:
    def __init__(self, today=None, latest=None, fail=False):
        self.today = today
        self.latest = latest
        self.fail = fail
        self.calls = []

    async def find_open_session_today(self, username, hostname, reference_ts):
        self.calls.append(("today", username, hostname, reference_ts))
        if self.fail:
            raise StorageError("disk I/O error")
        return self.today

    async def find_latest_open_session(self, username, hostname):
        self.calls.append(("latest", username, hostname))
        if self.fail:
            raise StorageError("disk I/O error")
        return self.latest


def _event(action, ts, username="alice", hostname="PC1", hardware_info=None):
    return EventRecord(
        username=username,
        action=action,
        ts=parse_client_timestamp(ts),
        hostname=hostname,
        source_ip="192.0.2.10",
        received_at=RECEIVED,
        os_name="Windows",
        os_version="10.0.19045",
        kernel_version="10.0",
        hardware_info=hardware_info,
    )


@pytest.mark.asyncio
async def test_first_connect_opens_session_without_auto_close(counter_ids):
    lookup = FakeLookup()
    event = _event(Action.CONNECT, "2024-01-10T09:00:00")

    result = await SessionCorrelator(lookup, id_factory=counter_ids).correlate(event)

    assert result.session_id == "alice@PC1@000001"
    assert result.auto_close is None
    assert result.orphan is False
    assert lookup.calls == [("today", "alice", "PC1", event.ts)]
    assert [r.session_id for r in result.records(event)] == ["alice@PC1@000001"]


@pytest.mark.asyncio
async def test_connect_closes_same_day_open_session(counter_ids):
    stale = OpenSession("alice@PC1@aaaaaa", parse_client_timestamp("2024-01-10T09:00:00"))
    lookup = FakeLookup(today=stale)
    event = _event(Action.CONNECT, "2024-01-10T17:00:00")

    result = await SessionCorrelator(lookup, id_factory=counter_ids).correlate(event)

    closing = result.auto_close
    assert closing is not None
    assert closing.action is Action.DISCONNECT
    assert closing.session_id == "alice@PC1@aaaaaa"
    # one second before the new connect, not derived from the old session
    assert closing.ts == parse_client_timestamp("2024-01-10T16:59:59")
    assert closing.ts == event.ts - timedelta(seconds=1)
    assert (closing.username, closing.hostname, closing.source_ip) == ("alice", "PC1", "192.0.2.10")
    assert closing.received_at == event.received_at
    assert (closing.os_name, closing.os_version, closing.kernel_version) == (
        "Windows",
        "10.0.19045",
        "10.0",
    )
    assert result.session_id == "alice@PC1@000001"

    records = result.records(event)
    assert [(r.action, r.session_id) for r in records] == [
        (Action.DISCONNECT, "alice@PC1@aaaaaa"),
        (Action.CONNECT, "alice@PC1@000001"),
    ]


@pytest.mark.asyncio
async def test_auto_close_drops_hardware_payload(counter_ids):
    stale = OpenSession("alice@PC1@aaaaaa", parse_client_timestamp("2024-01-10T09:00:00"))
    event = _event(Action.CONNECT, "2024-01-10T17:00:00", hardware_info='{"cpu": "x"}')
    result = await SessionCorrelator(FakeLookup(today=stale), id_factory=counter_ids).correlate(event)
    assert result.auto_close.hardware_info is None


@pytest.mark.asyncio
async def test_disconnect_joins_latest_open_session(counter_ids):
    lookup = FakeLookup(latest="alice@PC1@bbbbbb")
    event = _event(Action.DISCONNECT, "2024-01-10T17:05:00")

    result = await SessionCorrelator(lookup, id_factory=counter_ids).correlate(event)

    assert result.session_id == "alice@PC1@bbbbbb"
    assert result.auto_close is None
    assert result.orphan is False
    assert lookup.calls == [("latest", "alice", "PC1")]


@pytest.mark.asyncio
async def test_disconnect_without_open_session_is_orphan(counter_ids):
    event = _event(Action.DISCONNECT, "2024-01-10T17:05:00", username="bob", hostname="PC9")

    result = await SessionCorrelator(FakeLookup(), id_factory=counter_ids).correlate(event)

    assert result.session_id == "orphan_bob@PC9@000001"
    assert is_orphan(result.session_id)
    assert result.orphan is True
    assert result.records(event)[0].session_id == result.session_id


@pytest.mark.asyncio
async def test_hardware_never_touches_the_store(counter_ids):
    lookup = FakeLookup(today=OpenSession("x", RECEIVED), latest="x", fail=True)
    event = _event(Action.HARDWARE, "2024-01-10T12:00:00", hardware_info='{"ram_gb": 16}')

    result = await SessionCorrelator(lookup, id_factory=counter_ids).correlate(event)

    assert result.session_id == "hardware_alice@PC1@000001"
    assert is_hardware(result.session_id)
    assert lookup.calls == []
    assert result.records(event)[0].hardware_info == '{"ram_gb": 16}'


@pytest.mark.asyncio
@pytest.mark.parametrize("action", [Action.CONNECT, Action.DISCONNECT])
async def test_lookup_failure_becomes_correlation_error(action, counter_ids):
    event = _event(action, "2024-01-10T09:00:00")
    with pytest.raises(CorrelationError) as info:
        await SessionCorrelator(FakeLookup(fail=True), id_factory=counter_ids).correlate(event)
    assert isinstance(info.value.__cause__, StorageError)


@pytest.mark.asyncio
async def test_replayed_connect_yields_distinct_sessions():
    ticks = iter(range(1000, 2000))

    def ids(username, hostname, day):
        return generate_session_id(username, hostname, day, clock=lambda: next(ticks))

    correlator = SessionCorrelator(FakeLookup(), id_factory=ids)
    event = _event(Action.CONNECT, "2024-01-10T09:00:00")
    first = await correlator.correlate(event)
    second = await correlator.correlate(event)
    assert first.session_id != second.session_id


@pytest.mark.asyncio
async def test_empty_host_is_its_own_key(counter_ids):
    lookup = FakeLookup()
    event = _event(Action.DISCONNECT, "2024-01-10T09:00:00", hostname="")
    result = await SessionCorrelator(lookup, id_factory=counter_ids).correlate(event)
    assert lookup.calls == [("latest", "alice", "")]
    assert result.session_id == "orphan_alice@@000001"
