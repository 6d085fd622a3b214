import pytest

from logontrack.scripts import manage_db
from logontrack.scripts.send_event import build_payload

UA = {"User-Agent": "Winlog/0.1.0 (Windows)"}


def test_build_payload_shapes():
    connect = build_payload("connect", "alice", "PC1", "2024-01-10T09:00:00")
    assert connect["action"] == "C"
    assert connect["timestamp"] == "2024-01-10T09:00:00"
    assert set(connect["os_info"]) == {"os_name", "os_version", "kernel_version"}
    assert "hardware_info" not in connect

    hardware = build_payload("hardware", "alice", "PC1")
    assert hardware["action"] == "M"
    assert isinstance(hardware["hardware_info"], dict)


@pytest.mark.asyncio
async def test_generated_payloads_are_accepted(client, db):
    for action in ("connect", "hardware", "disconnect"):
        r = await client.post("/api/v1/events", json=build_payload(action, "alice", "PC1"), headers=UA)
        assert r.status_code == 200, r.text


@pytest.mark.asyncio
async def test_manage_db_stats_and_purge(client, db, capsys):
    for action in ("connect", "disconnect"):
        await client.post(
            "/api/v1/events", json=build_payload(action, "alice", "PC1", "2024-01-10T09:00:00"), headers=UA
        )

    assert await manage_db.main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "total: 2" in out
    assert "connect (C): 1" in out

    assert await manage_db.main(["purge", "--yes"]) == 0
    await manage_db.main(["stats"])
    assert "total: 0" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_manage_db_purge_needs_confirmation(client, db, monkeypatch, capsys):
    await client.post(
        "/api/v1/events", json=build_payload("connect", "alice", "PC1", "2024-01-10T09:00:00"), headers=UA
    )
    monkeypatch.setattr("builtins.input", lambda prompt="": "yes")

    assert await manage_db.main(["purge"]) == 1
    assert "purge cancelled" in capsys.readouterr().out

    await manage_db.main(["stats"])
    assert "total: 1" in capsys.readouterr().out
