import pytest
from sqlalchemy import select

from logontrack.core.settings import get_settings
from logontrack.db.models import Event
from logontrack.security.ip_utils import parse_cidrs, resolve_client_ip

UA = {"User-Agent": "Winlog/0.1.0 (Windows)"}
BODY = {"username": "alice", "action": "C", "timestamp": "2024-01-10T09:00:00", "hostname": "PC1"}


@pytest.mark.parametrize(
    "remote, headers, cidrs, expected",
    [
        ("127.0.0.1", {"x-forwarded-for": "198.51.100.23"}, ["127.0.0.1/32"], "198.51.100.23"),
        ("127.0.0.1", {"x-forwarded-for": "198.51.100.23, 10.0.0.1"}, ["127.0.0.0/8"], "198.51.100.23"),
        # CF-Connecting-IP wins over X-Forwarded-For
        (
            "10.1.2.3",
            {"cf-connecting-ip": "203.0.113.7", "x-forwarded-for": "198.51.100.23"},
            ["10.0.0.0/8"],
            "203.0.113.7",
        ),
        # garbage header falls through to the next one, then to the peer
        ("10.1.2.3", {"cf-connecting-ip": "not-an-ip", "x-forwarded-for": "198.51.100.23"}, ["10.0.0.0/8"], "198.51.100.23"),
        ("10.1.2.3", {"x-forwarded-for": "nonsense"}, ["10.0.0.0/8"], "10.1.2.3"),
        # untrusted peer: headers ignored
        ("192.0.2.50", {"x-forwarded-for": "198.51.100.23"}, ["10.0.0.0/8"], "192.0.2.50"),
        ("192.0.2.50", {"x-forwarded-for": "198.51.100.23"}, [], "192.0.2.50"),
        ("::1", {"x-forwarded-for": "2001:db8::5"}, ["::1/128"], "2001:db8::5"),
        ("", {}, ["0.0.0.0/0"], "unknown"),
    ],
)
def test_resolve_client_ip(remote, headers, cidrs, expected):
    assert resolve_client_ip(remote, headers, parse_cidrs(cidrs)) == expected


def test_parse_cidrs_skips_invalid_tokens():
    nets = parse_cidrs(["10.0.0.0/8", "bogus", "::/0"])
    assert [str(n) for n in nets] == ["10.0.0.0/8", "::/0"]


async def _stored_ip(SessionLocal):
    async with SessionLocal() as s:
        return (await s.execute(select(Event.source_ip))).scalar_one()


@pytest.mark.asyncio
async def test_xff_respected_when_remote_trusted(client, db, monkeypatch):
    monkeypatch.setattr(get_settings(), "TRUSTED_PROXY_CIDRS", "127.0.0.1/32")
    r = await client.post("/api/v1/events", json=BODY, headers={**UA, "X-Forwarded-For": "198.51.100.23"})
    assert r.status_code == 200, r.text
    assert await _stored_ip(db) == "198.51.100.23"


@pytest.mark.asyncio
async def test_xff_ignored_when_remote_untrusted(client, db, monkeypatch):
    monkeypatch.setattr(get_settings(), "TRUSTED_PROXY_CIDRS", "")
    r = await client.post("/api/v1/events", json=BODY, headers={**UA, "X-Forwarded-For": "203.0.113.9"})
    assert r.status_code == 200, r.text
    # ASGITransport reports the peer as 127.0.0.1
    assert await _stored_ip(db) in ("127.0.0.1", "::1")
