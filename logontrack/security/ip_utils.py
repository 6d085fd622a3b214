from __future__ import annotations

import ipaddress
from typing import List, Optional

from fastapi import Request

from logontrack.core.settings import get_settings

# checked in order; each may carry a comma-separated chain, left-most is the client
FORWARDING_HEADERS = ("cf-connecting-ip", "x-forwarded-for")


def parse_cidrs(cidrs: List[str]) -> List[ipaddress._BaseNetwork]:
    """Network objects for the given CIDR strings; invalid tokens are skipped."""
    nets: List[ipaddress._BaseNetwork] = []
    for p in cidrs:
        try:
            nets.append(ipaddress.ip_network(p, strict=False))
        except ValueError:
            continue
    return nets


def _is_trusted(ip: str, trusted: List[ipaddress._BaseNetwork]) -> bool:
    try:
        ipobj = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return any(ipobj.version == net.version and ipobj in net for net in trusted)


def _first_valid_ip(header_value: str) -> Optional[str]:
    first = header_value.split(",")[0].strip()
    try:
        ipaddress.ip_address(first)
    except ValueError:
        return None
    return first


def resolve_client_ip(remote: str, headers, trusted: List[ipaddress._BaseNetwork]) -> str:
    """
    Client address for a request seen from ``remote``.

    Forwarding headers are honoured only when ``remote`` is a trusted proxy;
    otherwise, or when no header carries a valid address, ``remote`` wins.
    """
    if remote and _is_trusted(remote, trusted):
        for name in FORWARDING_HEADERS:
            value = headers.get(name)
            if not value:
                continue
            ip = _first_valid_ip(value)
            if ip:
                return ip
    return remote or "unknown"


def get_client_ip(request: Request) -> str:
    remote = request.client.host if request.client else ""
    trusted = parse_cidrs(get_settings().trusted_proxy_cidrs())
    return resolve_client_ip(remote, request.headers, trusted)
