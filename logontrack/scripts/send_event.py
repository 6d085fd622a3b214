import argparse
import asyncio
import getpass
import platform
import socket
import sys
from datetime import datetime, timezone

import httpx

ACTIONS = {"connect": "C", "disconnect": "D", "hardware": "M"}


def build_payload(action: str, username: str, hostname: str, timestamp: str | None = None) -> dict:
    payload = {
        "username": username,
        "action": ACTIONS[action],
        "timestamp": timestamp or datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
        "hostname": hostname,
        "os_info": {
            "os_name": platform.system(),
            "os_version": platform.version(),
            "kernel_version": platform.release(),
        },
    }
    if action == "hardware":
        payload["hardware_info"] = {
            "machine": platform.machine(),
            "processor": platform.processor(),
            "node": platform.node(),
        }
    return payload


async def send(base_url: str, payload: dict, user_agent: str, key: str | None, timeout: float = 5.0) -> httpx.Response:
    headers = {"User-Agent": user_agent}
    if key:
        headers["X-Ingest-Key"] = key
    async with httpx.AsyncClient(timeout=timeout) as client:
        return await client.post(f"{base_url}/api/v1/events", headers=headers, json=payload)


async def main():
    ap = argparse.ArgumentParser(description="Post one workstation event to a logontrack server")
    ap.add_argument("action", choices=sorted(ACTIONS))
    ap.add_argument("--base-url", default="http://127.0.0.1:8000")
    ap.add_argument("--username", default=getpass.getuser())
    ap.add_argument("--hostname", default=socket.gethostname())
    ap.add_argument("--timestamp", default=None, help="ISO 8601, defaults to now (UTC)")
    ap.add_argument("--user-agent", default="Winlog/0.1.0 (logontrack send_event)")
    ap.add_argument("--key", default=None, help="shared secret sent as X-Ingest-Key")
    args = ap.parse_args()

    payload = build_payload(args.action, args.username, args.hostname, args.timestamp)
    try:
        resp = await send(args.base_url, payload, args.user_agent, args.key)
    except httpx.HTTPError as exc:
        print(f"request failed: {exc}", file=sys.stderr)
        return 2
    print(resp.status_code, resp.text)
    return 0 if resp.is_success else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
