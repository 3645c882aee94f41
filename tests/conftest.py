"""
Shared pytest fixtures: a fake panel served through httpx.MockTransport and
stub probes for the domain checker.
"""
import asyncio
import json

import httpx
import pytest

from inbound_manager.api import PanelClient
from inbound_manager.models import LocalProbeResult, RealityProbeResult

BASE_URL = "https://panel.test/api"
TOKEN = "test-token"


class FakePanel:
    """In-memory panel answering with {success, msg, obj} envelopes."""

    def __init__(self):
        self.inbounds: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.locked_answers = 0
        self.expired = False
        self.logins = 0
        self.probe_results: dict[str, dict] = {}

    @staticmethod
    def envelope(obj=None, success=True, msg=""):
        return httpx.Response(200, json={"success": success, "msg": msg, "obj": obj})

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api")
        body = json.loads(request.content) if request.content else {}

        if path == "/auth/login":
            if body == {"username": "admin", "password": "secret"}:
                self.logins += 1
                self.expired = False
                return self.envelope({"token": TOKEN}, msg="Login successful")
            return self.envelope(None, success=False, msg="invalid credentials")

        if self.expired or request.headers.get("Authorization") != f"Bearer {TOKEN}":
            return httpx.Response(401, json={"success": False, "msg": "unauthorized", "obj": None})

        if self.locked_answers:
            self.locked_answers -= 1
            return self.envelope(None, success=False, msg="database is locked")

        match path:
            case "/inbound/list":
                return self.envelope(list(self.inbounds.values()))
            case "/inbound/get":
                inbound = self.inbounds.get(request.url.params["id"])
                if inbound is None:
                    return self.envelope(None, success=False, msg="inbound not found")
                return self.envelope(inbound)
            case "/inbound/add" | "/inbound/update":
                stored = self.inbounds.get(body["id"], {})
                self.inbounds[body["id"]] = {**stored, **body}
                return self.envelope(self.inbounds[body["id"]])
            case "/inbound/del":
                self.inbounds.pop(body["id"], None)
                return self.envelope(None)
            case "/inbound/reset-traffic":
                self.inbounds[body["id"]].update(up=0, down=0)
                return self.envelope(None)
            case "/inbound/check-reality":
                result = self.probe_results.get(body["domain"])
                if result is None:
                    return self.envelope(None, success=False, msg="probe failed")
                return self.envelope(result)
            case "/xray/reality-keys":
                return httpx.Response(200, json={"private_key": "cHJpdmF0ZQ==", "public_key": "cHVibGlj"})
        return httpx.Response(404)


@pytest.fixture
def fake_panel() -> FakePanel:
    return FakePanel()


@pytest.fixture
async def panel_client(fake_panel: FakePanel) -> PanelClient:
    """Logged-in PanelClient talking to the fake panel."""
    client = PanelClient(BASE_URL, username="admin", password="secret",
                         transport=httpx.MockTransport(fake_panel))
    client.retry_delay = 0
    async with client:
        yield client


def remote_returning(result: RealityProbeResult | None, calls: list | None = None):
    async def probe(host: str):
        if calls is not None:
            calls.append(host)
        return result
    return probe


def local_returning(completed: bool = True, latency_ms: int = 50, calls: list | None = None):
    async def probe(host: str, timeout: float):
        if calls is not None:
            calls.append(host)
        return LocalProbeResult(completed=completed, latency_ms=latency_ms)
    return probe


def failing_probe(exc: Exception):
    async def probe(*args):
        raise exc
    return probe


def sleeping_probe(seconds: float):
    async def probe(*args):
        await asyncio.sleep(seconds)
        return None
    return probe


def tls13(latency: int | None = 100, key_exchange: str = "X25519") -> RealityProbeResult:
    return RealityProbeResult(is_valid=True, has_tls13=True, key_exchange=key_exchange,
                              latency=latency, message="target supports TLS 1.3 and X25519")


def no_tls13(latency: int | None = 100) -> RealityProbeResult:
    return RealityProbeResult(is_valid=False, has_tls13=False, key_exchange="Unsupported",
                              latency=latency, message="target only supports TLS 1.2 or lower")
