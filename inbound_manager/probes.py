"""Network probes used by the domain checker.

The local probe sends a single HEAD request to ``https://<host>`` and only
observes whether it completes and how long it takes. The remote probe asks
the panel to test TLS 1.3 support from the server's point of view.
"""

import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, TypeAlias

import httpx

from .models import LocalProbeResult, RealityProbeResult

if TYPE_CHECKING:
    from .endpoints import Inbounds

LocalProbe: TypeAlias = Callable[[str, float], Awaitable[LocalProbeResult]]
RemoteProbe: TypeAlias = Callable[[str], Awaitable[Optional[RealityProbeResult]]]

USER_AGENT = ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36")


class HttpLocalProbe:
    """Reachability probe over httpx.

    Any transport error or timeout yields ``completed=False`` instead of
    raising; status codes and bodies are ignored.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.transport = transport

    async def __call__(self, host: str, timeout: float) -> LocalProbeResult:
        start = time.perf_counter()
        completed = True
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=timeout, verify=False,
                                         headers={"User-Agent": USER_AGENT}) as client:
                await client.head(f"https://{host}")
        except httpx.HTTPError as e:
            logging.debug(f"Local probe of {host} got no response: {e!r}")
            completed = False
        latency = int((time.perf_counter() - start) * 1000)
        return LocalProbeResult(completed=completed, latency_ms=latency)


def panel_probe(inbounds: "Inbounds") -> RemoteProbe:
    """Adapt the panel's check-reality endpoint into a remote probe.

    Failed requests and unsuccessful envelopes become ``None``, meaning
    "no TLS 1.3 evidence".
    """

    async def probe(host: str) -> Optional[RealityProbeResult]:
        try:
            return await inbounds.check_reality(host)
        except (httpx.HTTPError, RuntimeError, ValueError) as e:
            logging.warning(f"Remote TLS probe of {host} failed: {e}")
            return None

    return probe
