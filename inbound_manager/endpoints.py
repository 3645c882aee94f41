"""API endpoint handlers for the administration panel.

This module provides endpoint classes that wrap the panel API endpoints
for inbound management, the remote Reality target probe and server-side
key generation.
"""

from typing import TYPE_CHECKING, List, Literal

from httpx import Response

from .draft import InboundDraft
from .models import InboundConfig, RealityProbeResult
from .synthesizer import synthesize
from .util import JsonType

if TYPE_CHECKING:
    from .api import PanelClient


class BaseEndpoint:
    """Base class for API endpoint handlers.

    Attributes:
        _url: The base URL path for this endpoint group.
        client: Reference to the PanelClient instance.
    """
    _url: str

    def __init__(self, client: "PanelClient") -> None:
        self.client = client

    def _endpoint(self, caller_endpoint: str) -> str:
        if caller_endpoint.startswith(self._url):
            return caller_endpoint
        return f"{self._url}{caller_endpoint}"

    async def _simple_get(self, caller_endpoint: str, **params) -> JsonType:
        """Perform a GET request and return the envelope's 'obj' field."""
        resp = await self.client.safe_get(self._endpoint(caller_endpoint), params=params or None)
        return resp.json()["obj"]

    async def _simple_post(self, caller_endpoint: str, payload: JsonType) -> Response:
        return await self.client.safe_post(self._endpoint(caller_endpoint), json=payload)


class Inbounds(BaseEndpoint):
    """Handler for inbound-related API endpoints.

    This is the submit boundary: configurations are persisted as produced by
    :func:`~inbound_manager.synthesizer.synthesize`, deletion is keyed by id.
    No request is retried here beyond what the client does for a locked
    database.

    Endpoints:
        - /inbound/list
        - /inbound/get?id={id}
        - /inbound/add
        - /inbound/update
        - /inbound/del
        - /inbound/reset-traffic
        - /inbound/check-reality
    """
    _url = "/inbound"

    async def get_all(self) -> List[InboundConfig]:
        """Retrieve all inbounds from the panel."""
        resp = await self.client.safe_get(self._endpoint("/list"))
        return InboundConfig.from_response(resp, list)

    async def get(self, id: str) -> InboundConfig:
        """Retrieve a specific inbound by ID.

        Args:
            id: The ID of the inbound to retrieve.
        """
        obj = await self._simple_get("/get", id=id)
        return InboundConfig.model_validate(obj)

    async def add(self, inbound: InboundConfig) -> Response:
        return await self._simple_post("/add", inbound.to_payload())

    async def update(self, inbound: InboundConfig) -> Response:
        """Full update of an existing inbound; the payload carries its id."""
        return await self._simple_post("/update", inbound.to_payload())

    async def delete(self, id: str) -> Response:
        return await self._simple_post("/del", {"id": id})

    async def toggle(self, id: str, enable: bool) -> Response:
        return await self._simple_post("/update", {"id": id, "enable": enable})

    async def reset_traffic(self, id: str) -> Response:
        return await self._simple_post("/reset-traffic", {"id": id})

    async def submit(self, draft: InboundDraft, editing: InboundConfig | None = None) -> InboundConfig:
        """Synthesize a draft and persist it.

        Args:
            draft: The raw field values.
            editing: The persisted inbound being edited, None to create.

        Returns:
            The configuration that was sent.

        Raises:
            FieldError: If the draft is invalid; nothing is sent then.
        """
        inbound = synthesize(draft, editing)
        if editing is None:
            await self.add(inbound)
        else:
            await self.update(inbound)
        return inbound

    async def check_reality(self, domain: str) -> RealityProbeResult:
        """Ask the panel whether a Reality target supports TLS 1.3.

        Args:
            domain: The bare target hostname.

        Returns:
            TLS 1.3 support, key exchange, server-side latency and a message.
        """
        resp = await self._simple_post("/check-reality", {"domain": domain})
        return RealityProbeResult.model_validate(resp.json()["obj"])


class Xray(BaseEndpoint):
    """Handler for Xray helper endpoints.

    Endpoints:
        - /xray/reality-keys
    """
    _url = "/xray"

    async def new_reality_keys(self) -> dict[Literal["privateKey", "publicKey"], str]:
        """Generate a genuine X25519 key pair on the panel.

        Returns:
            A dictionary containing base64 'privateKey' and 'publicKey' strings.
        """
        resp = await self.client.safe_get(self._endpoint("/reality-keys"), envelope=False)
        keys = resp.json()
        return {"privateKey": keys["private_key"], "publicKey": keys["public_key"]}
