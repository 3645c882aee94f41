"""Pydantic models for inbound listener definitions and domain checks.

The persisted unit is :class:`InboundConfig`. Its ``settings`` is a closed
union keyed by ``protocol`` and its ``streamSettings`` carries exactly one
transport block (matching ``network``) and at most one security block
(matching ``security``). Every model rejects unknown keys.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, TypeAlias, Union, get_args

import pydantic
from pydantic import Field, field_validator, model_validator

from . import base_model

timestamp_ms: TypeAlias = int
ip_address: TypeAlias = str

Protocol: TypeAlias = Literal["vless", "vmess", "trojan", "shadowsocks"]
Network: TypeAlias = Literal["tcp", "ws", "grpc", "h2", "xhttp"]
Security: TypeAlias = Literal["none", "tls", "reality"]
Flow: TypeAlias = Literal["xtls-rprx-vision", "xtls-rprx-vision-udp443"]
XhttpMode: TypeAlias = Literal["auto", "packet-up", "stream-up", "stream-one"]
ShadowsocksMethod: TypeAlias = Literal[
    "aes-128-gcm",
    "aes-256-gcm",
    "chacha20-ietf-poly1305",
    "xchacha20-ietf-poly1305",
    "2022-blake3-aes-128-gcm",
    "2022-blake3-aes-256-gcm",
    "2022-blake3-chacha20-poly1305",
]

PROTOCOLS: tuple[str, ...] = get_args(Protocol)
NETWORKS: tuple[str, ...] = get_args(Network)
SECURITIES: tuple[str, ...] = get_args(Security)
SHADOWSOCKS_METHODS: tuple[str, ...] = get_args(ShadowsocksMethod)
XHTTP_MODES: tuple[str, ...] = get_args(XhttpMode)
FLOWS: tuple[str, ...] = get_args(Flow)

Secret = Annotated[str, Field(min_length=1)]

# ---- protocol settings ----


class VlessClient(base_model.BaseModel):
    id: Secret  # uuid
    flow: Optional[Flow] = None
    level: Optional[int] = None
    email: Optional[str] = None


class VmessClient(base_model.BaseModel):
    id: Secret  # uuid
    level: Optional[int] = None
    email: Optional[str] = None
    alterId: Optional[int] = None


class TrojanClient(base_model.BaseModel):
    password: Secret
    level: Optional[int] = None
    email: Optional[str] = None


def _single_client(clients: list) -> list:
    # the editable inbound is single-user
    if len(clients) != 1:
        raise ValueError(f"exactly one client is expected, got {len(clients)}")
    return clients


class VlessSettings(base_model.BaseModel):
    clients: List[VlessClient]
    decryption: str = "none"

    check_clients = field_validator("clients")(_single_client)


class VmessSettings(base_model.BaseModel):
    clients: List[VmessClient]

    check_clients = field_validator("clients")(_single_client)


class TrojanSettings(base_model.BaseModel):
    clients: List[TrojanClient]

    check_clients = field_validator("clients")(_single_client)


class ShadowsocksSettings(base_model.BaseModel):
    method: ShadowsocksMethod = "chacha20-ietf-poly1305"
    password: Secret
    network: str = "tcp,udp"


ProtocolSettings: TypeAlias = Union[VlessSettings, VmessSettings, TrojanSettings, ShadowsocksSettings]

PROTOCOL_SETTINGS: Dict[str, type[base_model.BaseModel]] = {
    "vless": VlessSettings,
    "vmess": VmessSettings,
    "trojan": TrojanSettings,
    "shadowsocks": ShadowsocksSettings,
}

# ---- transport settings ----


class WsHeaders(base_model.BaseModel):
    Host: str


class WsSettings(base_model.BaseModel):
    path: str = "/"
    headers: Optional[WsHeaders] = None


class GrpcSettings(base_model.BaseModel):
    serviceName: str = ""
    multiMode: bool = False


class HttpSettings(base_model.BaseModel):
    host: Optional[List[str]] = None
    path: str = "/"


class XhttpSettings(base_model.BaseModel):
    mode: XhttpMode = "auto"
    path: str = "/"
    host: Optional[str] = None


# network -> key of its settings block; tcp carries none
TRANSPORT_KEYS: Dict[str, Optional[str]] = {
    "tcp": None,
    "ws": "wsSettings",
    "grpc": "grpcSettings",
    "h2": "httpSettings",
    "xhttp": "xhttpSettings",
}

# ---- security settings ----


class TlsSettings(base_model.BaseModel):
    serverName: Optional[str] = None
    alpn: Optional[List[str]] = None
    allowInsecure: bool = False


class RealitySettings(base_model.BaseModel):
    """Reality camouflage settings.

    ``publicKey`` is required next to ``privateKey``: share links are built
    from the persisted config and cannot be produced without it.
    """
    show: bool = False
    dest: str
    xver: int = 0
    serverNames: List[str]
    privateKey: Secret
    publicKey: str
    shortIds: List[str]
    fingerprint: str = "chrome"
    minClientVer: Optional[str] = None
    maxClientVer: Optional[str] = None
    maxTimeDiff: Optional[int] = None


SECURITY_KEYS: Dict[str, Optional[str]] = {
    "none": None,
    "tls": "tlsSettings",
    "reality": "realitySettings",
}


class Sockopt(base_model.BaseModel):
    tcpFastOpen: Optional[bool] = None
    tcpNoDelay: Optional[bool] = None

    @model_validator(mode="after")
    def not_empty(self):
        if not (self.tcpFastOpen or self.tcpNoDelay):
            raise ValueError("sockopt must contain at least one enabled option, omit it otherwise")
        return self


class StreamSettings(base_model.BaseModel):
    network: Network = "tcp"
    security: Security = "none"
    wsSettings: Optional[WsSettings] = None
    grpcSettings: Optional[GrpcSettings] = None
    httpSettings: Optional[HttpSettings] = None
    xhttpSettings: Optional[XhttpSettings] = None
    tlsSettings: Optional[TlsSettings] = None
    realitySettings: Optional[RealitySettings] = None
    sockopt: Optional[Sockopt] = None
    acceptProxyProtocol: Optional[bool] = None

    @model_validator(mode="after")
    def blocks_match_selectors(self):
        """Only the blocks selected by ``network`` and ``security`` may be set."""
        wanted_transport = TRANSPORT_KEYS[self.network]
        for key in filter(None, TRANSPORT_KEYS.values()):
            present = getattr(self, key) is not None
            if key == wanted_transport and not present:
                raise ValueError(f"network '{self.network}' requires {key}")
            if key != wanted_transport and present:
                raise ValueError(f"{key} is not allowed with network '{self.network}'")

        wanted_security = SECURITY_KEYS[self.security]
        for key in filter(None, SECURITY_KEYS.values()):
            present = getattr(self, key) is not None
            if key == wanted_security and not present:
                raise ValueError(f"security '{self.security}' requires {key}")
            if key != wanted_security and present:
                raise ValueError(f"{key} is not allowed with security '{self.security}'")
        return self


class Sniffing(base_model.BaseModel):
    enabled: bool = True
    destOverride: List[str] = Field(default_factory=lambda: ["http", "tls", "quic"])
    metadataOnly: Optional[bool] = None
    routeOnly: Optional[bool] = None


class InboundConfig(base_model.BaseModel):
    """Represents an inbound listener definition as persisted by the panel.

    Attributes:
        id: Opaque identifier, generated by the caller on create.
        remark: Human-readable name of the inbound.
        enable: Whether the inbound is active.
        port: The port number the inbound listens on.
        protocol: The proxy protocol (vless, vmess, trojan, shadowsocks).
        tag: Routing tag, omitted when unset.
        listen: Listen address, omitted when unset.
        settings: Protocol settings, the variant selected by ``protocol``.
        streamSettings: Transport and transport-security settings.
        sniffing: Traffic sniffing settings.
        up: Uploaded bytes, maintained by the runtime.
        down: Downloaded bytes, maintained by the runtime.
        total: Traffic quota in bytes (0 = unlimited).
        expiry: Expiry as epoch milliseconds (0 = never).
    """
    id: str
    remark: Annotated[str, Field(min_length=1)]
    enable: bool = True
    port: Annotated[int, Field(ge=1, le=65535)]
    protocol: Protocol
    tag: Optional[str] = None
    listen: Optional[ip_address] = None
    settings: ProtocolSettings
    streamSettings: StreamSettings
    sniffing: Optional[Sniffing] = None
    up: int = 0  # bytes
    down: int = 0  # bytes
    total: int = 0  # bytes
    expiry: timestamp_ms = 0
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    # noinspection PyNestedDecorators
    @model_validator(mode="before")
    @classmethod
    def select_settings_variant(cls, data: Any) -> Any:
        """Validate ``settings`` against the variant named by ``protocol``."""
        if isinstance(data, dict) and isinstance(data.get("settings"), dict):
            variant = PROTOCOL_SETTINGS.get(data.get("protocol"))
            if variant is not None:
                data = {**data, "settings": variant.model_validate(data["settings"])}
        return data

    @model_validator(mode="after")
    def settings_match_protocol(self):
        if not isinstance(self.settings, PROTOCOL_SETTINGS[self.protocol]):
            raise ValueError(f"settings do not belong to protocol '{self.protocol}'")
        return self

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict for the panel; unset optional fields are left out."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---- domain checks ----


class RealityProbeResult(pydantic.BaseModel):
    """Answer of the panel's remote TLS probe for a Reality target."""
    model_config = pydantic.ConfigDict(extra="ignore")

    is_valid: bool = False
    has_tls13: bool = False
    key_exchange: str = ""
    latency: Optional[int] = None  # ms, measured by the panel
    message: str = ""


class RiskAssessment(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    is_risk: bool
    penalty: int
    reason: Optional[str] = None


class DomainCheckResult(pydantic.BaseModel):
    """Verdict on a candidate Reality target.

    Attributes:
        is_valid: Final verdict.
        message: Human-readable summary.
        details: Pipe-joined diagnostic fragments.
        score: Fitness score 0-100, only set by full checks.
        warning: Risk narrative, only set when a risk rule fired.
    """
    model_config = pydantic.ConfigDict(frozen=True, populate_by_name=True)

    is_valid: Annotated[bool, Field(alias="isValid")]
    message: str
    details: Optional[str] = None
    score: Annotated[Optional[int], Field(ge=0, le=100)] = None
    warning: Optional[str] = None


class LocalProbeResult(pydantic.BaseModel):
    """Outcome of the local reachability probe.

    Attributes:
        completed: Whether any HTTP response came back in time.
        latency_ms: Elapsed time of the attempt, in milliseconds.
    """
    model_config = pydantic.ConfigDict(frozen=True)

    completed: bool
    latency_ms: int
