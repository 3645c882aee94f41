"""Caller-owned draft of an inbound, holding raw form values.

A draft is what an edit form manipulates: loosely typed scalars, lists
still joined by their separators, quota in GB and expiry as an ISO date.
It is turned into an :class:`~inbound_manager.models.InboundConfig` only by
:func:`~inbound_manager.synthesizer.synthesize`.
"""

from typing import Annotated, Any, Self

import pydantic
from pydantic import BeforeValidator, Field

from . import util
from .models import InboundConfig, ShadowsocksSettings, TrojanSettings, VlessSettings, VmessSettings

# form values arrive as strings, numbers or None
Raw = Annotated[str, BeforeValidator(lambda v: "" if v is None else str(v))]

SERVER_NAMES_SEPARATOR = "\n"
SHORT_IDS_SEPARATOR = "\n"
ALPN_SEPARATOR = ","
H2_HOST_SEPARATOR = ","
DEST_OVERRIDE_SEPARATOR = ","


def _reality_key(name: str):
    return lambda: util.generate_reality_keypair()[name]


class InboundDraft(pydantic.BaseModel):
    """Raw field values of one inbound being created or edited.

    A freshly constructed draft is ready for the create path: it carries a
    suggested random port, a new client UUID, placeholder Reality key
    material and a short ID. Use :meth:`from_inbound` for the edit path.
    """
    model_config = pydantic.ConfigDict(extra="forbid", validate_assignment=True)

    # base
    remark: Raw = ""
    enable: bool = True
    protocol: Raw = "vless"
    tag: Raw = ""
    listen: Raw = ""
    port: Raw = Field(default_factory=lambda: str(util.suggest_port()))
    total_gb: Raw = "0"
    expiry_date: Raw = ""  # YYYY-MM-DD, empty = never

    # vless / vmess / trojan client
    uuid: Raw = Field(default_factory=util.new_uuid)
    flow: Raw = ""
    level: Raw = "0"
    email: Raw = ""
    alter_id: Raw = "0"
    password: Raw = ""
    decryption: Raw = "none"

    # shadowsocks
    ss_method: Raw = "chacha20-ietf-poly1305"
    ss_password: Raw = ""
    ss_network: Raw = "tcp,udp"

    # transport
    network: Raw = "tcp"
    ws_path: Raw = "/"
    ws_host: Raw = ""
    grpc_service_name: Raw = ""
    grpc_multi_mode: bool = False
    h2_host: Raw = ""
    h2_path: Raw = "/"
    xhttp_mode: Raw = "auto"
    xhttp_path: Raw = "/"
    xhttp_host: Raw = ""

    # security
    security: Raw = "none"
    tls_server_name: Raw = ""
    tls_alpn: Raw = "h2,http/1.1"
    tls_allow_insecure: bool = False
    reality_show: bool = False
    reality_dest: Raw = "www.microsoft.com:443"
    reality_xver: Raw = "0"
    reality_fingerprint: Raw = "chrome"
    reality_server_names: Raw = "www.microsoft.com"
    reality_private_key: Raw = Field(default_factory=_reality_key("privateKey"))
    reality_public_key: Raw = Field(default_factory=_reality_key("publicKey"))
    reality_short_ids: Raw = Field(default_factory=util.generate_short_id)
    reality_min_client_ver: Raw = ""
    reality_max_client_ver: Raw = ""
    reality_max_time_diff: Raw = ""

    # socket options
    accept_proxy_protocol: bool = False
    tcp_fast_open: bool = True
    tcp_no_delay: bool = True

    # sniffing
    sniffing_enabled: bool = True
    sniffing_dest_override: Raw = "http,tls,quic"

    def update(self, **changes: Any) -> Self:
        """Set several fields at once; unknown field names raise."""
        for name, value in changes.items():
            if name not in type(self).model_fields:
                raise AttributeError(f"InboundDraft has no field '{name}'")
            setattr(self, name, value)
        return self

    def set_security(self, security: str) -> None:
        """Switch the security layer, making sure Reality has a short ID."""
        self.security = security
        if security == "reality" and not self.reality_short_ids.strip():
            self.regenerate_short_id()

    def regenerate_uuid(self) -> str:
        self.uuid = util.new_uuid()
        return self.uuid

    def regenerate_reality_keys(self) -> dict[str, str]:
        """Replace the Reality key fields with fresh placeholder material.

        See :func:`inbound_manager.util.generate_reality_keypair`: the two
        values are unrelated random numbers, not a derived key pair.
        """
        keys = util.generate_reality_keypair()
        self.set_reality_keys(keys["privateKey"], keys["publicKey"])
        return keys

    def set_reality_keys(self, private_key: str, public_key: str) -> None:
        self.reality_private_key = private_key
        self.reality_public_key = public_key

    def regenerate_short_id(self) -> str:
        self.reality_short_ids = util.generate_short_id()
        return self.reality_short_ids

    @classmethod
    def from_inbound(cls, inbound: InboundConfig) -> Self:
        """Load a persisted inbound back into form values (edit path)."""
        draft = cls(
            remark=inbound.remark,
            enable=inbound.enable,
            protocol=inbound.protocol,
            tag=inbound.tag or "",
            listen=inbound.listen or "",
            port=inbound.port,
            total_gb=f"{util.bytes_to_gb(inbound.total):g}",
            expiry_date=util.epoch_millis_to_date(inbound.expiry),
        )

        settings = inbound.settings
        if isinstance(settings, (VlessSettings, VmessSettings, TrojanSettings)):
            client = settings.clients[0]
            draft.level = str(client.level or 0)
            draft.email = client.email or ""
            if isinstance(settings, TrojanSettings):
                draft.password = client.password
            else:
                draft.uuid = client.id
            if isinstance(settings, VlessSettings):
                draft.flow = client.flow or ""
                draft.decryption = settings.decryption
            if isinstance(settings, VmessSettings):
                draft.alter_id = str(client.alterId or 0)
        elif isinstance(settings, ShadowsocksSettings):
            draft.ss_method = settings.method
            draft.ss_password = settings.password
            draft.ss_network = settings.network

        stream = inbound.streamSettings
        draft.network = stream.network
        draft.security = stream.security
        if stream.wsSettings:
            draft.ws_path = stream.wsSettings.path
            draft.ws_host = stream.wsSettings.headers.Host if stream.wsSettings.headers else ""
        if stream.grpcSettings:
            draft.grpc_service_name = stream.grpcSettings.serviceName
            draft.grpc_multi_mode = stream.grpcSettings.multiMode
        if stream.httpSettings:
            draft.h2_host = H2_HOST_SEPARATOR.join(stream.httpSettings.host or [])
            draft.h2_path = stream.httpSettings.path
        if stream.xhttpSettings:
            draft.xhttp_mode = stream.xhttpSettings.mode
            draft.xhttp_path = stream.xhttpSettings.path
            draft.xhttp_host = stream.xhttpSettings.host or ""
        if stream.tlsSettings:
            draft.tls_server_name = stream.tlsSettings.serverName or ""
            draft.tls_alpn = ALPN_SEPARATOR.join(stream.tlsSettings.alpn or [])
            draft.tls_allow_insecure = stream.tlsSettings.allowInsecure
        if stream.realitySettings:
            rs = stream.realitySettings
            draft.reality_show = rs.show
            draft.reality_dest = rs.dest
            draft.reality_xver = str(rs.xver)
            draft.reality_fingerprint = rs.fingerprint
            draft.reality_server_names = SERVER_NAMES_SEPARATOR.join(rs.serverNames)
            draft.set_reality_keys(rs.privateKey, rs.publicKey)
            draft.reality_short_ids = SHORT_IDS_SEPARATOR.join(rs.shortIds)
            draft.reality_min_client_ver = rs.minClientVer or ""
            draft.reality_max_client_ver = rs.maxClientVer or ""
            draft.reality_max_time_diff = "" if rs.maxTimeDiff is None else str(rs.maxTimeDiff)
        draft.tcp_fast_open = bool(stream.sockopt and stream.sockopt.tcpFastOpen)
        draft.tcp_no_delay = bool(stream.sockopt and stream.sockopt.tcpNoDelay)
        draft.accept_proxy_protocol = bool(stream.acceptProxyProtocol)

        if inbound.sniffing:
            draft.sniffing_enabled = inbound.sniffing.enabled
            draft.sniffing_dest_override = DEST_OVERRIDE_SEPARATOR.join(inbound.sniffing.destOverride)
        else:
            draft.sniffing_enabled = False
        return draft
