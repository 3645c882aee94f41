"""Turn an :class:`InboundDraft` into a canonical :class:`InboundConfig`.

Validation stops at the first failure and raises :class:`FieldError`;
nothing is assembled or submitted in that case. Optional values are only
written when they are non-empty, so the persisted shape stays minimal.
"""

import logging
import math
import uuid as uuid_lib
from typing import Any, Dict

import pydantic

from . import util
from .draft import (
    ALPN_SEPARATOR,
    DEST_OVERRIDE_SEPARATOR,
    H2_HOST_SEPARATOR,
    SERVER_NAMES_SEPARATOR,
    SHORT_IDS_SEPARATOR,
    InboundDraft,
)
from .models import (
    NETWORKS,
    PROTOCOLS,
    SECURITIES,
    SHADOWSOCKS_METHODS,
    TRANSPORT_KEYS,
    XHTTP_MODES,
    FLOWS,
    InboundConfig,
)

PROTOCOL_NAMES = {
    "vless": "VLESS",
    "vmess": "VMess",
    "trojan": "Trojan",
    "shadowsocks": "Shadowsocks",
}


class FieldError(ValueError):
    """A user-correctable problem with a single draft field.

    Attributes:
        field: Name of the offending :class:`InboundDraft` field.
        message: Explanation suitable for showing next to the field.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


def _int_field(draft: InboundDraft, field: str, *, default: int | None = None) -> int | None:
    raw = getattr(draft, field).strip()
    if not raw:
        return default
    if not (raw.isascii() and raw.removeprefix("-").isdigit()):
        raise FieldError(field, f"'{raw}' is not a valid number")
    return int(raw)


def _validate(draft: InboundDraft) -> int:
    """Run the ordered checks; returns the parsed port."""
    if not draft.remark.strip():
        raise FieldError("remark", "Remark is required")

    port = _int_field(draft, "port")
    if port is None:
        raise FieldError("port", "Port is required")
    if not 1 <= port <= 65535:
        raise FieldError("port", f"Port {port} is out of range 1-65535")

    if draft.protocol not in PROTOCOLS:
        raise FieldError("protocol", f"Unsupported protocol '{draft.protocol}'")
    name = PROTOCOL_NAMES[draft.protocol]
    if draft.protocol in ("vless", "vmess") and not draft.uuid.strip():
        raise FieldError("uuid", f"{name} UUID must not be empty")
    if draft.protocol == "trojan" and not draft.password:
        raise FieldError("password", f"{name} password must not be empty")
    if draft.protocol == "shadowsocks" and not draft.ss_password:
        raise FieldError("ss_password", f"{name} password must not be empty")

    if draft.network not in NETWORKS:
        raise FieldError("network", f"Unsupported network '{draft.network}'")
    if draft.security not in SECURITIES:
        raise FieldError("security", f"Unsupported security '{draft.security}'")
    if draft.security == "reality" and not draft.reality_private_key.strip():
        raise FieldError("reality_private_key", "Reality private key must not be empty")
    return port


def _protocol_settings(draft: InboundDraft) -> Dict[str, Any]:
    if draft.protocol == "shadowsocks":
        if draft.ss_method not in SHADOWSOCKS_METHODS:
            raise FieldError("ss_method", f"Unsupported Shadowsocks method '{draft.ss_method}'")
        return {
            "method": draft.ss_method,
            "password": draft.ss_password,
            "network": draft.ss_network,
        }

    if draft.protocol == "trojan":
        client: Dict[str, Any] = {"password": draft.password}
    else:
        client = {"id": draft.uuid.strip()}
        if draft.protocol == "vless" and draft.flow:
            if draft.flow not in FLOWS:
                raise FieldError("flow", f"Unsupported flow '{draft.flow}'")
            client["flow"] = draft.flow
    level = _int_field(draft, "level")
    if level is not None:
        client["level"] = level
    if draft.email:
        client["email"] = draft.email
    if draft.protocol == "vmess":
        client["alterId"] = _int_field(draft, "alter_id", default=0)

    settings: Dict[str, Any] = {"clients": [client]}
    if draft.protocol == "vless":
        settings["decryption"] = draft.decryption or "none"
    return settings


def _transport_settings(draft: InboundDraft) -> Dict[str, Any] | None:
    match draft.network:
        case "ws":
            ws: Dict[str, Any] = {"path": draft.ws_path}
            if draft.ws_host:
                ws["headers"] = {"Host": draft.ws_host}
            return ws
        case "grpc":
            return {"serviceName": draft.grpc_service_name, "multiMode": draft.grpc_multi_mode}
        case "h2":
            h2: Dict[str, Any] = {"path": draft.h2_path}
            hosts = util.split_list(draft.h2_host, H2_HOST_SEPARATOR)
            if hosts:
                h2["host"] = hosts
            return h2
        case "xhttp":
            if draft.xhttp_mode not in XHTTP_MODES:
                raise FieldError("xhttp_mode", f"Unsupported XHTTP mode '{draft.xhttp_mode}'")
            xhttp: Dict[str, Any] = {"mode": draft.xhttp_mode, "path": draft.xhttp_path}
            if draft.xhttp_host:
                xhttp["host"] = draft.xhttp_host
            return xhttp
    return None


def _tls_settings(draft: InboundDraft) -> Dict[str, Any]:
    tls: Dict[str, Any] = {"allowInsecure": draft.tls_allow_insecure}
    if draft.tls_server_name:
        tls["serverName"] = draft.tls_server_name
    alpn = util.split_list(draft.tls_alpn, ALPN_SEPARATOR)
    if alpn:
        tls["alpn"] = alpn
    return tls


def _reality_settings(draft: InboundDraft) -> Dict[str, Any]:
    if not draft.reality_public_key:
        logging.warning("Reality public key is empty, share links cannot be built for this inbound")
    reality: Dict[str, Any] = {
        "show": draft.reality_show,
        "dest": draft.reality_dest,
        "xver": _int_field(draft, "reality_xver", default=0),
        "serverNames": util.split_list(draft.reality_server_names, SERVER_NAMES_SEPARATOR),
        "privateKey": draft.reality_private_key.strip(),
        "publicKey": draft.reality_public_key.strip(),
        "shortIds": util.split_list(draft.reality_short_ids, SHORT_IDS_SEPARATOR),
        "fingerprint": draft.reality_fingerprint,
    }
    if draft.reality_min_client_ver:
        reality["minClientVer"] = draft.reality_min_client_ver
    if draft.reality_max_client_ver:
        reality["maxClientVer"] = draft.reality_max_client_ver
    max_time_diff = _int_field(draft, "reality_max_time_diff")
    if max_time_diff is not None:
        reality["maxTimeDiff"] = max_time_diff
    return reality


def _stream_settings(draft: InboundDraft) -> Dict[str, Any]:
    stream: Dict[str, Any] = {"network": draft.network, "security": draft.security}

    transport_key = TRANSPORT_KEYS[draft.network]
    if transport_key:
        stream[transport_key] = _transport_settings(draft)

    if draft.security == "tls":
        stream["tlsSettings"] = _tls_settings(draft)
    elif draft.security == "reality":
        stream["realitySettings"] = _reality_settings(draft)

    sockopt = {}
    if draft.tcp_fast_open:
        sockopt["tcpFastOpen"] = True
    if draft.tcp_no_delay:
        sockopt["tcpNoDelay"] = True
    if sockopt:
        stream["sockopt"] = sockopt
    if draft.accept_proxy_protocol:
        stream["acceptProxyProtocol"] = True
    return stream


def _quota_bytes(draft: InboundDraft) -> int:
    raw = draft.total_gb.strip() or "0"
    try:
        gb = float(raw)
    except ValueError:
        raise FieldError("total_gb", f"'{raw}' is not a valid number") from None
    if not math.isfinite(gb) or gb * util.BYTES_IN_GB >= 2 ** 63:
        raise FieldError("total_gb", f"'{raw}' is not a usable traffic quota")
    if gb < 0:
        raise FieldError("total_gb", "Traffic quota cannot be negative")
    return util.gb_to_bytes(gb)


def _expiry_millis(draft: InboundDraft) -> int:
    try:
        return util.date_to_epoch_millis(draft.expiry_date)
    except ValueError:
        raise FieldError("expiry_date", f"'{draft.expiry_date}' is not a valid date (YYYY-MM-DD)") from None


def synthesize(draft: InboundDraft, editing: InboundConfig | None = None) -> InboundConfig:
    """Validate a draft and assemble the canonical inbound configuration.

    Args:
        draft: The raw field values.
        editing: The persisted inbound being edited. Its ``id`` and traffic
            counters are carried over; without it a fresh id is generated.

    Returns:
        The validated :class:`InboundConfig`.

    Raises:
        FieldError: On the first field that fails validation.
    """
    port = _validate(draft)

    data: Dict[str, Any] = {
        "id": editing.id if editing else str(uuid_lib.uuid4()),
        "remark": draft.remark,
        "enable": draft.enable,
        "port": port,
        "protocol": draft.protocol,
        "settings": _protocol_settings(draft),
        "streamSettings": _stream_settings(draft),
        "total": _quota_bytes(draft),
        "expiry": _expiry_millis(draft),
        "up": editing.up if editing else 0,
        "down": editing.down if editing else 0,
    }
    if draft.tag:
        data["tag"] = draft.tag
    if draft.listen:
        data["listen"] = draft.listen
    if draft.sniffing_enabled:
        data["sniffing"] = {
            "enabled": True,
            "destOverride": util.split_list(draft.sniffing_dest_override, DEST_OVERRIDE_SEPARATOR),
        }

    try:
        return InboundConfig.model_validate(data)
    except pydantic.ValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error["loc"]) or "inbound"
        raise FieldError(location, error["msg"]) from e
