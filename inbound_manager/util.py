"""Utility functions and helpers for the inbound manager.

This module provides common utilities used across the package including:
- Splitting of comma/newline separated form values
- Traffic quota and expiry date conversions
- Secret generation (client UUIDs, Reality key material, short IDs)
- Panel response validation
"""

import logging
import secrets
import uuid
from datetime import UTC, date, datetime
from typing import TypeAlias, Union, Dict, Any, List
import httpx

JsonType: TypeAlias = Union[Dict[Any, Any], List[Any]]

BYTES_IN_GB = 1024 ** 3


def split_list(value: str, separator: str = ",") -> List[str]:
    """Split a separated form value into an ordered list of entries.

    Entries are trimmed and empty entries are dropped.

    Args:
        value: The raw string as typed by the user.
        separator: The designated separator for this field.

    Returns:
        The list of non-empty, trimmed entries in their original order.

    Examples:
        >>> split_list("h2, http/1.1,,")
        ['h2', 'http/1.1']
        >>> split_list("a.com\\n\\n b.com ", "\\n")
        ['a.com', 'b.com']
    """
    return [part.strip() for part in value.split(separator) if part.strip()]


def gb_to_bytes(gb: float) -> int:
    """Convert a gigabyte quota into bytes (0 stays 0, meaning unlimited)."""
    return int(gb * BYTES_IN_GB)


def bytes_to_gb(amount: int) -> float:
    """Convert a byte quota back into gigabytes.

    Examples:
        >>> bytes_to_gb(3 * 1024 ** 3)
        3.0
    """
    return amount / BYTES_IN_GB


def date_to_epoch_millis(value: str) -> int:
    """Convert an ISO date (``YYYY-MM-DD``) into epoch milliseconds.

    The date is taken as midnight UTC. An empty string means "never" and
    maps to 0.

    Args:
        value: The ISO date string, or an empty string.

    Returns:
        Milliseconds since the UNIX epoch, or 0.

    Raises:
        ValueError: If the string is not a valid ISO date.

    Examples:
        >>> date_to_epoch_millis("1970-01-02")
        86400000
        >>> date_to_epoch_millis("")
        0
    """
    if not value.strip():
        return 0
    parsed = date.fromisoformat(value.strip())
    moment = datetime(parsed.year, parsed.month, parsed.day, tzinfo=UTC)
    return int(moment.timestamp() * 1000)


def epoch_millis_to_date(value: int) -> str:
    """Inverse of :func:`date_to_epoch_millis`; 0 maps to an empty string."""
    if not value:
        return ""
    return datetime.fromtimestamp(value / 1000, UTC).date().isoformat()


def new_uuid() -> str:
    """Generate a random 128-bit client identifier in UUID form."""
    return str(uuid.UUID(bytes=secrets.token_bytes(16), version=4))


def generate_reality_keypair() -> dict[str, str]:
    """Generate placeholder Reality key material.

    Both values are independent 256-bit random numbers rendered as lowercase
    hex. They are NOT an X25519 key pair: the public key is not derived from
    the private key. Use ``Xray.new_reality_keys`` on the panel to obtain a
    real pair before deploying.

    Returns:
        A dictionary with 'privateKey' and 'publicKey' hex strings.
    """
    return {
        "privateKey": secrets.token_hex(32),
        "publicKey": secrets.token_hex(32),
    }


def generate_short_id() -> str:
    """Generate a Reality short ID: 32 random bits as 8 lowercase hex chars."""
    return secrets.token_hex(4)


def suggest_port() -> int:
    """Suggest a random listening port in the range [10000, 60000)."""
    return 10000 + secrets.randbelow(50000)


def check_response_validity(response: JsonType | httpx.Response) -> str:
    """Validate a panel API response envelope.

    Checks if the response follows the panel's envelope format with
    'success', 'msg', and 'obj' keys, and determines the response status.

    Args:
        response: Either a decoded JSON response or an httpx Response object.

    Returns:
        str: One of three status strings:
            - "OK": Response is valid and successful.
            - "DB_LOCKED": Database is locked, operation should be retried.
            - "ERROR": Operation was unsuccessful.

    Raises:
        RuntimeError: If the response doesn't match the envelope format.

    Examples:
        >>> check_response_validity({"success": True, "msg": "", "obj": {}})
        'OK'
        >>> check_response_validity({"success": False, "msg": "database is locked", "obj": None})
        'DB_LOCKED'
    """
    if isinstance(response, httpx.Response):
        json_resp = response.json()
    else:
        json_resp = response

    if isinstance(json_resp, dict) and {"success", "msg"} <= json_resp.keys():
        success: bool = json_resp["success"]
        msg: str = json_resp["msg"] or ""
        if success:
            return "OK"
        if "database" in msg.lower() and "locked" in msg.lower():
            logging.log(logging.WARNING, "Database is locked, retrying...")
            return "DB_LOCKED"
        logging.warning(f"Unsuccessful operation! Message: {msg}")
        return "ERROR"
    raise RuntimeError("Validator got something very unexpected (not a panel response envelope)")


class DBLockedError(Exception):
    """Exception raised when the panel database stays locked.

    Raised after the client has exhausted its retry budget on responses
    reporting that the SQLite database is locked by another operation.
    """

    def __init__(self, message: str):
        super().__init__(message)
