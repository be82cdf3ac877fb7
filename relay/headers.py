import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from relay.utils import mask_token

logger = logging.getLogger("uvicorn.error")

# Never forwarded upstream and never relayed back to the caller
IGNORE_HEADERS = {
    "content-length",
    "location",
    "pragma",
    "access-control-allow-origin",
    "access-control-allow-headers",
}

# Hop-by-hop headers that should NOT be forwarded (RFC 9110)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

SESSION_KEY_HEADER = "session-cookie-key"
SESSION_VALUE_HEADER = "session-cookie-value"
SESSION_KEY_QUERY = "sesskey"
SESSION_VALUE_QUERY = "sessval"

# Control header sent by the caller -> header sent upstream
HEADER_SWAPS = {
    "set-host": "host",
    "set-origin": "origin",
    "set-referer": "referer",
}

ALLOWED_CONTROL_HEADERS = ", ".join(
    [
        "Accept",
        "Session-Cookie-Key",
        "Session-Cookie-Value",
        "Set-Host",
        "Upgrade-Insecure-Requests",
        "Set-Origin",
        "Set-Referer",
    ]
)


@dataclass
class OutboundRequest:
    """Headers to send upstream plus the session cookie they carry."""

    headers: Dict[str, str] = field(default_factory=dict)
    session_key: Optional[str] = None
    session_value: Optional[str] = None


def _query_value(query: Mapping[str, str], key: str) -> Optional[str]:
    value = query.get(key)
    return value if isinstance(value, str) else None


def append_cookie(headers: Dict[str, str], key: str, value: str) -> None:
    pair = f"{key}={value}"
    if headers.get("cookie"):
        headers["cookie"] = f"{headers['cookie']}; {pair}"
    else:
        headers["cookie"] = pair


def strip_ignored(headers: Dict[str, str]) -> Dict[str, str]:
    return {
        name: value
        for name, value in headers.items()
        if name not in IGNORE_HEADERS and name not in HOP_BY_HOP_HEADERS
    }


def prepare_headers(
    inbound: Mapping[str, str], query: Mapping[str, str]
) -> OutboundRequest:
    """
    Map the caller's headers onto the headers sent upstream.

    The session cookie pair comes from the Session-Cookie-* headers, falling back
    to the sesskey/sessval query parameters, and is appended to Cookie when the
    value is non-empty. Set-Host/Set-Origin/Set-Referer replace their targets.
    Control headers, deny-listed and hop-by-hop headers are dropped.
    """
    headers = {name.lower(): value for name, value in inbound.items()}

    session_key = headers.pop(SESSION_KEY_HEADER, None) or _query_value(
        query, SESSION_KEY_QUERY
    )
    session_value = headers.pop(SESSION_VALUE_HEADER, None) or _query_value(
        query, SESSION_VALUE_QUERY
    )

    # Host is derived from the target url unless Set-Host overrides it
    headers.pop("host", None)
    for control, target in HEADER_SWAPS.items():
        value = headers.pop(control, None)
        if value:
            headers[target] = value

    if session_key and session_value:
        append_cookie(headers, session_key, session_value)

    headers = strip_ignored(headers)
    logger.debug(
        mask_token(
            f"[Headers] Prepared {len(headers)} outbound headers, session key: {session_key}, value: {session_value}",
            session_value,
        )
    )
    return OutboundRequest(headers, session_key, session_value)
