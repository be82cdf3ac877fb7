from typing import Any, Dict, Iterable, Optional, Tuple

import httpx

from relay.headers import IGNORE_HEADERS


def session_from_set_cookie(set_cookie: str, session_key: Optional[str]) -> Optional[str]:
    """
    Return the value assigned to ``session_key`` in a Set-Cookie header, if any.

    Only the exact "; " separator is recognised, and the first "=" splits a part
    into name and value, so attributes such as Path never match a cookie name.
    """
    if not session_key:
        return None
    for part in set_cookie.split("; "):
        name, sep, value = part.partition("=")
        if sep and name == session_key:
            return value
    return None


def relay_headers(
    items: Iterable[Tuple[str, str]], session_key: Optional[str], session_value: Optional[str]
) -> Tuple[Dict[str, str], Optional[str]]:
    """
    Filter upstream response headers for the envelope and pick up a renewed session.

    Deny-listed headers and Content-Type are dropped. Repeated headers are
    joined with ", ". Returns the headers and the (possibly updated) session value.
    """
    headers: Dict[str, str] = {}
    for name, value in items:
        name = name.lower()
        if name in IGNORE_HEADERS or name == "content-type":
            continue

        if name == "set-cookie":
            renewed = session_from_set_cookie(value, session_key)
            if renewed is not None:
                session_value = renewed

        if name in headers:
            headers[name] = f"{headers[name]}, {value}"
        else:
            headers[name] = value
    return headers, session_value


def repackage(
    response: httpx.Response,
    elapsed: float,
    sent_headers: Dict[str, str],
    session_key: Optional[str],
    session_value: Optional[str],
) -> Dict[str, Any]:
    headers, session_value = relay_headers(
        response.headers.multi_items(), session_key, session_value
    )
    return {
        "session": session_value,
        "headers": headers,
        "sentHeaders": sent_headers,
        "response": response.text,
        "time": elapsed,
    }
