"""
Uniform JSON envelope returned by every relay endpoint except the static page.

    {
        "code": 0,
        "status": 200,
        "description": "Completed",
        "data": {...},
        "hash": null,
        "user": null,
        "runtime": 0.123
    }

``code`` is 0 on success, a small integer for relay-level rejections and the
exception class name for failures raised while handling the request.
"""

import json
import logging
import time
from typing import Any, Dict, Optional, Union

from fastapi import Request
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from relay.utils.exception_logging import (
    exception_code,
    exception_stack,
    format_exception_message,
    log_exception_with_details,
)

logger = logging.getLogger("uvicorn.error")

Code = Union[int, str]


class RelayError(Exception):
    """Stops request handling and is rendered as an envelope by the app."""

    def __init__(
        self,
        code: Code,
        description: str,
        status: int = 500,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(description)
        self.code = code
        self.description = description
        self.status = status
        self.data = data
        self.headers = headers or {}

    @classmethod
    def from_exception(
        cls,
        exception: BaseException,
        status: int = 500,
        headers: Optional[Dict[str, str]] = None,
    ) -> "RelayError":
        return cls(
            exception_code(exception),
            format_exception_message(exception),
            status,
            {"stacktrace": exception_stack(exception)},
            headers,
        )


def mark_request_start(request: Request) -> float:
    """Remember when handling of ``request`` began, keeping the earliest mark."""
    start = getattr(request.state, "relay_start", None)
    if start is None:
        start = time.perf_counter()
        request.state.relay_start = start
    return start


def request_runtime(request: Optional[Request]) -> float:
    if request is None:
        return 0.0
    start = getattr(request.state, "relay_start", None)
    if start is None:
        return 0.0
    return time.perf_counter() - start


def envelope_body(
    code: Code = 0,
    description: str = "Success!",
    status: int = 200,
    data: Any = None,
    runtime: float = 0.0,
) -> Dict[str, Any]:
    return {
        "code": code,
        "status": status,
        "description": description,
        "data": data,
        "hash": None,
        "user": None,
        "runtime": runtime,
    }


def log_outcome(code: Code, status: int, runtime: float, description: str) -> None:
    ok = code == 0
    logger.log(
        logging.INFO if ok else logging.ERROR,
        f"{'OKAY' if ok else 'ERRR'} {code} {status} {runtime:.3f}s {description}",
    )


def envelope_response(
    code: Code = 0,
    description: str = "Success!",
    status: int = 200,
    data: Any = None,
    runtime: float = 0.0,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """Serialize the envelope and log the outcome of the request."""
    response_headers = dict(headers or {})
    if not any(k.lower() == "access-control-allow-origin" for k in response_headers):
        response_headers["Access-Control-Allow-Origin"] = "*"

    content = json.dumps(
        envelope_body(code, description, status, data, runtime),
        indent=4,
        ensure_ascii=False,
        default=str,
    )
    log_outcome(code, status, runtime, description)
    return Response(
        content=content,
        status_code=status,
        headers=response_headers,
        media_type="application/json",
    )


async def relay_error_handler(request: Request, exc: RelayError) -> Response:
    return envelope_response(
        exc.code,
        exc.description,
        exc.status,
        exc.data,
        request_runtime(request),
        exc.headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    log_exception_with_details(logger, "[Relay]", exc)
    error = RelayError.from_exception(exc)
    return await relay_error_handler(request, error)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Routing failures (unsupported method, unknown route) also answer with an envelope."""
    error = RelayError(
        exception_code(exc),
        str(exc.detail),
        exc.status_code,
        headers=dict(exc.headers or {}),
    )
    return await relay_error_handler(request, error)
