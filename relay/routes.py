import logging
from pathlib import Path
from typing import Dict

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, Response
from opentelemetry import trace

from relay import vars as relay_vars
from relay.envelope import (
    RelayError,
    envelope_response,
    mark_request_start,
    request_runtime,
)
from relay.forwarder import forward
from relay.headers import ALLOWED_CONTROL_HEADERS, prepare_headers
from relay.repackager import repackage
from relay.utils.exception_logging import log_exception_with_details
from relay.utils.traced_requests import traced_request

router = APIRouter()

logger = logging.getLogger("uvicorn.error")

tracer = trace.get_tracer(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def _cors_headers(request: Request) -> Dict[str, str]:
    """CORS headers that let a browser page call the relay with credentials."""
    return {
        "Access-Control-Allow-Origin": request.headers.get("origin") or "*",
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Headers": ALLOWED_CONTROL_HEADERS,
    }


async def read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, refusing anything larger than ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise RelayError(-1, "POST Data Too Large!", 413)

    body = b""
    async for chunk in request.stream():
        body += chunk
        if len(body) > limit:
            raise RelayError(-1, "POST Data Too Large!", 413)
    return body


@router.api_route(relay_vars.FORWARD_PATH, methods=ALL_METHODS)
async def relay_request(request: Request) -> Response:
    """Forward the request to the url given in the query and wrap the answer."""
    mark_request_start(request)
    cors = _cors_headers(request)

    try:
        if request.method == "OPTIONS":
            return envelope_response(
                0, "Options Request", 200, runtime=request_runtime(request), headers=cors
            )

        body = await read_limited_body(request, relay_vars.RELAY_MAX_BODY_BYTES)

        url = request.query_params.get("url")
        if url is None:
            raise RelayError(1, "Undefined query: url", 400)

        outbound = prepare_headers(request.headers, request.query_params)
        with traced_request(
            tracer,
            operation="relay_request",
            session_key=outbound.session_key,
            session_value=outbound.session_value,
            start_message=f"[Relay] {request.method} {url} (session key: {outbound.session_key}, value: {outbound.session_value})",
            extra_attrs={"relay.url": url},
        ):
            result = await forward(request.method, url, outbound.headers, body)

        data = repackage(
            result.response,
            result.elapsed,
            outbound.headers,
            outbound.session_key,
            outbound.session_value,
        )
        return envelope_response(
            0,
            "Completed",
            result.response.status_code,
            data,
            request_runtime(request),
            cors,
        )
    except RelayError as e:
        e.headers = {**cors, **e.headers}
        raise
    except Exception as e:
        log_exception_with_details(logger, "[Relay]", e)
        raise RelayError.from_exception(e, headers=cors) from e


@router.get("/health")
async def health(request: Request) -> Response:
    mark_request_start(request)
    return envelope_response(
        0,
        "Healthy",
        200,
        {
            "service": relay_vars.SERVICE_NAME,
            "allowed_hosts": relay_vars.RELAY_ALLOWED_HOSTS,
            "timeout": relay_vars.RELAY_TIMEOUT,
        },
        request_runtime(request),
    )


@router.api_route("/{path:path}", methods=ALL_METHODS)
async def default_page(request: Request, path: str) -> Response:
    """Anything that is not the relay endpoint gets the static landing page."""
    mark_request_start(request)
    html = Path(relay_vars.RELAY_DEFAULT_HTML).read_text(encoding="utf-8")
    return HTMLResponse(content=html, status_code=200)
