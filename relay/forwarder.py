import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, Optional
from urllib.parse import urlparse

import httpx
from opentelemetry import trace

from relay import vars as relay_vars
from relay.envelope import RelayError
from relay.utils.exception_logging import (
    exception_code,
    exception_stack,
    log_exception_with_details,
)

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

ALLOWED_SCHEMES = {"http", "https"}


@dataclass
class ForwardResult:
    response: httpx.Response
    elapsed: float


def validate_target_url(url: str, allowed_hosts: Optional[Iterable[str]] = None) -> str:
    """
    Check that ``url`` points at an allow-listed upstream host.

    Returns the lower-cased hostname. Raises RelayError (code 2, status 403) when
    the scheme is not http(s) or the hostname is not allowed.
    """
    if allowed_hosts is None:
        allowed_hosts = relay_vars.RELAY_ALLOWED_HOSTS
    allowed = {h.lower() for h in allowed_hosts}

    try:
        parsed = urlparse(url)
        hostname = (parsed.hostname or "").lower()
    except ValueError:
        raise RelayError(2, f"Invalid target url: {url}", 403)

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise RelayError(2, f"Unsupported scheme: {parsed.scheme or '(none)'}", 403)
    if not hostname or hostname not in allowed:
        raise RelayError(2, f"Host not allowed: {hostname or '(none)'}", 403)
    return hostname


async def forward(
    method: str,
    url: str,
    headers: Dict[str, str],
    body: Optional[bytes] = None,
    timeout: Optional[float] = None,
) -> ForwardResult:
    """
    Send one request upstream under a timeout and measure how long it took.

    Exceeding the timeout for the whole exchange, or any httpx timeout, maps to
    status 504; every other transport failure maps to 502.
    """
    hostname = validate_target_url(url)
    if timeout is None:
        timeout = relay_vars.RELAY_TIMEOUT

    with tracer.start_as_current_span("relay_forward") as span:
        span.set_attribute("relay.method", method)
        span.set_attribute("relay.target_host", hostname)
        logger.debug(f"[Forward] {method} {url}")

        started = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout), follow_redirects=False
            ) as client:
                # httpx limits each phase; wait_for caps the whole exchange
                response = await asyncio.wait_for(
                    client.request(
                        method=method,
                        url=url,
                        headers=headers,
                        content=body or None,
                    ),
                    timeout,
                )
        except asyncio.TimeoutError as e:
            logger.error(f"[Forward] No complete answer within {timeout}s for {url}")
            span.set_attribute("relay.error", "timeout")
            raise RelayError(
                exception_code(e),
                f"Upstream did not answer within {timeout}s",
                504,
                {"stacktrace": exception_stack(e)},
            )
        except httpx.TimeoutException as e:
            logger.error(f"[Forward] Timeout after {timeout}s for {url}: {e}")
            span.set_attribute("relay.error", "timeout")
            raise RelayError.from_exception(e, 504)
        except httpx.InvalidURL as e:
            span.set_attribute("relay.error", "invalid_url")
            raise RelayError.from_exception(e, 400)
        except httpx.HTTPError as e:
            log_exception_with_details(logger, f"[Forward] {method} {url}", e)
            span.set_attribute("relay.error", type(e).__name__)
            raise RelayError.from_exception(e, 502)

        elapsed = time.perf_counter() - started
        span.set_attribute("relay.status_code", response.status_code)
        span.set_attribute("relay.elapsed", elapsed)
        logger.debug(
            f"[Forward] {method} {url} -> {response.status_code} in {elapsed:.3f}s"
        )
        return ForwardResult(response, elapsed)
