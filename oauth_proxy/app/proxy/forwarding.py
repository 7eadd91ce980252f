"""
Upstream Forwarding
===================

Building blocks shared by the token and user-info proxies:

    read body -> build upstream request -> send -> relay response

Each step turns its failure into an HTTPException with the status the
client should see (400, 500 or 502). Every error response carries the CORS
headers so browsers can read it.
"""

import logging
from typing import AsyncIterator, Dict, Optional, Union

import httpx
from fastapi import HTTPException, Request, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.requests import ClientDisconnect

from ..cors import CORS_HEADERS, apply_cors_headers

logger = logging.getLogger(__name__)


# Connection-level headers the local server sets itself when it frames the body
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
})


def proxy_error(status_code: int, detail: str) -> HTTPException:
    """Create an HTTPException that carries the CORS headers."""
    return HTTPException(
        status_code=status_code,
        detail=detail,
        headers=dict(CORS_HEADERS),
    )


async def read_request_body(request: Request) -> bytes:
    """
    Read the whole inbound body into memory.

    Raises:
        HTTPException: 400 if the client goes away before the body is read
    """
    try:
        return await request.body()
    except ClientDisconnect:
        logger.info("Client disconnected while sending request body")
        raise proxy_error(status.HTTP_400_BAD_REQUEST, "Error reading request body")


def build_upstream_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: Dict[str, Union[str, bytes]],
    content: Optional[bytes] = None,
) -> httpx.Request:
    """
    Build the outbound request.

    Only the headers passed in are sent; inbound headers are never copied.

    Raises:
        HTTPException: 500 if the configured URL cannot be parsed
    """
    try:
        return client.build_request(method, url, headers=headers, content=content)
    except httpx.InvalidURL as e:
        logger.error(f"Invalid upstream URL {url!r}: {e}")
        raise proxy_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Error creating proxy request",
        )


async def send_upstream(
    client: httpx.AsyncClient,
    upstream_request: httpx.Request,
) -> httpx.Response:
    """
    Send the request without reading the response body.

    The caller owns the returned response and must close it.

    Raises:
        HTTPException: 502 on any transport failure (DNS, connect, timeout)
    """
    try:
        upstream = await client.send(upstream_request, stream=True)
    except httpx.RequestError as e:
        logger.warning(
            f"Upstream request failed: {type(e).__name__}",
            extra={"upstream_url": str(upstream_request.url)},
        )
        raise proxy_error(status.HTTP_502_BAD_GATEWAY, "Error forwarding request")

    logger.info(
        f"Upstream responded with {upstream.status_code}",
        extra={"upstream_url": str(upstream_request.url)},
    )
    return upstream


async def _stream_upstream_body(upstream: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    finally:
        await upstream.aclose()


def relay_upstream_response(upstream: httpx.Response) -> StreamingResponse:
    """
    Relay the upstream response to the client unchanged.

    CORS headers are set first and upstream headers are appended after them,
    so an upstream that sends its own CORS headers yields both values. The
    body is streamed as raw bytes (no decompression or re-encoding).

    The upstream response is closed once streaming finishes or fails; the
    background task covers the case where the stream is never started.
    """
    response = StreamingResponse(
        _stream_upstream_body(upstream),
        status_code=upstream.status_code,
        background=BackgroundTask(upstream.aclose),
    )
    apply_cors_headers(response.headers)

    # Copy raw bytes so header values are never re-encoded
    for key, value in upstream.headers.raw:
        name = key.lower()
        if name.decode("latin-1") in HOP_BY_HOP_HEADERS:
            continue
        response.raw_headers.append((name, value))

    return response
