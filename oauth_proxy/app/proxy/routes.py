"""
Proxy Routes - OAuth Provider Forwarding
========================================

This module implements the two endpoints that relay browser requests to the
external OAuth provider.

Request Flow:
-------------
1. OPTIONS is answered locally (CORS preflight)
2. Any method other than the endpoint's own is rejected with 405
3. The request is rebuilt with the provider's required headers
4. Status, headers and body from the provider are relayed unchanged

Endpoints:
----------
- POST /oauth/token: Forward a urlencoded token-exchange body
- GET /user-info: Forward an access token as a Bearer Authorization header
"""

import logging

import httpx
from fastapi import APIRouter, Depends, Request, Response, status

from ..config import Settings
from ..cors import apply_cors_headers
from .forwarding import (
    build_upstream_request,
    proxy_error,
    read_request_body,
    relay_upstream_response,
    send_upstream,
)

logger = logging.getLogger(__name__)

# Create router
proxy_router = APIRouter()

# Routes accept every method so the handler, not the router, answers 405
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


# ============================================================================
# Dependencies
# ============================================================================

def get_proxy_settings(request: Request) -> Settings:
    """Settings bound to the application in create_app()."""
    return request.app.state.settings


def get_upstream_client(request: Request) -> httpx.AsyncClient:
    """
    Dependency to get the shared upstream HTTP client from app state.

    Raises:
        HTTPException: If the client has not been created yet
    """
    client = getattr(request.app.state, "upstream_client", None)
    if client is None:
        raise proxy_error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Upstream client not initialized",
        )
    return client


# ============================================================================
# Method Gate
# ============================================================================

def preflight_response() -> Response:
    """Empty 200 response carrying only the CORS headers."""
    response = Response(status_code=status.HTTP_200_OK)
    apply_cors_headers(response.headers)
    return response


def check_method(request: Request, allowed: str) -> None:
    if request.method != allowed:
        raise proxy_error(status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")


# ============================================================================
# Proxy Endpoints
# ============================================================================

@proxy_router.api_route("/oauth/token", methods=ALL_METHODS)
async def oauth_token_proxy(
    request: Request,
    settings: Settings = Depends(get_proxy_settings),
    client: httpx.AsyncClient = Depends(get_upstream_client),
):
    """
    Proxy a token exchange to the OAuth provider's token endpoint.

    The inbound body is forwarded byte for byte. Content-Type and Accept are
    always overridden with the values the provider expects.

    Returns:
        The provider's response, relayed unchanged

    Raises:
        HTTPException: 405 wrong method, 400 unreadable body,
            500 bad upstream URL, 502 upstream unreachable
    """
    if request.method == "OPTIONS":
        return preflight_response()

    check_method(request, "POST")

    body = await read_request_body(request)

    upstream_request = build_upstream_request(
        client,
        "POST",
        settings.OAUTH_TOKEN_URL,
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        },
        content=body,
    )

    logger.info(
        "Proxying token request",
        extra={"body_length": len(body)},
    )

    upstream = await send_upstream(client, upstream_request)
    return relay_upstream_response(upstream)


@proxy_router.api_route("/user-info", methods=ALL_METHODS)
async def user_info_proxy(
    request: Request,
    settings: Settings = Depends(get_proxy_settings),
    client: httpx.AsyncClient = Depends(get_upstream_client),
):
    """
    Proxy a user-info lookup to the OAuth provider.

    The access token arrives as the ``access_token`` query parameter and is
    sent upstream as ``Authorization: Bearer <token>``. The header value is
    sent as UTF-8 bytes so tokens outside ASCII are forwarded unchanged.

    Returns:
        The provider's response, relayed unchanged

    Raises:
        HTTPException: 405 wrong method, 400 missing token,
            500 bad upstream URL, 502 upstream unreachable
    """
    if request.method == "OPTIONS":
        return preflight_response()

    check_method(request, "GET")

    # First value wins when the parameter is repeated
    access_tokens = request.query_params.getlist("access_token")
    access_token = access_tokens[0] if access_tokens else ""
    if not access_token:
        raise proxy_error(status.HTTP_400_BAD_REQUEST, "Missing access token")

    upstream_request = build_upstream_request(
        client,
        "GET",
        settings.USER_INFO_URL,
        headers={"Authorization": f"Bearer {access_token}".encode()},
    )

    logger.info("Proxying user-info request")

    upstream = await send_upstream(client, upstream_request)
    return relay_upstream_response(upstream)
