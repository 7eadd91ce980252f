"""
CORS headers shared by every proxy response.

Browsers call the proxy directly from any origin, so the headers are set
unconditionally rather than negotiated per request.
"""

from typing import MutableMapping


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS, GET",
    "Access-Control-Allow-Headers": "Content-Type, Accept, Authorization",
}


def apply_cors_headers(headers: MutableMapping[str, str]) -> None:
    """Set the CORS headers on a response header mapping, replacing any existing values."""
    for key, value in CORS_HEADERS.items():
        headers[key] = value
