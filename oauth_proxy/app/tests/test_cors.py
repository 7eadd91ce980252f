"""
Tests for the CORS header setter in oauth_proxy/app/cors.py
"""

from starlette.datastructures import MutableHeaders

from oauth_proxy.app.cors import CORS_HEADERS, apply_cors_headers


def test_apply_cors_headers_sets_exact_values():
    headers = {}

    apply_cors_headers(headers)

    assert headers == {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS, GET",
        "Access-Control-Allow-Headers": "Content-Type, Accept, Authorization",
    }


def test_apply_cors_headers_overwrites_existing_values():
    headers = MutableHeaders(raw=[(b"access-control-allow-origin", b"https://other.example.com")])

    apply_cors_headers(headers)

    assert headers.getlist("access-control-allow-origin") == ["*"]
    for key, value in CORS_HEADERS.items():
        assert headers[key] == value
