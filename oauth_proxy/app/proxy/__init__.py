"""
Proxy Package
=============

This package implements the endpoints that forward browser requests to the
external OAuth provider.

Main Components:
----------------
- routes.py: FastAPI router with proxy endpoints (/oauth/token, /user-info)
- forwarding.py: Shared build/send/relay steps and their error mapping

Usage:
------
    from oauth_proxy.app.proxy import proxy_router
    app.include_router(proxy_router, prefix="/proxy")
"""

from .routes import proxy_router

__all__ = ["proxy_router"]
