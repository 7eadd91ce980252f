"""
OAuth Proxy Application
=======================

FastAPI service relaying browser token-exchange and user-info calls to an
external OAuth provider.

Usage:
------
    from oauth_proxy.app.main import create_app
    app = create_app()
"""
