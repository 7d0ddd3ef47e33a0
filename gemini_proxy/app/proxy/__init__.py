"""
Proxy Package
=============

This package implements the credential-shielding proxy in front of the
Google Gemini generateContent API.

Main Components:
----------------
- handler.py: ProxyHandler, the forwarding logic and result mapping
- routes.py: FastAPI router exposing the handler at /generate

Usage:
------
    from gemini_proxy.app.proxy import proxy_router
    app.include_router(proxy_router)
"""

from .handler import ProxyHandler, build_response, redact_secret
from .routes import proxy_router

__all__ = ["ProxyHandler", "build_response", "redact_secret", "proxy_router"]
