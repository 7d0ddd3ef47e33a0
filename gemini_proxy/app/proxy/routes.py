"""
Proxy Routes - HTTP Surface for the Gemini Proxy
================================================

Exposes ProxyHandler over HTTP. The common verbs are routed to the handler
so that unsupported ones receive the handler's own 405 response.

Endpoints:
----------
- POST /generate: Forward a Gemini generateContent payload
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from ..models import InboundRequest
from .handler import ProxyHandler

logger = logging.getLogger(__name__)

proxy_router = APIRouter()

GENERATE_PATH = "/generate"

# Other verbs reach the 405 exception handler in main.py
ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# ============================================================================
# Dependencies
# ============================================================================

def get_proxy_handler(request: Request) -> ProxyHandler:
    """
    Dependency to get the proxy handler from app state.

    Raises:
        HTTPException: If the application was not built by create_app()
    """
    handler = getattr(request.app.state, "proxy_handler", None)
    if handler is None:
        logger.error("Proxy handler not initialized on application state")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Proxy handler not available"
        )

    return handler


# ============================================================================
# Proxy Endpoints
# ============================================================================

@proxy_router.api_route(GENERATE_PATH, methods=ROUTED_METHODS)
async def proxy_generate(
    request: Request,
    handler: ProxyHandler = Depends(get_proxy_handler)
) -> Response:
    """
    Relay the raw request body to Gemini.

    The body is read as bytes and handed over untouched; the upstream JSON
    (or a generic error) comes back in the response.
    """
    inbound = InboundRequest(method=request.method, body=await request.body())
    outbound = await handler.handle(inbound)

    return Response(
        content=outbound.body,
        status_code=outbound.status_code,
        headers=outbound.headers,
    )
