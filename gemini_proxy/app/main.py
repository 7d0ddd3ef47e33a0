"""
FastAPI Application Factory
===========================

Entry point for the Gemini proxy. The same application serves local and
container deployments (uvicorn) and serverless deployments through
gemini_proxy.lambda_handler.

Architecture:
    Browser / client → Gemini proxy (this service) → Google Gemini API

Routers:
    - /generate     : Forward a generateContent payload to Gemini
    - /health       : Health check endpoint

Environment Variables:
    - GEMINI_API_KEY: Google Gemini API key (required per request)
    - GEMINI_MODEL: Model name (default: gemini-3-flash-preview)
    - GEMINI_API_BASE_URL: API base URL
    - UPSTREAM_TIMEOUT_SECONDS: Upstream timeout (default: 60)
    - REJECT_MALFORMED_JSON: Answer unparseable bodies with 400 (default: false)
    - ALLOWED_ORIGINS: Comma-separated CORS origins (default: no CORS)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn gemini_proxy.app.main:app --reload --host 0.0.0.0 --port 8080

    With custom log level:
        LOG_LEVEL=DEBUG uvicorn gemini_proxy.app.main:app --reload
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from gemini_proxy import __version__
from gemini_proxy.app.config import Settings, get_settings, validate_configuration
from gemini_proxy.app.models import INTERNAL_ERROR_MESSAGE, ProxyOutcome, ProxyResult
from gemini_proxy.app.proxy import ProxyHandler, build_response, proxy_router
from gemini_proxy.app.proxy.routes import GENERATE_PATH

# Loggers that print full request URLs, which carry the API key
NOISY_URL_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    for name in NOISY_URL_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_configuration_report(settings: Settings) -> None:
    """
    Log the startup summary and any configuration problems.

    Runs from the lifespan under uvicorn and once per cold start on
    serverless, where the lifespan is off.
    """
    logger = logging.getLogger("gemini_proxy.main")
    report = validate_configuration(settings)

    logger.info(
        "Starting Gemini proxy",
        extra={
            "model": settings.GEMINI_MODEL,
            "log_level": settings.LOG_LEVEL,
        }
    )
    for error in report["errors"]:
        logger.warning(f"Configuration problem: {error}")
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Shared upstream HTTP client and ProxyHandler
        - Lifespan management (client shutdown)
        - Optional CORS middleware
        - Route handlers
        - Exception handlers

    Args:
        settings: Settings to use instead of the environment
        transport: httpx transport for the upstream client (tests)

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("gemini_proxy.main")

    client = httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS),
        follow_redirects=True,
    )
    proxy_handler = ProxyHandler(
        config=settings.upstream,
        client=client,
        reject_malformed_json=settings.REJECT_MALFORMED_JSON,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Startup logs the configuration report; shutdown closes the shared
        upstream client.
        """
        log_configuration_report(settings)

        yield

        logger.info("Shutting down Gemini proxy")
        await client.aclose()

    app = FastAPI(
        title="Gemini Proxy",
        description="Credential-shielding proxy for the Google Gemini generateContent API",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None
    )

    app.state.settings = settings
    app.state.upstream_client = client
    app.state.proxy_handler = proxy_handler

    origins = settings.allowed_origins_list
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=False,
            allow_methods=["POST", "OPTIONS"],
            allow_headers=["Content-Type"],
        )

    app.include_router(proxy_router, tags=["Gemini Proxy"])

    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Reports whether an API key is configured without revealing it.
        """
        return {
            "status": "ok",
            "service": "gemini-proxy",
            "version": __version__,
            "api_key_configured": "yes" if settings.has_api_key else "no",
        }

    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException) -> Response:
        """
        Give verbs outside the routed set the proxy's own 405.

        Other HTTP errors keep FastAPI's default handling.
        """
        if exc.status_code == 405 and request.url.path == GENERATE_PATH:
            outbound = build_response(ProxyResult(outcome=ProxyOutcome.METHOD_NOT_ALLOWED))
            return Response(
                content=outbound.body,
                status_code=outbound.status_code,
                headers=outbound.headers,
            )

        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns the generic error body.
        """
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={"error": INTERNAL_ERROR_MESSAGE}
        )

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "gemini_proxy.app.main:app",
        host=settings.PROXY_HOST,
        port=settings.PROXY_PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
