"""
Serverless entry point.

Mangum translates Lambda-style events into ASGI so the FastAPI app runs
unchanged as an AWS Lambda (API Gateway, Function URL) or Netlify Function.

Netlify Functions events look like API Gateway REST events without the
`resource` and `requestContext` keys, so Mangum's built-in adapters do not
recognise them; NetlifyFunction fills that gap.
"""

from typing import Optional

from fastapi import FastAPI
from mangum import Mangum
from mangum.handlers.api_gateway import APIGateway

from gemini_proxy.app.config import Settings, get_settings
from gemini_proxy.app.main import app as default_app, log_configuration_report


class NetlifyFunction(APIGateway):
    """API Gateway adapter that also accepts Netlify Functions events."""

    @classmethod
    def infer(cls, event, context, config) -> bool:
        return "httpMethod" in event and "requestContext" not in event

    def __init__(self, event, context, config) -> None:
        event = {"requestContext": {}, **event}
        if event.get("body") is None:
            event["body"] = ""
        super().__init__(event, context, config)


def create_handler(app: FastAPI, settings: Optional[Settings] = None) -> Mangum:
    """
    Wrap an application for serverless invocation.

    The functions path prefix (e.g. /.netlify/functions) is stripped so the
    request reaches the /generate route. The lifespan does not run here, so
    the configuration report is logged once per cold start instead.
    """
    settings = settings or get_settings()
    log_configuration_report(settings)

    return Mangum(
        app,
        lifespan="off",
        api_gateway_base_path=settings.FUNCTIONS_BASE_PATH or "/",
        custom_handlers=[NetlifyFunction],
    )


handler = create_handler(default_app)
