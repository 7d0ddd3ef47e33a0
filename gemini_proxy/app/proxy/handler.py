"""
Proxy Handler - Gemini Request Forwarding
=========================================

Forwards a caller's JSON body to the Gemini generateContent endpoint and
relays the answer.

Security Model:
---------------
1. The Gemini API key lives only in server configuration
2. The key is added to the upstream URL as the `key` query parameter
3. Upstream error bodies are logged, never returned to the caller
4. Every logged detail is passed through redact_secret() first

Flow:
-----
    handle() -> forward() -> ProxyResult -> build_response() -> OutboundResponse
"""

import json
import logging
from typing import Any, Optional
from urllib.parse import quote, quote_plus

import httpx

from ..models import (
    INTERNAL_ERROR_MESSAGE,
    MALFORMED_JSON_MESSAGE,
    METHOD_NOT_ALLOWED_MESSAGE,
    MISSING_API_KEY_MESSAGE,
    UPSTREAM_FAILED_MESSAGE,
    ErrorResponse,
    InboundRequest,
    OutboundResponse,
    ProxyOutcome,
    ProxyResult,
    UpstreamConfig,
)

logger = logging.getLogger(__name__)

FORWARD_METHOD = "POST"
JSON_CONTENT_TYPE = "application/json"
REDACTED = "[REDACTED]"


def redact_secret(text: str, secret: Optional[str]) -> str:
    """
    Mask every occurrence of the secret in text, raw or percent-encoded as
    it appears in a logged URL.

    Example:
        >>> redact_secret("GET /x?key=abc123", "abc123")
        'GET /x?key=[REDACTED]'
    """
    if not secret:
        return text
    for form in (secret, quote(secret, safe=""), quote_plus(secret, safe="")):
        text = text.replace(form, REDACTED)
    return text


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_json(data: bytes) -> Any:
    """
    Parse strict JSON.

    NaN, Infinity and -Infinity are rejected, which json.loads accepts by
    default.

    Raises:
        ValueError: If data is not valid UTF-8 JSON
    """
    return json.loads(data, parse_constant=_reject_constant)


def _json_response(status_code: int, message: str) -> OutboundResponse:
    return OutboundResponse(
        status_code=status_code,
        headers={"Content-Type": JSON_CONTENT_TYPE},
        body=ErrorResponse(error=message).model_dump_json().encode("utf-8"),
    )


def build_response(
    result: ProxyResult,
    reject_malformed_json: bool = False
) -> OutboundResponse:
    """
    Map a forwarding result to the response the caller receives.

    Args:
        result: Outcome of ProxyHandler.forward()
        reject_malformed_json: Answer MALFORMED_REQUEST with 400 instead of 500

    Returns:
        OutboundResponse with one of the fixed, non-leaking bodies
    """
    outcome = result.outcome

    if outcome is ProxyOutcome.SUCCESS:
        body = result.body
        if body is None:
            body = json.dumps(result.payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        return OutboundResponse(
            status_code=200,
            headers={"Content-Type": JSON_CONTENT_TYPE},
            body=body,
        )

    if outcome is ProxyOutcome.METHOD_NOT_ALLOWED:
        return OutboundResponse(
            status_code=405,
            headers={"Content-Type": "text/plain; charset=utf-8", "Allow": FORWARD_METHOD},
            body=METHOD_NOT_ALLOWED_MESSAGE.encode("utf-8"),
        )

    if outcome is ProxyOutcome.MISSING_CREDENTIAL:
        return _json_response(500, MISSING_API_KEY_MESSAGE)

    if outcome is ProxyOutcome.UPSTREAM_STATUS:
        return _json_response(result.status_code or 502, UPSTREAM_FAILED_MESSAGE)

    if outcome is ProxyOutcome.MALFORMED_REQUEST and reject_malformed_json:
        return _json_response(400, MALFORMED_JSON_MESSAGE)

    # MALFORMED_REQUEST (default), UPSTREAM_UNREACHABLE, MALFORMED_UPSTREAM, INTERNAL
    return _json_response(500, INTERNAL_ERROR_MESSAGE)


class ProxyHandler:
    """
    Credential-shielding proxy for the Gemini generateContent endpoint.

    Holds no per-invocation state. The shared AsyncClient may be used by
    many concurrent invocations.

    Attributes:
        config: Upstream location and credential
        client: HTTP client used for the upstream call
        reject_malformed_json: See build_response()
    """

    def __init__(
        self,
        config: UpstreamConfig,
        client: httpx.AsyncClient,
        reject_malformed_json: bool = False
    ):
        self.config = config
        self.client = client
        self.reject_malformed_json = reject_malformed_json

    async def handle(self, request: InboundRequest) -> OutboundResponse:
        """
        Handle one invocation end to end.

        Never raises: every failure is mapped to a response.
        """
        result = await self.forward(request)
        return build_response(result, reject_malformed_json=self.reject_malformed_json)

    async def forward(self, request: InboundRequest) -> ProxyResult:
        """
        Forward the request body to Gemini once and classify the outcome.

        Args:
            request: Caller's method and raw body

        Returns:
            ProxyResult describing how the attempt ended
        """
        if request.method.upper() != FORWARD_METHOD:
            return ProxyResult(outcome=ProxyOutcome.METHOD_NOT_ALLOWED)

        api_key = self.config.resolve_api_key()
        if api_key is None:
            logger.error("GEMINI_API_KEY is not set in the environment")
            return ProxyResult(outcome=ProxyOutcome.MISSING_CREDENTIAL)

        try:
            parse_json(request.body)
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueError
            logger.error(
                f"Request body is not valid JSON: {redact_secret(str(e), api_key)}",
                extra={"body_length": len(request.body)}
            )
            return ProxyResult(outcome=ProxyOutcome.MALFORMED_REQUEST)

        try:
            return await self._call_upstream(request.body, api_key)

        except httpx.HTTPError as e:
            logger.error(
                f"Gemini API unreachable: {redact_secret(str(e), api_key)}",
                extra={"exception_type": type(e).__name__}
            )
            return ProxyResult(outcome=ProxyOutcome.UPSTREAM_UNREACHABLE)

        except Exception as e:
            logger.error(
                f"Unexpected error while proxying to Gemini: {redact_secret(str(e), api_key)}",
                exc_info=True,
                extra={"exception_type": type(e).__name__}
            )
            return ProxyResult(outcome=ProxyOutcome.INTERNAL)

    async def _call_upstream(self, body: bytes, api_key: str) -> ProxyResult:
        logger.info(
            "Forwarding request to Gemini",
            extra={"model": self.config.model, "body_length": len(body)}
        )

        response = await self.client.post(
            self.config.url,
            params={"key": api_key},
            content=body,
            headers={"Content-Type": JSON_CONTENT_TYPE},
        )

        if not response.is_success:
            error_body = redact_secret(response.text, api_key)
            logger.error(
                f"Gemini API Error: {error_body}",
                extra={"status_code": response.status_code}
            )
            return ProxyResult(
                outcome=ProxyOutcome.UPSTREAM_STATUS,
                status_code=response.status_code
            )

        try:
            payload = parse_json(response.content)
        except ValueError as e:
            logger.error(
                f"Gemini API returned a non-JSON success body: {redact_secret(str(e), api_key)}",
                extra={"status_code": response.status_code}
            )
            return ProxyResult(outcome=ProxyOutcome.MALFORMED_UPSTREAM)

        logger.debug(
            "Gemini API request succeeded",
            extra={"status_code": response.status_code}
        )
        return ProxyResult(
            outcome=ProxyOutcome.SUCCESS,
            status_code=response.status_code,
            payload=payload,
            body=response.content
        )
