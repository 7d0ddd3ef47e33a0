"""
Data Models Module

This module defines Pydantic models for the values that flow through one
proxy invocation:

- Inbound request (method + raw body bytes)
- Upstream configuration (base URL, model, credential)
- Forwarding result (explicit outcome of one upstream attempt)
- Outbound response (status, headers, body bytes)
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

if TYPE_CHECKING:
    from .config import Settings


# ============================================================================
# Caller-facing Messages
# ============================================================================

METHOD_NOT_ALLOWED_MESSAGE = "Method Not Allowed"
MISSING_API_KEY_MESSAGE = "Server configuration error: API key is missing."
UPSTREAM_FAILED_MESSAGE = "Gemini API request failed. Please check the server logs."
INTERNAL_ERROR_MESSAGE = "An internal server error occurred."
MALFORMED_JSON_MESSAGE = "Request body must be valid JSON."


# ============================================================================
# Request/Response Models
# ============================================================================

class InboundRequest(BaseModel):
    """Request as received from the caller. The body is opaque to the proxy."""
    method: str = Field(..., description="HTTP method used by the caller")
    body: bytes = Field(default=b"", description="Raw request body")


class OutboundResponse(BaseModel):
    """Response returned to the caller."""
    status_code: int = Field(..., description="HTTP status code")
    headers: Dict[str, str] = Field(default_factory=dict, description="Response headers")
    body: bytes = Field(default=b"", description="Encoded response body")


class ErrorResponse(BaseModel):
    """JSON error body. Only ever carries one of the fixed messages above."""
    error: str = Field(..., description="Generic, non-leaking error message")


# ============================================================================
# Upstream Models
# ============================================================================

class UpstreamConfig(BaseModel):
    """
    Everything the proxy needs to reach the Gemini API.

    Injected into ProxyHandler at construction so the handler never reads
    process environment itself.
    """
    model_config = ConfigDict(frozen=True)

    api_key: Optional[SecretStr] = Field(None, description="Gemini API key")
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Generative Language API base URL",
    )
    model: str = Field(default="gemini-3-flash-preview", description="Model name")
    method_name: str = Field(default="generateContent", description="Model method to call")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "UpstreamConfig":
        return cls(
            api_key=settings.GEMINI_API_KEY,
            base_url=settings.GEMINI_API_BASE_URL,
            model=settings.GEMINI_MODEL,
        )

    @property
    def url(self) -> str:
        """Upstream URL without the credential."""
        return f"{self.base_url.rstrip('/')}/models/{self.model}:{self.method_name}"

    def resolve_api_key(self) -> Optional[str]:
        """Return the credential, or None when it is unset or blank."""
        if self.api_key is None:
            return None
        value = self.api_key.get_secret_value().strip()
        return value or None


class ProxyOutcome(str, Enum):
    """Every way a single forwarding attempt can end."""
    SUCCESS = "success"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    MISSING_CREDENTIAL = "missing_credential"
    MALFORMED_REQUEST = "malformed_request"
    UPSTREAM_STATUS = "upstream_status"
    UPSTREAM_UNREACHABLE = "upstream_unreachable"
    MALFORMED_UPSTREAM = "malformed_upstream"
    INTERNAL = "internal"


class ProxyResult(BaseModel):
    """
    Explicit result of one forwarding attempt.

    Attributes:
        outcome: How the attempt ended
        status_code: Upstream status for UPSTREAM_STATUS and SUCCESS, else None
        payload: Parsed upstream JSON for SUCCESS, else None
        body: Upstream response bytes for SUCCESS, relayed unchanged
    """
    outcome: ProxyOutcome
    status_code: Optional[int] = None
    payload: Any = None
    body: Optional[bytes] = None

    @property
    def ok(self) -> bool:
        return self.outcome is ProxyOutcome.SUCCESS
