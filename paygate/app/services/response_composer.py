"""Render gated responses: success bodies, 402s, handler errors and CORS preflight."""

import re
from dataclasses import dataclass, field
from typing import Optional

from starlette.responses import JSONResponse, Response

from paygate.app.core.config import Settings
from paygate.app.exceptions import GatewayException, PaymentRequiredError
from paygate.app.services.models import CacheStatus, ResponseFormat

CONTENT_TYPES = {
    ResponseFormat.JSON: "application/json",
    ResponseFormat.HTML: "text/html",
    ResponseFormat.MARKDOWN: "text/markdown",
}

_MARKDOWN_RULES = [
    (re.compile(r"^# (.*)", re.MULTILINE), r"<h1>\1</h1>"),
    (re.compile(r"^## (.*)", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^### (.*)", re.MULTILINE), r"<h3>\1</h3>"),
    (re.compile(r"\*\*(.*?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.*?)\*"), r"<em>\1</em>"),
    (re.compile(r"\n"), "<br>"),
]


def markdown_to_html(markdown: str) -> str:
    """Minimal, deterministic markdown to HTML transform.

    Handles line-leading ``#``/``##``/``###`` headings, ``**bold**``,
    ``*italic*`` and line breaks. Nothing else is interpreted.
    """
    html = markdown
    for pattern, replacement in _MARKDOWN_RULES:
        html = pattern.sub(replacement, html)
    return html


@dataclass(frozen=True)
class ComposedResponse:
    content: str
    content_type: str
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = 200

    def to_response(self) -> Response:
        return Response(
            content=self.content,
            status_code=self.status_code,
            headers=self.headers,
            media_type=self.content_type,
        )


class ResponseComposer:
    """Builds every response the gatekeeper returns."""

    def __init__(self, config: Settings) -> None:
        self._config = config

    def cors_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self._config.cors_allow_origin,
            "Access-Control-Allow-Methods": self._config.cors_allow_methods,
            "Access-Control-Allow-Headers": self._config.cors_allow_headers,
        }

    def compose(
        self,
        body: str,
        response_format: ResponseFormat,
        cache_status: CacheStatus,
        status_code: int = 200,
        extra_headers: Optional[dict[str, str]] = None,
    ) -> ComposedResponse:
        """Render a handler body in the negotiated format.

        ``extra_headers`` (e.g. a redirect's Location) are sent along; CORS
        and X-Cache always take precedence.
        """
        content = markdown_to_html(body) if response_format is ResponseFormat.HTML else body
        headers = {**self.cors_headers(), "X-Cache": cache_status.value}
        reserved = {name.lower() for name in headers}
        for name, value in (extra_headers or {}).items():
            if name.lower() not in reserved:
                headers[name] = value
        return ComposedResponse(
            content=content,
            content_type=CONTENT_TYPES[response_format],
            headers=headers,
            status_code=status_code,
        )

    def options_response(self) -> Response:
        return Response(status_code=200, headers=self.cors_headers())

    def payment_required(self, message: str) -> Response:
        exc = PaymentRequiredError(message, payment_link=self._config.payment_link)
        return self.error_response(exc)

    def error_response(self, exc: GatewayException) -> Response:
        """Render a gateway exception as its JSON body with CORS headers."""
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(),
            headers=self.cors_headers(),
        )
