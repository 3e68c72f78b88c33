"""Request classification and response-format negotiation.

Pure functions: they only look at the method, URL and headers of a request.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from starlette.datastructures import URL, Headers, QueryParams
from starlette.requests import Request

from paygate.app.services.models import ResponseFormat

_BEARER_PREFIX = "Bearer "

_EXTENSION_FORMATS = {
    "html": ResponseFormat.HTML,
    "md": ResponseFormat.MARKDOWN,
    "markdown": ResponseFormat.MARKDOWN,
}


@dataclass(frozen=True)
class RequestDescriptor:
    """Normalized view of an inbound request."""
    method: str
    pathname: str
    query_params: tuple[tuple[str, str], ...]
    accept_header: str
    auth_token: Optional[str] = None


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the credential of a ``Bearer`` Authorization header, or None."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX):].strip()
    return token or None


def classify_request(
    method: str,
    url: str,
    headers: Mapping[str, str],
) -> RequestDescriptor:
    """Parse a raw request into a RequestDescriptor.

    Args:
        method: HTTP method
        url: Absolute or path-only request URL
        headers: Request headers (a case-insensitive mapping is expected)

    Returns:
        The normalized descriptor
    """
    parsed = URL(url)
    if not isinstance(headers, Headers):
        headers = Headers(headers=dict(headers))
    return RequestDescriptor(
        method=method.upper(),
        pathname=parsed.path or "/",
        query_params=tuple(QueryParams(parsed.query).multi_items()),
        accept_header=headers.get("accept") or "",
        auth_token=extract_bearer_token(headers.get("authorization")),
    )


def classify_starlette_request(request: Request) -> RequestDescriptor:
    return classify_request(request.method, str(request.url), request.headers)


def negotiate_format(descriptor: RequestDescriptor) -> ResponseFormat:
    """Pick the response format.

    A file extension on the path wins over the Accept header; JSON is the default.
    """
    last_segment = descriptor.pathname.rsplit("/", 1)[-1]
    if "." in last_segment:
        extension = last_segment.rsplit(".", 1)[-1].lower()
        if extension in _EXTENSION_FORMATS:
            return _EXTENSION_FORMATS[extension]

    if "text/html" in descriptor.accept_header:
        return ResponseFormat.HTML
    if "text/markdown" in descriptor.accept_header:
        return ResponseFormat.MARKDOWN
    return ResponseFormat.JSON
