"""Tests for request classification and format negotiation."""

import pytest
from starlette.datastructures import Headers

from paygate.app.services.models import ResponseFormat
from paygate.app.services.request_classifier import (
    RequestDescriptor,
    classify_request,
    extract_bearer_token,
    negotiate_format,
)


def _descriptor(pathname="/", accept=""):
    return RequestDescriptor(method="GET", pathname=pathname, query_params=(), accept_header=accept)


class TestExtractBearerToken:
    """Tests for Authorization header parsing."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer tok_123", "tok_123"),
            ("Bearer   tok_123  ", "tok_123"),
            ("Bearer ", None),
            ("Basic dXNlcjpwYXNz", None),
            ("bearer tok_123", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestClassifyRequest:
    """Tests for classify_request."""

    def test_full_request(self):
        descriptor = classify_request(
            "get",
            "https://api.example.com/reports/daily?b=2&a=1",
            {"Accept": "text/html", "Authorization": "Bearer tok_abc"},
        )
        assert descriptor.method == "GET"
        assert descriptor.pathname == "/reports/daily"
        assert descriptor.query_params == (("b", "2"), ("a", "1"))
        assert descriptor.accept_header == "text/html"
        assert descriptor.auth_token == "tok_abc"

    def test_header_lookup_is_case_insensitive(self):
        descriptor = classify_request(
            "GET", "/x", {"authorization": "Bearer t", "ACCEPT": "text/markdown"}
        )
        assert descriptor.auth_token == "t"
        assert descriptor.accept_header == "text/markdown"

    def test_starlette_headers_are_used_directly(self):
        headers = Headers(raw=[(b"authorization", b"Bearer raw_token")])
        assert classify_request("GET", "/x", headers).auth_token == "raw_token"

    def test_missing_headers(self):
        descriptor = classify_request("POST", "/", {})
        assert descriptor.accept_header == ""
        assert descriptor.auth_token is None
        assert descriptor.query_params == ()

    def test_repeated_query_parameters_are_kept(self):
        descriptor = classify_request("GET", "/search?tag=a&tag=b", {})
        assert descriptor.query_params == (("tag", "a"), ("tag", "b"))

    def test_non_bearer_authorization_is_ignored(self):
        descriptor = classify_request("GET", "/", {"Authorization": "Basic abc"})
        assert descriptor.auth_token is None


class TestNegotiateFormat:
    """Tests for response format negotiation."""

    def test_default_is_json(self):
        assert negotiate_format(_descriptor("/data")) is ResponseFormat.JSON

    def test_wildcard_accept_is_json(self):
        assert negotiate_format(_descriptor("/data", "*/*")) is ResponseFormat.JSON

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/page.html", ResponseFormat.HTML),
            ("/page.HTML", ResponseFormat.HTML),
            ("/readme.md", ResponseFormat.MARKDOWN),
            ("/readme.markdown", ResponseFormat.MARKDOWN),
        ],
    )
    def test_extension(self, path, expected):
        assert negotiate_format(_descriptor(path)) is expected

    def test_extension_wins_over_accept(self):
        assert negotiate_format(_descriptor("/page.md", "text/html")) is ResponseFormat.MARKDOWN

    def test_unknown_extension_falls_back_to_accept(self):
        assert negotiate_format(_descriptor("/data.csv", "text/html")) is ResponseFormat.HTML

    def test_extension_only_counts_in_last_segment(self):
        assert negotiate_format(_descriptor("/docs.html/data")) is ResponseFormat.JSON

    def test_accept_html_before_markdown(self):
        descriptor = _descriptor("/page", "text/markdown, text/html")
        assert negotiate_format(descriptor) is ResponseFormat.HTML

    def test_accept_markdown(self):
        assert negotiate_format(_descriptor("/page", "text/markdown")) is ResponseFormat.MARKDOWN
