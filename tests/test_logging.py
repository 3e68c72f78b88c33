"""Tests for logging configuration and helpers."""

import json
import logging

from paygate.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logging_config,
    mask_identity,
    request_id_var,
)


def _record(**extra):
    record = logging.LogRecord("paygate.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestMaskIdentity:
    def test_tokens_are_hashed(self):
        masked = mask_identity("tok_secret_value")
        assert len(masked) == 16
        assert "secret" not in masked
        assert masked == mask_identity("tok_secret_value")

    def test_none(self):
        assert mask_identity(None) is None


class TestGetLogContext:
    def test_drops_missing_fields_and_masks_identity(self):
        context = get_log_context(identity="tok_abc", user_state="authenticated", reset_time=5)
        assert context == {
            "identity": mask_identity("tok_abc"),
            "user_state": "authenticated",
            "reset_time": 5,
        }

    def test_empty(self):
        assert get_log_context() == {}


class TestContextFilter:
    def test_fills_request_id_from_context(self):
        token = request_id_var.set("req-42")
        try:
            record = _record()
            assert ContextFilter().filter(record) is True
        finally:
            request_id_var.reset(token)
        assert record.request_id == "req-42"
        assert record.identity is None

    def test_keeps_explicit_values(self):
        record = _record(request_id="explicit", cache_status="HIT")
        ContextFilter().filter(record)
        assert record.request_id == "explicit"
        assert record.cache_status == "HIT"


class TestJSONFormatter:
    def test_format(self):
        record = _record(cache_status="MISS", reset_time=123)
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "paygate.test"
        assert data["cache_status"] == "MISS"
        assert data["extra"]["reset_time"] == 123
        assert "request_id" not in data


class TestLoggingConfig:
    def test_json_format(self, make_settings):
        config = get_logging_config(make_settings(log_format="json", log_level="debug"))
        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["loggers"]["paygate"]["level"] == "DEBUG"

    def test_text_format(self, make_settings):
        config = get_logging_config(make_settings(log_format="text"))
        assert config["handlers"]["console"]["formatter"] == "standard"
        assert "json" not in config["formatters"]
