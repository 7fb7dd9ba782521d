"""JSON log formatting and secret redaction."""

import json
import logging

from agency_api.context import request_id_var
from agency_api.utils.logging import JSONFormatter
from agency_api.utils.sanitize import MAX_LOGGED_CHARS, format_exception, scrub_text, scrub_value


def _record(msg, **extra):
    record = logging.LogRecord("agency_api.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_bearer_and_jwt_redacted():
    assert scrub_text("header was Bearer abc.def.ghi") == "header was Bearer [REDACTED]"
    assert scrub_text("cookie eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiJ1In0.sig") == "cookie [JWT]"


def test_secret_query_parameters_redacted():
    url = "/auth/callback?state=x&code=4/abc&token=xyz"
    assert scrub_text(url) == "/auth/callback?state=x&code=[REDACTED]&token=[REDACTED]"


def test_addresses_in_messages_masked():
    assert scrub_text("reset requested for dana.writer@agency.test") == "reset requested for d***@agency.test"


def test_long_strings_truncated_before_matching():
    out = scrub_text("x" * (MAX_LOGGED_CHARS + 5))
    assert out.endswith("...[truncated 5 chars]")
    assert len(out) < MAX_LOGGED_CHARS + 40


def test_traceback_is_scrubbed():
    try:
        raise ValueError("bad credential Bearer secret-value")
    except ValueError as e:
        text = format_exception((type(e), e, e.__traceback__))
    assert "ValueError" in text
    assert "secret-value" not in text


def test_nested_sensitive_keys():
    cleaned = scrub_value({"user": {"email": "a@b.test", "role": "owner"}, "items": [{"password": "pw"}]})
    assert cleaned == {"user": {"email": "[REDACTED]", "role": "owner"}, "items": [{"password": "[REDACTED]"}]}


def test_formatter_emits_json_with_context_and_extras():
    token = request_id_var.set("req-123")
    try:
        line = JSONFormatter().format(
            _record("Invite issued", event="auth.invite_issued", email="new@agency.test", role="contributor")
        )
    finally:
        request_id_var.reset(token)

    data = json.loads(line)
    assert data["message"] == "Invite issued"
    assert data["level"] == "INFO"
    assert data["request_id"] == "req-123"
    assert data["event"] == "auth.invite_issued"
    assert data["email"] == "[REDACTED]"
    assert data["role"] == "contributor"
