"""Tests for argument redaction."""

from remote_mcp.middleware.base import REDACTED, redact_arguments


def test_redacts_sensitive_arguments() -> None:
    """Passwords and file contents are masked; other values kept."""
    redacted = redact_arguments(
        {"connection": "root@h", "password": "pw", "content": "data", "Secret": "s"}
    )

    assert redacted == {
        "connection": "root@h",
        "password": REDACTED,
        "content": REDACTED,
        "Secret": REDACTED,
    }


def test_input_not_mutated() -> None:
    args = {"password": "pw"}
    redact_arguments(args)
    assert args == {"password": "pw"}


def test_empty_arguments() -> None:
    assert redact_arguments(None) == {}
    assert redact_arguments({}) == {}
