from __future__ import annotations

from buddy_cli.core.redaction import redact_secret, truncate


def test_redact_secret_never_shows_more_than_prefix():
    assert redact_secret("sk-abcdef123456") == "sk-ab***"
    assert redact_secret("short") == "***"
    assert redact_secret("") == "none"


def test_truncate():
    assert truncate("abc", 10) == "abc"
    text = truncate("x" * 300, 200)
    assert text.startswith("x" * 200)
    assert "total: 300 chars" in text
