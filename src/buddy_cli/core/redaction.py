"""Helpers that keep secrets and oversized payloads out of diagnostics."""

from __future__ import annotations

SECRET_PREFIX_CHARS = 5


def redact_secret(secret: str | None) -> str:
    """Return a fixed-shape redacted form of ``secret``.

    Only a short prefix survives; short keys are hidden entirely.
    """
    if not secret:
        return "none"
    if len(secret) <= SECRET_PREFIX_CHARS + 1:
        return "***"
    return f"{secret[:SECRET_PREFIX_CHARS]}***"


def truncate(text: str | None, max_length: int = 200) -> str:
    """Truncate ``text`` for logging, noting the original length."""
    if not text:
        return text or ""
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}... (truncated, total: {len(text)} chars)"
