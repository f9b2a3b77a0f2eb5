"""API key protection for the persisted configuration.

The key is sealed with the platform credential-protection primitive (DPAPI,
current-user scope) where one exists. Elsewhere it is stored base64-encoded
behind an explicit ``BASE64_FALLBACK:`` prefix, so the weaker encoding is
always visible in the file.
"""

from __future__ import annotations

import base64
import binascii
import logging
import sys
from typing import Protocol

logger = logging.getLogger(__name__)

FALLBACK_PREFIX = "BASE64_FALLBACK:"


class ProtectionUnavailable(RuntimeError):
    """Raised when the platform primitive cannot be used."""


class ProtectionFailed(RuntimeError):
    """Raised when sealed data cannot be opened (other user, other machine)."""


class ProtectionPrimitive(Protocol):
    def protect(self, data: bytes) -> bytes: ...

    def unprotect(self, data: bytes) -> bytes: ...


class DpapiPrimitive:
    """Windows DPAPI through ctypes; unavailable on other platforms."""

    def _crypt32(self):
        if sys.platform != "win32":
            raise ProtectionUnavailable("DPAPI is only available on Windows")
        import ctypes
        from ctypes import wintypes

        class DataBlob(ctypes.Structure):
            _fields_ = [("cbData", wintypes.DWORD), ("pbData", ctypes.POINTER(ctypes.c_char))]

        return ctypes, DataBlob

    def _call(self, func_name: str, data: bytes) -> bytes:
        ctypes, DataBlob = self._crypt32()
        crypt32 = ctypes.windll.crypt32
        kernel32 = ctypes.windll.kernel32

        buffer = ctypes.create_string_buffer(data, len(data))
        blob_in = DataBlob(len(data), ctypes.cast(buffer, ctypes.POINTER(ctypes.c_char)))
        blob_out = DataBlob()
        # Both calls share the (in, description, entropy, reserved, prompt, flags, out) shape.
        func = getattr(crypt32, func_name)
        ok = func(ctypes.byref(blob_in), None, None, None, None, 0, ctypes.byref(blob_out))
        if not ok:
            raise ProtectionFailed(f"{func_name} failed (error {kernel32.GetLastError()})")
        try:
            return ctypes.string_at(blob_out.pbData, blob_out.cbData)
        finally:
            kernel32.LocalFree(blob_out.pbData)

    def protect(self, data: bytes) -> bytes:
        return self._call("CryptProtectData", data)

    def unprotect(self, data: bytes) -> bytes:
        return self._call("CryptUnprotectData", data)


class KeyProtector:
    """Encode and decode the stored API key."""

    def __init__(self, primitive: ProtectionPrimitive | None = None) -> None:
        self.primitive = primitive or DpapiPrimitive()

    def protect(self, plain_text: str) -> str:
        if not plain_text:
            return ""
        raw = plain_text.encode("utf-8")
        try:
            sealed = self.primitive.protect(raw)
        except (ProtectionUnavailable, ProtectionFailed, OSError) as exc:
            logger.info("Key protection unavailable, storing with fallback encoding: %s", exc)
            return FALLBACK_PREFIX + base64.b64encode(raw).decode("ascii")
        return base64.b64encode(sealed).decode("ascii")

    def unprotect(self, stored: str) -> str:
        """Return the plain key, or an empty string when it cannot be recovered."""
        if not stored:
            return ""
        try:
            if stored.startswith(FALLBACK_PREFIX):
                encoded = stored[len(FALLBACK_PREFIX):]
                return base64.b64decode(encoded, validate=True).decode("utf-8")
            sealed = base64.b64decode(stored, validate=True)
            return self.primitive.unprotect(sealed).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.warning("Config file contains invalid encrypted data. Run 'buddy config' to reconfigure.")
        except (ProtectionUnavailable, ProtectionFailed, OSError):
            logger.warning(
                "Failed to decrypt API key. It may have been encrypted on a different machine. "
                "Run 'buddy config' to reset your API key."
            )
        return ""


__all__ = [
    "FALLBACK_PREFIX",
    "DpapiPrimitive",
    "KeyProtector",
    "ProtectionFailed",
    "ProtectionPrimitive",
    "ProtectionUnavailable",
]
