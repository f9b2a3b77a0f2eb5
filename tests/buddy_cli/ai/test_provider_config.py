"""Tests for ConfigStore, ProviderConfig and KeyProtector."""

from __future__ import annotations

import base64
import json
import os
from unittest.mock import patch

import pytest

from buddy_cli.ai.config import ConfigStore, ProviderConfig, get_buddy_home
from buddy_cli.ai.protection import FALLBACK_PREFIX, KeyProtector, ProtectionFailed, ProtectionUnavailable
from buddy_cli.ai.providers import PROVIDERS, get_provider
from buddy_cli.core.errors import ConfigError


class ReversingPrimitive:
    """Stand-in for DPAPI: reverses the bytes."""

    def protect(self, data: bytes) -> bytes:
        return data[::-1]

    def unprotect(self, data: bytes) -> bytes:
        return data[::-1]


class UnavailablePrimitive:
    def protect(self, data: bytes) -> bytes:
        raise ProtectionUnavailable("not here")

    def unprotect(self, data: bytes) -> bytes:
        raise ProtectionUnavailable("not here")


class FailingPrimitive(ReversingPrimitive):
    def unprotect(self, data: bytes) -> bytes:
        raise ProtectionFailed("other user")


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "config" / "config.json"


class TestHome:
    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GIT_BUDDY_HOME", str(tmp_path / "custom"))
        assert get_buddy_home() == tmp_path / "custom"

    def test_default_store_path_under_home(self, isolated_buddy_home):
        assert ConfigStore().path == isolated_buddy_home / "config.json"


class TestKeyProtector:
    def test_primitive_round_trip(self):
        protector = KeyProtector(ReversingPrimitive())
        stored = protector.protect("sk-secret-value")
        assert not stored.startswith(FALLBACK_PREFIX)
        assert "sk-secret-value" not in stored
        assert protector.unprotect(stored) == "sk-secret-value"

    def test_unavailable_primitive_uses_visible_fallback(self):
        protector = KeyProtector(UnavailablePrimitive())
        stored = protector.protect("sk-secret-value")
        assert stored == FALLBACK_PREFIX + base64.b64encode(b"sk-secret-value").decode("ascii")
        assert protector.unprotect(stored) == "sk-secret-value"

    def test_fallback_readable_by_any_primitive(self):
        stored = KeyProtector(UnavailablePrimitive()).protect("abc")
        assert KeyProtector(ReversingPrimitive()).unprotect(stored) == "abc"

    def test_undecryptable_key_becomes_empty(self):
        stored = KeyProtector(ReversingPrimitive()).protect("sk-secret-value")
        assert KeyProtector(FailingPrimitive()).unprotect(stored) == ""

    def test_garbage_becomes_empty(self):
        protector = KeyProtector(ReversingPrimitive())
        assert protector.unprotect("!!not base64!!") == ""
        assert protector.unprotect(FALLBACK_PREFIX + "***") == ""
        assert protector.unprotect("") == ""

    def test_empty_key_is_stored_empty(self):
        assert KeyProtector(ReversingPrimitive()).protect("") == ""


class TestConfigStore:
    def test_missing_file_yields_defaults(self, store_path):
        config = ConfigStore(store_path).load()
        assert config.provider_id == "openai"
        assert config.model == "gpt-4o-mini"
        assert not config.has_api_key

    def test_round_trip_with_primitive(self, store_path):
        store = ConfigStore(store_path, KeyProtector(ReversingPrimitive()))
        store.save("openrouter", "deepseek/deepseek-chat", "sk-or-123456789")

        reloaded = ConfigStore(store_path, KeyProtector(ReversingPrimitive())).load()
        assert reloaded == ProviderConfig("openrouter", "deepseek/deepseek-chat", "sk-or-123456789")

        payload = json.loads(store_path.read_text(encoding="utf-8"))
        assert set(payload) == {"provider", "model", "encryptedApiKey"}
        assert "sk-or-123456789" not in store_path.read_text(encoding="utf-8")

    def test_round_trip_with_plaintext_fallback(self, store_path):
        store = ConfigStore(store_path, KeyProtector(UnavailablePrimitive()))
        store.save("deepseek", "deepseek-chat", "sk-ds-abcdefgh")

        payload = json.loads(store_path.read_text(encoding="utf-8"))
        assert payload["encryptedApiKey"].startswith(FALLBACK_PREFIX)
        assert ConfigStore(store_path, KeyProtector(UnavailablePrimitive())).load().api_key == "sk-ds-abcdefgh"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_file_is_private(self, store_path):
        ConfigStore(store_path, KeyProtector(UnavailablePrimitive())).save("openai", "gpt-4o-mini", "sk-123456789")
        assert store_path.stat().st_mode & 0o777 == 0o600

    def test_load_is_cached_until_save(self, store_path):
        store = ConfigStore(store_path, KeyProtector(UnavailablePrimitive()))
        first = store.load()
        with patch.object(store, "_read") as mock_read:
            assert store.load() is first
            mock_read.assert_not_called()

        store.save("deepseek", "deepseek-chat", "sk-ds-abcdefgh")
        assert store.load().provider_id == "deepseek"

    def test_corrupt_file_yields_defaults(self, store_path, caplog):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{not json", encoding="utf-8")
        config = ConfigStore(store_path).load()
        assert config == ProviderConfig()
        assert "corrupted" in caplog.text

    def test_non_object_file_yields_defaults(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("[1, 2]", encoding="utf-8")
        assert ConfigStore(store_path).load() == ProviderConfig()

    def test_save_failure_raises_config_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        store = ConfigStore(blocker / "config.json", KeyProtector(UnavailablePrimitive()))
        with pytest.raises(ConfigError):
            store.save("openai", "gpt-4o-mini", "sk-123456789")

    def test_repr_redacts_key(self):
        config = ProviderConfig("openai", "gpt-4o-mini", "sk-proj-verysecret")
        assert "verysecret" not in repr(config)
        assert "sk-pr***" in repr(config)


class TestProviders:
    def test_unknown_provider_falls_back_to_openai(self):
        assert get_provider("mystery") is PROVIDERS["openai"]
        assert get_provider(None) is PROVIDERS["openai"]

    def test_openrouter_headers(self):
        headers = get_provider("OpenRouter").extra_headers
        assert headers == {"HTTP-Referer": "http://localhost", "X-Title": "GitBuddy"}
