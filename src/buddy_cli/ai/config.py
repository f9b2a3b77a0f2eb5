"""Provider configuration stored in the user config directory.

The document is JSON shaped as ``{"provider", "model", "encryptedApiKey"}``.
One ConfigStore is created per command run; ``load()`` caches the parsed
config for the store's lifetime and ``save()`` invalidates that cache.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from filelock import FileLock, Timeout
from platformdirs import user_config_dir

from buddy_cli.ai.protection import KeyProtector
from buddy_cli.ai.providers import DEFAULT_PROVIDER, PROVIDERS
from buddy_cli.core.errors import ConfigError
from buddy_cli.core.redaction import redact_secret

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "GIT_BUDDY_HOME"
CONFIG_FILENAME = "config.json"


def get_buddy_home() -> Path:
    """Return the directory holding git-buddy's configuration.

    Resolution order:
    1. GIT_BUDDY_HOME environment variable
    2. The platform user config directory (via platformdirs)
    """
    if env_home := os.environ.get(HOME_ENV_VAR):
        return Path(env_home)
    return Path(user_config_dir("git-buddy", appauthor=False))


@dataclass(frozen=True, slots=True, repr=False)
class ProviderConfig:
    """Which backend to call, with which model and key."""

    provider_id: str = DEFAULT_PROVIDER
    model: str = PROVIDERS[DEFAULT_PROVIDER].default_model
    api_key: str = ""

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        return (
            f"ProviderConfig(provider_id={self.provider_id!r}, model={self.model!r}, "
            f"api_key={redact_secret(self.api_key)!r})"
        )


class ConfigStore:
    """Load and save ProviderConfig with per-instance caching."""

    def __init__(self, path: Path | None = None, protector: KeyProtector | None = None) -> None:
        self.path = path or get_buddy_home() / CONFIG_FILENAME
        self.lock_path = self.path.with_suffix(".lock")
        self.protector = protector or KeyProtector()
        self._cached: ProviderConfig | None = None

    def _acquire_lock(self) -> FileLock:
        return FileLock(self.lock_path, timeout=10)

    def invalidate(self) -> None:
        self._cached = None

    def load(self) -> ProviderConfig:
        if self._cached is not None:
            return self._cached
        self._cached = self._read()
        return self._cached

    def _read(self) -> ProviderConfig:
        if not self.path.exists():
            return ProviderConfig()

        try:
            with self._acquire_lock():
                raw = self.path.read_text(encoding="utf-8")
            payload = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            logger.warning(
                "Config file is corrupted (%s): %s. Using default config; run 'buddy config' to reconfigure.",
                self.path,
                exc,
            )
            return ProviderConfig()
        except (OSError, Timeout) as exc:
            logger.warning(
                "Could not read config file (%s): %s. Using default config.",
                self.path,
                exc,
            )
            return ProviderConfig()

        if not isinstance(payload, dict):
            logger.warning("Config file %s is not a JSON object. Using default config.", self.path)
            return ProviderConfig()

        provider = payload.get("provider")
        model = payload.get("model")
        encrypted = payload.get("encryptedApiKey")
        config = ProviderConfig(
            provider_id=provider if isinstance(provider, str) and provider else DEFAULT_PROVIDER,
            model=model if isinstance(model, str) and model else PROVIDERS[DEFAULT_PROVIDER].default_model,
            api_key=self.protector.unprotect(encrypted) if isinstance(encrypted, str) else "",
        )
        logger.debug("Loaded %r from %s", config, self.path)
        return config

    def save(self, provider_id: str, model: str, api_key: str) -> ProviderConfig:
        """Persist the config and drop the cached copy."""
        payload = {
            "provider": provider_id,
            "model": model,
            "encryptedApiKey": self.protector.protect(api_key),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._acquire_lock():
                self.path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
                if os.name != "nt":
                    os.chmod(self.path, 0o600)
        except Timeout as exc:
            raise ConfigError(
                "Cannot acquire lock on config file. Another process may be using it."
            ) from exc
        except OSError as exc:
            raise ConfigError(f"Failed to save config: {exc}") from exc
        finally:
            self.invalidate()

        logger.info("Saved provider config to %s (key %s)", self.path, redact_secret(api_key))
        return ProviderConfig(provider_id=provider_id, model=model, api_key=api_key)


__all__ = ["CONFIG_FILENAME", "ConfigStore", "HOME_ENV_VAR", "ProviderConfig", "get_buddy_home"]
