"""Text-generation backends.

The backends differ only in endpoint, routing headers and default model, so
they are rows in one table consumed by a single client.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_PROVIDER = "openai"


@dataclass(frozen=True, slots=True)
class ProviderSpec:
    """Fixed attributes of one chat-completions backend."""

    provider_id: str
    display_name: str
    endpoint: str
    default_model: str
    extra_headers: dict[str, str] = field(default_factory=dict)
    suggested_models: tuple[str, ...] = ()


PROVIDERS: dict[str, ProviderSpec] = {
    "openai": ProviderSpec(
        provider_id="openai",
        display_name="OpenAI (GPT-4o, etc)",
        endpoint="https://api.openai.com/v1/chat/completions",
        default_model="gpt-4o-mini",
    ),
    "openrouter": ProviderSpec(
        provider_id="openrouter",
        display_name="OpenRouter (DeepSeek, Claude, Gemini, etc)",
        endpoint="https://openrouter.ai/api/v1/chat/completions",
        default_model="google/gemini-2.0-flash-exp:free",
        extra_headers={"HTTP-Referer": "http://localhost", "X-Title": "GitBuddy"},
        suggested_models=(
            "google/gemini-2.0-flash-exp:free",
            "deepseek/deepseek-chat",
            "anthropic/claude-3-haiku",
        ),
    ),
    "deepseek": ProviderSpec(
        provider_id="deepseek",
        display_name="DeepSeek (Direct)",
        endpoint="https://api.deepseek.com/chat/completions",
        default_model="deepseek-chat",
    ),
}


def get_provider(provider_id: str | None) -> ProviderSpec:
    """Look up a backend by id; unknown ids fall back to the default backend."""
    key = (provider_id or "").strip().lower()
    return PROVIDERS.get(key, PROVIDERS[DEFAULT_PROVIDER])


__all__ = ["DEFAULT_PROVIDER", "PROVIDERS", "ProviderSpec", "get_provider"]
