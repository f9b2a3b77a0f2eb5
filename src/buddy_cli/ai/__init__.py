"""AI message generation: provider table, stored configuration and HTTP client."""

from .client import (
    CommitMessageProvider,
    CommitMessageRequest,
    MessageKind,
    ProviderError,
    ProviderErrorKind,
)
from .config import ConfigStore, ProviderConfig, get_buddy_home
from .protection import KeyProtector
from .providers import PROVIDERS, ProviderSpec, get_provider

__all__ = [
    "CommitMessageProvider",
    "CommitMessageRequest",
    "ConfigStore",
    "KeyProtector",
    "MessageKind",
    "PROVIDERS",
    "ProviderConfig",
    "ProviderError",
    "ProviderErrorKind",
    "ProviderSpec",
    "get_buddy_home",
    "get_provider",
]
