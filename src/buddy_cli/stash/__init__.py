"""Stash subpackage for ``buddy stash``."""

from .manager import StashManager, StashResult, StashStatus

__all__ = ["StashManager", "StashResult", "StashStatus"]
