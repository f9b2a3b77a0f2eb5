"""Sync subpackage for ``buddy sync`` and ``buddy branch clean``."""

from .cleanup import BranchCleaner, CleanupResult, deletable_branches
from .coordinator import SyncCoordinator, SyncReport, SyncStatus
from .hosting import HostingClient, RepositorySpec

__all__ = [
    "BranchCleaner",
    "CleanupResult",
    "HostingClient",
    "RepositorySpec",
    "SyncCoordinator",
    "SyncReport",
    "SyncStatus",
    "deletable_branches",
]
