"""Release subpackage for ``buddy release``."""

from .planner import BumpKind, ReleaseManager, ReleasePlan, ReleaseReport, ReleaseStatus, Version

__all__ = [
    "BumpKind",
    "ReleaseManager",
    "ReleasePlan",
    "ReleaseReport",
    "ReleaseStatus",
    "Version",
]
