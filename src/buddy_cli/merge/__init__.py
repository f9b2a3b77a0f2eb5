"""Merge subpackage for ``buddy merge``.

Modules:
    state: Merge states, request and report envelopes
    preflight: Candidate selection and the merge preview
    orchestrator: The merge state machine
"""

from .orchestrator import MergeOrchestrator
from .state import ConflictSet, MergePlan, MergeReport, MergeRequest, MergeState

__all__ = [
    "ConflictSet",
    "MergeOrchestrator",
    "MergePlan",
    "MergeReport",
    "MergeRequest",
    "MergeState",
]
