"""Assignment engine: run context, fairness scoring and the assignment phases.

The orchestrator lives in :mod:`clinicroster.scheduling.orchestrator` and is
imported from there, since it also depends on the validation package.
"""

from clinicroster.scheduling.candidate_pool import (
    CandidateSelector,
    flexible_pool,
    native_pool,
)
from clinicroster.scheduling.context import RunContext, seed_for_period
from clinicroster.scheduling.fairness import FairnessScoreEngine
from clinicroster.scheduling.holiday_override import HolidayOverride
from clinicroster.scheduling.on_hold import OnHoldReviewer, OnHoldReviewResult
from clinicroster.scheduling.priority_assigner import PriorityAssigner
from clinicroster.scheduling.quota_reconciler import QuotaReconciler

__all__ = [
    "CandidateSelector",
    "FairnessScoreEngine",
    "HolidayOverride",
    "OnHoldReviewResult",
    "OnHoldReviewer",
    "PriorityAssigner",
    "QuotaReconciler",
    "RunContext",
    "flexible_pool",
    "native_pool",
    "seed_for_period",
]
