"""Engine components: canonicalise → dedupe → diff → filter → register."""

from .canonical import Canonicalizer, canonicalize
from .context import BrowserSession, ExecutionContext, ExecutionContextManager
from .dedup import dedupe
from .diff import diff
from .filters import Exclusion, ExclusionRule, FilterPipeline, FilterResult, filter_items
from .items import AcceptedItem, Candidate
from .pagination import Page, PaginationController, PaginationResult, StopReason
from .rate_limit import RateLimiter
from .registration import RegistrationOutcome, RegistrationSync

__all__ = [
    "AcceptedItem",
    "BrowserSession",
    "Candidate",
    "Canonicalizer",
    "Exclusion",
    "ExclusionRule",
    "ExecutionContext",
    "ExecutionContextManager",
    "FilterPipeline",
    "FilterResult",
    "Page",
    "PaginationController",
    "PaginationResult",
    "RateLimiter",
    "RegistrationOutcome",
    "RegistrationSync",
    "StopReason",
    "canonicalize",
    "dedupe",
    "diff",
    "filter_items",
]
