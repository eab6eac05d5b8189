"""Classification of candidate item texts with a cache in front of the LLM."""

from .models import CanonResult, clamp_confidence, fallback_result, not_item_result
from .keys import PIPELINE_VERSION, make_key, normalize_key
from .guards import (
    CounterStore,
    DailyRateLimiter,
    InMemoryCounterStore,
    RateLimitDecision,
    RateLimitRecord,
    enforce_budget,
)
from .schemas import (
    CanonicalizeRequest,
    CanonicalizeResponse,
    MergedItem,
    parse_request,
)
from .classifier import (
    BatchRow,
    CanonicalizationClassifier,
    ClassificationOutcome,
    is_definitely_non_grocery,
    validate_reply,
)
from .merge import merge_results
from .service import CanonicalizeService, is_cacheable

__all__ = [
    "BatchRow",
    "CanonResult",
    "CanonicalizationClassifier",
    "CanonicalizeRequest",
    "CanonicalizeResponse",
    "CanonicalizeService",
    "ClassificationOutcome",
    "CounterStore",
    "DailyRateLimiter",
    "InMemoryCounterStore",
    "MergedItem",
    "PIPELINE_VERSION",
    "RateLimitDecision",
    "RateLimitRecord",
    "clamp_confidence",
    "enforce_budget",
    "fallback_result",
    "is_cacheable",
    "is_definitely_non_grocery",
    "make_key",
    "merge_results",
    "normalize_key",
    "not_item_result",
    "parse_request",
    "validate_reply",
]
