"""Matching engine and its building blocks."""

from .engine import ReconciliationEngine, reconcile, summarize
from .amount_index import AmountIndex
from .passes import (
    MatchingPass,
    ReferenceIdPass,
    ExactDatePass,
    StrictWindowPass,
    FuzzyPass,
    SplitPass,
    MergePass,
    build_passes,
)
from .similarity import (
    SimilarityScorer,
    normalize_text,
    extract_numeric_tokens,
    shares_reference,
)
from .state import ClaimState, DoubleClaimError
from .subset_sum import find_subset_sum

__all__ = [
    "ReconciliationEngine",
    "reconcile",
    "summarize",
    "AmountIndex",
    "MatchingPass",
    "ReferenceIdPass",
    "ExactDatePass",
    "StrictWindowPass",
    "FuzzyPass",
    "SplitPass",
    "MergePass",
    "build_passes",
    "SimilarityScorer",
    "normalize_text",
    "extract_numeric_tokens",
    "shares_reference",
    "ClaimState",
    "DoubleClaimError",
    "find_subset_sum",
]
