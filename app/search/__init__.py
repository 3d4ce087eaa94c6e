"""Worker search: eligibility/user filters and ranking."""

from .filters import (
    SearchFilters,
    ValidationResult,
    apply_eligibility_filters,
    apply_user_filters,
    clear_filters,
    get_active_filter_count,
    get_filter_summary,
    validate_filters,
)
from .ranking import (
    DEFAULT_WEIGHTS,
    RankedWorker,
    RankingOptions,
    RankingSignals,
    RankingWeights,
    apply_controlled_shuffle,
    calculate_ranking_score,
    get_score_breakdown,
    rank_workers,
)

__all__ = [
    "SearchFilters",
    "ValidationResult",
    "apply_eligibility_filters",
    "apply_user_filters",
    "clear_filters",
    "get_active_filter_count",
    "get_filter_summary",
    "validate_filters",
    "DEFAULT_WEIGHTS",
    "RankedWorker",
    "RankingOptions",
    "RankingSignals",
    "RankingWeights",
    "apply_controlled_shuffle",
    "calculate_ranking_score",
    "get_score_breakdown",
    "rank_workers",
]
