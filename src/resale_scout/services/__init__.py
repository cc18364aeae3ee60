"""Business logic services."""

from resale_scout.services.analysis import (
    AnalysisService,
    BatchAnalysis,
    rank_results,
    save_analyses,
)

__all__ = [
    "AnalysisService",
    "BatchAnalysis",
    "rank_results",
    "save_analyses",
]
