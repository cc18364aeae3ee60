"""Product analysis pipeline."""

from resale_scout.analysis.errors import (
    AnalysisError,
    MarginError,
    MatcherError,
    NormalizationError,
)
from resale_scout.analysis.margin import calculate_margin
from resale_scout.analysis.models import (
    AdDifficulty,
    AnalysisConfig,
    AnalysisResult,
    Currency,
    ProductSnapshot,
    SaturationResult,
    SaturationRisk,
    StageName,
    StageResult,
    TrackedStore,
    Verdict,
)
from resale_scout.analysis.momentum import analyze_momentum
from resale_scout.analysis.normalizer import normalize
from resale_scout.analysis.orchestrator import analyze
from resale_scout.analysis.quality_gate import evaluate_quality
from resale_scout.analysis.saturation import build_matcher, check_saturation

__all__ = [
    # Models
    "AdDifficulty",
    "AnalysisConfig",
    "AnalysisResult",
    "Currency",
    "ProductSnapshot",
    "SaturationResult",
    "SaturationRisk",
    "StageName",
    "StageResult",
    "TrackedStore",
    "Verdict",
    # Errors
    "AnalysisError",
    "MarginError",
    "MatcherError",
    "NormalizationError",
    # Stages
    "normalize",
    "analyze_momentum",
    "evaluate_quality",
    "calculate_margin",
    "check_saturation",
    "build_matcher",
    # Entry point
    "analyze",
]
