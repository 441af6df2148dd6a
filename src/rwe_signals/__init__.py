"""rwe-signals - Pharmacovigilance signal computation and ranking."""

from .config import Config, ScoringConfig, get_config, get_scoring_config
from .models import ContingencyRow, EventSignal, Prior, RankedSignal, SignalMetric
from .pipeline import PipelineResult, StageResult, run_pipeline, run_rank_stage, run_signal_stage
from .ranking import rank_signals
from .signals import compute_metrics, estimate_prior, ror_with_ci, rolling_z, shrink

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ScoringConfig",
    "get_config",
    "get_scoring_config",
    "ContingencyRow",
    "EventSignal",
    "Prior",
    "RankedSignal",
    "SignalMetric",
    "PipelineResult",
    "StageResult",
    "run_pipeline",
    "run_rank_stage",
    "run_signal_stage",
    "rank_signals",
    "compute_metrics",
    "estimate_prior",
    "ror_with_ci",
    "rolling_z",
    "shrink",
]
