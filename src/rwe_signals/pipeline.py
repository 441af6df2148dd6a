"""
Stage orchestration for the signal engine.

1. signal: contingency snapshot -> metric snapshot
2. rank: metric snapshot + literature relations -> ranked signals CSV

A stage whose input snapshot does not exist logs a warning and returns a
skipped result instead of failing, so stages run out of order degrade
gracefully. Storage failures propagate as StorageError.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from rwe_signals.config import Config, ScoringConfig
from rwe_signals.models import Prior
from rwe_signals.ranking.ranker import count_literature_support, rank_signals
from rwe_signals.signals.compute import compute_metrics
from rwe_signals.storage import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class StageResult:
    """Result of a single stage run."""

    stage: str
    success: bool
    skipped: bool = False
    rows_in: int = 0
    rows_out: int = 0
    output_path: Optional[Path] = None
    message: str = ""
    duration_seconds: float = 0.0
    prior: Optional[Prior] = None


@dataclass
class PipelineResult:
    """Result of a full pipeline run."""

    stages: list[StageResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(s.success for s in self.stages)

    @property
    def duration_seconds(self) -> float:
        return sum(s.duration_seconds for s in self.stages)


def _skipped(stage: str, message: str, start_time: datetime) -> StageResult:
    logger.warning(message)
    return StageResult(
        stage=stage,
        success=True,
        skipped=True,
        message=message,
        duration_seconds=(datetime.now() - start_time).total_seconds(),
    )


def run_signal_stage(config: Config, store: Optional[SnapshotStore] = None) -> StageResult:
    """
    Compute disproportionality, shrinkage and trend metrics.

    Args:
        config: Application configuration
        store: Optional storage override

    Returns:
        StageResult for the "signal" stage
    """
    start_time = datetime.now()
    store = store or SnapshotStore(config)

    if not config.contingency_path.exists():
        return _skipped(
            "signal",
            f"{config.contingency_path} missing; run normalize first",
            start_time,
        )

    rows = store.load_contingency_rows()
    if not rows:
        return _skipped("signal", "No contingency rows available for signal computation", start_time)

    metrics, prior = compute_metrics(rows)
    output_path = store.write_metrics(metrics)

    return StageResult(
        stage="signal",
        success=True,
        rows_in=len(rows),
        rows_out=len(metrics),
        output_path=output_path,
        message=f"Computed {len(metrics)} metrics",
        duration_seconds=(datetime.now() - start_time).total_seconds(),
        prior=prior,
    )


def run_rank_stage(
    config: Config,
    store: Optional[SnapshotStore] = None,
    scoring: Optional[ScoringConfig] = None,
) -> StageResult:
    """
    Rank the metric snapshot into one row per drug/event pair.

    Args:
        config: Application configuration
        store: Optional storage override
        scoring: Optional composite score weights

    Returns:
        StageResult for the "rank" stage
    """
    start_time = datetime.now()
    store = store or SnapshotStore(config)

    if not config.metrics_path.exists():
        return _skipped(
            "rank",
            f"{config.metrics_path} missing; run signal first",
            start_time,
        )

    metrics = store.load_metrics()
    lit_counts = count_literature_support(store.load_relation_pairs())

    signals = rank_signals(metrics, lit_counts, scoring)
    if not signals:
        return _skipped("rank", "No ranked rows to persist", start_time)

    output_path = store.write_signals(signals)

    return StageResult(
        stage="rank",
        success=True,
        rows_in=len(metrics),
        rows_out=len(signals),
        output_path=output_path,
        message=f"Ranked {len(signals)} drug/event pairs",
        duration_seconds=(datetime.now() - start_time).total_seconds(),
    )


def run_pipeline(
    config: Config,
    store: Optional[SnapshotStore] = None,
    scoring: Optional[ScoringConfig] = None,
) -> PipelineResult:
    """Run the signal stage followed by the rank stage."""
    store = store or SnapshotStore(config)
    result = PipelineResult()

    result.stages.append(run_signal_stage(config, store))
    result.stages.append(run_rank_stage(config, store, scoring))

    return result
