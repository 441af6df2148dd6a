"""Read-side queries over the ranked signals artefact."""

import string
from typing import Optional

from rwe_signals.config import Config
from rwe_signals.models import EventSignal, RankedSignal
from rwe_signals.ranking.ranker import get_top_signals
from rwe_signals.storage import SnapshotStore

_ASCII_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)


def normalize_drug_id(drug_id: str) -> str:
    """Uppercase ASCII letters only; other characters compare as-is."""
    return drug_id.translate(_ASCII_UPPER)


def list_signals(
    config: Config,
    drug: Optional[str] = None,
    limit: Optional[int] = None,
    min_score: Optional[float] = None,
    min_lit_support: int = 0,
) -> list[RankedSignal]:
    """
    Ranked signals, optionally restricted to one drug.

    Thresholds are applied before truncation, so up to `limit` qualifying
    rows are returned.

    Args:
        config: Application configuration
        drug: Drug id, matched ASCII case-insensitively
        limit: Maximum rows (default config.signals_limit)
        min_score: Minimum composite score
        min_lit_support: Minimum literature support

    Returns:
        Signals sorted by score descending; empty if nothing is ranked yet
    """
    limit = config.signals_limit if limit is None else limit
    signals = SnapshotStore(config).load_signals()

    if drug is not None:
        wanted = normalize_drug_id(drug)
        signals = [s for s in signals if normalize_drug_id(s.drug_id) == wanted]

    if min_score is not None or min_lit_support:
        signals = get_top_signals(
            signals,
            min_score=min_score if min_score is not None else float("-inf"),
            min_lit_support=min_lit_support,
        )

    signals.sort(key=lambda s: s.score, reverse=True)
    return signals[:limit]


def list_events(
    config: Config,
    drug_id: str,
    limit: Optional[int] = None,
) -> list[EventSignal]:
    """
    Events reported with one drug.

    Args:
        config: Application configuration
        drug_id: Drug id, matched ASCII case-insensitively
        limit: Maximum rows (default config.events_limit)

    Returns:
        Events sorted by shrunk recent ROR descending; empty if nothing
        is ranked yet
    """
    limit = config.events_limit if limit is None else limit
    wanted = normalize_drug_id(drug_id)

    events = [
        s.to_event()
        for s in SnapshotStore(config).load_signals()
        if normalize_drug_id(s.drug_id) == wanted
    ]

    events.sort(key=lambda e: e.recent_ror, reverse=True)
    return events[:limit]
