"""
Data models for the signal engine.

ContingencyRow is the normalized input, SignalMetric the per-quarter
derived statistics, RankedSignal the final one-row-per-pair output.
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


CONTINGENCY_COLUMNS = [
    "drug_id",
    "event_id",
    "year_quarter",
    "a",
    "b",
    "c",
    "d",
]

METRIC_COLUMNS = [
    "drug_id",
    "event_id",
    "year_quarter",
    "ror",
    "ci_low",
    "ci_high",
    "variance",
    "log_ror",
    "ror_shrunk",
    "shrunk_ci_low",
    "shrunk_ci_high",
    "trend_z",
]

SIGNAL_COLUMNS = [
    "drug_id",
    "event_id",
    "year_quarter",
    "recent_ror",
    "ci_low",
    "ci_high",
    "lit_support",
    "trend_z",
    "score",
]

RELATION_COLUMNS = ["drug_id", "event_id", "pmid", "sent_idx", "confidence"]


class ContingencyRow(BaseModel):
    """2x2 report counts for one drug/event pair in one quarter."""

    model_config = ConfigDict(frozen=True)

    drug_id: str
    event_id: str
    year_quarter: str
    a: int = Field(ge=0, description="Reports with both drug and event")
    b: int = Field(ge=0, description="Reports with the drug only")
    c: int = Field(ge=0, description="Reports with the event only")
    d: int = Field(ge=0, description="Reports with neither")

    @property
    def pair(self) -> tuple[str, str]:
        return (self.drug_id, self.event_id)


class SignalMetric(BaseModel):
    """
    Disproportionality statistics for one ContingencyRow.

    Filled in three batch passes: raw ratio (ror, ci_low, ci_high,
    variance, log_ror), shrunk ratio (ror_shrunk, shrunk_ci_low,
    shrunk_ci_high) and trend_z. Each pass returns new frozen
    instances via model_copy.
    """

    model_config = ConfigDict(frozen=True)

    drug_id: str
    event_id: str
    year_quarter: str
    ror: float
    ci_low: float
    ci_high: float
    variance: float
    log_ror: float
    ror_shrunk: float
    shrunk_ci_low: float
    shrunk_ci_high: float
    trend_z: float = 0.0

    @property
    def pair(self) -> tuple[str, str]:
        return (self.drug_id, self.event_id)

    def to_row(self) -> dict:
        return self.model_dump()


@dataclass(frozen=True)
class Prior:
    """Gaussian prior over log RORs estimated from one batch."""

    mean: float = 0.0
    variance: float = 0.25


class RankedSignal(BaseModel):
    """Latest-quarter signal for a drug/event pair with its composite score."""

    drug_id: str
    event_id: str
    year_quarter: str
    recent_ror: float
    ci_low: float
    ci_high: float
    lit_support: int = 0
    trend_z: float = 0.0
    score: float

    @property
    def pair(self) -> tuple[str, str]:
        return (self.drug_id, self.event_id)

    def to_event(self) -> "EventSignal":
        """Project onto the per-drug events view."""
        return EventSignal(
            drug_id=self.drug_id,
            event_id=self.event_id,
            year_quarter=self.year_quarter,
            recent_ror=self.recent_ror,
            ci_low=self.ci_low,
            ci_high=self.ci_high,
            trend_z=self.trend_z,
        )


class EventSignal(BaseModel):
    """Ranked signal as listed for a single drug."""

    drug_id: str
    event_id: str
    year_quarter: str
    recent_ror: float
    ci_low: float
    ci_high: float
    trend_z: float
