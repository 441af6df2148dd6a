"""Pytest configuration and fixtures."""

import math

import pytest

from rwe_signals.config import Config
from rwe_signals.models import ContingencyRow, SignalMetric
from rwe_signals.storage import SnapshotStore


@pytest.fixture
def config(tmp_path) -> Config:
    """Config with data and output directories under tmp_path."""
    return Config(
        data_dir=tmp_path / "data",
        outputs_dir=tmp_path / "outputs",
    )


@pytest.fixture
def store(config) -> SnapshotStore:
    """Snapshot store bound to the temporary config."""
    return SnapshotStore(config)


@pytest.fixture
def make_row():
    """Factory for contingency rows."""

    def _make(drug="D0001", event="hepatotoxicity", quarter="2024Q1", a=12, b=30, c=8, d=90):
        return ContingencyRow(
            drug_id=drug,
            event_id=event,
            year_quarter=quarter,
            a=a,
            b=b,
            c=c,
            d=d,
        )

    return _make


@pytest.fixture
def make_metric():
    """Factory for fully populated signal metrics."""

    def _make(
        drug="D0001",
        event="hepatotoxicity",
        quarter="2024Q1",
        log_ror=1.0,
        variance=0.25,
        ror_shrunk=2.0,
        trend_z=0.0,
    ):
        return SignalMetric(
            drug_id=drug,
            event_id=event,
            year_quarter=quarter,
            ror=math.exp(log_ror),
            ci_low=1.0,
            ci_high=5.0,
            variance=variance,
            log_ror=log_ror,
            ror_shrunk=ror_shrunk,
            shrunk_ci_low=ror_shrunk / 2,
            shrunk_ci_high=ror_shrunk * 2,
            trend_z=trend_z,
        )

    return _make


@pytest.fixture
def sample_rows(make_row) -> list[ContingencyRow]:
    """Two pairs over three quarters with a rising signal for the first."""
    return [
        make_row("D0001", "hepatotoxicity", "2024Q1", a=10, b=100, c=100, d=1000),
        make_row("D0001", "hepatotoxicity", "2024Q2", a=20, b=100, c=100, d=1000),
        make_row("D0001", "hepatotoxicity", "2024Q3", a=40, b=100, c=100, d=1000),
        make_row("D0002", "rash", "2024Q1", a=5, b=200, c=50, d=2000),
        make_row("D0002", "rash", "2024Q2", a=0, b=210, c=55, d=2100),
        make_row("D0002", "rash", "2024Q3", a=4, b=190, c=60, d=2050),
    ]
