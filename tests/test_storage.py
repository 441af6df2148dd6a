"""Tests for DuckDB snapshot storage."""

import duckdb
import pandas as pd
import pytest

from rwe_signals.models import METRIC_COLUMNS, SIGNAL_COLUMNS
from rwe_signals.pipeline import run_pipeline
from rwe_signals.serving import list_signals
from rwe_signals.signals.compute import compute_metrics
from rwe_signals.storage import SnapshotSchemaError, SnapshotWriteError


class TestContingencySnapshot:
    """Tests for loading the contingency input."""

    def test_round_trip_preserves_order(self, store, sample_rows):
        """Written rows should load back in the same order."""
        store.write_contingency_rows(sample_rows)

        loaded = store.load_contingency_rows()

        assert loaded == sample_rows

    def test_drops_negative_and_null_rows(self, store, config):
        """Rows with negative counts or nulls should be dropped."""
        df = pd.DataFrame({
            "drug_id": ["D0001", "D0002", None],
            "event_id": ["rash", "rash", "rash"],
            "year_quarter": ["2024Q1", "2024Q1", "2024Q1"],
            "a": [3, -1, 2],
            "b": [10, 10, 10],
            "c": [4, 4, 4],
            "d": [100, 100, 100],
        })
        store.write_parquet(df, config.contingency_path)

        loaded = store.load_contingency_rows()

        assert [r.drug_id for r in loaded] == ["D0001"]

    def test_merges_duplicate_keys(self, store, config):
        """Duplicate natural keys should be summed in first-appearance order."""
        df = pd.DataFrame({
            "drug_id": ["D0002", "D0001", "D0002"],
            "event_id": ["rash", "rash", "rash"],
            "year_quarter": ["2024Q1", "2024Q1", "2024Q1"],
            "a": [1, 5, 2],
            "b": [10, 10, 10],
            "c": [4, 4, 4],
            "d": [100, 100, 100],
        })
        store.write_parquet(df, config.contingency_path)

        loaded = store.load_contingency_rows()

        assert [r.drug_id for r in loaded] == ["D0002", "D0001"]
        assert loaded[0].a == 3
        assert loaded[0].b == 20

    def test_missing_column(self, store, config):
        """Missing count columns should raise a schema error."""
        df = pd.DataFrame({
            "drug_id": ["D0001"],
            "event_id": ["rash"],
            "year_quarter": ["2024Q1"],
            "a": [1],
            "b": [2],
            "c": [3],
        })
        store.write_parquet(df, config.contingency_path)

        with pytest.raises(SnapshotSchemaError, match="d"):
            store.load_contingency_rows()


class TestMetricSnapshot:
    """Tests for the metric snapshot."""

    def test_round_trip(self, store, sample_rows):
        """Metrics should load back unchanged and in order."""
        metrics, _ = compute_metrics(sample_rows)
        store.write_metrics(metrics)

        loaded = store.load_metrics()

        assert [m.model_dump() for m in loaded] == [m.model_dump() for m in metrics]

    def test_schema(self, store, config, sample_rows):
        """Snapshot should carry the documented columns as doubles."""
        metrics, _ = compute_metrics(sample_rows)
        path = store.write_metrics(metrics)

        with duckdb.connect() as conn:
            rel = conn.read_parquet(str(path))
            columns = dict(zip(rel.columns, [str(t) for t in rel.types]))

        assert list(columns) == METRIC_COLUMNS
        assert columns["ror"] == "DOUBLE"
        assert columns["trend_z"] == "DOUBLE"
        assert columns["year_quarter"] == "VARCHAR"


class TestRelations:
    """Tests for literature relation loading."""

    def test_missing_file(self, store):
        """No relation snapshot should give no pairs."""
        assert store.load_relation_pairs() == []

    def test_pairs(self, store, config):
        """Should return one pair per relation row."""
        df = pd.DataFrame({
            "drug_id": ["D0001", "D0001"],
            "event_id": ["rash", "rash"],
            "pmid": ["111", "222"],
            "sent_idx": [0, 3],
            "confidence": [0.9, 0.4],
        })
        store.write_parquet(df, config.relations_path)

        assert store.load_relation_pairs() == [("D0001", "rash"), ("D0001", "rash")]


class TestSignalsOutput:
    """Tests for the ranked CSV."""

    def test_missing_file(self, store):
        """Missing CSV should load as empty."""
        assert store.load_signals() == []

    def test_header(self, store, config, make_metric):
        """CSV header should match the serving contract."""
        from rwe_signals.ranking.ranker import rank_signals

        store.write_signals(rank_signals([make_metric()]))

        header = config.signals_path.read_text().splitlines()[0]
        assert header == ",".join(SIGNAL_COLUMNS)

    def test_round_trip(self, store, make_metric):
        """Signals should load back in file order."""
        from rwe_signals.ranking.ranker import rank_signals

        signals = rank_signals([make_metric(event="a", log_ror=2.0), make_metric(event="b")])
        store.write_signals(signals)

        loaded = store.load_signals()

        assert [s.event_id for s in loaded] == ["a", "b"]
        assert loaded[0].score == pytest.approx(signals[0].score)

    def test_na_like_ids_and_quarters_survive(self, config, store, make_row):
        """Ids and quarters that look like missing values should read back verbatim."""
        store.write_contingency_rows([
            make_row(quarter="N/A"),
            make_row(event="nausea", quarter=""),
            make_row(drug="NA", event="rash", quarter="2024Q1"),
        ])
        run_pipeline(config, store)

        rows = list_signals(config)

        assert {(s.drug_id, s.event_id, s.year_quarter) for s in rows} == {
            ("D0001", "hepatotoxicity", "N/A"),
            ("D0001", "nausea", ""),
            ("NA", "rash", "2024Q1"),
        }
        assert [s.event_id for s in list_signals(config, drug="na")] == ["rash"]

    def test_invalid_value(self, store, config):
        """A non-numeric score column should raise a schema error."""
        config.signals_path.write_text(
            ",".join(SIGNAL_COLUMNS) + "\nD0001,rash,2024Q1,abc,1,2,0,0,1\n"
        )

        with pytest.raises(SnapshotSchemaError, match="invalid values"):
            store.load_signals()

    def test_empty_file(self, store, config):
        """An empty CSV should raise a schema error."""
        config.signals_path.write_text("")

        with pytest.raises(SnapshotSchemaError):
            store.load_signals()


class TestAtomicWrite:
    """Tests for all-or-nothing persistence."""

    def test_failed_write_keeps_previous(self, store, config, make_metric, monkeypatch):
        """A failed write should leave the old artefact and no temp file."""
        from rwe_signals.ranking.ranker import rank_signals

        store.write_signals(rank_signals([make_metric()]))
        before = config.signals_path.read_text()

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("rwe_signals.storage.os.replace", broken_replace)

        with pytest.raises(SnapshotWriteError, match="disk full"):
            store.write_signals(rank_signals([make_metric(event="other")]))

        assert config.signals_path.read_text() == before
        assert list(config.signals_path.parent.glob(".*.tmp")) == []


class TestAnalystViews:
    """Tests for DuckDB view bootstrap and stats."""

    def test_no_artefacts(self, store):
        """No artefacts should create no views."""
        assert store.bootstrap_views() == []

    def test_views_for_existing_artefacts(self, store, config, sample_rows):
        """Should create views only for existing artefacts."""
        store.write_contingency_rows(sample_rows)

        created = store.bootstrap_views()

        assert created == ["v_faers_counts"]
        with duckdb.connect(str(config.duckdb_path)) as conn:
            count = conn.execute("SELECT COUNT(*) FROM v_faers_counts").fetchone()[0]
        assert count == len(sample_rows)

    def test_stats(self, store, sample_rows):
        """Stats should count rows and mark missing artefacts."""
        store.write_contingency_rows(sample_rows)

        stats = store.get_stats()

        assert stats["contingency_rows"] == len(sample_rows)
        assert stats["signal_metrics"] is None
        assert stats["ranked_signals"] is None
