"""
DuckDB storage for pipeline snapshots.

Reads and writes the parquet snapshots exchanged between stages and the
ranked CSV consumed by the serving layer. Writes go to a temporary
sibling file and are renamed into place, so a failed write never leaves
a partial artefact behind.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional, TypeVar

import duckdb
import pandas as pd
from pydantic import BaseModel, ValidationError

from rwe_signals.config import Config
from rwe_signals.models import (
    CONTINGENCY_COLUMNS,
    METRIC_COLUMNS,
    SIGNAL_COLUMNS,
    ContingencyRow,
    RankedSignal,
    SignalMetric,
)

logger = logging.getLogger(__name__)

KEY_COLUMNS = ["drug_id", "event_id", "year_quarter"]
COUNT_COLUMNS = ["a", "b", "c", "d"]

ModelT = TypeVar("ModelT", bound=BaseModel)


class StorageError(Exception):
    """Base error for snapshot storage."""


class SnapshotSchemaError(StorageError):
    """Snapshot is missing required columns or holds invalid values."""


class SnapshotWriteError(StorageError):
    """Snapshot could not be persisted."""


def _sql_path(path: Path) -> str:
    """Quote a filesystem path as a SQL string literal."""
    return "'" + str(path).replace("'", "''") + "'"


def _validate_records(path: Path, model: type[ModelT], df: pd.DataFrame) -> list[ModelT]:
    """Build one model per DataFrame row, reporting bad values as schema errors."""
    try:
        return [model(**record) for record in df.to_dict(orient="records")]
    except ValidationError as e:
        raise SnapshotSchemaError(f"{path} has invalid values: {e}") from e


class SnapshotStore:
    """
    Parquet/CSV snapshot storage backed by DuckDB.

    Every call opens a short-lived in-memory connection; the analyst
    database at config.duckdb_path is only touched by bootstrap_views.
    """

    def __init__(self, config: Config):
        self.config = config

    # -------------------------------------------------------------------------
    # Generic helpers
    # -------------------------------------------------------------------------

    def read_parquet(self, path: Path, required: list[str]) -> pd.DataFrame:
        """
        Read a parquet snapshot into a DataFrame.

        Args:
            path: Parquet file
            required: Columns that must be present

        Returns:
            DataFrame in file order

        Raises:
            StorageError: if the file cannot be read
            SnapshotSchemaError: if a required column is missing
        """
        try:
            with duckdb.connect() as conn:
                df = conn.read_parquet(str(path)).df()
        except duckdb.Error as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

        missing = [col for col in required if col not in df.columns]
        if missing:
            raise SnapshotSchemaError(
                f"{path} is missing required columns: {', '.join(missing)}"
            )

        return df

    def write_parquet(self, df: pd.DataFrame, path: Path) -> None:
        """Atomically write a DataFrame as parquet."""

        def _write(tmp: Path) -> None:
            with duckdb.connect() as conn:
                conn.from_df(df).write_parquet(str(tmp))

        self._atomic_write(path, _write)

    def _atomic_write(self, path: Path, writer: Callable[[Path], None]) -> None:
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            writer(tmp)
            os.replace(tmp, path)
        except (OSError, duckdb.Error) as e:
            tmp.unlink(missing_ok=True)
            raise SnapshotWriteError(f"Failed to write {path}: {e}") from e

    # -------------------------------------------------------------------------
    # Contingency input
    # -------------------------------------------------------------------------

    def load_contingency_rows(self, path: Optional[Path] = None) -> list[ContingencyRow]:
        """
        Load the normalized contingency snapshot.

        Rows with null fields or negative counts are dropped. Rows sharing
        a (drug_id, event_id, year_quarter) key are merged by summing their
        counts, in first-appearance order.

        Returns:
            List of ContingencyRow in ingestion order
        """
        path = path or self.config.contingency_path
        df = self.read_parquet(path, CONTINGENCY_COLUMNS)[CONTINGENCY_COLUMNS]

        total = len(df)
        df = df.dropna()
        df = df[~(df[COUNT_COLUMNS] < 0).any(axis=1)]
        dropped = total - len(df)
        if dropped:
            logger.warning(
                "Dropped %d contingency rows with missing values or negative counts",
                dropped,
            )

        merged = df.groupby(KEY_COLUMNS, sort=False, as_index=False)[COUNT_COLUMNS].sum()
        if len(merged) < len(df):
            logger.warning(
                "Merged %d duplicate contingency keys by summing counts",
                len(df) - len(merged),
            )

        return [
            ContingencyRow(
                drug_id=str(row.drug_id),
                event_id=str(row.event_id),
                year_quarter=str(row.year_quarter),
                a=int(row.a),
                b=int(row.b),
                c=int(row.c),
                d=int(row.d),
            )
            for row in merged.itertuples(index=False)
        ]

    def write_contingency_rows(
        self, rows: list[ContingencyRow], path: Optional[Path] = None
    ) -> Path:
        """Write contingency rows as a parquet snapshot."""
        path = path or self.config.contingency_path
        df = pd.DataFrame([row.model_dump() for row in rows], columns=CONTINGENCY_COLUMNS)
        df[COUNT_COLUMNS] = df[COUNT_COLUMNS].astype("int64")
        self.write_parquet(df, path)
        return path

    # -------------------------------------------------------------------------
    # Metric snapshot
    # -------------------------------------------------------------------------

    def write_metrics(self, metrics: list[SignalMetric], path: Optional[Path] = None) -> Path:
        """Persist the metric snapshot."""
        path = path or self.config.metrics_path
        df = pd.DataFrame([m.to_row() for m in metrics], columns=METRIC_COLUMNS)
        self.write_parquet(df, path)
        logger.info("Wrote %d signal metrics to %s", len(df), path)
        return path

    def load_metrics(self, path: Optional[Path] = None) -> list[SignalMetric]:
        """Load the metric snapshot in file order, skipping incomplete rows."""
        path = path or self.config.metrics_path
        df = self.read_parquet(path, METRIC_COLUMNS)[METRIC_COLUMNS].dropna()

        return _validate_records(path, SignalMetric, df)

    # -------------------------------------------------------------------------
    # Literature relations
    # -------------------------------------------------------------------------

    def load_relation_pairs(self, path: Optional[Path] = None) -> list[tuple[str, str]]:
        """
        Load (drug_id, event_id) of every literature relation row.

        Returns:
            List of pairs, empty if no relation snapshot exists
        """
        path = path or self.config.relations_path
        if not path.exists():
            logger.info("No relation snapshot at %s; literature support is 0", path)
            return []

        df = self.read_parquet(path, ["drug_id", "event_id"])
        df = df[["drug_id", "event_id"]].dropna()

        return [(str(drug), str(event)) for drug, event in df.itertuples(index=False)]

    # -------------------------------------------------------------------------
    # Ranked output
    # -------------------------------------------------------------------------

    def write_signals(self, signals: list[RankedSignal], path: Optional[Path] = None) -> Path:
        """Persist ranked signals as CSV in the given order."""
        path = path or self.config.signals_path
        df = pd.DataFrame([s.model_dump() for s in signals], columns=SIGNAL_COLUMNS)

        self._atomic_write(path, lambda tmp: df.to_csv(tmp, index=False))
        logger.info("Wrote %d ranked signals to %s", len(df), path)
        return path

    def load_signals(self, path: Optional[Path] = None) -> list[RankedSignal]:
        """
        Load ranked signals from CSV.

        Returns:
            List of RankedSignal in file order, empty if the file is missing
        """
        path = path or self.config.signals_path
        if not path.exists():
            logger.warning("%s missing; run rank first", path)
            return []

        # Ids and quarters are opaque strings; "NA" or "" must not become NaN
        try:
            df = pd.read_csv(
                path,
                dtype={col: str for col in KEY_COLUMNS},
                keep_default_na=False,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise SnapshotSchemaError(f"Failed to parse {path}: {e}") from e

        missing = [col for col in SIGNAL_COLUMNS if col not in df.columns]
        if missing:
            raise SnapshotSchemaError(
                f"{path} is missing required columns: {', '.join(missing)}"
            )

        return _validate_records(path, RankedSignal, df[SIGNAL_COLUMNS])

    # -------------------------------------------------------------------------
    # Analyst database
    # -------------------------------------------------------------------------

    def bootstrap_views(self) -> list[str]:
        """
        Create convenience views in the analyst DuckDB database.

        Views are only created for artefacts that exist.

        Returns:
            Names of the views created
        """
        views = {
            "v_faers_counts": (
                self.config.contingency_path,
                """
                SELECT drug_id, event_id, year_quarter,
                       SUM(a) AS a, SUM(b) AS b, SUM(c) AS c, SUM(d) AS d
                FROM read_parquet({path})
                GROUP BY 1, 2, 3
                """,
            ),
            "v_signal_metrics": (
                self.config.metrics_path,
                "SELECT * FROM read_parquet({path})",
            ),
            "v_relations": (
                self.config.relations_path,
                "SELECT * FROM read_parquet({path})",
            ),
            "v_signals": (
                self.config.signals_path,
                "SELECT * FROM read_csv_auto({path})",
            ),
        }

        created = []
        db_path = self.config.duckdb_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with duckdb.connect(str(db_path)) as conn:
                for name, (source, query) in views.items():
                    if not source.exists():
                        logger.debug("Skipping view %s; %s missing", name, source)
                        continue
                    body = query.format(path=_sql_path(source.resolve()))
                    conn.execute(f"CREATE OR REPLACE VIEW {name} AS {body}")
                    created.append(name)
        except duckdb.Error as e:
            raise StorageError(f"Failed to create views in {db_path}: {e}") from e

        logger.info("Created %d views in %s", len(created), db_path)
        return created

    def get_stats(self) -> dict[str, Optional[int]]:
        """Row counts of each snapshot; None where the artefact is missing."""
        sources = {
            "contingency_rows": (self.config.contingency_path, "read_parquet"),
            "signal_metrics": (self.config.metrics_path, "read_parquet"),
            "relations": (self.config.relations_path, "read_parquet"),
            "ranked_signals": (self.config.signals_path, "read_csv_auto"),
        }

        stats: dict[str, Optional[int]] = {}
        try:
            with duckdb.connect() as conn:
                for name, (path, reader) in sources.items():
                    if not path.exists():
                        stats[name] = None
                        continue
                    stats[name] = conn.execute(
                        f"SELECT COUNT(*) FROM {reader}({_sql_path(path)})"
                    ).fetchone()[0]
        except duckdb.Error as e:
            raise StorageError(f"Failed to read snapshot stats: {e}") from e

        return stats
