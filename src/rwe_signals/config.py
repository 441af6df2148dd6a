"""Configuration management for rwe-signals."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Locations
    data_dir: Path = Field(
        default=Path("./data"),
        description="Root folder for cached data artefacts",
    )
    outputs_dir: Path = Field(
        default=Path("./outputs"),
        description="Root folder for analytic outputs",
    )

    # Snapshot names (relative to data_dir / outputs_dir)
    contingency_file: str = Field(default="clean/faers_norm.parquet")
    metrics_file: str = Field(default="clean/signal_metrics.parquet")
    relations_file: str = Field(default="clean/relations.parquet")
    signals_file: str = Field(default="signals.csv")
    duckdb_file: str = Field(default="rwe.duckdb")

    # Serving
    serve_host: str = Field(default="127.0.0.1")
    serve_port: int = Field(default=8080)
    signals_limit: int = Field(
        default=100,
        description="Maximum rows returned by the signals query",
    )
    events_limit: int = Field(
        default=200,
        description="Maximum rows returned by the events query",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Ensure directories exist
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.outputs_dir.mkdir(parents=True, exist_ok=True)

    def join_data(self, *parts: str) -> Path:
        """Resolve a path below the data directory."""
        return self.data_dir.joinpath(*parts)

    def join_output(self, *parts: str) -> Path:
        """Resolve a path below the outputs directory."""
        return self.outputs_dir.joinpath(*parts)

    @property
    def contingency_path(self) -> Path:
        return self.join_data(self.contingency_file)

    @property
    def metrics_path(self) -> Path:
        return self.join_data(self.metrics_file)

    @property
    def relations_path(self) -> Path:
        return self.join_data(self.relations_file)

    @property
    def signals_path(self) -> Path:
        return self.join_output(self.signals_file)

    @property
    def duckdb_path(self) -> Path:
        return self.join_data(self.duckdb_file)


class ScoringConfig(BaseSettings):
    """Composite score weights for ranking."""

    model_config = SettingsConfigDict(env_prefix="SCORING_")

    weight_literature: float = 0.3
    weight_trend: float = 0.2


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config()


@lru_cache
def get_scoring_config() -> ScoringConfig:
    """Get cached scoring configuration."""
    return ScoringConfig()
