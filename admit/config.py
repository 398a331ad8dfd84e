from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from admit.ingest.rules import ScanConfig
from admit.predict.engine import PredictionConfig


class Settings(BaseSettings):
    """
    Central configuration for paths, scan defaults and prediction thresholds.
    Every field can be overridden with an ADMIT_<FIELD> environment variable.
    """

    model_config = SettingsConfigDict(
        env_prefix="ADMIT_",
        extra="ignore",
    )

    project_root: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parents[1]
    )

    data_dir: Path = Field(default=Path("data"))
    output_dir: Path = Field(default=Path("artifacts"))
    db_path: Optional[Path] = None
    synonyms_file: Optional[Path] = None

    log_level: str = "INFO"

    # None means "today"; tests and backfills pin it explicitly
    current_year: Optional[int] = Field(default=None, ge=1900, le=2099)
    rank_cutoff_bound: int = Field(default=100_000, gt=1)
    default_total_seats: int = Field(default=60, ge=0)
    default_fee: int = Field(default=50_000, ge=0)
    default_duration: str = "4 years"
    default_category: str = "General"

    recent_window_years: int = Field(default=2, ge=0)
    lookback_years: Optional[int] = Field(default=None, ge=1)
    high_threshold: int = Field(default=70, ge=0, le=100)
    medium_threshold: int = Field(default=40, ge=0, le=100)
    max_suggested_applications: int = Field(default=5, ge=1)

    rating_seed: Optional[int] = None
    workers: int = Field(default=4, ge=1)

    @field_validator("data_dir", "output_dir", "db_path", "synonyms_file", mode="before")
    @classmethod
    def _coerce_path(cls, v):
        # Accept strings from env and coerce; allow Path passthrough.
        if v is None:
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return None
            return Path(s).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v

    def model_post_init(self, __context) -> None:
        # Resolve relative paths against project_root
        if not self.data_dir.is_absolute():
            self.data_dir = (self.project_root / self.data_dir).resolve()
        if not self.output_dir.is_absolute():
            self.output_dir = (self.project_root / self.output_dir).resolve()
        if self.db_path is None:
            self.db_path = self.output_dir / "admit.sqlite"
        elif not self.db_path.is_absolute():
            self.db_path = (self.project_root / self.db_path).resolve()

    def effective_year(self) -> int:
        return self.current_year or date.today().year

    def scan_config(self) -> ScanConfig:
        return ScanConfig(
            current_year=self.effective_year(),
            rank_cutoff_bound=self.rank_cutoff_bound,
            default_total_seats=self.default_total_seats,
            default_fee=self.default_fee,
            default_duration=self.default_duration,
            default_category=self.default_category,
        )

    def prediction_config(self) -> PredictionConfig:
        return PredictionConfig(
            current_year=self.effective_year(),
            recent_window_years=self.recent_window_years,
            lookback_years=self.lookback_years,
            high_threshold=self.high_threshold,
            medium_threshold=self.medium_threshold,
            max_suggested_applications=self.max_suggested_applications,
        )


# Lazy singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
