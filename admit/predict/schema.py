from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Trend = Literal["increasing", "decreasing", "stable"]
Tier = Literal["high", "medium", "low"]


class PredictionInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rank: int = Field(..., gt=0)
    category: str = Field(..., min_length=1)

    @field_validator("category")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("empty category")
        return v


class Prediction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    institution_name: str
    course_name: str
    category: str
    confidence: int = Field(..., ge=0, le=100)
    average_cutoff: int
    trend: Trend
    tier: Tier
    years: List[int] = Field(default_factory=list)


class PredictionResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    high: List[Prediction] = Field(default_factory=list)
    medium: List[Prediction] = Field(default_factory=list)
    low: List[Prediction] = Field(default_factory=list)
    analysis: str

    def total(self) -> int:
        return len(self.high) + len(self.medium) + len(self.low)


class PredictionReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rank: int
    category: str
    generated_at: datetime
    result: PredictionResult


def export_json_schema() -> dict:
    """JSON Schema for the prediction report."""
    return PredictionReport.model_json_schema()
