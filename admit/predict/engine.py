"""
engine.py

Admission-likelihood scoring over historical cutoff records:
- groups records by (institution, course)
- averages cutoffs and compares recent against older years for a trend
- scores each group against the applicant's rank and buckets by confidence
"""

from __future__ import annotations

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from statistics import mean
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from admit.ingest.schema import CutoffRecord
from admit.predict.schema import (
    Prediction,
    PredictionInput,
    PredictionReport,
    PredictionResult,
    Tier,
    Trend,
)

if TYPE_CHECKING:
    from admit.db import RecordStore

logger = logging.getLogger(__name__)

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 40
TREND_BAND = 0.1
TREND_WEIGHT = 20

NO_DATA_ANALYSIS = "No historical data is available for this category."


@dataclass(frozen=True)
class PredictionConfig:
    current_year: int = field(default_factory=lambda: date.today().year)
    recent_window_years: int = 2
    lookback_years: Optional[int] = None
    high_threshold: int = HIGH_THRESHOLD
    medium_threshold: int = MEDIUM_THRESHOLD
    max_suggested_applications: int = 5


def tier_for(confidence: int, config: PredictionConfig) -> Tier:
    if confidence >= config.high_threshold:
        return "high"
    if confidence >= config.medium_threshold:
        return "medium"
    return "low"


def tier_label(tier: Tier, config: Optional[PredictionConfig] = None) -> str:
    """Display copy derived from the same thresholds the engine buckets with."""
    cfg = config or PredictionConfig()
    if tier == "high":
        return f"High chance ({cfg.high_threshold}%+)"
    if tier == "medium":
        return f"Medium chance ({cfg.medium_threshold}–{cfg.high_threshold - 1}%)"
    return f"Low chance (<{cfg.medium_threshold}%)"


# ---------- per-group statistics ----------


def trend_factor(records: Sequence[CutoffRecord], config: PredictionConfig) -> float:
    """(mean(recent) - mean(older)) / mean(older), or 0 when either side is empty."""
    cutoff_year = config.current_year - config.recent_window_years
    recent = [r.rank_cutoff for r in records if r.year >= cutoff_year]
    older = [r.rank_cutoff for r in records if r.year < cutoff_year]
    if not recent or not older:
        return 0.0
    older_mean = mean(older)
    if older_mean <= 0:
        return 0.0
    return (mean(recent) - older_mean) / older_mean


def trend_label(factor: float) -> Trend:
    if factor > TREND_BAND:
        return "increasing"
    if factor < -TREND_BAND:
        return "decreasing"
    return "stable"


def round_half_up(value: float) -> int:
    # built-in round() goes to even on .5
    return int(math.floor(value + 0.5))


def compute_confidence(average_cutoff: float, rank: int, factor: float) -> int:
    margin = (average_cutoff - rank) / average_cutoff * 100 if average_cutoff > 0 else 0.0
    raw = margin + factor * TREND_WEIGHT
    return int(max(0, min(100, round_half_up(raw))))


def group_records(
    records: Iterable[CutoffRecord],
) -> "OrderedDict[Tuple[str, str], List[CutoffRecord]]":
    groups: "OrderedDict[Tuple[str, str], List[CutoffRecord]]" = OrderedDict()
    for r in records:
        groups.setdefault((r.institution_name, r.course_name), []).append(r)
    return groups


def _matching(
    records: Iterable[CutoffRecord], category: str, config: PredictionConfig
) -> List[CutoffRecord]:
    wanted = category.strip().lower()
    out = [r for r in records if r.category.strip().lower() == wanted]
    if config.lookback_years:
        earliest = config.current_year - config.lookback_years + 1
        out = [r for r in out if r.year >= earliest]
    return out


def _analysis(buckets: Dict[str, List[Prediction]], config: PredictionConfig) -> str:
    high, medium, low = len(buckets["high"]), len(buckets["medium"]), len(buckets["low"])
    total = high + medium + low
    suggested = min(config.max_suggested_applications, total)
    return (
        f"Based on historical cutoffs for {total} institution/course combinations: "
        f"{high} high chance, {medium} medium chance and {low} low chance. "
        f"Consider applying to at least {suggested} of them, starting with the high-chance options."
    )


# ---------- entry points ----------


def predict(
    rank: int,
    category: str,
    records: Iterable[CutoffRecord],
    config: Optional[PredictionConfig] = None,
) -> PredictionResult:
    cfg = config or PredictionConfig()
    query = PredictionInput(rank=rank, category=category)

    matching = _matching(records, query.category, cfg)
    if not matching:
        return PredictionResult(analysis=NO_DATA_ANALYSIS)

    buckets: Dict[str, List[Prediction]] = {"high": [], "medium": [], "low": []}
    for (institution, course), group in group_records(matching).items():
        avg = mean(r.rank_cutoff for r in group)
        factor = trend_factor(group, cfg)
        confidence = compute_confidence(avg, query.rank, factor)
        tier = tier_for(confidence, cfg)
        buckets[tier].append(
            Prediction(
                institution_name=institution,
                course_name=course,
                category=query.category,
                confidence=confidence,
                average_cutoff=round_half_up(avg),
                trend=trend_label(factor),
                tier=tier,
                years=sorted({r.year for r in group}),
            )
        )

    for preds in buckets.values():
        preds.sort(key=lambda p: (-p.confidence, p.institution_name, p.course_name))

    logger.debug(
        "rank %d / %s: %d high, %d medium, %d low",
        query.rank,
        query.category,
        len(buckets["high"]),
        len(buckets["medium"]),
        len(buckets["low"]),
    )
    return PredictionResult(
        high=buckets["high"],
        medium=buckets["medium"],
        low=buckets["low"],
        analysis=_analysis(buckets, cfg),
    )


def predict_from_store(
    store: "RecordStore",
    rank: int,
    category: str,
    config: Optional[PredictionConfig] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> PredictionReport:
    """Re-query the store for the category and wrap the result with a timestamp."""
    query = PredictionInput(rank=rank, category=category)
    records = store.query_cutoff_records(query.category)
    result = predict(query.rank, query.category, records, config)
    clock = now or (lambda: datetime.now(timezone.utc))
    return PredictionReport(
        rank=query.rank, category=query.category, generated_at=clock(), result=result
    )
