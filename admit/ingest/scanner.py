"""
Cutoff-table scanner.

Walks rows of a rank list in order, carrying the course / year / category
context forward, and emits one CutoffRecord per qualifying data row:

    COMPUTER SCIENCE ENGINEERING        -> course header
    Year: 2024                          -> year header
    Category: General                   -> category header
    Govt College | 1250 | 60 | 60       -> data row (rank 1250)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from admit.ingest.rules import (
    ScanConfig,
    canonical_course,
    derive_institution_code,
    find_year,
    first_rank_cell,
    is_course_heading,
    is_course_text,
    is_year_heading,
    lookup_category,
    parse_category_header,
)
from admit.ingest.schema import CutoffRecord, Extraction

logger = logging.getLogger(__name__)

Row = Union[str, Sequence[str]]


class LineKind(str, Enum):
    COURSE_HEADER = "course_header"
    YEAR_HEADER = "year_header"
    CATEGORY_HEADER = "category_header"
    DATA_ROW = "data_row"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ScanContext:
    current_course: str
    current_year: int
    current_category: str

    @classmethod
    def initial(cls, config: ScanConfig) -> "ScanContext":
        return cls(
            current_course="",
            current_year=config.current_year,
            current_category=config.default_category,
        )


def split_cells(row: Row) -> List[str]:
    """Raw text lines are split on '|' when present; cell lists are trimmed."""
    if isinstance(row, str):
        parts = row.split("|") if "|" in row else [row]
    else:
        parts = list(row)
    cells = [(c or "").strip() for c in parts]
    # "| a | b |" leaves empty edge cells
    while cells and not cells[0] and len(cells) > 1:
        cells.pop(0)
    while cells and not cells[-1] and len(cells) > 1:
        cells.pop()
    return cells


def classify(cells: Sequence[str], ctx: ScanContext, config: ScanConfig) -> LineKind:
    """First match wins: course header, year header, category header, data row."""
    if not cells or not cells[0]:
        return LineKind.SKIPPED
    first = cells[0]
    has_rank = first_rank_cell(cells[1:], config.rank_cutoff_bound) is not None

    # a bare heading wins whatever follows it ("MECHANICAL ENGINEERING | 2024");
    # a name that merely mentions a course needs a rank-free row to be a header
    if is_course_heading(first) or (not has_rank and is_course_text(first)):
        return LineKind.COURSE_HEADER
    if is_year_heading(first) or (not has_rank and find_year(first) is not None):
        return LineKind.YEAR_HEADER
    if parse_category_header(first) is not None:
        return LineKind.CATEGORY_HEADER
    if ctx.current_course and len(first) > 3 and has_rank:
        return LineKind.DATA_ROW
    return LineKind.SKIPPED


def _row_category(cells: Sequence[str], ctx: ScanContext) -> str:
    for cell in cells[1:]:
        label = lookup_category(cell)
        if label:
            return label
    return ctx.current_category


def step(
    ctx: ScanContext, row: Row, config: ScanConfig
) -> Tuple[ScanContext, LineKind, Optional[CutoffRecord]]:
    """Consume one row; return the next context and the record it produced, if any."""
    cells = split_cells(row)
    kind = classify(cells, ctx, config)

    if kind is LineKind.COURSE_HEADER:
        return replace(ctx, current_course=canonical_course(cells[0])), kind, None
    if kind is LineKind.YEAR_HEADER:
        return replace(ctx, current_year=find_year(cells[0])), kind, None
    if kind is LineKind.CATEGORY_HEADER:
        category = parse_category_header(cells[0], config.default_category)
        return replace(ctx, current_category=category), kind, None
    if kind is LineKind.SKIPPED:
        return ctx, kind, None

    name = cells[0]
    rank = first_rank_cell(cells[1:], config.rank_cutoff_bound)
    try:
        record = CutoffRecord(
            year=ctx.current_year,
            institution_code=derive_institution_code(name) or name[:6].upper(),
            institution_name=name,
            course_name=ctx.current_course,
            category=_row_category(cells, ctx),
            rank_cutoff=rank,
            total_seats=config.default_total_seats,
            fee=config.default_fee,
            duration=config.default_duration,
        )
    except ValidationError as e:
        logger.debug("data row %r rejected: %s", name, e)
        return ctx, LineKind.SKIPPED, None
    return ctx, kind, record


class CutoffTableScanner:
    """Single forward pass over rows with a context local to each scan() call."""

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    def scan(self, rows: Iterable[Row]) -> Extraction:
        ctx = ScanContext.initial(self.config)
        out = Extraction()
        for row in rows:
            ctx, kind, record = step(ctx, row, self.config)
            if kind in (LineKind.COURSE_HEADER, LineKind.YEAR_HEADER, LineKind.CATEGORY_HEADER):
                continue
            out.total_rows += 1
            if record is not None:
                out.records.append(record)
            else:
                out.rejected += 1
        return out


def scan_cutoff_rows(rows: Iterable[Row], config: Optional[ScanConfig] = None) -> List[CutoffRecord]:
    return CutoffTableScanner(config).scan(rows).records
