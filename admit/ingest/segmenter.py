"""
segmenter.py

Heuristic segmentation of unstructured document text:
- Splits text into one section per institution or per course cutoff table
- Extracts institution fields with a (trigger, field, extractor) rule table
- Extracts cutoff rows from '|' tables with a fresh scan context per section
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from admit.errors import RowRejected
from admit.ingest.mapping import build_institution
from admit.ingest.rules import (
    COURSE_KEYWORDS,
    CUTOFF_SECTION_KEYWORDS,
    ScanConfig,
    canonical_course,
    classify_institution_text,
    derive_institution_code,
    digits_of,
    find_year,
    in_rank_bounds,
    parse_category_header,
)
from admit.ingest.scanner import ScanContext
from admit.ingest.schema import CutoffRecord, Extraction, InstitutionRecord

logger = logging.getLogger(__name__)

# -----------------------------
# Section boundaries
# -----------------------------

DIVIDER_RE = re.compile(r"^[=\-_*]{10,}$")
INSTITUTION_MARKERS: Tuple[str, ...] = (
    "College Name:",
    "COLLEGE DETAILS",
    "INSTITUTION:",
    "UNIVERSITY:",
)
INSTITUTION_MIN_LENGTH = 50
CUTOFF_MIN_LENGTH = 30

Boundary = Callable[[str], bool]


def is_institution_boundary(line: str) -> bool:
    line = line.strip()
    return bool(DIVIDER_RE.match(line)) or any(m in line for m in INSTITUTION_MARKERS)


def is_cutoff_boundary(line: str) -> bool:
    upper = line.strip().upper()
    return any(k in upper for k in CUTOFF_SECTION_KEYWORDS)


def split_sections(text: str, is_boundary: Boundary, min_length: int) -> List[str]:
    """
    Walk lines; a boundary line flushes the current buffer (if non-empty) and
    starts the next one. Sections shorter than min_length are dropped.
    """
    sections: List[str] = []
    buf: List[str] = []

    def flush() -> None:
        section = "\n".join(buf).strip()
        if section:
            sections.append(section)
        buf.clear()

    for raw in (text or "").split("\n"):
        line = raw.strip()
        if is_boundary(line) and any(buf):
            flush()
        buf.append(line)
    flush()
    return [s for s in sections if len(s) >= min_length]


# -----------------------------
# Institution field rules
# -----------------------------

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
WEBSITE_RE = re.compile(
    r"(?:https?://)?(?:www\.)?[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}(?:/\S*)?"
)
PHONE_RE = re.compile(r"\+?\d[\d\s-]{6,}\d")
RATING_RE = re.compile(r"(\d+(?:\.\d+)?)\s*/\s*5\b")
INT_RE = re.compile(r"\d[\d,]*")
PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")
FEES_RE = re.compile(r"₹\s*(\d+(?:,\d+)*)\s*-\s*₹\s*(\d+(?:,\d+)*)")
BULLET_RE = re.compile(r"^[-•*]\s+(?P<item>.+)$")

FEES_FALLBACK = "Contact college for details"

# label lines that open a bullet list, and the list field they fill
LIST_LABELS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"^(?:courses offered|courses|programs)\s*:\s*(?P<rest>.*)$", re.I), "courses"),
    (re.compile(r"^(?:facilities|infrastructure)\s*:\s*(?P<rest>.*)$", re.I), "facilities"),
]


def _after_colon(line: str) -> Optional[str]:
    if ":" not in line:
        return None
    return line.split(":", 1)[1].strip() or None


def _institution_type(line: str) -> Optional[str]:
    value = _after_colon(line)
    if not value:
        return None
    return classify_institution_text(value) or value.lower()


def _phone(line: str) -> Optional[str]:
    m = PHONE_RE.search(_after_colon(line) or line)
    return m.group(0).strip() if m else None


def _email(line: str) -> Optional[str]:
    m = EMAIL_RE.search(line)
    return m.group(0) if m else None


def _website(line: str) -> Optional[str]:
    m = WEBSITE_RE.search(_after_colon(line) or line)
    return m.group(0) if m else None


def _rating(line: str) -> Optional[float]:
    m = RATING_RE.search(line)
    if m:
        return float(m.group(1))
    value = _after_colon(line)
    try:
        return float(value) if value else None
    except ValueError:
        return None


def _first_int(line: str) -> Optional[int]:
    m = INT_RE.search(line)
    return int(m.group(0).replace(",", "")) if m else None


def _fees(line: str) -> Optional[str]:
    m = FEES_RE.search(line)
    if m:
        return f"₹{m.group(1)} - ₹{m.group(2)}"
    return None


def _percent(line: str) -> Optional[int]:
    m = PERCENT_RE.search(line)
    return int(float(m.group(1))) if m else None


def _has(*needles: str) -> Callable[[str], bool]:
    return lambda line: any(n in line for n in needles)


def _starts(*labels: str) -> Callable[[str], bool]:
    return lambda line: line.startswith(labels)


# (trigger, field, extractor); the first non-empty value per field wins
INSTITUTION_RULES: List[Tuple[Callable[[str], bool], str, Callable[[str], Any]]] = [
    (_starts("College Name:", "Name:"), "name", _after_colon),
    (_starts("College Code:", "Code:"), "institution_code", _after_colon),
    (_starts("Type:"), "type", _institution_type),
    (_starts("Location:"), "location", _after_colon),
    (_starts("Address:"), "address", _after_colon),
    (_starts("Affiliation:"), "affiliation", _after_colon),
    (_has("Established", "Year:"), "established_year", find_year),
    (_has("Phone:", "+91-"), "contact_phone", _phone),
    (_has("Email:", "@"), "contact_email", _email),
    (_has("Website:", "www."), "website", _website),
    (_has("Rating:", "/5"), "rating", _rating),
    (_has("Total Seats:", "Seats:"), "total_seats", _first_int),
    (_has("Fees", "₹"), "fees_range", _fees),
    (lambda line: "Placement" in line and "%" in line, "placement_percentage", _percent),
]


def extract_institution_fields(section: str) -> Dict[str, Any]:
    """Line-by-line label matching over one institution section."""
    college: Dict[str, Any] = {}
    open_list: Optional[str] = None
    fees_mentioned = False

    for line in section.split("\n"):
        line = line.strip()
        if not line or DIVIDER_RE.match(line):
            continue

        bullet = BULLET_RE.match(line)
        if bullet and open_list:
            college.setdefault(open_list, []).append(bullet.group("item").strip())
            continue
        open_list = None

        for pattern, list_field in LIST_LABELS:
            m = pattern.match(line)
            if m:
                open_list = list_field
                inline = [v.strip() for v in m.group("rest").split(",") if v.strip()]
                if inline:
                    college.setdefault(list_field, []).extend(inline)
                break
        if open_list:
            continue

        for trigger, field_name, extract in INSTITUTION_RULES:
            if college.get(field_name) is not None or not trigger(line):
                continue
            if field_name == "fees_range":
                fees_mentioned = True
            value = extract(line)
            if value is not None and value != "":
                college[field_name] = value

    # a fees line without a readable range anywhere in the section
    if fees_mentioned and not college.get("fees_range"):
        college["fees_range"] = FEES_FALLBACK
    return college


# -----------------------------
# Cutoff sections
# -----------------------------

RULE_LINE_RE = re.compile(r"^[\s\-=+|]+$")


def _is_course_line(line: str) -> bool:
    if "|" in line:
        return False
    upper = line.upper()
    return "ENGINEERING" in upper or any(k.upper() in upper for k in COURSE_KEYWORDS)


@dataclass
class _SectionCutoffs:
    records: List[CutoffRecord]
    candidates: int
    rejected: int


def extract_cutoff_section(section: str, config: ScanConfig) -> _SectionCutoffs:
    ctx = ScanContext.initial(config)
    out = _SectionCutoffs(records=[], candidates=0, rejected=0)

    for line in section.split("\n"):
        line = line.strip()
        if not line:
            continue
        if _is_course_line(line):
            ctx = replace(ctx, current_course=canonical_course(line))
            continue
        category = parse_category_header(line, config.default_category)
        if category is not None:
            ctx = replace(ctx, current_category=category)
            continue
        if "|" not in line:
            year = find_year(line)
            if year is not None:
                ctx = replace(ctx, current_year=year)
            continue
        if line.count("|") < 2 or RULE_LINE_RE.match(line) or not re.search(r"\d", line):
            continue

        out.candidates += 1
        try:
            out.records.append(_cutoff_from_columns(line, ctx, config))
        except RowRejected as e:
            out.rejected += 1
            logger.debug("table row rejected: %s (%r)", e, line)
    return out


def _cutoff_from_columns(line: str, ctx: ScanContext, config: ScanConfig) -> CutoffRecord:
    cols = [c.strip() for c in line.split("|") if c.strip()]
    if len(cols) < 2:
        raise RowRejected("fewer than two columns")
    name = cols[0]
    rank = digits_of(cols[1])
    seats = digits_of(cols[2]) if len(cols) > 2 else None
    if len(name) < 3:
        raise RowRejected("name too short")
    if not in_rank_bounds(rank, config.rank_cutoff_bound):
        raise RowRejected(f"rank {rank!r} outside (0, {config.rank_cutoff_bound})")
    if not ctx.current_course:
        raise RowRejected("no course header seen")
    try:
        return CutoffRecord(
            year=ctx.current_year,
            institution_code=derive_institution_code(name) or name[:6].upper(),
            institution_name=name,
            course_name=ctx.current_course,
            category=ctx.current_category,
            rank_cutoff=rank,
            total_seats=seats or config.default_total_seats,
            fee=config.default_fee,
            duration=config.default_duration,
        )
    except ValidationError as e:
        raise RowRejected(f"invalid cutoff row: {e.error_count()} errors") from e


# -----------------------------
# Segmenter
# -----------------------------


class DocumentSegmenter:
    """Split document text into sections and extract records per section."""

    def __init__(
        self, config: Optional[ScanConfig] = None, rng: Optional[random.Random] = None
    ):
        self.config = config or ScanConfig()
        self.rng = rng

    def institutions(self, text: str) -> Extraction:
        sections = split_sections(text, is_institution_boundary, INSTITUTION_MIN_LENGTH)
        out = Extraction(total_rows=len(sections), sections=len(sections))
        for i, section in enumerate(sections, start=1):
            try:
                record: InstitutionRecord = build_institution(
                    extract_institution_fields(section), self.rng
                )
            except RowRejected as e:
                out.rejected += 1
                logger.debug("section %d rejected: %s", i, e)
                continue
            out.records.append(record)
        return out

    def cutoffs(self, text: str) -> Extraction:
        sections = split_sections(text, is_cutoff_boundary, CUTOFF_MIN_LENGTH)
        out = Extraction(sections=len(sections))
        for section in sections:
            part = extract_cutoff_section(section, self.config)
            out.records.extend(part.records)
            out.total_rows += part.candidates
            out.rejected += part.rejected
        return out

    def segment(self, text: str, kind: str) -> Extraction:
        if kind == "institution":
            return self.institutions(text)
        if kind == "cutoff":
            return self.cutoffs(text)
        raise ValueError(f"unknown record kind {kind!r}")
