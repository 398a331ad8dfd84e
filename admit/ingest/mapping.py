from __future__ import annotations

import copy
import logging
import random
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError

from admit.errors import RowRejected
from admit.ingest.rules import (
    ScanConfig,
    canonical_category,
    canonical_course,
    derive_institution_code,
    describe_institution,
    detect_institution_type,
    estimate_rating,
    in_rank_bounds,
)
from admit.ingest.schema import CutoffRecord, Extraction, InstitutionRecord

logger = logging.getLogger(__name__)

SynonymTable = List[Tuple[str, str]]

# ---------- header synonym tables ----------

INSTITUTION_HEADER_SYNONYMS: SynonymTable = [
    ("college name", "name"),
    ("name", "name"),
    ("institution", "name"),
    ("institution name", "name"),
    ("college", "name"),
    ("college code", "institution_code"),
    ("code", "institution_code"),
    ("institution code", "institution_code"),
    ("type", "type"),
    ("category", "type"),
    ("institution type", "type"),
    ("location", "location"),
    ("city", "location"),
    ("address", "address"),
    ("description", "description"),
    ("about", "description"),
    ("courses", "courses"),
    ("courses offered", "courses"),
    ("facilities", "facilities"),
    ("infrastructure", "facilities"),
    ("rating", "rating"),
    ("total seats", "total_seats"),
    ("seats", "total_seats"),
    ("capacity", "total_seats"),
    ("fees", "fees_range"),
    ("fees range", "fees_range"),
    ("fee structure", "fees_range"),
    ("placement", "placement_percentage"),
    ("placement percentage", "placement_percentage"),
    ("phone", "contact_phone"),
    ("contact", "contact_phone"),
    ("email", "contact_email"),
    ("website", "website"),
    ("url", "website"),
    ("established", "established_year"),
    ("established year", "established_year"),
    ("year", "established_year"),
    ("affiliation", "affiliation"),
    ("university", "affiliation"),
]

CUTOFF_HEADER_SYNONYMS: SynonymTable = [
    ("college name", "institution_name"),
    ("college", "institution_name"),
    ("institution", "institution_name"),
    ("institution name", "institution_name"),
    ("name", "institution_name"),
    ("college code", "institution_code"),
    ("code", "institution_code"),
    ("course", "course_name"),
    ("course name", "course_name"),
    ("branch", "course_name"),
    ("program", "course_name"),
    ("year", "year"),
    ("category", "category"),
    ("quota", "category"),
    ("rank", "rank_cutoff"),
    ("cutoff", "rank_cutoff"),
    ("cutoff rank", "rank_cutoff"),
    ("rank cutoff", "rank_cutoff"),
    ("closing rank", "rank_cutoff"),
    ("seats", "total_seats"),
    ("total seats", "total_seats"),
    ("fee", "fee"),
    ("fees", "fee"),
    ("duration", "duration"),
]

# declared coercion per canonical field; anything else is a string
FIELD_TYPES: Dict[str, str] = {
    "rating": "float",
    "total_seats": "int",
    "placement_percentage": "int",
    "established_year": "int",
    "year": "int",
    "rank_cutoff": "int",
    "fee": "int",
    "courses": "list",
    "facilities": "list",
}

_INT_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")


def lookup_field(header: str, table: SynonymTable) -> Optional[str]:
    key = (header or "").strip().lower()
    for synonym, canonical in table:
        if key == synonym:
            return canonical
    return None


def load_header_synonyms(path: Path) -> Dict[str, SynonymTable]:
    """
    Read extra header synonyms from YAML:

        institution:
          campus: location
        cutoff:
          last rank: rank_cutoff
    """
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping of record kind -> synonyms")
    known = {
        "institution": {c for _, c in INSTITUTION_HEADER_SYNONYMS},
        "cutoff": {c for _, c in CUTOFF_HEADER_SYNONYMS},
    }
    out: Dict[str, SynonymTable] = {"institution": [], "cutoff": []}
    for kind, pairs in raw.items():
        if kind not in known:
            raise ValueError(f"{path}: unknown record kind {kind!r}")
        for header, canonical in (pairs or {}).items():
            if canonical not in known[kind]:
                raise ValueError(f"{path}: unknown {kind} field {canonical!r}")
            out[kind].append((str(header).strip().lower(), canonical))
    return out


# ---------- coercion ----------


def _to_int(value: str) -> Optional[int]:
    s = value.strip().rstrip("%").replace(",", "").replace(" ", "")
    if not _INT_RE.match(s):
        return None
    return int(float(s))


def _to_float(value: str) -> Optional[float]:
    s = value.strip().split("/")[0].replace(",", ".").strip()
    try:
        return float(s)
    except ValueError:
        return None


def coerce_value(field_name: str, value: str) -> Any:
    kind = FIELD_TYPES.get(field_name, "str")
    if kind == "float":
        return _to_float(value)
    if kind == "int":
        return _to_int(value)
    if kind == "list":
        return [v.strip() for v in value.split(",") if v.strip()]
    return value.strip()


def _map_row(
    headers: Sequence[str], row: Sequence[str], table: SynonymTable
) -> Dict[str, Any]:
    mapped: Dict[str, Any] = {}
    for header, cell in zip(headers, row):
        canonical = lookup_field(header, table)
        if not canonical or not cell or not cell.strip():
            continue
        value = coerce_value(canonical, cell)
        if value is None or value == []:
            continue
        mapped[canonical] = value
    return mapped


# ---------- derivation ----------


def derive_institution_fields(
    college: Dict[str, Any], rng: Optional[random.Random] = None
) -> Dict[str, Any]:
    """Fill code, type, description and rating, in that order, when absent."""
    name = college.get("name")
    if not name:
        return college
    if not college.get("institution_code"):
        college["institution_code"] = derive_institution_code(name)
    if not college.get("type"):
        college["type"] = detect_institution_type(name, college.get("courses"))
    if not college.get("description"):
        college["description"] = describe_institution(
            college["type"], college.get("location")
        )
    rating = college.get("rating")
    if not rating or not 0 < rating <= 5:
        college["rating"] = estimate_rating(name, college["type"], rng)
    return college


def build_institution(
    college: Dict[str, Any], rng: Optional[random.Random] = None
) -> InstitutionRecord:
    """Derive missing fields and validate; raises RowRejected when unusable."""
    college = derive_institution_fields(college, rng)
    if not college.get("name") or not college.get("institution_code"):
        raise RowRejected("missing name or institution code")
    pct = college.get("placement_percentage")
    if pct is not None and not 0 <= pct <= 100:
        college.pop("placement_percentage")
    year = college.get("established_year")
    if year is not None and not 1800 <= year <= 2100:
        college.pop("established_year")
    try:
        return InstitutionRecord(**college)
    except ValidationError as e:
        raise RowRejected(f"invalid institution: {e.error_count()} errors") from e


# ---------- the mapper ----------


class SchemaMapper:
    """
    Map a header row plus data rows onto InstitutionRecord / CutoffRecord.
    """

    def __init__(
        self,
        extra_synonyms: Optional[Dict[str, SynonymTable]] = None,
        rng: Optional[random.Random] = None,
    ):
        extra = extra_synonyms or {}
        # extras are consulted first
        self.institution_table = list(extra.get("institution", [])) + INSTITUTION_HEADER_SYNONYMS
        self.cutoff_table = list(extra.get("cutoff", [])) + CUTOFF_HEADER_SYNONYMS
        self.rng = rng

    def with_rng(self, rng: Optional[random.Random]) -> "SchemaMapper":
        clone = copy.copy(self)
        clone.rng = rng
        return clone

    def has_cutoff_headers(self, headers: Sequence[str]) -> bool:
        """
        True when a header row names the institution, course and rank columns.
        Without a course column the course comes from header rows, which only
        the scanner understands.
        """
        fields = {lookup_field(h, self.cutoff_table) for h in headers}
        return {"institution_name", "course_name", "rank_cutoff"} <= fields

    # ---- institutions ----

    def institution_from_row(
        self, headers: Sequence[str], row: Sequence[str]
    ) -> InstitutionRecord:
        if len(row) < 3:
            raise RowRejected(f"only {len(row)} cells")
        return build_institution(_map_row(headers, row, self.institution_table), self.rng)

    def map_institutions(self, grid: Sequence[Sequence[str]]) -> Extraction:
        headers, rows = list(grid[0]), grid[1:]
        out = Extraction(total_rows=len(rows))
        for i, row in enumerate(rows, start=2):
            try:
                out.records.append(self.institution_from_row(headers, row))
            except RowRejected as e:
                out.rejected += 1
                logger.debug("row %d rejected: %s", i, e)
        return out

    # ---- cutoff records ----

    def cutoff_from_row(
        self, headers: Sequence[str], row: Sequence[str], config: ScanConfig
    ) -> CutoffRecord:
        if len(row) < 3:
            raise RowRejected(f"only {len(row)} cells")
        m = _map_row(headers, row, self.cutoff_table)
        name = m.get("institution_name")
        course = m.get("course_name")
        rank = m.get("rank_cutoff")
        if not name or not course:
            raise RowRejected("missing institution or course")
        if not in_rank_bounds(rank, config.rank_cutoff_bound):
            raise RowRejected(f"rank {rank!r} outside (0, {config.rank_cutoff_bound})")
        year = m.get("year")
        if year is None or not 1900 <= year <= 2099:
            year = config.current_year
        try:
            return CutoffRecord(
                year=year,
                institution_code=m.get("institution_code") or derive_institution_code(name),
                institution_name=name,
                course_name=canonical_course(course),
                category=canonical_category(m.get("category", ""), config.default_category),
                rank_cutoff=rank,
                total_seats=m.get("total_seats") or config.default_total_seats,
                fee=m.get("fee") or config.default_fee,
                duration=m.get("duration") or config.default_duration,
            )
        except ValidationError as e:
            raise RowRejected(f"invalid cutoff row: {e.error_count()} errors") from e

    def map_cutoffs(self, grid: Sequence[Sequence[str]], config: ScanConfig) -> Extraction:
        headers, rows = list(grid[0]), grid[1:]
        out = Extraction(total_rows=len(rows))
        for i, row in enumerate(rows, start=2):
            try:
                out.records.append(self.cutoff_from_row(headers, row, config))
            except RowRejected as e:
                out.rejected += 1
                logger.debug("row %d rejected: %s", i, e)
        return out
