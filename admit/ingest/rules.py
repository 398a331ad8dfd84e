"""
Lookup tables and derivation rules shared by the schema mapper, the
cutoff-table scanner and the document segmenter.

Tables are ordered (pattern, canonical value) pairs; the first match wins.
"""

from __future__ import annotations

import hashlib
import random
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

# -----------------------------
# Scan configuration
# -----------------------------


@dataclass(frozen=True)
class ScanConfig:
    current_year: int = field(default_factory=lambda: date.today().year)
    rank_cutoff_bound: int = 100_000
    default_total_seats: int = 60
    default_fee: int = 50_000
    default_duration: str = "4 years"
    default_category: str = "General"


# -----------------------------
# Courses
# -----------------------------

# A first cell containing any of these (or "engineering"/"technology") is a course header
COURSE_KEYWORDS: Tuple[str, ...] = (
    "computer science",
    "mechanical",
    "electrical",
    "civil",
    "electronics",
    "information technology",
    "chemical",
    "biotechnology",
    "aerospace",
    "automobile",
    "biomedical",
    "environmental",
    "industrial",
    "metallurgy",
    "mining",
    "petroleum",
    "textile",
    "agricultural",
    "food technology",
)
COURSE_HEADER_WORDS: Tuple[str, ...] = ("engineering", "technology")

# Upper-case markers that open a new cutoff section in document text
CUTOFF_SECTION_KEYWORDS: Tuple[str, ...] = (
    "COMPUTER SCIENCE ENGINEERING",
    "MECHANICAL ENGINEERING",
    "ELECTRICAL ENGINEERING",
    "CIVIL ENGINEERING",
    "ELECTRONICS ENGINEERING",
    "INFORMATION TECHNOLOGY",
    "CHEMICAL ENGINEERING",
    "BIOTECHNOLOGY",
)

# Phrases match anywhere, abbreviations only as whole words.
# "electrical" precedes "electronics" so "Electrical and Electronics" stays electrical.
COURSE_SYNONYMS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"computer science|\bcse?\b", re.I), "Computer Science Engineering"),
    (re.compile(r"information technology|\bit\b", re.I), "Information Technology"),
    (re.compile(r"electrical|\beee?\b", re.I), "Electrical Engineering"),
    (re.compile(r"electronics|\bece\b", re.I), "Electronics Engineering"),
    (re.compile(r"mechanical|\bme\b", re.I), "Mechanical Engineering"),
    (re.compile(r"civil|\bce\b", re.I), "Civil Engineering"),
    (re.compile(r"chemical|\bch\b", re.I), "Chemical Engineering"),
    (re.compile(r"biotechnology|\bbt\b", re.I), "Biotechnology"),
]

_RE_PUNCT = re.compile(r"[^\w\s&]")


def is_course_text(text: str) -> bool:
    low = text.lower()
    return any(k in low for k in COURSE_KEYWORDS) or any(
        w in low for w in COURSE_HEADER_WORDS
    )


# words a bare course heading is made of; anything else ("College", "Govt") marks a name
COURSE_HEADING_FILLERS: Tuple[str, ...] = (
    "and",
    "&",
    "of",
    "in",
    "communication",
    "instrumentation",
    "b",
    "tech",
    "btech",
    "be",
)
COURSE_HEADING_WORDS = frozenset(
    w for phrase in COURSE_KEYWORDS + COURSE_HEADER_WORDS for w in phrase.split()
) | frozenset(COURSE_HEADING_FILLERS)


def is_course_heading(text: str) -> bool:
    """True when the text is nothing but a course title, e.g. 'MECHANICAL ENGINEERING'."""
    if not is_course_text(text):
        return False
    words = _RE_PUNCT.sub(" ", text.lower()).split()
    return bool(words) and all(w in COURSE_HEADING_WORDS for w in words)


def canonical_course(text: str) -> str:
    """Map a course header or abbreviation onto its canonical course name."""
    cleaned = re.sub(r"\s+", " ", _RE_PUNCT.sub(" ", text)).strip()
    for pat, canonical in COURSE_SYNONYMS:
        if pat.search(cleaned):
            return canonical
    return cleaned.title() if cleaned.isupper() else cleaned


# -----------------------------
# Categories
# -----------------------------

CATEGORY_LABELS: List[Tuple[str, str]] = [
    ("general", "General"),
    ("gen", "General"),
    ("open", "General"),
    ("obc", "OBC"),
    ("sc", "SC"),
    ("st", "ST"),
    ("ews", "EWS"),
    ("ph", "PH"),
    ("pwd", "PWD"),
]

_RE_CATEGORY_LABEL = re.compile(r"^\s*category\s*:\s*(?P<value>.*)$", re.I)


def lookup_category(cell: str) -> Optional[str]:
    """Exact (case-insensitive) category label, or None."""
    key = cell.strip().lower()
    for label, canonical in CATEGORY_LABELS:
        if key == label:
            return canonical
    return None


def canonical_category(value: str, default: str = "General") -> str:
    value = re.sub(r"\s+", " ", value or "").strip()
    if not value:
        return default
    return lookup_category(value) or value


def parse_category_header(text: str, default: str = "General") -> Optional[str]:
    """'Category: OBC' -> 'OBC'; '' after the colon -> default; no label -> None."""
    m = _RE_CATEGORY_LABEL.match(text)
    if not m:
        return None
    return canonical_category(m.group("value"), default)


# -----------------------------
# Years and ranks
# -----------------------------

YEAR_RE = re.compile(r"\b(19\d{2}|20\d{2})\b")
_RE_RANK_CELL = re.compile(r"^\+?\d+$")
# "2024", "Year: 2024", "Admission Year - 2023-24"
_RE_YEAR_HEADING = re.compile(
    r"^(?:(?:academic|admission)\s+)?(?:year\s*[:\-]?\s*)?(?:19|20)\d{2}(?:\s*[-/]\s*\d{2,4})?$",
    re.I,
)


def find_year(text: str) -> Optional[int]:
    m = YEAR_RE.search(text or "")
    return int(m.group(1)) if m else None


def is_year_heading(text: str) -> bool:
    return bool(_RE_YEAR_HEADING.match((text or "").strip()))


def in_rank_bounds(value: Optional[int], bound: int) -> bool:
    return value is not None and 0 < value < bound


def parse_rank(cell: str, bound: int) -> Optional[int]:
    """A whole cell holding a plain integer in (0, bound); thousands separators allowed."""
    s = (cell or "").strip().replace(",", "").replace(" ", "")
    if not _RE_RANK_CELL.match(s):
        return None
    value = int(s)
    return value if in_rank_bounds(value, bound) else None


def digits_of(cell: str) -> Optional[int]:
    d = re.sub(r"\D", "", cell or "")
    return int(d) if d else None


def first_rank_cell(cells: Sequence[str], bound: int) -> Optional[int]:
    for cell in cells:
        rank = parse_rank(cell, bound)
        if rank is not None:
            return rank
    return None


# -----------------------------
# Institution derivations
# -----------------------------


def derive_institution_code(name: str) -> str:
    """
    First three letters of the first two words longer than two characters,
    else the first six letters of the name. Upper case.
    """
    name = (name or "").strip()
    words = [w for w in name.split() if len(w) > 2]
    if len(words) >= 2:
        return (words[0][:3] + words[1][:3]).upper()
    return re.sub(r"[^A-Z]", "", name[:6].upper())


INSTITUTION_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], str]] = [
    (("medical", "dental"), "medical"),
    (("engineering", "tech"), "engineering"),
    (("arts", "humanities"), "arts"),
    (("commerce", "business"), "commerce"),
    (("science", "research"), "science"),
]
COURSE_TYPE_KEYWORDS: List[Tuple[str, str]] = [
    ("engineering", "engineering"),
    ("medical", "medical"),
]
DEFAULT_INSTITUTION_TYPE = "engineering"


def classify_institution_text(text: str) -> Optional[str]:
    low = (text or "").lower()
    for keywords, kind in INSTITUTION_TYPE_KEYWORDS:
        if any(k in low for k in keywords):
            return kind
    return None


def detect_institution_type(name: str, courses: Optional[Iterable[str]] = None) -> str:
    kind = classify_institution_text(name)
    if kind:
        return kind
    if courses:
        joined = " ".join(courses).lower()
        for keyword, course_kind in COURSE_TYPE_KEYWORDS:
            if keyword in joined:
                return course_kind
    return DEFAULT_INSTITUTION_TYPE


TYPE_DESCRIPTIONS = {
    "engineering": "A premier engineering institution offering quality education and excellent placement opportunities.",
    "medical": "A leading medical college providing comprehensive healthcare education and training.",
    "arts": "A distinguished institution for arts and humanities education.",
    "commerce": "A reputed college for commerce and business studies.",
    "science": "A renowned science college with state-of-the-art facilities.",
}
FALLBACK_DESCRIPTION = (
    "A prestigious educational institution committed to academic excellence."
)


def describe_institution(inst_type: Optional[str], location: Optional[str] = None) -> str:
    base = TYPE_DESCRIPTIONS.get((inst_type or "").lower(), FALLBACK_DESCRIPTION)
    if location:
        return (
            f"{base} Located in {location}, the institution provides excellent "
            "learning environment and modern facilities."
        )
    return base


def _name_jitter(name: str) -> float:
    digest = hashlib.sha1(name.strip().lower().encode("utf-8")).hexdigest()
    return int(digest[:8], 16) / 2**32


def estimate_rating(
    name: str, inst_type: Optional[str], rng: Optional[random.Random] = None
) -> float:
    """
    Heuristic rating in [1, 5]. Jitter comes from `rng` when given, else from
    a stable hash of the name, so unseeded runs still repeat.
    """
    base = 3.5
    name_bonus = 0.3 if len(name) > 10 else 0.1
    type_bonus = 0.2 if inst_type == "engineering" else 0.1
    jitter = rng.random() if rng is not None else _name_jitter(name)
    rating = base + name_bonus + type_bonus + jitter * 0.5
    return round(min(5.0, max(1.0, rating)), 1)
