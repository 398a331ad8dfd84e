from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# -----------------------------
# Type aliases
# -----------------------------
RecordKind = Literal["institution", "cutoff"]
SourceFormat = Literal["delimited", "text", "pdf"]


def _squash(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = re.sub(r"\s+", " ", v).strip()
    return v or None


# -----------------------------
# Records
# -----------------------------
class InstitutionRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=300)
    institution_code: str = Field(..., min_length=1, max_length=40)
    type: str = "engineering"
    location: Optional[str] = None
    description: Optional[str] = None
    courses: List[str] = Field(default_factory=list)
    facilities: List[str] = Field(default_factory=list)
    rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    total_seats: Optional[int] = Field(default=None, ge=0)
    fees_range: Optional[str] = None
    placement_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    established_year: Optional[int] = Field(default=None, ge=1800, le=2100)
    affiliation: Optional[str] = None

    @field_validator("name", "institution_code")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = _squash(v) or ""
        if not v:
            raise ValueError("empty value")
        return v

    @field_validator("courses", "facilities")
    @classmethod
    def _dedupe(cls, v: List[str]) -> List[str]:
        seen = set()
        out: List[str] = []
        for item in v:
            item = _squash(item)
            if not item or item.lower() in seen:
                continue
            seen.add(item.lower())
            out.append(item)
        return out


class CutoffRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[int] = None
    year: int = Field(..., ge=1900, le=2099)
    institution_code: str = Field(..., min_length=1, max_length=40)
    institution_name: str = Field(..., min_length=1, max_length=300)
    course_name: str = Field(..., min_length=1, max_length=200)
    category: str = Field("General", min_length=1, max_length=60)
    rank_cutoff: int = Field(..., gt=0)
    total_seats: int = Field(60, ge=0)
    fee: int = Field(50_000, ge=0)
    duration: str = "4 years"

    @field_validator("institution_name", "course_name", "category", "institution_code")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = _squash(v) or ""
        if not v:
            raise ValueError("empty value")
        return v


Record = Union[InstitutionRecord, CutoffRecord]


# -----------------------------
# Extraction result
# -----------------------------
class ExtractionStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total_rows: int = Field(0, ge=0)
    accepted: int = Field(0, ge=0)
    rejected: int = Field(0, ge=0)
    # never computed; no deduplication across uploads exists
    duplicates: int = Field(0, ge=0)
    pages: Optional[int] = Field(None, ge=0)
    sections: Optional[int] = Field(None, ge=0)


class ExtractionResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str
    kind: RecordKind
    source_format: Optional[SourceFormat] = None
    records: List[Union[InstitutionRecord, CutoffRecord]] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    stats: ExtractionStats = Field(default_factory=ExtractionStats)


# -----------------------------
# JSON Schema export
# -----------------------------
def export_json_schema() -> dict:
    """Export the JSON Schema for the extraction contract (Pydantic v2)."""
    return ExtractionResult.model_json_schema()


# -----------------------------
# Internal extraction outcome
# -----------------------------
@dataclass
class Extraction:
    """What a mapper/scanner/segmenter pass produced, before packaging."""

    records: List[Record] = field(default_factory=list)
    total_rows: int = 0
    rejected: int = 0
    sections: Optional[int] = None
