"""
pipeline.py

Upload orchestration: raw bytes + file name + record kind in, ExtractionResult out.

    bytes --(delimited)--> Tabular Reader --> Schema Mapper | Cutoff-Table Scanner
          --(text/pdf)---> Document Section Segmenter
          --> records --> RecordStore (optional)

Every AdmitError raised below this point ends up as a failed result here.
"""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import List, Optional, Tuple

from admit.db import RecordStore
from admit.errors import InsufficientData, PersistenceFailure, SourceUnreadable
from admit.ingest.mapping import SchemaMapper
from admit.ingest.pdftext import extract_pdf_text
from admit.ingest.rules import ScanConfig
from admit.ingest.scanner import CutoffTableScanner
from admit.ingest.schema import (
    Extraction,
    ExtractionResult,
    ExtractionStats,
    RecordKind,
    SourceFormat,
)
from admit.ingest.segmenter import DocumentSegmenter
from admit.ingest.tabular import decode_bytes, read_rows, sniff_delimiter
from admit.utils.textnorm import normalize_hyphenation

logger = logging.getLogger(__name__)

DELIMITED_SUFFIXES = {".csv", ".tsv", ".psv", ".dsv"}
NOUNS = {"institution": "institutions", "cutoff": "cutoff records"}


def detect_format(filename: str) -> SourceFormat:
    suffix = Path(filename or "").suffix.lower()
    if suffix == ".pdf":
        return "pdf"
    if suffix in DELIMITED_SUFFIXES:
        return "delimited"
    return "text"


def _extract_delimited(
    raw: bytes, kind: RecordKind, config: ScanConfig, mapper: SchemaMapper
) -> Extraction:
    text = decode_bytes(raw)
    grid = read_rows(text, sniff_delimiter(text))
    if len(grid) < 2:
        raise InsufficientData("file must contain a header row and at least one data row")
    if kind == "institution":
        return mapper.map_institutions(grid)
    if mapper.has_cutoff_headers(grid[0]):
        return mapper.map_cutoffs(grid, config)
    return CutoffTableScanner(config).scan(grid)


def _extract(
    raw: bytes,
    kind: RecordKind,
    fmt: SourceFormat,
    config: ScanConfig,
    mapper: SchemaMapper,
    rng: Optional[random.Random],
) -> Tuple[Extraction, Optional[int]]:
    if fmt == "delimited":
        return _extract_delimited(raw, kind, config, mapper), None

    pages: Optional[int] = None
    if fmt == "pdf":
        text, pages = extract_pdf_text(raw)
    else:
        text = normalize_hyphenation(decode_bytes(raw))
    if not text.strip():
        raise InsufficientData("no readable text found")
    return DocumentSegmenter(config, rng).segment(text, kind), pages


def extract_upload(
    raw: bytes,
    *,
    filename: str = "",
    kind: RecordKind,
    fmt: Optional[SourceFormat] = None,
    config: Optional[ScanConfig] = None,
    mapper: Optional[SchemaMapper] = None,
    rng: Optional[random.Random] = None,
) -> ExtractionResult:
    """Extraction only; nothing is written anywhere."""
    fmt = fmt or detect_format(filename)
    config = config or ScanConfig()
    mapper = mapper or SchemaMapper()
    if rng is not None:
        mapper = mapper.with_rng(rng)
    label = filename or "upload"

    def failed(error: str, stats: Optional[ExtractionStats] = None) -> ExtractionResult:
        logger.info("%s: %s", label, error)
        return ExtractionResult(
            success=False,
            message=f"Could not extract {NOUNS[kind]} from {label}",
            kind=kind,
            source_format=fmt,
            errors=[error],
            stats=stats or ExtractionStats(),
        )

    try:
        extraction, pages = _extract(raw, kind, fmt, config, mapper, rng)
    except (SourceUnreadable, InsufficientData) as e:
        return failed(str(e))

    stats = ExtractionStats(
        total_rows=extraction.total_rows,
        accepted=len(extraction.records),
        rejected=extraction.rejected,
        pages=pages,
        sections=extraction.sections,
    )
    if not extraction.records:
        return failed(f"no valid {NOUNS[kind]} found", stats)

    logger.info(
        "%s: %d %s accepted, %d rejected", label, stats.accepted, NOUNS[kind], stats.rejected
    )
    return ExtractionResult(
        success=True,
        message=f"Extracted {stats.accepted} {NOUNS[kind]} from {label}",
        kind=kind,
        source_format=fmt,
        records=extraction.records,
        stats=stats,
    )


def persist_result(result: ExtractionResult, store: RecordStore) -> ExtractionResult:
    """Write a successful result's records; the returned copy carries stored ids."""
    if not result.success:
        return result
    try:
        if result.kind == "institution":
            stored: List = store.insert_institutions(result.records)
        else:
            stored = store.insert_cutoff_records(result.records)
    except PersistenceFailure as e:
        return result.model_copy(
            update={
                "success": False,
                "message": f"Failed to save {NOUNS[result.kind]}",
                "records": [],
                "errors": result.errors + [str(e)],
            }
        )
    return result.model_copy(
        update={
            "records": stored,
            "message": f"Successfully processed {len(stored)} {NOUNS[result.kind]}",
        }
    )


def process_upload(
    raw: bytes,
    *,
    filename: str = "",
    kind: RecordKind,
    fmt: Optional[SourceFormat] = None,
    store: Optional[RecordStore] = None,
    config: Optional[ScanConfig] = None,
    mapper: Optional[SchemaMapper] = None,
    rng: Optional[random.Random] = None,
) -> ExtractionResult:
    result = extract_upload(
        raw, filename=filename, kind=kind, fmt=fmt, config=config, mapper=mapper, rng=rng
    )
    if store is None:
        return result
    return persist_result(result, store)
