from __future__ import annotations

from typing import List, Tuple

import fitz  # PyMuPDF

from admit.errors import SourceUnreadable
from admit.utils.textnorm import normalize_hyphenation


def extract_pdf_text(raw: bytes) -> Tuple[str, int]:
    """
    Plain text of every page joined by newlines, plus the page count.
    No layout analysis; tables come through as whatever text order PyMuPDF yields.
    """
    try:
        doc = fitz.open(stream=raw, filetype="pdf")
    except (RuntimeError, ValueError) as e:  # FileDataError is a RuntimeError
        raise SourceUnreadable(f"not a readable PDF: {e}") from e
    pages: List[str] = []
    try:
        for p in doc:
            pages.append(p.get_text("text"))
        page_count = doc.page_count
    finally:
        doc.close()
    return normalize_hyphenation("\n".join(pages)), page_count
