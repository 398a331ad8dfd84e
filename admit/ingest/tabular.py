from __future__ import annotations

import codecs
from typing import List

from admit.errors import SourceUnreadable


def decode_bytes(raw: bytes) -> str:
    """
    Decode an uploaded text file. UTF-8 (with or without BOM) first, then
    cp1252 for legacy spreadsheet exports. Raises SourceUnreadable otherwise.
    """
    if raw is None:
        raise SourceUnreadable("no content")
    if raw.startswith(codecs.BOM_UTF8):
        raw = raw[len(codecs.BOM_UTF8) :]
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        try:
            text = raw.decode("cp1252")
        except UnicodeDecodeError as e:
            raise SourceUnreadable(f"cannot decode file: {e.reason}") from e
    # binary formats (xlsx, zip, images) decode "successfully" as cp1252 garbage
    if "\x00" in text:
        raise SourceUnreadable("file looks binary, expected delimited text")
    return text


def read_rows(text: str, delimiter: str = ",") -> List[List[str]]:
    """
    Split delimited text into rows of trimmed cells.

    A double quote toggles quoted mode; delimiters and newlines inside quotes
    belong to the cell. Blank lines are dropped.
    """
    rows: List[List[str]] = []
    row: List[str] = []
    cell: List[str] = []
    in_quotes = False

    def end_row() -> None:
        row.append("".join(cell).strip())
        if row != [""]:
            rows.append(list(row))
        row.clear()
        cell.clear()

    for ch in text:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "\r" and not in_quotes:
            continue
        elif ch == delimiter and not in_quotes:
            row.append("".join(cell).strip())
            cell.clear()
        elif ch == "\n" and not in_quotes:
            end_row()
        else:
            cell.append(ch)

    if cell or row:
        end_row()
    return rows


DELIMITER_CANDIDATES = (",", ";", "\t", "|")


def sniff_delimiter(text: str, max_lines: int = 5) -> str:
    """
    Pick the delimiter that occurs most often outside quotes in the first
    few non-blank lines. Ties keep the earlier candidate, so ',' wins by default.
    """
    counts = dict.fromkeys(DELIMITER_CANDIDATES, 0)
    in_quotes = False
    lines = 0
    line_has_text = False
    for ch in text:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "\n" and not in_quotes:
            if line_has_text:
                lines += 1
                if lines >= max_lines:
                    break
            line_has_text = False
            continue
        elif not in_quotes and ch in counts:
            counts[ch] += 1
        if not ch.isspace():
            line_has_text = True

    best, best_count = ",", 0
    for cand in DELIMITER_CANDIDATES:
        if counts[cand] > best_count:
            best, best_count = cand, counts[cand]
    return best
