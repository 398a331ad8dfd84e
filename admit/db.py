from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import List, Optional, Sequence

from admit.errors import PersistenceFailure
from admit.ingest.schema import CutoffRecord, InstitutionRecord

logger = logging.getLogger(__name__)


class RecordStore:
    """Interface for the persistent store the pipeline writes to and predicts from."""

    def insert_institutions(
        self, records: Sequence[InstitutionRecord]
    ) -> List[InstitutionRecord]:
        raise NotImplementedError

    def insert_cutoff_records(self, records: Sequence[CutoffRecord]) -> List[CutoffRecord]:
        raise NotImplementedError

    def query_cutoff_records(self, category: str) -> List[CutoffRecord]:
        raise NotImplementedError


# ---------- connection / schema ----------


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(str(db_path))
    con.row_factory = sqlite3.Row
    return con


def init_db(db_path: Path) -> Path:
    con = connect(db_path)
    cur = con.cursor()
    # institutions: one row per accepted InstitutionRecord
    cur.execute("""
    CREATE TABLE IF NOT EXISTS institutions (
      id                   INTEGER PRIMARY KEY AUTOINCREMENT,
      name                 TEXT NOT NULL,
      institution_code     TEXT NOT NULL,
      type                 TEXT,
      location             TEXT,
      description          TEXT,
      courses              TEXT,
      facilities           TEXT,
      rating               REAL,
      total_seats          INTEGER,
      fees_range           TEXT,
      placement_percentage INTEGER,
      contact_phone        TEXT,
      contact_email        TEXT,
      website              TEXT,
      address              TEXT,
      established_year     INTEGER,
      affiliation          TEXT,
      created_at           TEXT DEFAULT (datetime('now'))
    );
    """)
    # cutoff_records: one row per (year, institution, course, category) observation
    cur.execute("""
    CREATE TABLE IF NOT EXISTS cutoff_records (
      id               INTEGER PRIMARY KEY AUTOINCREMENT,
      year             INTEGER NOT NULL,
      institution_code TEXT NOT NULL,
      institution_name TEXT NOT NULL,
      course_name      TEXT NOT NULL,
      category         TEXT NOT NULL,
      rank_cutoff      INTEGER NOT NULL CHECK (rank_cutoff > 0),
      total_seats      INTEGER NOT NULL,
      fee              INTEGER NOT NULL,
      duration         TEXT NOT NULL,
      created_at       TEXT DEFAULT (datetime('now'))
    );
    """)
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_cutoff_category ON cutoff_records (category COLLATE NOCASE);"
    )
    con.commit()
    con.close()
    return db_path


# ---------- store ----------

_INSTITUTION_COLUMNS = [
    "name",
    "institution_code",
    "type",
    "location",
    "description",
    "courses",
    "facilities",
    "rating",
    "total_seats",
    "fees_range",
    "placement_percentage",
    "contact_phone",
    "contact_email",
    "website",
    "address",
    "established_year",
    "affiliation",
]
_CUTOFF_COLUMNS = [
    "year",
    "institution_code",
    "institution_name",
    "course_name",
    "category",
    "rank_cutoff",
    "total_seats",
    "fee",
    "duration",
]
_LIST_COLUMNS = ("courses", "facilities")


def _institution_from_row(row: sqlite3.Row) -> InstitutionRecord:
    data = {k: row[k] for k in ["id"] + _INSTITUTION_COLUMNS}
    for k in _LIST_COLUMNS:
        data[k] = json.loads(data[k]) if data[k] else []
    return InstitutionRecord(**data)


def _cutoff_from_row(row: sqlite3.Row) -> CutoffRecord:
    return CutoffRecord(**{k: row[k] for k in ["id"] + _CUTOFF_COLUMNS})


class SQLiteStore(RecordStore):
    """
    sqlite3-backed RecordStore. Opens one connection per operation; a batch
    insert is a single transaction, so a failure stores nothing.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def init_db(self) -> Path:
        try:
            return init_db(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"cannot initialise {self.db_path}: {e}") from e

    def _insert(self, table: str, columns: List[str], rows: List[tuple]) -> List[int]:
        sql = "INSERT INTO {} ({}) VALUES ({})".format(
            table, ", ".join(columns), ", ".join("?" for _ in columns)
        )
        ids: List[int] = []
        try:
            con = connect(self.db_path)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"cannot open {self.db_path}: {e}") from e
        try:
            with con:
                for values in rows:
                    ids.append(con.execute(sql, values).lastrowid)
        except sqlite3.Error as e:
            logger.error("insert into %s failed: %s", table, e)
            raise PersistenceFailure(f"insert into {table} failed: {e}") from e
        finally:
            con.close()
        return ids

    def insert_institutions(
        self, records: Sequence[InstitutionRecord]
    ) -> List[InstitutionRecord]:
        rows = []
        for r in records:
            data = r.model_dump()
            for k in _LIST_COLUMNS:
                data[k] = json.dumps(data[k], ensure_ascii=False)
            rows.append(tuple(data[c] for c in _INSTITUTION_COLUMNS))
        ids = self._insert("institutions", _INSTITUTION_COLUMNS, rows)
        return [r.model_copy(update={"id": i}) for r, i in zip(records, ids)]

    def insert_cutoff_records(self, records: Sequence[CutoffRecord]) -> List[CutoffRecord]:
        rows = [tuple(getattr(r, c) for c in _CUTOFF_COLUMNS) for r in records]
        ids = self._insert("cutoff_records", _CUTOFF_COLUMNS, rows)
        return [r.model_copy(update={"id": i}) for r, i in zip(records, ids)]

    def _select(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            con = connect(self.db_path)
            try:
                return con.execute(sql, params).fetchall()
            finally:
                con.close()
        except sqlite3.Error as e:
            logger.error("query failed: %s", e)
            raise PersistenceFailure(f"query failed: {e}") from e

    def query_cutoff_records(self, category: str) -> List[CutoffRecord]:
        rows = self._select(
            "SELECT * FROM cutoff_records WHERE category = ? COLLATE NOCASE "
            "ORDER BY institution_name, course_name, year",
            (category.strip(),),
        )
        return [_cutoff_from_row(r) for r in rows]

    def list_institutions(self, limit: Optional[int] = None) -> List[InstitutionRecord]:
        sql = "SELECT * FROM institutions ORDER BY name"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        return [_institution_from_row(r) for r in self._select(sql, params)]

    def count(self, table: str) -> int:
        if table not in ("institutions", "cutoff_records"):
            raise ValueError(f"unknown table {table!r}")
        return self._select(f"SELECT COUNT(*) AS n FROM {table}")[0]["n"]
