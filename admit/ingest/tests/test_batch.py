from admit.db import SQLiteStore
from admit.ingest.batch import ingest_directory, iter_sources
from admit.ingest.rules import ScanConfig


def _write_sources(root):
    (root / "a_ranks.csv").write_text(
        "CIVIL ENGINEERING\nYear: 2023\nNSS College,4100,60\nTKM College,4300,60\n",
        encoding="utf-8",
    )
    (root / "b_empty.csv").write_text("only a header\n", encoding="utf-8")
    (root / "c_ranks.txt").write_text(
        "MECHANICAL ENGINEERING\nCategory: General\nGovt Engineering College | 3500 | 60 | 58\n",
        encoding="utf-8",
    )
    (root / "ignored.xlsx").write_bytes(b"PK\x03\x04")


def test_iter_sources_filters_by_suffix(tmp_path):
    _write_sources(tmp_path)
    assert [p.name for p in iter_sources(tmp_path)] == [
        "a_ranks.csv",
        "b_empty.csv",
        "c_ranks.txt",
    ]


def test_failed_file_does_not_stop_the_batch(tmp_path):
    _write_sources(tmp_path)
    store = SQLiteStore(tmp_path / "db.sqlite")
    store.init_db()

    results = ingest_directory(
        tmp_path,
        "cutoff",
        store=store,
        workers=3,
        config=ScanConfig(current_year=2024),
        show_progress=False,
    )

    assert [(p.name, r.success) for p, r in results] == [
        ("a_ranks.csv", True),
        ("b_empty.csv", False),
        ("c_ranks.txt", True),
    ]
    stored = store.query_cutoff_records("general")
    # persisted in file order
    assert [r.rank_cutoff for r in stored if r.year == 2023] == [4100, 4300]
    assert len(stored) == 3
    assert all(r.id is not None for _, res in results if res.success for r in res.records)


def test_dry_run_and_limit(tmp_path):
    _write_sources(tmp_path)
    results = ingest_directory(
        tmp_path, "cutoff", limit=1, config=ScanConfig(current_year=2024), show_progress=False
    )
    assert len(results) == 1
    path, res = results[0]
    assert res.success and all(r.id is None for r in res.records)
