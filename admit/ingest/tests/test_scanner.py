from admit.ingest.scanner import (
    CutoffTableScanner,
    LineKind,
    ScanContext,
    classify,
    scan_cutoff_rows,
    split_cells,
    step,
)
from admit.ingest.rules import ScanConfig

CFG = ScanConfig(current_year=2024)


def test_literal_rank_list_scenario():
    rows = [
        "COMPUTER SCIENCE ENGINEERING",
        "Year: 2024",
        "Category: General",
        "Govt College | 1250 | 60 | 60",
    ]
    records = scan_cutoff_rows(rows, CFG)
    assert len(records) == 1
    rec = records[0]
    assert rec.year == 2024
    assert rec.course_name == "Computer Science Engineering"
    assert rec.category == "General"
    assert rec.institution_name == "Govt College"
    assert rec.rank_cutoff == 1250
    assert rec.total_seats == 60
    assert rec.fee == 50000
    assert rec.duration == "4 years"


def test_rank_outside_bound_is_discarded_not_zeroed():
    rows = [
        "MECHANICAL ENGINEERING",
        "Govt College | 150000",
        "Other College | 0",
        "Third College | 99999",
    ]
    out = CutoffTableScanner(CFG).scan(rows)
    assert [r.rank_cutoff for r in out.records] == [99999]
    assert out.rejected == 2
    assert all(r.rank_cutoff > 0 for r in out.records)


def test_rows_before_any_course_header_are_rejected():
    out = CutoffTableScanner(CFG).scan(["Govt College | 1250", "CIVIL ENGINEERING"])
    assert out.records == []
    assert out.rejected == 1
    assert out.total_rows == 1


def test_institution_name_with_engineering_is_a_data_row():
    rows = ["CIVIL ENGINEERING", "Govt Engineering College | 1250 | 60"]
    records = scan_cutoff_rows(rows, CFG)
    assert len(records) == 1
    assert records[0].course_name == "Civil Engineering"
    assert records[0].institution_name == "Govt Engineering College"


def test_context_carries_forward_and_updates():
    rows = [
        ["Electronics & Communication", ""],
        ["Year 2022"],
        ["Category:", ""],
        ["TKM College", "2,050", "60"],
        ["Category: OBC"],
        ["TKM College", "2150"],
        ["Year: 2023"],
        ["NSS College", "1950", "SC"],
    ]
    records = scan_cutoff_rows(rows, CFG)
    assert [(r.year, r.category, r.rank_cutoff) for r in records] == [
        (2022, "General", 2050),
        (2022, "OBC", 2150),
        (2023, "SC", 1950),
    ]
    assert {r.course_name for r in records} == {"Electronics Engineering"}


def test_each_scan_starts_from_a_fresh_context():
    scanner = CutoffTableScanner(CFG)
    scanner.scan(["CIVIL ENGINEERING", "Year: 2019", "Govt College | 10"])
    out = scanner.scan(["Govt College | 10"])
    assert out.records == []


def test_step_is_a_pure_fold():
    ctx = ScanContext.initial(CFG)
    nxt, kind, rec = step(ctx, "MECHANICAL ENGINEERING", CFG)
    assert kind is LineKind.COURSE_HEADER and rec is None
    assert ctx.current_course == ""
    assert nxt.current_course == "Mechanical Engineering"
    assert nxt.current_year == 2024 and nxt.current_category == "General"


def test_split_and_classify():
    assert split_cells("| a | b |") == ["a", "b"]
    assert split_cells("no pipes here") == ["no pipes here"]
    ctx = ScanContext("Civil Engineering", 2024, "General")
    assert classify(["abc", "12"], ctx, CFG) is LineKind.SKIPPED  # name too short
    assert classify([""], ctx, CFG) is LineKind.SKIPPED
    assert classify(["Notes", "n/a"], ctx, CFG) is LineKind.SKIPPED


def test_course_heading_with_an_extra_cell_is_still_a_header():
    rows = [["MECHANICAL ENGINEERING", "2024"], ["Govt College", "1250", "60"]]
    records = scan_cutoff_rows(rows, CFG)
    assert len(records) == 1
    assert records[0].course_name == "Mechanical Engineering"
    assert records[0].institution_name == "Govt College"
    assert records[0].rank_cutoff == 1250


def test_heading_rows_with_numbers_never_become_records():
    rows = [
        "CIVIL ENGINEERING",
        "Govt College | 900",
        "Computer Science and Engineering | 120",
        "Year: 2023 | 60",
        "Govt College | 1250",
    ]
    out = CutoffTableScanner(CFG).scan(rows)
    assert [(r.course_name, r.year, r.rank_cutoff) for r in out.records] == [
        ("Civil Engineering", 2024, 900),
        ("Computer Science Engineering", 2023, 1250),
    ]
    assert out.rejected == 0
