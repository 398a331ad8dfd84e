import random

from admit.ingest.rules import ScanConfig
from admit.ingest.segmenter import (
    DocumentSegmenter,
    extract_institution_fields,
    is_cutoff_boundary,
    is_institution_boundary,
    split_sections,
)

COLLEGE_TEXT = """
    COLLEGE INFORMATION DATABASE

    Page 1 of 3

    COLLEGE DETAILS
    ===============

    College Name: Government Engineering College, Thrissur
    College Code: GECT
    Type: Government Engineering
    Location: Thrissur, Kerala
    Established Year: 1957
    Affiliation: APJ Abdul Kalam Technological University

    Contact Information:
    Phone: +91-487-2200000
    Email: principal@gect.ac.in
    Website: www.gect.ac.in
    Address: Government Engineering College, Thrissur, Kerala 680009

    Courses Offered:
    - Computer Science Engineering
    - Mechanical Engineering
    - Civil Engineering

    Facilities:
    - Central Library
    - Hostel Facilities
    - Placement Cell

    Rating: 4.2/5
    Total Seats: 300
    Fees Range: ₹10,000 - ₹15,000 per semester
    Placement Percentage: 85%

    ========================================

    College Name: Model Engineering College, Kochi
    Location: Kochi, Kerala
    Established Year: 1989
    Total Seats: 240
    Fees: on request
    Placement Percentage: 92%
"""

RANK_LIST_TEXT = """
    KEAM 2024 RANK LIST
    ===================

    COMPUTER SCIENCE ENGINEERING
    ----------------------------

    Year: 2024
    Category: General

    College Name                    | Cutoff Rank | Total Seats | Filled Seats
    --------------------------------|-------------|-------------|-------------
    Government Engineering College  |     1250    |     60      |     60
    Model Engineering College       |     1450    |     60      |     60

    Category: OBC

    College Name                    | Cutoff Rank | Total Seats | Filled Seats
    --------------------------------|-------------|-------------|-------------
    Government Engineering College  |     1350    |     15      |     15
    XY                              |     1400    |     15      |     15

    ========================================

    MECHANICAL ENGINEERING
    ----------------------

    Category: SC

    Government Engineering College  |     6000    |      8      |      7
    TKM College of Engineering      |   250000    |      8      |      3
"""


def test_split_sections_on_markers_and_min_length():
    sections = split_sections(COLLEGE_TEXT, is_institution_boundary, 50)
    assert len(sections) == 2
    assert sections[0].startswith("College Name: Government Engineering College")
    assert sections[1].startswith("College Name: Model Engineering College")


def test_split_sections_keeps_text_before_first_marker():
    text = "intro line that is long enough to survive the filter\nCOLLEGE DETAILS\nCollege Name: X"
    sections = split_sections(text, is_institution_boundary, 1)
    assert sections[0] == "intro line that is long enough to survive the filter"
    assert len(sections) == 3


def test_institution_fields_from_labels_and_bullets():
    section = split_sections(COLLEGE_TEXT, is_institution_boundary, 50)[0]
    f = extract_institution_fields(section)
    assert f["name"] == "Government Engineering College, Thrissur"
    assert f["institution_code"] == "GECT"
    assert f["type"] == "engineering"
    assert f["location"] == "Thrissur, Kerala"
    assert f["established_year"] == 1957
    assert f["affiliation"] == "APJ Abdul Kalam Technological University"
    assert f["contact_phone"] == "+91-487-2200000"
    assert f["contact_email"] == "principal@gect.ac.in"
    assert f["website"] == "www.gect.ac.in"
    assert f["address"].endswith("Kerala 680009")
    assert f["courses"] == [
        "Computer Science Engineering",
        "Mechanical Engineering",
        "Civil Engineering",
    ]
    assert f["facilities"] == ["Central Library", "Hostel Facilities", "Placement Cell"]
    assert f["rating"] == 4.2
    assert f["total_seats"] == 300
    assert f["fees_range"] == "₹10,000 - ₹15,000"
    assert f["placement_percentage"] == 85


def test_institutions_derive_missing_fields():
    out = DocumentSegmenter(rng=random.Random(3)).institutions(COLLEGE_TEXT)
    assert out.sections == 2
    assert out.rejected == 0
    gect, mec = out.records
    assert gect.institution_code == "GECT"
    assert mec.institution_code == "MODENG"
    assert mec.type == "engineering"
    assert mec.fees_range == "Contact college for details"
    assert mec.placement_percentage == 92
    assert 1.0 <= mec.rating <= 5.0
    assert mec.description.endswith("modern facilities.")


def test_fees_range_on_a_later_line_wins_over_a_plain_mention():
    section = (
        "College Name: Rajagiri School of Engineering\n"
        "Hostel Fees are charged separately\n"
        "Fees Range: ₹10,000 - ₹15,000 per semester\n"
    )
    assert extract_institution_fields(section)["fees_range"] == "₹10,000 - ₹15,000"


def test_section_without_a_name_is_rejected():
    text = "COLLEGE DETAILS\nLocation: Somewhere, Kerala\nTotal Seats: 120\nRating: 3.9/5\n"
    out = DocumentSegmenter().institutions(text)
    assert out.records == []
    assert out.rejected == 1


def test_cutoff_sections():
    sections = split_sections(RANK_LIST_TEXT, is_cutoff_boundary, 30)
    assert len(sections) == 3  # title block, CSE, Mechanical
    assert sections[1].startswith("COMPUTER SCIENCE ENGINEERING")


def test_cutoff_rows_from_document_text():
    out = DocumentSegmenter(ScanConfig(current_year=2021)).cutoffs(RANK_LIST_TEXT)
    got = [(r.course_name, r.category, r.year, r.rank_cutoff, r.total_seats) for r in out.records]
    assert got == [
        ("Computer Science Engineering", "General", 2024, 1250, 60),
        ("Computer Science Engineering", "General", 2024, 1450, 60),
        ("Computer Science Engineering", "OBC", 2024, 1350, 15),
        # fresh context per section: the year falls back to the configured one
        ("Mechanical Engineering", "SC", 2021, 6000, 8),
    ]
    assert out.rejected == 2  # short name, rank above the bound
    assert out.total_rows == 6
    assert out.records[0].institution_code == "GOVENG"
    assert out.records[0].fee == 50000


def test_segment_dispatches_on_kind():
    seg = DocumentSegmenter(ScanConfig(current_year=2024))
    assert seg.segment(RANK_LIST_TEXT, "cutoff").records
    assert seg.segment(COLLEGE_TEXT, "institution").records
