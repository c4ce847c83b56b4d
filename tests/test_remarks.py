import pytest

from app.api.v1.students.remarks import encode_remarks, format_remarks_for_display, parse_remarks
from app.core.grades import grade_rank, next_grade_level


def test_parse_encoded_remarks() -> None:
    assert parse_remarks("Needs follow-up|Pending PSA, Scholarship") == ("Needs follow-up", ["Pending PSA", "Scholarship"])
    assert parse_remarks("|Late Enrollment") == ("", ["Late Enrollment"])


def test_parse_legacy_remarks() -> None:
    # Rows written before the separator existed
    assert parse_remarks("Scholarship") == ("", ["Scholarship"])
    assert parse_remarks("Called the parents twice") == ("Called the parents twice", [])
    assert parse_remarks(None) == ("", [])
    assert parse_remarks("") == ("", [])


def test_encode_remarks() -> None:
    assert encode_remarks("  Needs follow-up ", ["Pending PSA", " ", "Scholarship"]) == "Needs follow-up|Pending PSA,Scholarship"
    assert encode_remarks("", ["New Student"]) == "|New Student"
    assert encode_remarks(None, None) == ""


def test_format_remarks_for_display() -> None:
    assert format_remarks_for_display(None) == "None"
    assert format_remarks_for_display("Called|") == "(Admin NOTE: Called)"
    assert (
        format_remarks_for_display("Called|Pending PSA,Scholarship")
        == "(Admin NOTE: Called) Other Remarks: Pending PSA, Scholarship"
    )


def test_grade_order() -> None:
    assert grade_rank("Kinder 1") < grade_rank("Grade 1") < grade_rank("Grade 10")
    assert grade_rank("College") == grade_rank("Unknown")
    assert next_grade_level("Kinder 2") == "Grade 1"
    assert next_grade_level("Grade 12") == "Grade 12"


@pytest.mark.parametrize(
    "text, labels",
    [
        ("Called the parents twice", []),
        ("", ["Pending PSA", "Scholarship"]),
        ("Needs follow-up", ["Late Enrollment"]),
        ("", []),
        ("Scholarship", []),
    ],
)
def test_encoded_remarks_parse_back(text, labels) -> None:
    assert parse_remarks(encode_remarks(text, labels)) == (text, labels)
