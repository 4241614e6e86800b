from datetime import date
import pytest
from academy.core.errors import ValidationError
from academy.models.result import ResultStatus
from academy.utils.calculations import (
    evaluate_status,
    validate_mark,
    validate_exam_scores,
    calculate_exam_statistics,
    calculate_academic_summary,
    calculate_monthly_averages,
    calculate_financial_summary
)


def row(student_id, mark, status, name=None, exam_date=None):
    return {
        "student_id": student_id,
        "student_name": name or f"Student {student_id}",
        "obtained_mark": mark,
        "status": status,
        "exam_date": exam_date
    }


def test_status_derivation():
    assert evaluate_status(None, 40) == ResultStatus.ABSENT
    assert evaluate_status(40, 40) == ResultStatus.PASS
    assert evaluate_status(39, 40) == ResultStatus.FAIL
    assert evaluate_status(0, 0) == ResultStatus.PASS


def test_status_values_are_stored_strings():
    assert evaluate_status(80, 40).value == "Pass"
    assert evaluate_status(None, 40).value == "Absent"


def test_exam_statistics():
    results = [
        row(1, 80, "Pass", "Asha"),
        row(2, 30, "Fail", "Binu"),
        row(3, None, "Absent", "Charu"),
    ]

    stats = calculate_exam_statistics(results, max_score=100)

    assert stats["attended"] == 2
    assert stats["pass_count"] == 1
    assert stats["fail_count"] == 1
    assert stats["pass_percent"] == 50.00
    assert stats["average_score"] == 55.00
    assert stats["absent"] == 1
    assert stats["top_scorer"] == {"student_id": 1, "name": "Asha", "mark": 80}


def test_exam_statistics_with_roster_size():
    stats = calculate_exam_statistics([row(1, 70, "Pass")], max_score=100, total_students=4)

    assert stats["total_students"] == 4
    assert stats["absent"] == 3


def test_exam_statistics_without_attendance():
    stats = calculate_exam_statistics([row(1, None, "Absent")], max_score=50)

    assert stats["attended"] == 0
    assert stats["pass_percent"] == 0
    assert stats["average_score"] is None
    assert stats["top_scorer"] is None


def test_top_scorer_tie_goes_to_lowest_registration_number():
    results = [row(7, 90, "Pass"), row(3, 90, "Pass"), row(5, 60, "Pass")]

    stats = calculate_exam_statistics(results, max_score=100)

    assert stats["top_scorer"]["student_id"] == 3


def test_academic_summary():
    results = [
        row(1, 80, "Pass"),
        row(1, 20, "Fail"),
        row(1, None, "Absent"),
        row(1, 60, "Pass"),
    ]

    summary = calculate_academic_summary(results)

    assert summary == {
        "total": 4,
        "passed": 2,
        "failed": 1,
        "absent": 1,
        "average": 53.33,
        "pass_rate": 66.67
    }


def test_academic_summary_all_absent():
    summary = calculate_academic_summary([row(1, None, "Absent"), row(1, None, "Absent")])

    assert summary["average"] == 0
    assert summary["pass_rate"] == 0


def test_academic_summary_empty():
    assert calculate_academic_summary([])["total"] == 0


def test_monthly_averages_skip_absences():
    results = [
        row(1, 70, "Pass", exam_date=date(2024, 9, 2)),
        row(1, 50, "Pass", exam_date=date(2024, 8, 20)),
        row(1, 90, "Pass", exam_date=date(2024, 8, 5)),
        row(1, None, "Absent", exam_date=date(2024, 10, 1)),
    ]

    assert calculate_monthly_averages(results) == [
        {"month": "2024-08", "average": 70.0},
        {"month": "2024-09", "average": 70.0},
    ]


def test_validate_mark_bounds():
    validate_mark(None, 100)
    validate_mark(100, 100)
    validate_mark(-100, 100)

    with pytest.raises(ValidationError):
        validate_mark(101, 100)
    with pytest.raises(ValidationError):
        validate_mark(-101, 100)


def test_validate_mark_without_negatives():
    with pytest.raises(ValidationError) as exc_info:
        validate_mark(-1, 100, allow_negative=False)

    assert exc_info.value.field == "obtained_mark"


def test_cutoff_cannot_exceed_max_score():
    validate_exam_scores(100, 100)

    with pytest.raises(ValidationError) as exc_info:
        validate_exam_scores(50, 51)

    assert exc_info.value.field == "cutoff_score"


def test_financial_summary():
    payments = [
        {"amount": 5000, "type": "Tuition", "payment_method": "UPI"},
        {"amount": 1500, "type": "Exam Fee", "payment_method": "Cash"},
        {"amount": 2500, "type": "Tuition", "payment_method": "Cash"},
    ]

    summary = calculate_financial_summary(payments)

    assert summary["total_paid"] == 9000
    assert summary["receipt_count"] == 3
    assert summary["by_type"] == {"Tuition": 7500, "Exam Fee": 1500}
    assert summary["by_method"] == {"UPI": 5000, "Cash": 4000}
