from collections import OrderedDict
from datetime import date
from typing import Iterable, List, Optional
from ..core.errors import ValidationError
from ..models.result import ResultStatus
import logging

logger = logging.getLogger(__name__)


def evaluate_status(obtained_mark: Optional[int], cutoff_score: int) -> ResultStatus:
    """
    Status of a mark against an exam cutoff.

    No mark means the student was absent; the cutoff itself is a pass.
    """
    if obtained_mark is None:
        return ResultStatus.ABSENT
    if obtained_mark >= cutoff_score:
        return ResultStatus.PASS
    return ResultStatus.FAIL


def validate_mark(obtained_mark: Optional[int], max_score: int, allow_negative: bool = True):
    """Reject marks outside [-max_score, max_score] ([0, max_score] without negatives)"""
    if obtained_mark is None:
        return

    lowest = -max_score if allow_negative else 0
    if obtained_mark < lowest or obtained_mark > max_score:
        raise ValidationError("obtained_mark", f"must be between {lowest} and {max_score}")


def validate_exam_scores(max_score: int, cutoff_score: int):
    if max_score is None or max_score <= 0:
        raise ValidationError("max_score", "must be a positive number")
    if cutoff_score is None or cutoff_score < 0:
        raise ValidationError("cutoff_score", "must not be negative")
    if cutoff_score > max_score:
        raise ValidationError("cutoff_score", f"cannot exceed max_score ({max_score})")


def calculate_exam_statistics(results: Iterable[dict], max_score: int, total_students: Optional[int] = None):
    """
    Aggregate statistics for one exam.

    ``results`` are rows with ``student_id``, ``student_name``,
    ``obtained_mark`` and ``status``. ``total_students`` is the size of the
    exam's batch roster; it defaults to the number of result rows.
    """
    results = list(results)
    attended = [r for r in results if r["obtained_mark"] is not None]
    attended_count = len(attended)

    pass_count = len([r for r in attended if r["status"] == ResultStatus.PASS.value])
    fail_count = len([r for r in attended if r["status"] == ResultStatus.FAIL.value])

    pass_percent = round(pass_count / attended_count * 100, 2) if attended_count else 0
    average_score = None
    top_scorer = None

    if attended_count:
        average_score = round(sum(r["obtained_mark"] for r in attended) / attended_count, 2)

        # Highest mark wins; equal marks go to the lowest registration number
        best = min(attended, key=lambda r: (-r["obtained_mark"], r["student_id"]))
        top_scorer = {
            "student_id": best["student_id"],
            "name": best.get("student_name"),
            "mark": best["obtained_mark"]
        }

    if total_students is None:
        total_students = len(results)

    return {
        "total_students": total_students,
        "attended": attended_count,
        "absent": max(total_students - attended_count, 0),
        "pass_count": pass_count,
        "fail_count": fail_count,
        "pass_percent": pass_percent,
        "average_score": average_score,
        "max_score": max_score,
        "top_scorer": top_scorer
    }


def calculate_academic_summary(results: Iterable[dict]):
    """Per-student summary over that student's results"""
    results = list(results)
    total = len(results)
    passed = len([r for r in results if r["status"] == ResultStatus.PASS.value])
    failed = len([r for r in results if r["status"] == ResultStatus.FAIL.value])
    absent = len([r for r in results if r["obtained_mark"] is None])

    scored = [r["obtained_mark"] for r in results if r["obtained_mark"] is not None]
    average = round(sum(scored) / len(scored), 2) if scored else 0

    sat = total - absent
    pass_rate = round(passed / sat * 100, 2) if sat > 0 else 0

    return {
        "total": total,
        "passed": passed,
        "failed": failed,
        "absent": absent,
        "average": average,
        "pass_rate": pass_rate
    }


def exam_month(exam_date: Optional[date]) -> Optional[str]:
    if exam_date is None:
        return None
    return exam_date.strftime("%Y-%m")


def calculate_monthly_averages(results: Iterable[dict]) -> List[dict]:
    """Average of non-absent marks per calendar month, oldest month first"""
    months = OrderedDict()

    for r in sorted(results, key=lambda r: r["exam_date"] or date.min):
        month = exam_month(r["exam_date"])
        if month is None or r["obtained_mark"] is None:
            continue
        months.setdefault(month, []).append(r["obtained_mark"])

    return [
        {"month": month, "average": round(sum(marks) / len(marks), 2)}
        for month, marks in months.items()
    ]


def calculate_financial_summary(payments: Iterable[dict]):
    """Totals of a student's payments, overall and by type and method"""
    payments = list(payments)
    by_type = {}
    by_method = {}

    for p in payments:
        by_type[p["type"]] = by_type.get(p["type"], 0) + p["amount"]
        by_method[p["payment_method"]] = by_method.get(p["payment_method"], 0) + p["amount"]

    return {
        "total_paid": sum(p["amount"] for p in payments),
        "receipt_count": len(payments),
        "by_type": by_type,
        "by_method": by_method
    }
