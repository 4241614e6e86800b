"""
Result evaluation: turning a submitted mark into a stored status, and the
read-only projections built on top of stored results.
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, and_
from ..core.config import settings
from ..core.errors import ConstraintError, NotFoundError
from ..models.exam import Exam
from ..models.result import Result, ResultStatus
from ..models.student import Student
from ..utils.calculations import (
    evaluate_status,
    validate_mark,
    calculate_exam_statistics,
    calculate_academic_summary,
    calculate_monthly_averages,
    exam_month
)
from .records import get_exam, get_student_entity
import logging

logger = logging.getLogger(__name__)


async def get_exam_by_id(db: AsyncSession, exam_id: int) -> Exam:
    exam = await db.get(Exam, exam_id)
    if not exam:
        logger.warning(f"Exam {exam_id} not found")
        raise NotFoundError("Exam", exam_id)
    return exam


async def find_result(db: AsyncSession, student_id: int, exam_id: int) -> Optional[Result]:
    result = await db.execute(
        select(Result).filter(
            and_(
                Result.student_id == student_id,
                Result.exam_id == exam_id
            )
        )
    )
    return result.scalar_one_or_none()


async def upsert_result(db: AsyncSession, student_id: int, exam_id: int,
                        obtained_mark: Optional[int], status: ResultStatus) -> Result:
    """
    Insert or update the single result of (student, exam).

    A concurrent insert of the same pair trips the unique constraint; the
    write is then retried once as an update of the winning row.
    """
    status = ResultStatus(status).value

    for attempt in range(2):
        db_result = await find_result(db, student_id, exam_id)
        if db_result:
            db_result.obtained_mark = obtained_mark
            db_result.status = status
        else:
            db_result = Result(
                student_id=student_id,
                exam_id=exam_id,
                obtained_mark=obtained_mark,
                status=status
            )
            db.add(db_result)

        try:
            await db.commit()
            await db.refresh(db_result)
            return db_result
        except IntegrityError as e:
            await db.rollback()
            if attempt:
                logger.error(f"Could not save result for student {student_id}, exam {exam_id}: {e.orig}")
                raise ConstraintError("Could not save result, please retry") from e
            logger.warning(f"Result for student {student_id}, exam {exam_id} written concurrently, retrying")


async def save_mark(db: AsyncSession, student_id: int, exam_id: int, obtained_mark: Optional[int]) -> Result:
    """Evaluate a submitted mark (None for absent) and store the result"""
    # A missing exam aborts; it never defaults to Absent
    exam = await get_exam_by_id(db, exam_id)
    await get_student_entity(db, student_id)

    validate_mark(obtained_mark, exam.max_score, allow_negative=settings.allow_negative_marks)
    status = evaluate_status(obtained_mark, exam.cutoff_score)

    db_result = await upsert_result(db, student_id, exam_id, obtained_mark, status)
    logger.info(f"Saved result for student {student_id}, exam {exam_id}: {obtained_mark} ({status.value})")
    return db_result


async def reevaluate_exam_results(db: AsyncSession, exam: Exam):
    """Recompute stored statuses after the exam's cutoff changed (caller commits)"""
    result = await db.execute(select(Result).filter(Result.exam_id == exam.exam_id))
    results = result.scalars().all()

    for db_result in results:
        db_result.status = evaluate_status(db_result.obtained_mark, exam.cutoff_score).value

    logger.info(f"Re-evaluated {len(results)} results for exam {exam.exam_id}")


def _result_projection():
    return (
        select(
            Result.result_id,
            Result.student_id,
            Result.exam_id,
            Result.obtained_mark,
            Result.status,
            Student.name.label("student_name"),
            Exam.exam_name,
            Exam.exam_date,
            Exam.max_score,
            Exam.cutoff_score
        )
        .join(Student, Result.student_id == Student.reg_no)
        .join(Exam, Result.exam_id == Exam.exam_id)
    )


async def list_results(db: AsyncSession):
    result = await db.execute(_result_projection().order_by(Result.result_id.desc()))
    return [dict(row) for row in result.mappings().all()]


async def results_by_exam(db: AsyncSession, exam_id: int):
    result = await db.execute(
        _result_projection()
        .filter(Result.exam_id == exam_id)
        .order_by(Student.name.asc(), Result.student_id.asc())
    )
    return [dict(row) for row in result.mappings().all()]


async def results_by_student(db: AsyncSession, student_id: int):
    result = await db.execute(
        _result_projection()
        .filter(Result.student_id == student_id)
        .order_by(Exam.exam_date.desc(), Exam.exam_id.desc())
    )
    return [dict(row) for row in result.mappings().all()]


async def get_result(db: AsyncSession, result_id: int) -> dict:
    result = await db.execute(_result_projection().filter(Result.result_id == result_id))
    row = result.mappings().first()
    if not row:
        raise NotFoundError("Result", result_id)
    return dict(row)


async def delete_result(db: AsyncSession, result_id: int):
    db_result = await db.get(Result, result_id)
    if not db_result:
        raise NotFoundError("Result", result_id)

    await db.delete(db_result)
    await db.commit()
    logger.info(f"Deleted result {result_id}")


async def _report_rows(db: AsyncSession, batch_id: int, results: list) -> list:
    """
    One row per student of the batch roster (ungraded students show as
    Absent), followed by graded students from outside the batch.
    """
    by_student = {r["student_id"]: r for r in results}

    roster = await db.execute(
        select(Student.reg_no, Student.name, Student.gender)
        .filter(Student.batch_id == batch_id)
        .order_by(Student.name.asc(), Student.reg_no.asc())
    )

    rows = []
    for reg_no, name, gender in roster.all():
        graded = by_student.pop(reg_no, None)
        rows.append({
            "student_id": reg_no,
            "student_name": name,
            "gender": gender,
            "obtained_mark": graded["obtained_mark"] if graded else None,
            "status": graded["status"] if graded else ResultStatus.ABSENT.value
        })

    for graded in by_student.values():
        rows.append({
            "student_id": graded["student_id"],
            "student_name": graded["student_name"],
            "gender": None,
            "obtained_mark": graded["obtained_mark"],
            "status": graded["status"]
        })

    return rows


async def exam_statistics(db: AsyncSession, exam_id: int) -> dict:
    """Statistics over everyone the exam report lists"""
    exam = await get_exam_by_id(db, exam_id)
    results = await results_by_exam(db, exam_id)
    rows = await _report_rows(db, exam.batch_id, results)

    return calculate_exam_statistics(results, exam.max_score, total_students=len(rows))


async def exam_report(db: AsyncSession, exam_id: int) -> dict:
    """Everything a printed exam report needs: the exam, its statistics and its rows"""
    exam = await get_exam(db, exam_id)
    results = await results_by_exam(db, exam_id)
    rows = await _report_rows(db, exam["batch_id"], results)

    return {
        "exam": exam,
        "statistics": calculate_exam_statistics(results, exam["max_score"], total_students=len(rows)),
        "results": rows
    }


async def academic_summary(db: AsyncSession, student_id: int, month: Optional[str] = None) -> dict:
    """Summary of a student's exams, optionally restricted to one "YYYY-MM" month"""
    await get_student_entity(db, student_id)
    results = await results_by_student(db, student_id)

    available_months = sorted({exam_month(r["exam_date"]) for r in results if r["exam_date"]}, reverse=True)

    if month:
        results = [r for r in results if exam_month(r["exam_date"]) == month]

    return {
        "student_id": student_id,
        "month": month,
        "available_months": available_months,
        "summary": calculate_academic_summary(results),
        "monthly_averages": calculate_monthly_averages(results),
        "results": results
    }
