"""
Store operations for the reference entities: batches, students,
instructors, courses and exams.

Each function takes an open AsyncSession and either returns ORM rows or
plain dicts for joined projections. Missing entities raise NotFoundError,
store constraint violations surface as ConstraintError.
"""
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, cast, String
from ..core.config import settings
from ..core.database import commit_or_raise
from ..core.errors import ConstraintError, NotFoundError, ValidationError
from ..models.batch import Batch
from ..models.student import Student
from ..models.instructor import Instructor
from ..models.course import Course
from ..models.exam import Exam
from ..models.result import Result
from ..utils.calculations import validate_exam_scores
from .common import as_dict, apply_changes, require_text
import logging

logger = logging.getLogger(__name__)

BATCH_COLUMNS = ("batch_name", "start_date")

STUDENT_COLUMNS = (
    "name", "batch_id", "join_date", "gender", "phone", "address", "dob",
    "blood_group", "father_name", "father_phone", "mother_name", "mother_phone",
    "education_qualification", "email", "documents_link", "total_classes", "attendance"
)

INSTRUCTOR_COLUMNS = ("name", "email", "phone")

COURSE_COLUMNS = ("course_name",)

EXAM_COLUMNS = (
    "exam_name", "course_id", "batch_id", "instructor_id",
    "max_score", "cutoff_score", "exam_date"
)


# Batches
def _student_count():
    return (
        select(func.count(Student.reg_no))
        .filter(Student.batch_id == Batch.batch_id)
        .correlate(Batch)
        .scalar_subquery()
    )


async def create_batch(db: AsyncSession, batch_name: str, start_date: Optional[date] = None) -> Batch:
    batch_name = require_text("batch_name", batch_name)

    db_batch = Batch(batch_name=batch_name, start_date=start_date)
    db.add(db_batch)
    await commit_or_raise(db, f"Batch '{batch_name}' already exists")
    await db.refresh(db_batch)

    logger.info(f"Created batch {db_batch.batch_id} ({batch_name})")
    return db_batch


async def list_batches(db: AsyncSession):
    result = await db.execute(
        select(Batch, _student_count().label("student_count"))
        .order_by(Batch.start_date.desc(), Batch.batch_id.desc())
    )
    return [as_dict(batch, student_count=count) for batch, count in result.all()]


async def get_batch_entity(db: AsyncSession, batch_id: int) -> Batch:
    batch = await db.get(Batch, batch_id)
    if not batch:
        raise NotFoundError("Batch", batch_id)
    return batch


async def get_batch(db: AsyncSession, batch_id: int) -> dict:
    result = await db.execute(
        select(Batch, _student_count().label("student_count"))
        .filter(Batch.batch_id == batch_id)
    )
    row = result.first()
    if not row:
        raise NotFoundError("Batch", batch_id)

    batch, count = row
    return as_dict(batch, student_count=count)


async def get_batch_by_name(db: AsyncSession, batch_name: str) -> Batch:
    result = await db.execute(select(Batch).filter(Batch.batch_name == batch_name))
    batch = result.scalar_one_or_none()
    if not batch:
        raise NotFoundError("Batch", batch_name)
    return batch


async def update_batch(db: AsyncSession, batch_id: int, changes: dict) -> Batch:
    batch = await get_batch_entity(db, batch_id)
    apply_changes(batch, changes, BATCH_COLUMNS, required=("batch_name",))

    await commit_or_raise(db, f"Batch '{batch.batch_name}' already exists")
    await db.refresh(batch)
    return batch


async def delete_batch(db: AsyncSession, batch_id: int):
    batch = await get_batch_entity(db, batch_id)

    students = await db.execute(
        select(Student.reg_no).filter(Student.batch_id == batch_id).limit(1)
    )
    if students.first():
        logger.warning(f"Refused to delete batch {batch_id}: students assigned")
        raise ConstraintError("Cannot delete batch with assigned students")

    await db.delete(batch)
    await commit_or_raise(db, "Cannot delete batch with assigned students")
    logger.info(f"Deleted batch {batch_id}")


# Students
async def create_student(db: AsyncSession, data: dict) -> Student:
    reg_no = data.get("reg_no")
    if reg_no is None:
        raise ValidationError("reg_no", "is required")
    require_text("name", data.get("name"))
    if data.get("batch_id") is None:
        raise ValidationError("batch_id", "is required")

    await get_batch_entity(db, data["batch_id"])

    if await db.get(Student, reg_no):
        raise ConstraintError(f"Student with registration number {reg_no} already exists")

    db_student = Student(**data)
    db.add(db_student)
    await commit_or_raise(db, f"Student with registration number {reg_no} already exists")
    await db.refresh(db_student)

    logger.info(f"Created student {reg_no} in batch {db_student.batch_id}")
    return db_student


async def list_students(db: AsyncSession, batch_id: Optional[int] = None, search: Optional[str] = None):
    query = select(Student, Batch.batch_name).join(Batch, Student.batch_id == Batch.batch_id)
    if batch_id:
        query = query.filter(Student.batch_id == batch_id)

    # Matches part of the name (any case) or part of the registration number
    search = (search or "").strip()
    if search:
        query = query.filter(
            or_(
                func.lower(Student.name).contains(search.lower(), autoescape=True),
                cast(Student.reg_no, String).contains(search, autoescape=True)
            )
        )

    result = await db.execute(query.order_by(Student.name.asc()))
    return [as_dict(student, batch_name=batch_name) for student, batch_name in result.all()]


async def get_student_entity(db: AsyncSession, reg_no: int) -> Student:
    student = await db.get(Student, reg_no)
    if not student:
        raise NotFoundError("Student", reg_no)
    return student


async def get_student(db: AsyncSession, reg_no: int) -> dict:
    result = await db.execute(
        select(Student, Batch.batch_name, Batch.start_date)
        .join(Batch, Student.batch_id == Batch.batch_id)
        .filter(Student.reg_no == reg_no)
    )
    row = result.first()
    if not row:
        raise NotFoundError("Student", reg_no)

    student, batch_name, batch_start_date = row
    return as_dict(student, batch_name=batch_name, batch_start_date=batch_start_date)


async def update_student(db: AsyncSession, reg_no: int, changes: dict) -> Student:
    student = await get_student_entity(db, reg_no)
    if changes.get("batch_id") is not None:
        await get_batch_entity(db, changes["batch_id"])

    apply_changes(student, changes, STUDENT_COLUMNS, required=("name", "batch_id"))
    await commit_or_raise(db, f"Could not update student {reg_no}")
    await db.refresh(student)
    return student


async def delete_student(db: AsyncSession, reg_no: int):
    """Delete a student; the store cascades results and finance rows"""
    student = await get_student_entity(db, reg_no)

    await db.delete(student)
    await commit_or_raise(db, f"Could not delete student {reg_no}")
    logger.info(f"Deleted student {reg_no} with results and payments")


# Instructors
async def create_instructor(db: AsyncSession, name: str, email: Optional[str] = None,
                            phone: Optional[str] = None) -> Instructor:
    name = require_text("name", name)

    db_instructor = Instructor(name=name, email=email or None, phone=phone or None)
    db.add(db_instructor)
    await commit_or_raise(db, "Email already registered")
    await db.refresh(db_instructor)

    logger.info(f"Created instructor {db_instructor.instructor_id}")
    return db_instructor


async def list_instructors(db: AsyncSession):
    result = await db.execute(select(Instructor).order_by(Instructor.name.asc()))
    return result.scalars().all()


async def get_instructor(db: AsyncSession, instructor_id: int) -> Instructor:
    instructor = await db.get(Instructor, instructor_id)
    if not instructor:
        raise NotFoundError("Instructor", instructor_id)
    return instructor


async def update_instructor(db: AsyncSession, instructor_id: int, changes: dict) -> Instructor:
    instructor = await get_instructor(db, instructor_id)
    apply_changes(instructor, changes, INSTRUCTOR_COLUMNS, required=("name",))

    await commit_or_raise(db, "Email already registered")
    await db.refresh(instructor)
    return instructor


async def delete_instructor(db: AsyncSession, instructor_id: int):
    """Delete an instructor; their exams go with them"""
    instructor = await get_instructor(db, instructor_id)

    await db.delete(instructor)
    await commit_or_raise(db, f"Could not delete instructor {instructor_id}")
    logger.info(f"Deleted instructor {instructor_id}")


# Courses
async def create_course(db: AsyncSession, course_id: str, course_name: str) -> Course:
    course_id = require_text("course_id", course_id)
    course_name = require_text("course_name", course_name)

    if await db.get(Course, course_id):
        raise ConstraintError(f"Course {course_id} already exists")

    db_course = Course(course_id=course_id, course_name=course_name)
    db.add(db_course)
    await commit_or_raise(db, f"Course {course_id} already exists")
    await db.refresh(db_course)

    logger.info(f"Created course {course_id}")
    return db_course


async def list_courses(db: AsyncSession):
    result = await db.execute(select(Course).order_by(Course.course_name.asc()))
    return result.scalars().all()


async def get_course(db: AsyncSession, course_id: str) -> Course:
    course = await db.get(Course, course_id)
    if not course:
        raise NotFoundError("Course", course_id)
    return course


async def update_course(db: AsyncSession, course_id: str, changes: dict) -> Course:
    course = await get_course(db, course_id)
    apply_changes(course, changes, COURSE_COLUMNS, required=("course_name",))

    await commit_or_raise(db, f"Could not update course {course_id}")
    await db.refresh(course)
    return course


async def delete_course(db: AsyncSession, course_id: str):
    """Delete a course; its exams go with it"""
    course = await get_course(db, course_id)

    await db.delete(course)
    await commit_or_raise(db, f"Could not delete course {course_id}")
    logger.info(f"Deleted course {course_id}")


# Exams
async def _check_exam_references(db: AsyncSession, course_id=None, batch_id=None, instructor_id=None):
    if course_id is not None:
        await get_course(db, course_id)
    if batch_id is not None:
        await get_batch_entity(db, batch_id)
    if instructor_id is not None:
        await get_instructor(db, instructor_id)


async def create_exam(db: AsyncSession, data: dict) -> Exam:
    require_text("exam_name", data.get("exam_name"))
    for field in ("course_id", "batch_id", "instructor_id", "exam_date"):
        if data.get(field) is None:
            raise ValidationError(field, "is required")

    # Rejected before anything reaches the store
    validate_exam_scores(data.get("max_score"), data.get("cutoff_score"))

    await _check_exam_references(db, data["course_id"], data["batch_id"], data["instructor_id"])

    db_exam = Exam(**data)
    db.add(db_exam)
    await commit_or_raise(db, "Could not create exam")
    await db.refresh(db_exam)

    logger.info(f"Created exam {db_exam.exam_id} ({db_exam.exam_name})")
    return db_exam


def _exam_projection():
    return (
        select(Exam, Course.course_name, Batch.batch_name, Instructor.name.label("instructor_name"))
        .join(Course, Exam.course_id == Course.course_id)
        .join(Batch, Exam.batch_id == Batch.batch_id)
        .join(Instructor, Exam.instructor_id == Instructor.instructor_id)
    )


async def list_exams(db: AsyncSession):
    result = await db.execute(_exam_projection().order_by(Exam.exam_date.desc(), Exam.exam_id.desc()))
    return [
        as_dict(exam, course_name=course_name, batch_name=batch_name, instructor_name=instructor_name)
        for exam, course_name, batch_name, instructor_name in result.all()
    ]


async def get_exam(db: AsyncSession, exam_id: int) -> dict:
    result = await db.execute(_exam_projection().filter(Exam.exam_id == exam_id))
    row = result.first()
    if not row:
        raise NotFoundError("Exam", exam_id)

    exam, course_name, batch_name, instructor_name = row
    return as_dict(exam, course_name=course_name, batch_name=batch_name, instructor_name=instructor_name)


async def _check_stored_marks(db: AsyncSession, exam_id: int, max_score: int):
    """Saved marks must stay within range of a lowered max_score"""
    result = await db.execute(
        select(func.max(Result.obtained_mark), func.min(Result.obtained_mark))
        .filter(Result.exam_id == exam_id)
    )
    highest, lowest = result.one()
    floor = -max_score if settings.allow_negative_marks else 0

    if (highest is not None and highest > max_score) or (lowest is not None and lowest < floor):
        logger.warning(f"Refused max_score {max_score} for exam {exam_id}: stored marks out of range")
        raise ValidationError("max_score", f"stored marks fall outside {floor} to {max_score}")


async def update_exam(db: AsyncSession, exam_id: int, changes: dict) -> Exam:
    from .evaluation import get_exam_by_id, reevaluate_exam_results

    exam = await get_exam_by_id(db, exam_id)

    # Validate the merged record, not just the changed fields
    max_score = changes.get("max_score", exam.max_score)
    cutoff_score = changes.get("cutoff_score", exam.cutoff_score)
    validate_exam_scores(max_score, cutoff_score)

    if "max_score" in changes and max_score != exam.max_score:
        await _check_stored_marks(db, exam_id, max_score)

    await _check_exam_references(
        db,
        changes.get("course_id"),
        changes.get("batch_id"),
        changes.get("instructor_id")
    )

    cutoff_changed = "cutoff_score" in changes and changes["cutoff_score"] != exam.cutoff_score
    apply_changes(exam, changes, EXAM_COLUMNS, required=EXAM_COLUMNS)

    if cutoff_changed:
        await reevaluate_exam_results(db, exam)

    await commit_or_raise(db, f"Could not update exam {exam_id}")
    await db.refresh(exam)
    return exam


async def delete_exam(db: AsyncSession, exam_id: int):
    from .evaluation import get_exam_by_id

    exam = await get_exam_by_id(db, exam_id)
    await db.delete(exam)
    await commit_or_raise(db, f"Could not delete exam {exam_id}")
    logger.info(f"Deleted exam {exam_id}")
