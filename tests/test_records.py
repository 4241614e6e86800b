from datetime import date
import pytest
from academy.core.errors import ConstraintError, NotFoundError, ValidationError
from academy.models.exam import Exam
from academy.models.finance import Finance
from academy.models.result import Result
from academy.models.student import Student
from academy.services import evaluation, ledger, records
from conftest import count_rows


async def test_deleting_student_cascades_results_and_payments(store, seeded, db):
    await evaluation.save_mark(db, 101, 9, 88)
    await evaluation.save_mark(db, 102, 9, 50)
    await ledger.insert_finance_record(db, 101, 5000, "Tuition", "UPI", date(2024, 7, 1))
    await ledger.insert_finance_record(db, 102, 5000, "Tuition", "UPI", date(2024, 7, 1))

    await records.delete_student(db, 101)

    assert await count_rows(db, Student, Student.reg_no == 101) == 0
    assert await count_rows(db, Result, Result.student_id == 101) == 0
    assert await count_rows(db, Finance, Finance.student_id == 101) == 0
    assert await count_rows(db, Result) == 1
    assert await count_rows(db, Finance) == 1


async def test_batch_with_students_cannot_be_deleted(store, seeded, db):
    batch_id = seeded["batch_id"]

    with pytest.raises(ConstraintError) as exc_info:
        await records.delete_batch(db, batch_id)

    assert "students" in exc_info.value.message
    assert (await records.get_batch(db, batch_id))["student_count"] == 3


async def test_empty_batch_delete_cascades_exams(store, seeded, db):
    empty = await records.create_batch(db, "Batch B")
    empty_id = empty.batch_id
    await records.create_exam(db, {
        "exam_name": "Meteorology",
        "course_id": "PPL",
        "batch_id": empty_id,
        "instructor_id": seeded["instructor_id"],
        "max_score": 100,
        "cutoff_score": 35,
        "exam_date": date(2024, 9, 1)
    })

    await records.delete_batch(db, empty_id)

    assert await count_rows(db, Exam, Exam.batch_id == empty_id) == 0
    assert await count_rows(db, Exam) == 1


async def test_duplicate_batch_name(store, seeded, db):
    with pytest.raises(ConstraintError):
        await records.create_batch(db, "Batch A")


async def test_batch_listing_counts_students(store, seeded, db):
    await records.create_batch(db, "Batch B", date(2025, 1, 10))

    batches = await records.list_batches(db)

    assert [b["batch_name"] for b in batches] == ["Batch B", "Batch A"]
    assert [b["student_count"] for b in batches] == [0, 3]
    assert (await records.get_batch_by_name(db, "Batch B")).start_date == date(2025, 1, 10)


@pytest.mark.parametrize("max_score, cutoff_score", [(50, 60), (0, 0)])
async def test_exam_scores_validated_before_persistence(store, seeded, db, max_score, cutoff_score):
    with pytest.raises(ValidationError):
        await records.create_exam(db, {
            "exam_name": "Human Performance",
            "course_id": "PPL",
            "batch_id": seeded["batch_id"],
            "instructor_id": seeded["instructor_id"],
            "max_score": max_score,
            "cutoff_score": cutoff_score,
            "exam_date": date(2024, 9, 1)
        })

    assert await count_rows(db, Exam) == 1


async def test_exam_update_checks_merged_scores(store, seeded, db):
    with pytest.raises(ValidationError) as exc_info:
        await records.update_exam(db, 9, {"max_score": 30})

    assert exc_info.value.field == "cutoff_score"
    assert (await records.get_exam(db, 9))["max_score"] == 100


async def test_exam_requires_existing_references(store, seeded, db):
    with pytest.raises(NotFoundError) as exc_info:
        await records.create_exam(db, {
            "exam_name": "Human Performance",
            "course_id": "CPL",
            "batch_id": seeded["batch_id"],
            "instructor_id": seeded["instructor_id"],
            "max_score": 100,
            "cutoff_score": 40,
            "exam_date": date(2024, 9, 1)
        })

    assert exc_info.value.entity == "Course"


async def test_deleting_course_cascades_exams_and_results(store, seeded, db):
    await evaluation.save_mark(db, 101, 9, 77)

    await records.delete_course(db, "PPL")

    assert await count_rows(db, Exam) == 0
    assert await count_rows(db, Result) == 0


async def test_deleting_instructor_cascades_exams(store, seeded, db):
    await records.delete_instructor(db, seeded["instructor_id"])

    assert await count_rows(db, Exam) == 0


async def test_partial_update_only_touches_allowed_columns(store, seeded, db):
    student = await records.update_student(db, 102, {"phone": "9876543210", "attendance": 12})
    assert student.phone == "9876543210"
    assert student.name == "Bhavna"

    with pytest.raises(ValidationError) as exc_info:
        await records.update_student(db, 102, {"reg_no": 555})
    assert exc_info.value.field == "reg_no"

    with pytest.raises(ValidationError):
        await records.update_student(db, 102, {"name": "  "})


async def test_duplicate_registration_number(store, seeded, db):
    with pytest.raises(ConstraintError):
        await records.create_student(db, {"reg_no": 101, "name": "Other", "batch_id": seeded["batch_id"]})


async def test_student_needs_existing_batch(store, seeded, db):
    with pytest.raises(NotFoundError):
        await records.create_student(db, {"reg_no": 200, "name": "Dev", "batch_id": 999})


async def test_students_listed_by_name_with_batch(store, seeded, db):
    students = await records.list_students(db, seeded["batch_id"])

    assert [s["name"] for s in students] == ["Arjun", "Bhavna", "Chetan"]
    assert students[0]["batch_name"] == "Batch A"
    assert (await records.get_student(db, 103))["batch_start_date"] == date(2024, 6, 1)


async def test_duplicate_instructor_email(store, seeded, db):
    with pytest.raises(ConstraintError):
        await records.create_instructor(db, "Another", "meera@aerowis.in")


async def test_max_score_cannot_drop_below_stored_marks(store, seeded, db):
    await records.update_exam(db, 9, {"cutoff_score": 20})
    await evaluation.save_mark(db, 101, 9, 80)

    with pytest.raises(ValidationError) as exc_info:
        await records.update_exam(db, 9, {"max_score": 50})

    assert exc_info.value.field == "max_score"
    assert (await records.get_exam(db, 9))["max_score"] == 100

    exam = await records.update_exam(db, 9, {"max_score": 80})
    assert exam.max_score == 80


async def test_max_score_checks_negative_marks(store, seeded, db):
    await evaluation.save_mark(db, 102, 9, -60)

    with pytest.raises(ValidationError):
        await records.update_exam(db, 9, {"max_score": 50})


@pytest.mark.parametrize("search, names", [
    ("bha", ["Bhavna"]),
    ("ARJ", ["Arjun"]),
    ("03", ["Chetan"]),
    ("10", ["Arjun", "Bhavna", "Chetan"]),
    ("zz", []),
])
async def test_student_search(store, seeded, db, search, names):
    students = await records.list_students(db, search=search)

    assert [s["name"] for s in students] == names
