from datetime import date
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Optional
from ..core.database import get_db
from ..core.auth import require_operator
from ..core.errors import AcademyError
from ..services import records, evaluation
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class ExamCreate(BaseModel):
    exam_name: str
    course_id: str
    batch_id: int
    instructor_id: int
    max_score: int
    cutoff_score: int
    exam_date: date


class ExamUpdate(BaseModel):
    exam_name: Optional[str] = None
    course_id: Optional[str] = None
    batch_id: Optional[int] = None
    instructor_id: Optional[int] = None
    max_score: Optional[int] = None
    cutoff_score: Optional[int] = None
    exam_date: Optional[date] = None


class ExamResponse(BaseModel):
    exam_id: int
    exam_name: str
    course_id: str
    batch_id: int
    instructor_id: int
    max_score: int
    cutoff_score: int
    exam_date: date
    course_name: Optional[str] = None
    batch_name: Optional[str] = None
    instructor_name: Optional[str] = None

    class Config:
        from_attributes = True


class TopScorer(BaseModel):
    student_id: int
    name: Optional[str] = None
    mark: int


class ExamStatistics(BaseModel):
    total_students: int
    attended: int
    absent: int
    pass_count: int
    fail_count: int
    pass_percent: float
    average_score: Optional[float] = None
    max_score: int
    top_scorer: Optional[TopScorer] = None


class ReportRow(BaseModel):
    student_id: int
    student_name: str
    gender: Optional[str] = None
    obtained_mark: Optional[int] = None
    status: str


class ExamReport(BaseModel):
    exam: ExamResponse
    statistics: ExamStatistics
    results: List[ReportRow]


@router.get("/exams", response_model=List[ExamResponse])
async def get_exams(db: AsyncSession = Depends(get_db), operator_id: int = Depends(require_operator)):
    try:
        return await records.list_exams(db)
    except Exception as e:
        logger.error(f"Error getting exams: {e}")
        return []


@router.post("/exams", response_model=ExamResponse)
async def create_exam(exam: ExamCreate, db: AsyncSession = Depends(get_db),
                      operator_id: int = Depends(require_operator)):
    try:
        db_exam = await records.create_exam(db, exam.model_dump())
        return await records.get_exam(db, db_exam.exam_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error creating exam: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error creating exam")


@router.get("/exams/{exam_id}", response_model=ExamResponse)
async def get_exam(exam_id: int, db: AsyncSession = Depends(get_db),
                   operator_id: int = Depends(require_operator)):
    return await records.get_exam(db, exam_id)


@router.patch("/exams/{exam_id}", response_model=ExamResponse)
async def update_exam(exam_id: int, exam: ExamUpdate, db: AsyncSession = Depends(get_db),
                      operator_id: int = Depends(require_operator)):
    try:
        await records.update_exam(db, exam_id, exam.model_dump(exclude_unset=True))
        return await records.get_exam(db, exam_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error updating exam: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error updating exam")


@router.delete("/exams/{exam_id}")
async def delete_exam(exam_id: int, db: AsyncSession = Depends(get_db),
                      operator_id: int = Depends(require_operator)):
    try:
        await records.delete_exam(db, exam_id)
        return {"message": "Exam deleted"}
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error deleting exam: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error deleting exam")


@router.get("/exams/{exam_id}/statistics", response_model=ExamStatistics)
async def get_exam_statistics(exam_id: int, db: AsyncSession = Depends(get_db),
                              operator_id: int = Depends(require_operator)):
    try:
        return await evaluation.exam_statistics(db, exam_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error calculating statistics for exam {exam_id}: {e}")
        raise HTTPException(status_code=500, detail="Error calculating exam statistics")


@router.get("/exams/{exam_id}/report", response_model=ExamReport)
async def get_exam_report(exam_id: int, db: AsyncSession = Depends(get_db),
                          operator_id: int = Depends(require_operator)):
    try:
        return await evaluation.exam_report(db, exam_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error building report for exam {exam_id}: {e}")
        raise HTTPException(status_code=500, detail="Error building exam report")
