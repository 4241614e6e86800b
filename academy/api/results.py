from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Optional
from ..core.database import get_db
from ..core.auth import require_operator
from ..core.errors import AcademyError
from ..services import evaluation
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class MarkEntry(BaseModel):
    # None records the student as absent
    obtained_mark: Optional[int] = None


class ResultResponse(BaseModel):
    result_id: int
    student_id: int
    exam_id: int
    obtained_mark: Optional[int] = None
    status: str
    student_name: Optional[str] = None
    exam_name: Optional[str] = None
    exam_date: Optional[date] = None
    max_score: Optional[int] = None
    cutoff_score: Optional[int] = None

    class Config:
        from_attributes = True


class AcademicSummaryStats(BaseModel):
    total: int
    passed: int
    failed: int
    absent: int
    average: float
    pass_rate: float


class MonthlyAverage(BaseModel):
    month: str
    average: float


class AcademicSummary(BaseModel):
    student_id: int
    month: Optional[str] = None
    available_months: List[str]
    summary: AcademicSummaryStats
    monthly_averages: List[MonthlyAverage]
    results: List[ResultResponse]


@router.put("/exams/{exam_id}/results/{student_id}", response_model=ResultResponse)
async def save_result(exam_id: int, student_id: int, entry: MarkEntry, db: AsyncSession = Depends(get_db),
                      operator_id: int = Depends(require_operator)):
    try:
        db_result = await evaluation.save_mark(db, student_id, exam_id, entry.obtained_mark)
        return await evaluation.get_result(db, db_result.result_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error saving result for student {student_id}, exam {exam_id}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error saving result")


@router.get("/exams/{exam_id}/results", response_model=List[ResultResponse])
async def get_exam_results(exam_id: int, db: AsyncSession = Depends(get_db),
                           operator_id: int = Depends(require_operator)):
    try:
        return await evaluation.results_by_exam(db, exam_id)
    except Exception as e:
        logger.error(f"Error getting results for exam {exam_id}: {e}")
        return []


@router.get("/students/{reg_no}/results", response_model=List[ResultResponse])
async def get_student_results(reg_no: int, db: AsyncSession = Depends(get_db),
                              operator_id: int = Depends(require_operator)):
    try:
        return await evaluation.results_by_student(db, reg_no)
    except Exception as e:
        logger.error(f"Error getting results for student {reg_no}: {e}")
        return []


@router.get("/students/{reg_no}/academic-summary", response_model=AcademicSummary)
async def get_academic_summary(reg_no: int,
                               month: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
                               db: AsyncSession = Depends(get_db),
                               operator_id: int = Depends(require_operator)):
    try:
        return await evaluation.academic_summary(db, reg_no, month)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error building academic summary for student {reg_no}: {e}")
        raise HTTPException(status_code=500, detail="Error building academic summary")


@router.get("/results", response_model=List[ResultResponse])
async def get_results(db: AsyncSession = Depends(get_db), operator_id: int = Depends(require_operator)):
    try:
        return await evaluation.list_results(db)
    except Exception as e:
        logger.error(f"Error getting results: {e}")
        return []


@router.get("/results/{result_id}", response_model=ResultResponse)
async def get_result(result_id: int, db: AsyncSession = Depends(get_db),
                     operator_id: int = Depends(require_operator)):
    return await evaluation.get_result(db, result_id)


@router.delete("/results/{result_id}")
async def delete_result(result_id: int, db: AsyncSession = Depends(get_db),
                        operator_id: int = Depends(require_operator)):
    try:
        await evaluation.delete_result(db, result_id)
        return {"message": "Result deleted"}
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error deleting result: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error deleting result")
