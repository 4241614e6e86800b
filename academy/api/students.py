from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from ..core.database import get_db
from ..core.auth import require_operator
from ..core.errors import AcademyError
from ..services import records
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class StudentFields(BaseModel):
    join_date: Optional[date] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    dob: Optional[date] = None
    blood_group: Optional[str] = None
    father_name: Optional[str] = None
    father_phone: Optional[str] = None
    mother_name: Optional[str] = None
    mother_phone: Optional[str] = None
    education_qualification: Optional[str] = None
    email: Optional[EmailStr] = None
    documents_link: Optional[str] = None


class StudentCreate(StudentFields):
    reg_no: int = Field(gt=0)
    name: str
    batch_id: int
    total_classes: int = Field(default=0, ge=0)
    attendance: int = Field(default=0, ge=0)


class StudentUpdate(StudentFields):
    name: Optional[str] = None
    batch_id: Optional[int] = None
    total_classes: Optional[int] = Field(default=None, ge=0)
    attendance: Optional[int] = Field(default=None, ge=0)


class StudentResponse(BaseModel):
    reg_no: int
    name: str
    batch_id: int
    batch_name: Optional[str] = None
    batch_start_date: Optional[date] = None
    join_date: Optional[date] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    dob: Optional[date] = None
    blood_group: Optional[str] = None
    father_name: Optional[str] = None
    father_phone: Optional[str] = None
    mother_name: Optional[str] = None
    mother_phone: Optional[str] = None
    education_qualification: Optional[str] = None
    email: Optional[str] = None
    documents_link: Optional[str] = None
    total_classes: Optional[int] = 0
    attendance: Optional[int] = 0

    class Config:
        from_attributes = True


@router.get("/students", response_model=List[StudentResponse])
async def get_students(batch_id: Optional[int] = Query(default=None),
                       search: Optional[str] = Query(default=None, description="Part of a name or registration number"),
                       db: AsyncSession = Depends(get_db),
                       operator_id: int = Depends(require_operator)):
    try:
        return await records.list_students(db, batch_id, search)
    except Exception as e:
        logger.error(f"Error getting students: {e}")
        return []


@router.post("/students", response_model=StudentResponse)
async def create_student(student: StudentCreate, db: AsyncSession = Depends(get_db),
                         operator_id: int = Depends(require_operator)):
    try:
        db_student = await records.create_student(db, student.model_dump())
        return await records.get_student(db, db_student.reg_no)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error creating student: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error creating student")


@router.get("/students/{reg_no}", response_model=StudentResponse)
async def get_student(reg_no: int, db: AsyncSession = Depends(get_db),
                      operator_id: int = Depends(require_operator)):
    return await records.get_student(db, reg_no)


@router.patch("/students/{reg_no}", response_model=StudentResponse)
async def update_student(reg_no: int, student: StudentUpdate, db: AsyncSession = Depends(get_db),
                         operator_id: int = Depends(require_operator)):
    try:
        await records.update_student(db, reg_no, student.model_dump(exclude_unset=True))
        return await records.get_student(db, reg_no)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error updating student: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error updating student")


@router.delete("/students/{reg_no}")
async def delete_student(reg_no: int, db: AsyncSession = Depends(get_db),
                         operator_id: int = Depends(require_operator)):
    try:
        await records.delete_student(db, reg_no)
        return {"message": "Student deleted"}
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error deleting student: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error deleting student")
