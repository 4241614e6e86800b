from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, EmailStr
from typing import List, Optional
from ..core.database import get_db
from ..core.auth import require_operator
from ..core.errors import AcademyError
from ..services import records
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class InstructorCreate(BaseModel):
    name: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class InstructorUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class InstructorResponse(BaseModel):
    instructor_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True


@router.get("/instructors", response_model=List[InstructorResponse])
async def get_instructors(db: AsyncSession = Depends(get_db), operator_id: int = Depends(require_operator)):
    try:
        return await records.list_instructors(db)
    except Exception as e:
        logger.error(f"Error getting instructors: {e}")
        return []


@router.post("/instructors", response_model=InstructorResponse)
async def create_instructor(instructor: InstructorCreate, db: AsyncSession = Depends(get_db),
                            operator_id: int = Depends(require_operator)):
    try:
        email = instructor.email.lower() if instructor.email else None
        return await records.create_instructor(db, instructor.name, email, instructor.phone)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error creating instructor: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error creating instructor")


@router.get("/instructors/{instructor_id}", response_model=InstructorResponse)
async def get_instructor(instructor_id: int, db: AsyncSession = Depends(get_db),
                         operator_id: int = Depends(require_operator)):
    return await records.get_instructor(db, instructor_id)


@router.patch("/instructors/{instructor_id}", response_model=InstructorResponse)
async def update_instructor(instructor_id: int, instructor: InstructorUpdate, db: AsyncSession = Depends(get_db),
                            operator_id: int = Depends(require_operator)):
    try:
        changes = instructor.model_dump(exclude_unset=True)
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
        return await records.update_instructor(db, instructor_id, changes)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error updating instructor: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error updating instructor")


@router.delete("/instructors/{instructor_id}")
async def delete_instructor(instructor_id: int, db: AsyncSession = Depends(get_db),
                            operator_id: int = Depends(require_operator)):
    try:
        await records.delete_instructor(db, instructor_id)
        return {"message": "Instructor deleted"}
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error deleting instructor: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error deleting instructor")
