from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import List, Optional
from ..core.database import get_db
from ..core.auth import require_operator
from ..core.errors import AcademyError
from ..services import records
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class CourseCreate(BaseModel):
    course_id: str
    course_name: str


class CourseUpdate(BaseModel):
    course_name: Optional[str] = None


class CourseResponse(BaseModel):
    course_id: str
    course_name: str

    class Config:
        from_attributes = True


@router.get("/courses", response_model=List[CourseResponse])
async def get_courses(db: AsyncSession = Depends(get_db), operator_id: int = Depends(require_operator)):
    try:
        return await records.list_courses(db)
    except Exception as e:
        logger.error(f"Error getting courses: {e}")
        return []


@router.post("/courses", response_model=CourseResponse)
async def create_course(course: CourseCreate, db: AsyncSession = Depends(get_db),
                        operator_id: int = Depends(require_operator)):
    try:
        return await records.create_course(db, course.course_id, course.course_name)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error creating course: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error creating course")


@router.get("/courses/{course_id}", response_model=CourseResponse)
async def get_course(course_id: str, db: AsyncSession = Depends(get_db),
                     operator_id: int = Depends(require_operator)):
    return await records.get_course(db, course_id)


@router.patch("/courses/{course_id}", response_model=CourseResponse)
async def update_course(course_id: str, course: CourseUpdate, db: AsyncSession = Depends(get_db),
                        operator_id: int = Depends(require_operator)):
    try:
        return await records.update_course(db, course_id, course.model_dump(exclude_unset=True))
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error updating course: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error updating course")


@router.delete("/courses/{course_id}")
async def delete_course(course_id: str, db: AsyncSession = Depends(get_db),
                        operator_id: int = Depends(require_operator)):
    try:
        await records.delete_course(db, course_id)
        return {"message": "Course deleted"}
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error deleting course: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error deleting course")
