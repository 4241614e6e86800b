from datetime import date
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


class BatchCreate(BaseModel):
    batch_name: str
    start_date: Optional[date] = None


class BatchUpdate(BaseModel):
    batch_name: Optional[str] = None
    start_date: Optional[date] = None


class BatchResponse(BaseModel):
    batch_id: int
    batch_name: str
    start_date: Optional[date] = None
    student_count: int = 0

    class Config:
        from_attributes = True


@router.get("/batches", response_model=List[BatchResponse])
async def get_batches(db: AsyncSession = Depends(get_db), operator_id: int = Depends(require_operator)):
    try:
        return await records.list_batches(db)
    except Exception as e:
        logger.error(f"Error getting batches: {e}")
        return []


@router.post("/batches", response_model=BatchResponse)
async def create_batch(batch: BatchCreate, db: AsyncSession = Depends(get_db),
                       operator_id: int = Depends(require_operator)):
    try:
        db_batch = await records.create_batch(db, batch.batch_name, batch.start_date)
        return await records.get_batch(db, db_batch.batch_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error creating batch: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error creating batch")


@router.get("/batches/by-name/{batch_name}", response_model=BatchResponse)
async def get_batch_by_name(batch_name: str, db: AsyncSession = Depends(get_db),
                            operator_id: int = Depends(require_operator)):
    db_batch = await records.get_batch_by_name(db, batch_name)
    return await records.get_batch(db, db_batch.batch_id)


@router.get("/batches/{batch_id}", response_model=BatchResponse)
async def get_batch(batch_id: int, db: AsyncSession = Depends(get_db),
                    operator_id: int = Depends(require_operator)):
    return await records.get_batch(db, batch_id)


@router.patch("/batches/{batch_id}", response_model=BatchResponse)
async def update_batch(batch_id: int, batch: BatchUpdate, db: AsyncSession = Depends(get_db),
                       operator_id: int = Depends(require_operator)):
    try:
        await records.update_batch(db, batch_id, batch.model_dump(exclude_unset=True))
        return await records.get_batch(db, batch_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error updating batch: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error updating batch")


@router.delete("/batches/{batch_id}")
async def delete_batch(batch_id: int, db: AsyncSession = Depends(get_db),
                       operator_id: int = Depends(require_operator)):
    try:
        await records.delete_batch(db, batch_id)
        return {"message": "Batch deleted"}
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error deleting batch: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error deleting batch")
