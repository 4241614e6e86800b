from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel
from typing import Dict, List, Optional
from ..core.database import get_db
from ..core.auth import require_operator
from ..core.errors import AcademyError
from ..services import ledger
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class FinanceCreate(BaseModel):
    student_id: int
    amount: int
    type: str
    payment_method: str
    payment_date: date


class FinanceUpdate(BaseModel):
    amount: Optional[int] = None
    type: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[date] = None


class FinanceResponse(BaseModel):
    receipt_id: str
    student_id: int
    student_name: Optional[str] = None
    amount: int
    type: str
    payment_method: str
    payment_date: date

    class Config:
        from_attributes = True


class FinancialSummary(BaseModel):
    student_id: int
    total_paid: int
    receipt_count: int
    by_type: Dict[str, int]
    by_method: Dict[str, int]
    payments: List[FinanceResponse]


@router.post("/finance", response_model=FinanceResponse)
async def create_finance(finance: FinanceCreate, db: AsyncSession = Depends(get_db),
                         operator_id: int = Depends(require_operator)):
    try:
        receipt_id = await ledger.insert_finance_record(
            db,
            finance.student_id,
            finance.amount,
            finance.type,
            finance.payment_method,
            finance.payment_date
        )
        return await ledger.get_finance(db, receipt_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error recording payment for student {finance.student_id}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error recording payment")


@router.get("/finance", response_model=List[FinanceResponse])
async def get_finance_records(student_id: Optional[int] = Query(default=None), db: AsyncSession = Depends(get_db),
                              operator_id: int = Depends(require_operator)):
    try:
        return await ledger.list_finance(db, student_id)
    except Exception as e:
        logger.error(f"Error getting finance records: {e}")
        return []


@router.get("/students/{reg_no}/financial-summary", response_model=FinancialSummary)
async def get_financial_summary(reg_no: int, db: AsyncSession = Depends(get_db),
                                operator_id: int = Depends(require_operator)):
    try:
        return await ledger.financial_summary(db, reg_no)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error building financial summary for student {reg_no}: {e}")
        raise HTTPException(status_code=500, detail="Error building financial summary")


# Receipt ids contain "/" so they are matched as paths
@router.get("/finance/{receipt_id:path}", response_model=FinanceResponse)
async def get_finance_record(receipt_id: str, db: AsyncSession = Depends(get_db),
                             operator_id: int = Depends(require_operator)):
    return await ledger.get_finance(db, receipt_id)


@router.patch("/finance/{receipt_id:path}", response_model=FinanceResponse)
async def update_finance_record(receipt_id: str, finance: FinanceUpdate, db: AsyncSession = Depends(get_db),
                                operator_id: int = Depends(require_operator)):
    try:
        await ledger.update_finance(db, receipt_id, finance.model_dump(exclude_unset=True))
        return await ledger.get_finance(db, receipt_id)
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error updating receipt {receipt_id}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error updating receipt")


@router.delete("/finance/{receipt_id:path}")
async def delete_finance_record(receipt_id: str, db: AsyncSession = Depends(get_db),
                                operator_id: int = Depends(require_operator)):
    try:
        await ledger.delete_finance(db, receipt_id)
        return {"message": "Receipt deleted"}
    except AcademyError:
        raise
    except Exception as e:
        logger.error(f"Error deleting receipt {receipt_id}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error deleting receipt")
