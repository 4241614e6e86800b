"""
Fee ledger: receipt issuance and finance record maintenance.
"""
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import FlushError
from sqlalchemy import select, func
from ..core.config import settings
from ..core.database import commit_or_raise
from ..core.errors import ConstraintError, NotFoundError, ValidationError
from ..models.finance import Finance
from ..models.student import Student
from ..utils.calculations import calculate_financial_summary
from ..utils.receipts import ReceiptNumbering
from .common import as_dict, apply_changes, require_text
from .records import get_student_entity
import logging

logger = logging.getLogger(__name__)

FINANCE_COLUMNS = ("amount", "type", "payment_method", "payment_date")


def _validate_amount(amount):
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError("amount", "must be a positive whole number")


async def find_latest_receipt_for_prefix(db: AsyncSession, prefix: str) -> Optional[str]:
    """Highest receipt id starting with ``prefix``, in numeric sequence order"""
    result = await db.execute(
        select(Finance.receipt_id)
        .filter(Finance.receipt_id.like(f"{prefix}%"))
        .order_by(func.length(Finance.receipt_id).desc(), Finance.receipt_id.desc())
        .limit(1)
    )
    return result.scalars().first()


async def insert_finance_record(db: AsyncSession, student_id: int, amount: int, type: str,
                                payment_method: str, payment_date: date,
                                today: Optional[date] = None,
                                max_attempts: Optional[int] = None) -> str:
    """
    Issue the next receipt of the current financial year and record the
    payment under it. Returns the receipt id.

    The receipt id is the table's primary key, so two writers that pick the
    same number cannot both succeed; the loser re-reads the ledger and takes
    the next number.
    """
    _validate_amount(amount)
    type = require_text("type", type)
    payment_method = require_text("payment_method", payment_method)
    if payment_date is None:
        raise ValidationError("payment_date", "is required")

    await get_student_entity(db, student_id)

    max_attempts = max_attempts or settings.receipt_retry_attempts
    financial_year = ReceiptNumbering.financial_year(today)
    prefix = ReceiptNumbering.prefix(financial_year)

    for attempt in range(max_attempts):
        latest = await find_latest_receipt_for_prefix(db, prefix)
        # Malformed ledger entries raise SequencingError here
        receipt_id = ReceiptNumbering.next_after(financial_year, latest)

        db.add(Finance(
            receipt_id=receipt_id,
            student_id=student_id,
            amount=amount,
            type=type,
            payment_method=payment_method,
            payment_date=payment_date
        ))

        try:
            await db.commit()
            logger.info(f"Issued receipt {receipt_id} for student {student_id} ({amount})")
            return receipt_id
        except (IntegrityError, FlushError) as e:
            await db.rollback()
            logger.warning(f"Receipt {receipt_id} taken (attempt {attempt + 1}/{max_attempts}): {e}")

    logger.error(f"Could not issue a receipt in {financial_year} after {max_attempts} attempts")
    raise ConstraintError("Could not issue a unique receipt number, please retry")


def _finance_projection():
    return (
        select(Finance, Student.name.label("student_name"))
        .join(Student, Finance.student_id == Student.reg_no)
    )


async def list_finance(db: AsyncSession, student_id: Optional[int] = None):
    query = _finance_projection()
    if student_id:
        query = query.filter(Finance.student_id == student_id)

    result = await db.execute(query.order_by(Finance.payment_date.desc(), Finance.receipt_id.desc()))
    return [as_dict(record, student_name=student_name) for record, student_name in result.all()]


async def get_finance(db: AsyncSession, receipt_id: str) -> dict:
    result = await db.execute(_finance_projection().filter(Finance.receipt_id == receipt_id))
    row = result.first()
    if not row:
        raise NotFoundError("Receipt", receipt_id)

    record, student_name = row
    return as_dict(record, student_name=student_name)


async def update_finance(db: AsyncSession, receipt_id: str, changes: dict) -> Finance:
    """Correct a payment; the receipt id itself never changes"""
    record = await db.get(Finance, receipt_id)
    if not record:
        raise NotFoundError("Receipt", receipt_id)

    if "amount" in changes:
        _validate_amount(changes["amount"])

    apply_changes(record, changes, FINANCE_COLUMNS, required=FINANCE_COLUMNS)
    await commit_or_raise(db, f"Could not update receipt {receipt_id}")
    await db.refresh(record)

    logger.info(f"Updated receipt {receipt_id}: {sorted(changes)}")
    return record


async def delete_finance(db: AsyncSession, receipt_id: str):
    record = await db.get(Finance, receipt_id)
    if not record:
        raise NotFoundError("Receipt", receipt_id)

    await db.delete(record)
    await db.commit()
    logger.info(f"Deleted receipt {receipt_id}")


async def financial_summary(db: AsyncSession, student_id: int) -> dict:
    await get_student_entity(db, student_id)
    payments = await list_finance(db, student_id)

    return {
        "student_id": student_id,
        **calculate_financial_summary(payments),
        "payments": payments
    }
