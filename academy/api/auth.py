from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel, EmailStr
from ..core.database import get_db
from ..core.auth import verify_password, create_access_token, get_password_hash, require_operator
from ..models.operator import Operator
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    user_type: str
    user_id: int
    user_name: str


class RegisterOperatorRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class OperatorResponse(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


def _token_response(operator: Operator) -> LoginResponse:
    token = create_access_token(data={"sub": operator.id, "type": "operator"})
    return LoginResponse(
        access_token=token,
        token_type="bearer",
        user_type="operator",
        user_id=operator.id,
        user_name=operator.name
    )


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Authenticate an office operator and return an access token
    """
    try:
        logger.info(f"Login attempt for email: {request.email}")

        result = await db.execute(
            select(Operator).filter(Operator.email == request.email.lower())
        )
        operator = result.scalar_one_or_none()

        if operator and verify_password(request.password, operator.hashed_password):
            logger.info(f"Operator login successful: {operator.email}")
            return _token_response(operator)

        logger.warning(f"Failed login attempt for email: {request.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error for {request.email}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication failed"
        )


@router.post("/register-operator", response_model=LoginResponse)
async def register_operator(request: RegisterOperatorRequest, db: AsyncSession = Depends(get_db)):
    """
    Register the first operator (only if no operators exist)
    """
    try:
        logger.info(f"Operator registration attempt for email: {request.email}")

        existing = await db.execute(select(Operator).limit(1))
        if existing.scalar_one_or_none():
            logger.warning("Operator registration attempted but an operator already exists")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Operator already exists"
            )

        new_operator = Operator(
            name=request.name,
            email=request.email.lower(),
            hashed_password=get_password_hash(request.password)
        )

        db.add(new_operator)
        await db.commit()
        await db.refresh(new_operator)

        logger.info(f"Operator registered successfully: {new_operator.email}")
        return _token_response(new_operator)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Operator registration error for {request.email}: {e}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )


@router.post("/operators", response_model=OperatorResponse)
async def add_operator(request: RegisterOperatorRequest, operator_id: int = Depends(require_operator),
                       db: AsyncSession = Depends(get_db)):
    """
    Add another office operator (operator only)
    """
    try:
        email = request.email.lower()
        existing = await db.execute(select(Operator).filter(Operator.email == email))
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        new_operator = Operator(
            name=request.name,
            email=email,
            hashed_password=get_password_hash(request.password)
        )

        db.add(new_operator)
        await db.commit()
        await db.refresh(new_operator)

        logger.info(f"Operator {operator_id} added operator {new_operator.email}")
        return new_operator

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding operator {request.email}: {e}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not add operator"
        )


@router.get("/check-operator-exists")
async def check_operator_exists(db: AsyncSession = Depends(get_db)):
    try:
        result = await db.execute(select(Operator).limit(1))
        return {"operator_exists": result.scalar_one_or_none() is not None}
    except Exception as e:
        logger.error(f"Error checking operator existence: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not check operator status"
        )


@router.get("/me")
async def get_current_operator(operator_id: int = Depends(require_operator), db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Operator).filter(Operator.id == operator_id))
    operator = result.scalar_one_or_none()

    if not operator:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Operator not found"
        )

    return {
        "id": operator.id,
        "name": operator.name,
        "email": operator.email,
        "user_type": "operator"
    }
