from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
from ..core.config import settings
from ..core.database import get_db
from ..models.lecturer_module import LecturerModule
from ..models.rating import Rating
from ..utils.aggregation import CRITERIA_LABELS
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class ModuleInfo(BaseModel):
    id: int
    lecturer_name: str
    module_name: str
    module_description: str
    module_objectives: Optional[str] = None
    email: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RatingCreate(BaseModel):
    lecturer_module_id: int
    criteria_1_score: int = Field(..., ge=1, le=5)
    criteria_2_score: int = Field(..., ge=1, le=5)
    criteria_3_score: int = Field(..., ge=1, le=5)
    criteria_4_score: int = Field(..., ge=1, le=5)
    criteria_5_score: int = Field(..., ge=1, le=5)
    remarks: Optional[str] = None

    @field_validator("remarks")
    @classmethod
    def check_remarks(cls, value):
        if value is None:
            return None
        value = value.strip()
        if len(value) > settings.remark_max_length:
            raise ValueError(f"Remarks must be at most {settings.remark_max_length} characters")
        return value or None


class RatingResponse(BaseModel):
    id: int
    lecturer_module_id: int
    criteria_1_score: int
    criteria_2_score: int
    criteria_3_score: int
    criteria_4_score: int
    criteria_5_score: int
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


def client_address(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


@router.get("/modules", response_model=List[ModuleInfo])
async def get_active_modules(db: AsyncSession = Depends(get_db)):
    """List modules open for rating"""
    try:
        result = await db.execute(
            select(LecturerModule)
            .filter(LecturerModule.is_active == True)  # noqa: E712
            .order_by(LecturerModule.lecturer_name, LecturerModule.module_name)
        )
        modules = result.scalars().all()
        logger.info(f"Found {len(modules)} active modules")
        return modules
    except Exception as e:
        logger.error(f"Error fetching active modules: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving modules")


@router.get("/modules/{module_id}", response_model=ModuleInfo)
async def get_active_module(module_id: int, db: AsyncSession = Depends(get_db)):
    try:
        result = await db.execute(
            select(LecturerModule).filter(
                LecturerModule.id == module_id,
                LecturerModule.is_active == True  # noqa: E712
            )
        )
        module = result.scalar_one_or_none()
        if not module:
            logger.warning(f"Active module {module_id} not found")
            raise HTTPException(status_code=404, detail="Module not found")
        return module
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching module {module_id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving module")


@router.get("/criteria", response_model=List[str])
async def get_criteria():
    """The five fixed rating criteria, in order"""
    return CRITERIA_LABELS


@router.post("/ratings", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def create_rating(rating: RatingCreate, request: Request, db: AsyncSession = Depends(get_db)):
    """
    Submit an anonymous rating. Any well-formed rating for an active module is
    accepted; duplicate prevention is left to the client.
    """
    try:
        module_result = await db.execute(
            select(LecturerModule).filter(LecturerModule.id == rating.lecturer_module_id)
        )
        module = module_result.scalar_one_or_none()

        if not module:
            logger.warning(f"Rating submitted for unknown module {rating.lecturer_module_id}")
            raise HTTPException(status_code=404, detail="Module not found")

        if not module.is_active:
            logger.warning(f"Rating submitted for inactive module {module.id}")
            raise HTTPException(status_code=400, detail="Module is not accepting ratings")

        db_rating = Rating(
            **rating.model_dump(),
            ip_address=client_address(request),
            user_agent=request.headers.get("user-agent") or "unknown",
        )
        db.add(db_rating)
        await db.commit()
        await db.refresh(db_rating)

        logger.info(f"Rating {db_rating.id} stored for module {module.id}")
        return db_rating
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating rating for module {rating.lecturer_module_id}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error submitting rating")
