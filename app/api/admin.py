from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from pydantic import BaseModel, EmailStr, Field
from typing import Dict, List, Optional
from datetime import datetime
from ..core.database import get_db
from ..core.auth import get_password_hash, require_admin, verify_password
from ..models.admin import Admin
from ..models.lecturer_module import LecturerModule
from ..models.rating import Rating
from ..utils.aggregation import build_module_report, criteria_breakdown, summary_averages
from ..utils.report_export import export_filename, render_report_csv
from .public import ModuleInfo, RatingResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class ModuleCreate(BaseModel):
    lecturer_name: str = Field(..., min_length=1)
    module_name: str = Field(..., min_length=1)
    module_description: str = Field(..., min_length=1)
    module_objectives: Optional[str] = None
    email: Optional[str] = None


class ModuleUpdate(ModuleCreate):
    is_active: Optional[bool] = None


class AdminRatingResponse(RatingResponse):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ModuleSummary(BaseModel):
    module: ModuleInfo
    averages: Dict[str, float]
    total_ratings: int


class CriterionAverage(BaseModel):
    label: str
    average: float
    display: str


class ModuleReportResponse(ModuleSummary):
    summary: Dict[str, float]
    criteria: List[CriterionAverage]
    ratings: List[RatingResponse]


class AdminCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=8)


class AdminResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: Optional[datetime] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def get_module_or_404(db: AsyncSession, module_id: int) -> LecturerModule:
    result = await db.execute(select(LecturerModule).filter(LecturerModule.id == module_id))
    module = result.scalar_one_or_none()
    if not module:
        logger.warning(f"Module {module_id} not found")
        raise HTTPException(status_code=404, detail="Module not found")
    return module


async def get_module_ratings(db: AsyncSession, module_id: int) -> List[Rating]:
    result = await db.execute(
        select(Rating)
        .filter(Rating.lecturer_module_id == module_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
    )
    return list(result.scalars().all())


# Modules
@router.get("/modules", response_model=List[ModuleInfo])
async def get_modules(db: AsyncSession = Depends(get_db), admin_id: int = Depends(require_admin)):
    try:
        result = await db.execute(select(LecturerModule).order_by(LecturerModule.created_at.desc()))
        return result.scalars().all()
    except Exception as e:
        logger.error(f"Error getting modules: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving modules")


@router.post("/modules", response_model=ModuleInfo, status_code=status.HTTP_201_CREATED)
async def create_module(module: ModuleCreate, db: AsyncSession = Depends(get_db),
                        admin_id: int = Depends(require_admin)):
    try:
        lecturer_name = module.lecturer_name.strip()
        module_name = module.module_name.strip()
        module_description = module.module_description.strip()
        if not lecturer_name or not module_name or not module_description:
            raise HTTPException(
                status_code=400,
                detail="Lecturer name, module name, and description are required"
            )

        db_module = LecturerModule(
            lecturer_name=lecturer_name,
            module_name=module_name,
            module_description=module_description,
            module_objectives=blank_to_none(module.module_objectives),
            email=blank_to_none(module.email),
        )
        db.add(db_module)
        await db.commit()
        await db.refresh(db_module)
        logger.info(f"Admin {admin_id} created module {db_module.id}: {db_module.module_name}")
        return db_module
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating module: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error creating module")


@router.put("/modules/{module_id}", response_model=ModuleInfo)
async def update_module(module_id: int, module: ModuleUpdate, db: AsyncSession = Depends(get_db),
                        admin_id: int = Depends(require_admin)):
    try:
        db_module = await get_module_or_404(db, module_id)

        lecturer_name = module.lecturer_name.strip()
        module_name = module.module_name.strip()
        module_description = module.module_description.strip()
        if not lecturer_name or not module_name or not module_description:
            raise HTTPException(
                status_code=400,
                detail="Lecturer name, module name, and description are required"
            )

        db_module.lecturer_name = lecturer_name
        db_module.module_name = module_name
        db_module.module_description = module_description
        db_module.module_objectives = blank_to_none(module.module_objectives)
        db_module.email = blank_to_none(module.email)
        if module.is_active is not None:
            db_module.is_active = module.is_active

        await db.commit()
        await db.refresh(db_module)
        return db_module
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating module {module_id}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error updating module")


@router.post("/modules/{module_id}/toggle-active", response_model=ModuleInfo)
async def toggle_module_active(module_id: int, db: AsyncSession = Depends(get_db),
                               admin_id: int = Depends(require_admin)):
    """Open or close a module for rating. Existing ratings are untouched."""
    try:
        db_module = await get_module_or_404(db, module_id)
        db_module.is_active = not db_module.is_active
        await db.commit()
        await db.refresh(db_module)
        logger.info(f"Module {module_id} is_active set to {db_module.is_active}")
        return db_module
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error toggling module {module_id}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error updating module")


@router.delete("/modules/{module_id}")
async def delete_module(module_id: int, db: AsyncSession = Depends(get_db),
                        admin_id: int = Depends(require_admin)):
    try:
        db_module = await get_module_or_404(db, module_id)

        await db.execute(delete(Rating).where(Rating.lecturer_module_id == module_id))
        await db.delete(db_module)
        await db.commit()
        logger.info(f"Admin {admin_id} deleted module {module_id}")
        return {"message": "Module deleted"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting module {module_id}: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error deleting module")


# Ratings
@router.get("/ratings", response_model=List[AdminRatingResponse])
async def get_ratings(lecturer_module_id: Optional[int] = Query(None), db: AsyncSession = Depends(get_db),
                      admin_id: int = Depends(require_admin)):
    try:
        query = select(Rating).order_by(Rating.created_at.desc(), Rating.id.desc())
        if lecturer_module_id is not None:
            query = query.filter(Rating.lecturer_module_id == lecturer_module_id)
        result = await db.execute(query)
        return result.scalars().all()
    except Exception as e:
        logger.error(f"Error getting ratings: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving ratings")


# Reports
@router.get("/reports", response_model=List[ModuleSummary])
async def get_reports(db: AsyncSession = Depends(get_db), admin_id: int = Depends(require_admin)):
    try:
        modules_result = await db.execute(
            select(LecturerModule).order_by(LecturerModule.lecturer_name, LecturerModule.module_name)
        )
        modules = modules_result.scalars().all()

        ratings_result = await db.execute(select(Rating))
        ratings_by_module: Dict[int, List[Rating]] = {}
        for rating in ratings_result.scalars().all():
            ratings_by_module.setdefault(rating.lecturer_module_id, []).append(rating)

        summaries = []
        for module in modules:
            report = build_module_report(module, ratings_by_module.get(module.id, []))
            summaries.append(ModuleSummary(
                module=ModuleInfo.model_validate(module),
                averages=report["averages"],
                total_ratings=report["total_ratings"],
            ))

        logger.info(f"Generated report summaries for {len(summaries)} modules")
        return summaries
    except Exception as e:
        logger.error(f"Error generating reports: {e}")
        raise HTTPException(status_code=500, detail="Error generating reports")


@router.get("/reports/{module_id}", response_model=ModuleReportResponse)
async def get_module_report(module_id: int, db: AsyncSession = Depends(get_db),
                            admin_id: int = Depends(require_admin)):
    try:
        module = await get_module_or_404(db, module_id)
        report = build_module_report(module, await get_module_ratings(db, module_id))

        return ModuleReportResponse(
            module=ModuleInfo.model_validate(module),
            averages=report["averages"],
            summary=summary_averages(report["averages"]),
            criteria=criteria_breakdown(report["averages"]),
            total_ratings=report["total_ratings"],
            ratings=[RatingResponse.model_validate(r) for r in report["ratings"]],
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating report for module {module_id}: {e}")
        raise HTTPException(status_code=500, detail="Error generating report")


@router.get("/reports/{module_id}/export")
async def export_module_report(module_id: int, db: AsyncSession = Depends(get_db),
                               admin_id: int = Depends(require_admin)):
    try:
        module = await get_module_or_404(db, module_id)
        report = build_module_report(module, await get_module_ratings(db, module_id))

        filename = export_filename(module.module_name)
        logger.info(f"Exporting report for module {module_id} as {filename}")
        return Response(
            content=render_report_csv(report),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error exporting report for module {module_id}: {e}")
        raise HTTPException(status_code=500, detail="Error exporting report")


# Admin accounts
@router.post("/admins", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(admin: AdminCreate, db: AsyncSession = Depends(get_db),
                       admin_id: int = Depends(require_admin)):
    try:
        existing_admin = await db.execute(select(Admin).filter(Admin.email == admin.email.lower()))
        if existing_admin.scalar_one_or_none():
            raise HTTPException(status_code=400, detail="Admin with this email already exists")

        db_admin = Admin(
            name=admin.name,
            email=admin.email.lower(),
            hashed_password=get_password_hash(admin.password)
        )
        db.add(db_admin)
        await db.commit()
        await db.refresh(db_admin)
        logger.info(f"Admin {admin_id} created admin {db_admin.email}")
        return AdminResponse(id=db_admin.id, name=db_admin.name, email=db_admin.email,
                             created_at=db_admin.created_at)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating admin: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error creating admin")


@router.post("/change-password")
async def change_admin_password(password_data: PasswordChange, db: AsyncSession = Depends(get_db),
                                admin_id: int = Depends(require_admin)):
    try:
        result = await db.execute(select(Admin).filter(Admin.id == admin_id))
        admin = result.scalar_one_or_none()
        if not admin:
            raise HTTPException(status_code=404, detail="Admin not found")

        if not verify_password(password_data.current_password, admin.hashed_password):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        admin.hashed_password = get_password_hash(password_data.new_password)
        await db.commit()
        return {"message": "Admin password changed successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error changing admin password: {e}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Error changing admin password")
