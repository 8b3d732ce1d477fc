"""Grade endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.schemas.common import MessageResponse
from app.schemas.grade import (
    GradeCreate,
    GradeFilter,
    GradeResponse,
    GradeUpdate,
    PaginatedGradeResponse,
)
from app.services.grade import GradeService

router = APIRouter()


@router.get("", response_model=PaginatedGradeResponse)
async def list_grades(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    subject_id: int | None = Query(None),
    student_id: int | None = Query(None),
    assessment_type: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """List grades in the professor's subjects, newest first."""
    service = GradeService(db)
    filters = GradeFilter(
        subject_id=subject_id,
        student_id=student_id,
        assessment_type=assessment_type,
    )
    return await service.list_grades(current_user.id, filters, page, page_size)


@router.post("", response_model=GradeResponse, status_code=status.HTTP_201_CREATED)
async def create_grade(
    request: GradeCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = GradeService(db)
    return await service.create_grade(current_user.id, request)


@router.patch("/{grade_id}", response_model=GradeResponse)
async def update_grade(
    grade_id: int,
    request: GradeUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = GradeService(db)
    return await service.update_grade(current_user.id, grade_id, request)


@router.delete("/{grade_id}", response_model=MessageResponse)
async def delete_grade(
    grade_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = GradeService(db)
    await service.delete_grade(current_user.id, grade_id)
    return MessageResponse(message="Grade deleted successfully")
