"""Subject endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.schemas.common import MessageResponse
from app.schemas.subject import SubjectCreate, SubjectResponse, SubjectUpdate
from app.services.subject import SubjectService

router = APIRouter()


@router.get("", response_model=list[SubjectResponse])
async def list_subjects(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    course_id: int | None = Query(None),
):
    """List the professor's subjects, optionally for one course."""
    service = SubjectService(db)
    return await service.list_subjects(current_user.id, course_id)


@router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(
    request: SubjectCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a subject. Subject codes are unique per professor."""
    service = SubjectService(db)
    return await service.create_subject(current_user.id, request)


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(
    subject_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = SubjectService(db)
    subject = await service.get_subject(current_user.id, subject_id)
    return SubjectResponse.model_validate(subject)


@router.patch("/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: int,
    request: SubjectUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = SubjectService(db)
    return await service.update_subject(current_user.id, subject_id, request)


@router.delete("/{subject_id}", response_model=MessageResponse)
async def delete_subject(
    subject_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = SubjectService(db)
    await service.delete_subject(current_user.id, subject_id)
    return MessageResponse(message="Subject deleted successfully")
