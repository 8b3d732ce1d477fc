"""Student endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.schemas.common import MessageResponse
from app.schemas.student import (
    PaginatedStudentResponse,
    StudentFilter,
    StudentResponse,
    StudentUpdate,
)
from app.services.student import StudentService

router = APIRouter()


@router.get("", response_model=PaginatedStudentResponse)
async def list_students(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    course_id: int | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """
    List students enrolled in the professor's courses.

    - Filter by course
    - Search by name or registration id
    """
    service = StudentService(db)
    filters = StudentFilter(course_id=course_id, search=search)
    return await service.list_students(current_user.id, filters, page, page_size)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = StudentService(db)
    student = await service.get_student(current_user.id, student_id)
    return StudentResponse.model_validate(student)


@router.patch("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: int,
    request: StudentUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = StudentService(db)
    return await service.update_student(current_user.id, student_id, request)


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = StudentService(db)
    await service.delete_student(current_user.id, student_id)
    return MessageResponse(message="Student deleted successfully")
