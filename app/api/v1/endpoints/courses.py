"""Course endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.schemas.common import MessageResponse
from app.schemas.course import CourseCreate, CourseResponse, CourseUpdate
from app.services.course import CourseService

router = APIRouter()


@router.get("", response_model=list[CourseResponse])
async def list_courses(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List the professor's courses."""
    service = CourseService(db)
    return await service.list_courses(current_user.id)


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    request: CourseCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a course. Course codes are unique per professor."""
    service = CourseService(db)
    return await service.create_course(current_user.id, request)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = CourseService(db)
    course = await service.get_course(current_user.id, course_id)
    return CourseResponse.model_validate(course)


@router.patch("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    request: CourseUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    service = CourseService(db)
    return await service.update_course(current_user.id, course_id, request)


@router.delete("/{course_id}", response_model=MessageResponse)
async def delete_course(
    course_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a course and the students enrolled in it."""
    service = CourseService(db)
    await service.delete_course(current_user.id, course_id)
    return MessageResponse(message="Course deleted successfully")
