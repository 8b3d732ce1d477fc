"""Course schemas."""

from datetime import date, datetime

from pydantic import Field

from app.schemas.common import BaseSchema


class CourseBase(BaseSchema):
    """Base course schema."""

    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    total_semesters: int = Field(8, ge=1)
    start_date: date


class CourseCreate(CourseBase):
    """Course creation schema."""

    pass


class CourseUpdate(BaseSchema):
    """Course update schema."""

    name: str | None = Field(None, min_length=1, max_length=255)
    code: str | None = Field(None, min_length=1, max_length=50)
    total_semesters: int | None = Field(None, ge=1, le=20)
    start_date: date | None = None


class CourseResponse(CourseBase):
    """Course response schema."""

    id: int
    owner_id: int
    created_at: datetime
    updated_at: datetime
