"""Subject schemas."""

from datetime import datetime

from pydantic import Field

from app.schemas.common import BaseSchema


class SubjectBase(BaseSchema):
    """Base subject schema."""

    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    course_id: int | None = None
    semester: int | None = Field(None, ge=1, le=20)
    year: int | None = Field(None, ge=1900, le=2200)


class SubjectCreate(SubjectBase):
    """Subject creation schema."""

    pass


class SubjectUpdate(BaseSchema):
    """Subject update schema."""

    name: str | None = Field(None, min_length=1, max_length=255)
    code: str | None = Field(None, min_length=1, max_length=50)
    course_id: int | None = None
    semester: int | None = Field(None, ge=1, le=20)
    year: int | None = Field(None, ge=1900, le=2200)


class SubjectResponse(SubjectBase):
    """Subject response schema."""

    id: int
    owner_id: int
    created_at: datetime
    updated_at: datetime
