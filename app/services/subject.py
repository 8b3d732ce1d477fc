"""Subject management service."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models.subject import Subject
from app.schemas.subject import SubjectCreate, SubjectResponse, SubjectUpdate
from app.services.course import CourseService


class SubjectService:
    """Subject management service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_code_free(self, owner_id: int, code: str, exclude_id: int | None = None) -> None:
        query = select(Subject.id).where(
            Subject.owner_id == owner_id,
            func.lower(Subject.code) == code.lower(),
        )
        if exclude_id is not None:
            query = query.where(Subject.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ValidationError(
                f"Subject code '{code}' already exists",
                details={"field": "code", "value": code},
            )

    async def create_subject(self, owner_id: int, request: SubjectCreate) -> SubjectResponse:
        """Create a new subject."""
        await self._ensure_code_free(owner_id, request.code)
        if request.course_id is not None:
            await CourseService(self.db).get_course(owner_id, request.course_id)

        subject = Subject(owner_id=owner_id, **request.model_dump())
        self.db.add(subject)
        await self.db.flush()
        await self.db.refresh(subject)
        return SubjectResponse.model_validate(subject)

    async def get_subject(self, owner_id: int, subject_id: int) -> Subject:
        """Get subject by ID."""
        result = await self.db.execute(
            select(Subject).where(
                Subject.id == subject_id,
                Subject.owner_id == owner_id,
            )
        )
        subject = result.scalar_one_or_none()
        if not subject:
            raise NotFoundError("Subject", str(subject_id))
        return subject

    async def list_subjects(self, owner_id: int, course_id: int | None = None) -> list[SubjectResponse]:
        query = select(Subject).where(Subject.owner_id == owner_id)
        if course_id is not None:
            query = query.where(Subject.course_id == course_id)
        result = await self.db.execute(query.order_by(Subject.name))
        return [SubjectResponse.model_validate(s) for s in result.scalars().all()]

    async def update_subject(
        self,
        owner_id: int,
        subject_id: int,
        request: SubjectUpdate,
    ) -> SubjectResponse:
        """Update a subject."""
        subject = await self.get_subject(owner_id, subject_id)
        update_data = request.model_dump(exclude_unset=True)
        if update_data.get("code"):
            await self._ensure_code_free(owner_id, update_data["code"], exclude_id=subject.id)
        if update_data.get("course_id") is not None:
            await CourseService(self.db).get_course(owner_id, update_data["course_id"])
        for field, value in update_data.items():
            setattr(subject, field, value)
        await self.db.flush()
        await self.db.refresh(subject)
        return SubjectResponse.model_validate(subject)

    async def delete_subject(self, owner_id: int, subject_id: int) -> None:
        """Delete a subject and its grades."""
        subject = await self.get_subject(owner_id, subject_id)
        await self.db.delete(subject)
        await self.db.flush()
