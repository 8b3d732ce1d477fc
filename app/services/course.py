"""Course management service."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models.course import Course
from app.schemas.course import CourseCreate, CourseResponse, CourseUpdate


class CourseService:
    """Course management service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_code_free(self, owner_id: int, code: str, exclude_id: int | None = None) -> None:
        query = select(Course.id).where(
            Course.owner_id == owner_id,
            func.lower(Course.code) == code.lower(),
        )
        if exclude_id is not None:
            query = query.where(Course.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ValidationError(
                f"Course code '{code}' already exists",
                details={"field": "code", "value": code},
            )

    async def create_course(self, owner_id: int, request: CourseCreate) -> CourseResponse:
        """Create a new course."""
        await self._ensure_code_free(owner_id, request.code)
        course = Course(owner_id=owner_id, **request.model_dump())
        self.db.add(course)
        await self.db.flush()
        await self.db.refresh(course)
        return CourseResponse.model_validate(course)

    async def get_course(self, owner_id: int, course_id: int) -> Course:
        """Get course by ID."""
        result = await self.db.execute(
            select(Course).where(
                Course.id == course_id,
                Course.owner_id == owner_id,
            )
        )
        course = result.scalar_one_or_none()
        if not course:
            raise NotFoundError("Course", str(course_id))
        return course

    async def list_courses(self, owner_id: int) -> list[CourseResponse]:
        result = await self.db.execute(
            select(Course).where(Course.owner_id == owner_id).order_by(Course.name)
        )
        return [CourseResponse.model_validate(c) for c in result.scalars().all()]

    async def update_course(
        self,
        owner_id: int,
        course_id: int,
        request: CourseUpdate,
    ) -> CourseResponse:
        """Update a course."""
        course = await self.get_course(owner_id, course_id)
        update_data = request.model_dump(exclude_unset=True)
        if update_data.get("code"):
            await self._ensure_code_free(owner_id, update_data["code"], exclude_id=course.id)
        for field, value in update_data.items():
            setattr(course, field, value)
        await self.db.flush()
        await self.db.refresh(course)
        return CourseResponse.model_validate(course)

    async def delete_course(self, owner_id: int, course_id: int) -> None:
        """Delete a course together with its students."""
        course = await self.get_course(owner_id, course_id)
        await self.db.delete(course)
        await self.db.flush()
