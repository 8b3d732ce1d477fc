"""Student management service.

Students are not owned directly; a professor sees the students enrolled in
one of their courses.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.course import Course
from app.models.student import Student
from app.schemas.student import (
    PaginatedStudentResponse,
    StudentFilter,
    StudentResponse,
    StudentUpdate,
)
from app.services.course import CourseService


class StudentService:
    """Student management service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _owned(self, owner_id: int):
        return (
            select(Student)
            .join(Course, Course.id == Student.course_id)
            .where(Course.owner_id == owner_id)
        )

    async def get_student(self, owner_id: int, student_id: int) -> Student:
        """Get student by ID."""
        result = await self.db.execute(self._owned(owner_id).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", str(student_id))
        return student

    async def update_student(
        self,
        owner_id: int,
        student_id: int,
        request: StudentUpdate,
    ) -> StudentResponse:
        """Update a student."""
        student = await self.get_student(owner_id, student_id)
        update_data = request.model_dump(exclude_unset=True)
        if update_data.get("course_id") is not None:
            await CourseService(self.db).get_course(owner_id, update_data["course_id"])
        for field, value in update_data.items():
            setattr(student, field, value)
        await self.db.flush()
        await self.db.refresh(student)
        return StudentResponse.model_validate(student)

    async def delete_student(self, owner_id: int, student_id: int) -> None:
        """Delete a student."""
        student = await self.get_student(owner_id, student_id)
        await self.db.delete(student)
        await self.db.flush()

    async def list_students(
        self,
        owner_id: int,
        filters: StudentFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> PaginatedStudentResponse:
        """List students with filtering and pagination."""
        query = self._owned(owner_id)

        if filters:
            if filters.course_id:
                query = query.where(Student.course_id == filters.course_id)
            if filters.search:
                search_term = f"%{filters.search}%"
                query = query.where(
                    or_(
                        Student.name.ilike(search_term),
                        Student.registration_id.ilike(search_term),
                    )
                )

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        # Apply pagination
        offset = (page - 1) * page_size
        query = query.order_by(Student.name, Student.registration_id)
        query = query.offset(offset).limit(page_size)

        result = await self.db.execute(query)
        students = result.scalars().all()

        return PaginatedStudentResponse(
            items=[StudentResponse.model_validate(s) for s in students],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=(total + page_size - 1) // page_size,
        )
