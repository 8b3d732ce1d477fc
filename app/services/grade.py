"""Grade management service."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models.grade import Grade
from app.models.student import Student
from app.models.subject import Subject
from app.schemas.grade import (
    GradeCreate,
    GradeFilter,
    GradeResponse,
    GradeUpdate,
    PaginatedGradeResponse,
)
from app.services.student import StudentService
from app.services.subject import SubjectService


class GradeService:
    """Grade management service, scoped through the owner's subjects."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_names(self, owner_id: int):
        return (
            select(
                Grade,
                Student.name.label("student_name"),
                Student.registration_id,
                Subject.name.label("subject_name"),
            )
            .join(Student, Student.id == Grade.student_id)
            .join(Subject, Subject.id == Grade.subject_id)
            .where(Subject.owner_id == owner_id)
        )

    @staticmethod
    def _to_response(row) -> GradeResponse:
        grade, student_name, registration_id, subject_name = row
        response = GradeResponse.model_validate(grade)
        response.student_name = student_name
        response.registration_id = registration_id
        response.subject_name = subject_name
        return response

    async def _get_response(self, owner_id: int, grade_id: int) -> GradeResponse:
        result = await self.db.execute(self._with_names(owner_id).where(Grade.id == grade_id))
        row = result.first()
        if not row:
            raise NotFoundError("Grade", str(grade_id))
        return self._to_response(row)

    async def get_grade(self, owner_id: int, grade_id: int) -> Grade:
        """Get grade by ID."""
        result = await self.db.execute(
            select(Grade)
            .join(Subject, Subject.id == Grade.subject_id)
            .where(Grade.id == grade_id, Subject.owner_id == owner_id)
        )
        grade = result.scalar_one_or_none()
        if not grade:
            raise NotFoundError("Grade", str(grade_id))
        return grade

    async def _ensure_unique(self, values: dict, exclude_id: int | None = None) -> None:
        query = select(Grade.id).where(
            Grade.student_id == values["student_id"],
            Grade.subject_id == values["subject_id"],
            Grade.assessment_name == values["assessment_name"],
            Grade.assessment_type == values["assessment_type"],
            Grade.date_assigned == values["date_assigned"],
        )
        if exclude_id is not None:
            query = query.where(Grade.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ValidationError(
                "A grade for this student, subject, assessment and date already exists",
                details={"assessment_name": values["assessment_name"]},
            )

    async def create_grade(self, owner_id: int, request: GradeCreate) -> GradeResponse:
        """Record a grade for a student in one of the owner's subjects."""
        await SubjectService(self.db).get_subject(owner_id, request.subject_id)
        await StudentService(self.db).get_student(owner_id, request.student_id)
        values = request.model_dump()
        await self._ensure_unique(values)

        grade = Grade(**values)
        self.db.add(grade)
        await self.db.flush()
        return await self._get_response(owner_id, grade.id)

    async def update_grade(
        self,
        owner_id: int,
        grade_id: int,
        request: GradeUpdate,
    ) -> GradeResponse:
        """Update a grade."""
        grade = await self.get_grade(owner_id, grade_id)
        update_data = request.model_dump(exclude_unset=True)

        key_fields = {"assessment_name", "assessment_type", "date_assigned"}
        if key_fields & update_data.keys():
            merged = {
                "student_id": grade.student_id,
                "subject_id": grade.subject_id,
                "assessment_name": grade.assessment_name,
                "assessment_type": grade.assessment_type,
                "date_assigned": grade.date_assigned,
                **{k: v for k, v in update_data.items() if k in key_fields},
            }
            await self._ensure_unique(merged, exclude_id=grade.id)

        max_grade = update_data.get("max_grade", grade.max_grade)
        if update_data.get("grade", grade.grade) > max_grade:
            raise ValidationError(
                "Grade exceeds max grade",
                details={"max_grade": str(max_grade)},
            )

        for field, value in update_data.items():
            setattr(grade, field, value)
        await self.db.flush()
        return await self._get_response(owner_id, grade.id)

    async def delete_grade(self, owner_id: int, grade_id: int) -> None:
        """Delete a grade."""
        grade = await self.get_grade(owner_id, grade_id)
        await self.db.delete(grade)
        await self.db.flush()

    async def list_grades(
        self,
        owner_id: int,
        filters: GradeFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> PaginatedGradeResponse:
        """List grades with filtering and pagination."""
        query = self._with_names(owner_id)

        if filters:
            if filters.subject_id:
                query = query.where(Grade.subject_id == filters.subject_id)
            if filters.student_id:
                query = query.where(Grade.student_id == filters.student_id)
            if filters.assessment_type:
                query = query.where(Grade.assessment_type == filters.assessment_type)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        offset = (page - 1) * page_size
        query = query.order_by(Grade.date_assigned.desc(), Student.name)
        query = query.offset(offset).limit(page_size)
        rows = (await self.db.execute(query)).all()

        return PaginatedGradeResponse(
            items=[self._to_response(row) for row in rows],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=(total + page_size - 1) // page_size,
        )
