"""Data access used by the import pipeline.

Every write runs inside a SAVEPOINT so a rejected batch or row leaves the
surrounding request transaction usable.
"""

import logging
from collections.abc import Iterable
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import Base
from app.models.course import Course
from app.models.grade import Grade
from app.models.student import Student
from app.models.subject import Subject

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class StoreError(Exception):
    """The database rejected a write."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @classmethod
    def from_exception(cls, exc: SQLAlchemyError) -> "StoreError":
        orig = getattr(exc, "orig", None)
        return cls(str(orig) if orig is not None else str(exc))


def _lowered(values: Iterable[str]) -> list[str]:
    return sorted({value.lower() for value in values if value})


class RecordStore:
    """Bulk lookups and guarded writes over one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_courses(self, owner_id: int) -> list[Course]:
        result = await self.db.execute(
            select(Course).where(Course.owner_id == owner_id).order_by(Course.id)
        )
        return list(result.scalars().all())

    async def list_subjects(self, owner_id: int) -> list[Subject]:
        result = await self.db.execute(
            select(Subject).where(Subject.owner_id == owner_id).order_by(Subject.id)
        )
        return list(result.scalars().all())

    async def find_courses_by_code(self, owner_id: int, codes: Iterable[str]) -> list[Course]:
        codes = _lowered(codes)
        if not codes:
            return []
        result = await self.db.execute(
            select(Course).where(
                Course.owner_id == owner_id,
                func.lower(Course.code).in_(codes),
            )
        )
        return list(result.scalars().all())

    async def find_students_by_registration(self, registration_ids: Iterable[str]) -> list[Student]:
        registration_ids = _lowered(registration_ids)
        if not registration_ids:
            return []
        result = await self.db.execute(
            select(Student).where(func.lower(Student.registration_id).in_(registration_ids))
        )
        return list(result.scalars().all())

    async def find_enrolled_students(self, owner_id: int, registration_ids: Iterable[str]) -> list[Student]:
        """Students enrolled in one of the owner's courses."""
        registration_ids = _lowered(registration_ids)
        if not registration_ids:
            return []
        result = await self.db.execute(
            select(Student)
            .join(Course, Course.id == Student.course_id)
            .where(
                Course.owner_id == owner_id,
                func.lower(Student.registration_id).in_(registration_ids),
            )
        )
        return list(result.scalars().all())

    async def find_grades_for_students(self, student_ids: Iterable[int]) -> list[Grade]:
        student_ids = sorted(set(student_ids))
        if not student_ids:
            return []
        result = await self.db.execute(select(Grade).where(Grade.student_id.in_(student_ids)))
        return list(result.scalars().all())

    async def insert_many(self, model: type[ModelT], rows: list[dict[str, Any]]) -> list[ModelT]:
        """Insert all rows or none of them."""
        records = [model(**values) for values in rows]
        try:
            async with self.db.begin_nested():
                self.db.add_all(records)
                await self.db.flush()
        except SQLAlchemyError as e:
            logger.debug(f"[RECORD STORE] Batch of {len(rows)} {model.__tablename__} rejected: {e}")
            raise StoreError.from_exception(e) from e
        return records

    async def insert_one(self, model: type[ModelT], values: dict[str, Any]) -> ModelT:
        records = await self.insert_many(model, [values])
        return records[0]

    async def update(self, record: Base, values: dict[str, Any]) -> None:
        try:
            async with self.db.begin_nested():
                for key, value in values.items():
                    setattr(record, key, value)
                await self.db.flush()
        except SQLAlchemyError as e:
            logger.debug(f"[RECORD STORE] Update of {record!r} rejected: {e}")
            raise StoreError.from_exception(e) from e
