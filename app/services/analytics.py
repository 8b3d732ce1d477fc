"""Dashboard analytics over the owner's grades and students."""

from collections import Counter
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.course import Course
from app.models.grade import Grade
from app.models.student import Student
from app.models.subject import Subject
from app.schemas.dashboard import (
    AssessmentPoints,
    AssessmentTypeAverage,
    CountBucket,
    DashboardResponse,
    DashboardTotals,
)

NOT_INFORMED = "Not informed"
CENTS = Decimal("0.01")

# Lower bound inclusive, upper exclusive; the top grade lands in the last bucket
GRADE_RANGES = [
    ("0-2", Decimal("0"), Decimal("2")),
    ("2-4", Decimal("2"), Decimal("4")),
    ("4-6", Decimal("4"), Decimal("6")),
    ("6-8", Decimal("6"), Decimal("8")),
    ("8-10", Decimal("8"), None),
]

INCOME_RANGES = [
    ("Up to 1000", None, Decimal("1000")),
    ("1000-2000", Decimal("1000"), Decimal("2000")),
    ("2000-3000", Decimal("2000"), Decimal("3000")),
    ("3000-5000", Decimal("3000"), Decimal("5000")),
    ("Above 5000", Decimal("5000"), None),
]


def _bucket(value: Decimal, ranges) -> str:
    for label, lower, upper in ranges:
        if (lower is None or value >= lower) and (upper is None or value < upper):
            return label
    return ranges[0][0]


def _histogram(values, ranges) -> list[CountBucket]:
    counts = Counter(_bucket(value, ranges) for value in values)
    return [CountBucket(label=label, count=counts[label]) for label, _, _ in ranges]


def _distribution(values) -> list[CountBucket]:
    counts = Counter(value or NOT_INFORMED for value in values)
    return [CountBucket(label=label, count=count) for label, count in counts.most_common()]


def _average(values: list[Decimal]) -> Decimal:
    if not values:
        return Decimal("0")
    return (sum(values, Decimal("0")) / len(values)).quantize(CENTS)


class AnalyticsService:
    """Dashboard data aggregation service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_dashboard(
        self,
        owner_id: int,
        course_id: int | None = None,
        subject_id: int | None = None,
    ) -> DashboardResponse:
        """
        Aggregate the owner's data, optionally narrowed to one course and/or subject.

        Grades are scoped through the owner's subjects; students through the
        owner's courses.
        """
        grades = await self._grades(owner_id, course_id, subject_id)
        students = await self._students(owner_id, course_id)
        total_subjects = await self._count_subjects(owner_id, course_id, subject_id)

        scores = [Decimal(g.grade) for g in grades]
        by_type: dict[str, list[Grade]] = {}
        for grade in grades:
            by_type.setdefault(grade.assessment_type, []).append(grade)

        return DashboardResponse(
            course_id=course_id,
            subject_id=subject_id,
            totals=DashboardTotals(
                total_students=len(students),
                total_subjects=total_subjects,
                total_grades=len(grades),
                average_grade=_average(scores),
            ),
            grade_distribution=_histogram(scores, GRADE_RANGES),
            average_by_assessment_type=[
                AssessmentTypeAverage(
                    assessment_type=assessment_type,
                    average_grade=_average([Decimal(g.grade) for g in items]),
                    count=len(items),
                )
                for assessment_type, items in sorted(by_type.items())
            ],
            gender_distribution=_distribution(s.gender for s in students),
            ethnicity_distribution=_distribution(s.ethnicity for s in students),
            income_distribution=_histogram(
                [Decimal(s.average_income) for s in students if s.average_income is not None],
                INCOME_RANGES,
            ),
            assessment_points=[
                AssessmentPoints(
                    assessment_type=assessment_type,
                    total_points=sum((Decimal(g.max_grade) for g in items), Decimal("0")),
                    count=len(items),
                )
                for assessment_type, items in sorted(by_type.items())
            ],
        )

    async def _grades(
        self,
        owner_id: int,
        course_id: int | None,
        subject_id: int | None,
    ) -> list[Grade]:
        query = (
            select(Grade)
            .join(Subject, Subject.id == Grade.subject_id)
            .where(Subject.owner_id == owner_id)
        )
        if subject_id is not None:
            query = query.where(Grade.subject_id == subject_id)
        if course_id is not None:
            query = query.join(Student, Student.id == Grade.student_id).where(
                Student.course_id == course_id
            )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _students(self, owner_id: int, course_id: int | None) -> list[Student]:
        query = (
            select(Student)
            .join(Course, Course.id == Student.course_id)
            .where(Course.owner_id == owner_id)
        )
        if course_id is not None:
            query = query.where(Student.course_id == course_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _count_subjects(
        self,
        owner_id: int,
        course_id: int | None,
        subject_id: int | None,
    ) -> int:
        query = select(func.count(Subject.id)).where(Subject.owner_id == owner_id)
        if course_id is not None:
            query = query.where(Subject.course_id == course_id)
        if subject_id is not None:
            query = query.where(Subject.id == subject_id)
        return (await self.db.execute(query)).scalar() or 0
