"""Dashboard analytics schemas."""

from decimal import Decimal

from pydantic import Field

from app.schemas.common import BaseSchema


class DashboardTotals(BaseSchema):
    """Headline numbers for the dashboard cards."""

    total_students: int = 0
    total_subjects: int = 0
    total_grades: int = 0
    average_grade: Decimal = Field(
        default=Decimal("0"),
        description="Mean of all grades in scope, two decimals",
    )


class CountBucket(BaseSchema):
    """Number of records falling in one labelled bucket."""

    label: str
    count: int = 0


class AssessmentTypeAverage(BaseSchema):
    """Average grade of one assessment type."""

    assessment_type: str
    average_grade: Decimal
    count: int


class AssessmentPoints(BaseSchema):
    """Points at stake per assessment type."""

    assessment_type: str
    total_points: Decimal
    count: int


class DashboardResponse(BaseSchema):
    """Complete dashboard analytics for one professor."""

    course_id: int | None = None
    subject_id: int | None = None
    totals: DashboardTotals
    grade_distribution: list[CountBucket] = []
    average_by_assessment_type: list[AssessmentTypeAverage] = []
    gender_distribution: list[CountBucket] = []
    ethnicity_distribution: list[CountBucket] = []
    income_distribution: list[CountBucket] = []
    assessment_points: list[AssessmentPoints] = []
