"""Grade model."""

from datetime import date
from decimal import Decimal

from sqlalchemy import DECIMAL, BigInteger, Date, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class Grade(Base, IDMixin, TimestampMixin):
    """Assessment grade of a student in a subject."""

    __tablename__ = "grades"

    student_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subject_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    grade: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    max_grade: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    assessment_type: Mapped[str] = mapped_column(String(100), nullable=False)
    assessment_name: Mapped[str] = mapped_column(String(255), nullable=False)
    date_assigned: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint(
            "student_id", "subject_id", "assessment_name", "assessment_type", "date_assigned",
            name="uq_grade_assessment",
        ),
    )

    def __repr__(self) -> str:
        return f"<Grade(student_id={self.student_id}, assessment={self.assessment_name})>"
