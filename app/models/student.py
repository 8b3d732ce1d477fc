"""Student model."""

from decimal import Decimal

from sqlalchemy import DECIMAL, BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class Student(Base, IDMixin, TimestampMixin):
    """Student record; registration_id is the institutional identifier."""

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    registration_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    course_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Demographics, free-form and optional
    gender: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ethnicity: Mapped[str | None] = mapped_column(String(50), nullable=True)
    average_income: Mapped[Decimal | None] = mapped_column(DECIMAL(12, 2), nullable=True)

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, registration_id={self.registration_id})>"
